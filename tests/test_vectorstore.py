import pytest

from catalog.config import VectorStoreBackend
from catalog.records import QueryOptions, StoredVectorEntry
from catalog.vectorstore import InMemoryVectorStore, StoreError, build_vector_store


def entry(entry_id: str, values: list[float], name: str = "") -> StoredVectorEntry:
    return StoredVectorEntry(
        id=entry_id,
        values=values,
        metadata={"name": name or entry_id, "shortDescription": "", "sku": entry_id},
    )


async def test_query_ranks_by_cosine_similarity():
    store = InMemoryVectorStore()
    await store.upsert([
        entry("x", [1.0, 0.0]),
        entry("diag", [1.0, 1.0]),
        entry("y", [0.0, 1.0]),
    ])

    matches = await store.query([1.0, 0.1], QueryOptions(top_k=3))

    assert [m.metadata["sku"] for m in matches] == ["x", "diag", "y"]
    assert matches[0].score == pytest.approx(0.995, abs=1e-3)
    assert matches[0].score >= matches[1].score >= matches[2].score


async def test_query_respects_top_k_and_metadata_flag():
    store = InMemoryVectorStore()
    await store.upsert([entry(str(i), [1.0, float(i)]) for i in range(10)])

    matches = await store.query([1.0, 0.0], QueryOptions(top_k=4, return_metadata=False))

    assert len(matches) == 4
    assert all(m.metadata == {} for m in matches)


async def test_upsert_is_idempotent_by_id():
    store = InMemoryVectorStore()
    await store.upsert([entry("A", [1.0, 0.0], name="old")])
    await store.upsert([entry("A", [0.0, 1.0], name="new")])

    assert len(store) == 1
    assert store.get("A").metadata["name"] == "new"


async def test_empty_store_returns_nothing():
    assert await InMemoryVectorStore().query([1.0], QueryOptions()) == []


async def test_zero_vector_scores_zero():
    store = InMemoryVectorStore()
    await store.upsert([entry("zero", [0.0, 0.0])])

    matches = await store.query([1.0, 0.0], QueryOptions())

    assert matches[0].score == 0.0


async def test_dimension_mismatch_raises_store_error():
    store = InMemoryVectorStore()
    await store.upsert([entry("A", [1.0, 0.0, 0.0])])

    with pytest.raises(StoreError):
        await store.query([1.0, 0.0], QueryOptions())


def test_build_memory_backend():
    assert isinstance(build_vector_store(VectorStoreBackend.MEMORY), InMemoryVectorStore)
