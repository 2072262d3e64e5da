import pytest
from pydantic import ValidationError

from catalog.config import IngestionSettings, SearchSettings, Settings, VectorStoreBackend


def test_defaults(monkeypatch):
    for name in ("INGEST_BATCH_SIZE", "INGEST_CONCURRENCY", "SEARCH_TOP_K", "SEARCH_MIN_SCORE"):
        monkeypatch.delenv(name, raising=False)

    ingestion = IngestionSettings()
    search = SearchSettings()

    assert ingestion.batch_size == 100
    assert ingestion.concurrency == 1
    assert search.top_k == 5
    assert search.min_score is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("INGEST_BATCH_SIZE", "20")
    monkeypatch.setenv("INGEST_CONCURRENCY", "4")
    monkeypatch.setenv("SEARCH_MIN_SCORE", "0.7")
    monkeypatch.setenv("VECTOR_STORE_BACKEND", "memory")

    settings = Settings(_env_file=None)

    assert settings.ingestion.batch_size == 20
    assert settings.ingestion.concurrency == 4
    assert settings.search.min_score == 0.7
    assert settings.vector_store.backend == VectorStoreBackend.MEMORY


def test_bounds_validated(monkeypatch):
    monkeypatch.setenv("INGEST_BATCH_SIZE", "0")

    with pytest.raises(ValidationError):
        IngestionSettings()
