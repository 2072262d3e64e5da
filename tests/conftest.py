"""Shared fakes for pipeline and API tests."""
from __future__ import annotations

import asyncio
import hashlib
from typing import Sequence

import pytest

from ai.embeddings import EmbeddingError
from catalog.records import ProductRecord, QueryOptions, SearchMatch, StoredVectorEntry
from catalog.vectorstore import InMemoryVectorStore, StoreError

SAMPLE_CSV = (
    "name,shortDescription,sku\n"
    "Widget,<b>Great</b> widget,ABC123\n"
    "Widget,<b>Great</b> widget,ABC123\n"
    "Gadget,,DEF456\n"
)


class FakeEmbedder:
    """Deterministic embedder: each text maps to a fixed vector."""

    def __init__(self, dim: int = 8, delay: float = 0.0):
        self.dim = dim
        self.delay = delay
        self.calls: list[list[str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def vector_for(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [b / 255 for b in digest[: self.dim]]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return [self.vector_for(t) for t in texts]
        finally:
            self.in_flight -= 1

    async def embed_one(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]


class FailingEmbedder(FakeEmbedder):
    """Fails on the call with index ``fail_on`` (0-based)."""

    def __init__(self, fail_on: int = 0, **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if len(self.calls) == self.fail_on:
            self.calls.append(list(texts))
            raise EmbeddingError("embedding service unavailable")
        return await super().embed_batch(texts)


class RecordingStore(InMemoryVectorStore):
    """In-memory store that records each upsert's ids."""

    def __init__(self, fail_on: int | None = None):
        super().__init__()
        self.upserts: list[list[str]] = []
        self.fail_on = fail_on

    async def upsert(self, entries: Sequence[StoredVectorEntry]) -> None:
        if self.fail_on is not None and len(self.upserts) == self.fail_on:
            self.upserts.append([e.id for e in entries])
            raise StoreError("index write rejected")
        self.upserts.append([e.id for e in entries])
        await super().upsert(entries)


class StubStore(InMemoryVectorStore):
    """Store returning canned matches and recording query options."""

    def __init__(self, matches: list[SearchMatch] | None = None, error: Exception | None = None):
        super().__init__()
        self.matches = matches or []
        self.error = error
        self.queries: list[tuple[list[float], QueryOptions]] = []

    async def query(self, vector: list[float], options: QueryOptions) -> list[SearchMatch]:
        self.queries.append((vector, options))
        if self.error is not None:
            raise self.error
        return self.matches[: options.top_k]


def make_records(count: int, prefix: str = "SKU") -> list[ProductRecord]:
    return [
        ProductRecord(name=f"Product {i}", short_description=f"Description {i}", sku=f"{prefix}{i}")
        for i in range(count)
    ]


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV
