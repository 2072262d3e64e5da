"""Vector store interface and implementations.

PgVectorStore persists product vectors in PostgreSQL via pgvector;
InMemoryVectorStore keeps them in process for local development and tests.
Both upsert idempotently by id and rank query results by cosine similarity.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

import numpy as np
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import VectorStoreBackend, settings
from .models import ProductVector
from .records import QueryOptions, SearchMatch, StoredVectorEntry

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a vector store upsert or query fails."""
    pass


class VectorStore(ABC):
    """What the pipelines require of a vector index."""

    @abstractmethod
    async def upsert(self, entries: Sequence[StoredVectorEntry]) -> None:
        """Insert or overwrite entries by id.

        Raises:
            StoreError: If the write fails
        """

    @abstractmethod
    async def query(self, vector: list[float], options: QueryOptions) -> list[SearchMatch]:
        """Return up to options.top_k matches, highest score first.

        Raises:
            StoreError: If the query fails
        """


class InMemoryVectorStore(VectorStore):
    """Process-local vector store using numpy cosine similarity."""

    def __init__(self):
        self._entries: dict[str, StoredVectorEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> StoredVectorEntry | None:
        return self._entries.get(entry_id)

    async def upsert(self, entries: Sequence[StoredVectorEntry]) -> None:
        for entry in entries:
            self._entries[entry.id] = entry
        logger.debug(f"Upserted {len(entries)} vectors (total {len(self._entries)})")

    async def query(self, vector: list[float], options: QueryOptions) -> list[SearchMatch]:
        if not self._entries:
            return []

        entries = list(self._entries.values())
        try:
            matrix = np.asarray([e.values for e in entries], dtype=np.float32)
            query = np.asarray(vector, dtype=np.float32)
            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            sims = np.divide(
                matrix @ query,
                norms,
                out=np.zeros(len(entries), dtype=np.float32),
                where=norms > 0,
            )
        except ValueError as e:
            raise StoreError(f"In-memory query failed: {e}") from e

        order = np.argsort(-sims, kind="stable")[: options.top_k]
        return [
            SearchMatch(
                score=float(sims[i]),
                metadata=dict(entries[i].metadata) if options.return_metadata else {},
            )
            for i in order
        ]


class PgVectorStore(VectorStore):
    """PostgreSQL + pgvector backed store."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def upsert(self, entries: Sequence[StoredVectorEntry]) -> None:
        if not entries:
            return

        # One row per id; the last entry for a repeated id wins
        rows = {
            entry.id: {
                "id": entry.id,
                "embedding": entry.values,
                "name": entry.metadata.get("name", ""),
                "short_description": entry.metadata.get("shortDescription", ""),
                "sku": entry.metadata.get("sku", ""),
                "updated_at": datetime.utcnow(),
            }
            for entry in entries
        }

        stmt = pg_insert(ProductVector).values(list(rows.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProductVector.id],
            set_={
                "embedding": stmt.excluded.embedding,
                "name": stmt.excluded.name,
                "short_description": stmt.excluded.short_description,
                "sku": stmt.excluded.sku,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self._session_maker() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"Vector upsert failed: {e}")
                raise StoreError(f"Failed to upsert {len(rows)} vectors: {e}") from e

        logger.info(f"Upserted {len(rows)} vectors")

    async def query(self, vector: list[float], options: QueryOptions) -> list[SearchMatch]:
        # pgvector cosine similarity: 1 - (embedding <=> query)
        distance = ProductVector.embedding.cosine_distance(vector)
        stmt = (
            select(ProductVector, (1 - distance).label("score"))
            .order_by(distance)
            .limit(options.top_k)
        )

        async with self._session_maker() as session:
            try:
                result = await session.execute(stmt)
                rows = result.all()
            except Exception as e:
                logger.error(f"Vector query failed: {e}")
                raise StoreError(f"Failed to query vectors: {e}") from e

        return [
            SearchMatch(
                score=float(score),
                metadata={
                    "name": product.name,
                    "shortDescription": product.short_description,
                    "sku": product.sku,
                } if options.return_metadata else {},
            )
            for product, score in rows
        ]


def build_vector_store(backend: VectorStoreBackend | None = None) -> VectorStore:
    """Create the configured vector store."""
    backend = backend or settings.vector_store.backend
    if backend == VectorStoreBackend.MEMORY:
        logger.info("Using in-memory vector store")
        return InMemoryVectorStore()

    from .db import get_session_maker

    logger.info("Using pgvector store")
    return PgVectorStore(get_session_maker())
