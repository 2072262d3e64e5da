"""Catalog ingestion pipeline: fetch → normalize → batch → embed → upsert.

Batches are embedded with at most ``concurrency`` calls in flight and are
upserted strictly in batch order, so a later batch always wins an id
collision. A failure aborts the run; batches already upserted stay in the
store.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, TypeVar

from ai.embeddings import EmbeddingClient, EmbeddingError
from catalog.config import settings
from catalog.fetch import FetchError, fetch_text
from catalog.pipelines.batching import plan_batches
from catalog.pipelines.normalization import normalize_catalog_csv
from catalog.records import ProductRecord, StoredVectorEntry, entry_id
from catalog.vectorstore import StoreError, VectorStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[str], Awaitable[str]]


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion run."""
    count: int
    batches: int


class IngestionError(Exception):
    """Raised when any ingestion stage fails.

    Attributes:
        stage: "fetch", "embed" or "store"
    """

    def __init__(self, message: str, *, stage: str):
        super().__init__(message)
        self.stage = stage


async def _with_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    error_cls: type[Exception],
    what: str,
) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise error_cls(f"{what} timed out after {timeout}s") from e


def build_entries(
    batch: Sequence[ProductRecord],
    vectors: Sequence[list[float]],
    batch_index: int,
) -> list[StoredVectorEntry]:
    """Pair each record with the vector at the same position.

    Raises:
        EmbeddingError: If the vector count does not match the batch size
    """
    if len(vectors) != len(batch):
        raise EmbeddingError(
            f"Batch {batch_index}: got {len(vectors)} vectors for {len(batch)} records"
        )

    return [
        StoredVectorEntry(
            id=entry_id(record, batch_index, offset),
            values=list(vector),
            metadata=record.metadata(),
        )
        for offset, (record, vector) in enumerate(zip(batch, vectors))
    ]


async def embed_batch_entries(
    batch: Sequence[ProductRecord],
    batch_index: int,
    *,
    embedder: EmbeddingClient,
    timeout: float,
) -> list[StoredVectorEntry]:
    """Embed one batch in a single call and shape the vector entries."""
    texts = [record.embedding_text() for record in batch]
    logger.debug(f"Embedding batch {batch_index} ({len(texts)} texts)")

    vectors = await _with_timeout(
        embedder.embed_batch(texts),
        timeout,
        EmbeddingError,
        f"Embedding batch {batch_index}",
    )
    return build_entries(batch, vectors, batch_index)


async def ingest_records(
    records: Sequence[ProductRecord],
    *,
    embedder: EmbeddingClient,
    store: VectorStore,
    batch_size: int | None = None,
    concurrency: int | None = None,
) -> IngestionResult:
    """Embed and upsert records that are already normalized.

    Args:
        records: Records to index
        embedder: Embedding client (one call per batch)
        store: Vector store (one upsert per batch)
        batch_size: Records per batch (default from config)
        concurrency: Embedding calls in flight (default from config)

    Returns:
        IngestionResult with the number of upserted vectors and batches

    Raises:
        IngestionError: If any embedding call or upsert fails
        ValueError: If batch_size or concurrency is below 1
    """
    batch_size = batch_size if batch_size is not None else settings.ingestion.batch_size
    concurrency = concurrency if concurrency is not None else settings.ingestion.concurrency
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    timeout = settings.ingestion.call_timeout

    batches = plan_batches(records, batch_size)
    if not batches:
        logger.warning("No records to ingest")
        return IngestionResult(count=0, batches=0)

    logger.info(
        f"Ingesting {len(records)} records in {len(batches)} batches "
        f"(batch_size={batch_size}, concurrency={concurrency})"
    )

    # At most `concurrency` embedding calls are pending at any time, counting
    # the batch currently being awaited. Nothing new starts after a failure.
    pending: deque[asyncio.Task[list[StoredVectorEntry]]] = deque()
    next_index = 0
    count = 0

    try:
        for batch_index in range(len(batches)):
            while next_index < len(batches) and len(pending) < concurrency:
                pending.append(asyncio.create_task(
                    embed_batch_entries(
                        batches[next_index], next_index, embedder=embedder, timeout=timeout
                    )
                ))
                next_index += 1

            task = pending.popleft()
            try:
                entries = await task
            except EmbeddingError as e:
                logger.error(f"Embedding failed for batch {batch_index}: {e}")
                raise IngestionError(f"Embedding failed for batch {batch_index}", stage="embed") from e
            except Exception as e:
                logger.error(f"Unexpected error embedding batch {batch_index}: {e}", exc_info=True)
                raise IngestionError(f"Embedding failed for batch {batch_index}", stage="embed") from e

            try:
                await _with_timeout(
                    store.upsert(entries),
                    timeout,
                    StoreError,
                    f"Upsert of batch {batch_index}",
                )
            except StoreError as e:
                logger.error(f"Upsert failed for batch {batch_index}: {e}")
                raise IngestionError(f"Upsert failed for batch {batch_index}", stage="store") from e
            except Exception as e:
                logger.error(f"Unexpected error upserting batch {batch_index}: {e}", exc_info=True)
                raise IngestionError(f"Upsert failed for batch {batch_index}", stage="store") from e

            count += len(entries)
            logger.info(f"Batch {batch_index + 1}/{len(batches)} upserted ({count} vectors so far)")
    finally:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    logger.info(f"Successfully embedded {count} products")
    return IngestionResult(count=count, batches=len(batches))


async def ingest_catalog(
    source_url: str,
    *,
    embedder: EmbeddingClient,
    store: VectorStore,
    fetcher: Fetcher = fetch_text,
    batch_size: int | None = None,
    concurrency: int | None = None,
) -> IngestionResult:
    """Execute the complete ingestion pipeline for a catalog CSV feed.

    Workflow:
    1. Fetch the CSV text
    2. Normalize and deduplicate records
    3. Plan batches
    4. Embed each batch in one call
    5. Upsert each batch

    Args:
        source_url: Where to download the CSV feed from
        embedder: Embedding client
        store: Vector store
        fetcher: Async text downloader (default: fetch_text)
        batch_size: Records per batch (default from config)
        concurrency: Embedding calls in flight (default from config)

    Returns:
        IngestionResult

    Raises:
        IngestionError: If fetching, embedding or upserting fails
    """
    logger.info("Creating vector database")

    try:
        raw_csv = await _with_timeout(
            fetcher(source_url),
            settings.ingestion.fetch_timeout,
            FetchError,
            "Catalog fetch",
        )
    except FetchError as e:
        logger.error(f"Catalog fetch failed: {e}")
        raise IngestionError("Failed to fetch catalog", stage="fetch") from e
    except Exception as e:
        logger.error(f"Unexpected error fetching catalog: {e}", exc_info=True)
        raise IngestionError("Failed to fetch catalog", stage="fetch") from e

    records = normalize_catalog_csv(raw_csv)
    return await ingest_records(
        records,
        embedder=embedder,
        store=store,
        batch_size=batch_size,
        concurrency=concurrency,
    )
