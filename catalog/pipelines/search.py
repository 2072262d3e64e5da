"""Product search pipeline: embed the query, then nearest-neighbour lookup.

Search fails soft: any error on the embed-then-query path is logged and
reported as an empty result list.
"""
from __future__ import annotations

import asyncio
import logging

from ai.embeddings import EmbeddingClient
from catalog.config import settings
from catalog.records import QueryOptions, SearchMatch
from catalog.vectorstore import VectorStore

logger = logging.getLogger(__name__)


async def search_products(
    query_text: str,
    *,
    embedder: EmbeddingClient,
    store: VectorStore,
    top_k: int | None = None,
    min_score: float | None = None,
) -> list[SearchMatch]:
    """Return the top-K products most similar to a free-text query.

    Args:
        query_text: User query
        embedder: Embedding client
        store: Vector store
        top_k: Number of matches (default from config)
        min_score: Drop matches scoring below this (default from config,
            unset keeps the full top-K)

    Returns:
        Matches in store order (highest score first); empty on blank input
        or on any failure
    """
    if not query_text or not query_text.strip():
        return []

    top_k = top_k if top_k is not None else settings.search.top_k
    if min_score is None:
        min_score = settings.search.min_score
    timeout = settings.search.call_timeout

    try:
        vector = await asyncio.wait_for(embedder.embed_one(query_text), timeout=timeout)
        matches = await asyncio.wait_for(
            store.query(vector, QueryOptions(top_k=top_k, return_metadata=True)),
            timeout=timeout,
        )

        results = [
            SearchMatch(score=float(m.score), metadata=dict(m.metadata or {}))
            for m in matches or []
        ]
        if min_score is not None:
            results = [m for m in results if m.score >= min_score]
    except Exception as e:
        logger.error(f"Error searching products: {e}")
        return []

    logger.info(f"Search returned {len(results)} matches (top_k={top_k})")
    return results
