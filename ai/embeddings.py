"""Embedding client for product and query texts.

Wraps sentence-transformers with batching, retry, and an order-preserving
batch contract: vector ``i`` always belongs to input text ``i``.
"""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Protocol, Sequence

from tenacity import retry, stop_after_attempt, wait_exponential

from catalog.config import settings

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when embedding computation fails."""
    pass


class EmbeddingClient(Protocol):
    """What the pipelines require of an embedding backend."""

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, same length and order as the input."""
        ...

    async def embed_one(self, text: str) -> list[float]:
        """Return the vector for a single text."""
        ...


@lru_cache(maxsize=4)
def _load_model(model_name: str, device: str) -> SentenceTransformer:
    """Load and cache a sentence transformer model.

    Raises:
        EmbeddingError: If model loading fails
    """
    try:
        from sentence_transformers import SentenceTransformer

        logger.info(f"Loading embedding model: {model_name} on device: {device}")
        model = SentenceTransformer(model_name, device=device)
        logger.info(f"Model loaded successfully. Embedding dim: {model.get_sentence_embedding_dimension()}")
        return model
    except Exception as e:
        logger.error(f"Failed to load embedding model: {e}")
        raise EmbeddingError(f"Model loading failed: {e}") from e


class SentenceTransformerEmbedder:
    """EmbeddingClient backed by a local sentence-transformers model.

    The model is loaded lazily on first use. Encoding is blocking, so it runs
    in a worker thread.
    """

    def __init__(
        self,
        model_name: str | None = None,
        *,
        device: str | None = None,
        batch_size: int | None = None,
        normalize_embeddings: bool | None = None,
        retry_attempts: int | None = None,
        model: SentenceTransformer | None = None,
    ):
        self.model_name = model_name or settings.embeddings.model_name
        self.device = device or settings.embeddings.device
        self.batch_size = batch_size or settings.embeddings.batch_size
        self.normalize_embeddings = (
            normalize_embeddings
            if normalize_embeddings is not None
            else settings.embeddings.normalize_embeddings
        )
        self.retry_attempts = retry_attempts or settings.embeddings.retry_attempts
        self._model = model

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            self._model = _load_model(self.model_name, self.device)
        return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        @retry(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            reraise=True,
        )
        def encode() -> list[list[float]]:
            embeddings = self.model.encode(
                texts,
                batch_size=self.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=self.normalize_embeddings,
            )
            return embeddings.tolist()

        return encode()

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Compute embeddings for a batch of texts.

        Args:
            texts: Texts to embed; empty strings are embedded as-is

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingError: If encoding fails after retries or the model
                returns the wrong number of vectors
        """
        text_list = list(texts)
        if not text_list:
            return []

        logger.debug(f"Encoding {len(text_list)} texts")
        try:
            vectors = await asyncio.to_thread(self._encode, text_list)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Embedding computation failed: {e}")
            raise EmbeddingError(f"Failed to compute embeddings: {e}") from e

        if len(vectors) != len(text_list):
            raise EmbeddingError(
                f"Model returned {len(vectors)} vectors for {len(text_list)} texts"
            )
        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Convenience wrapper to embed a single text."""
        vectors = await self.embed_batch([text])
        return vectors[0]
