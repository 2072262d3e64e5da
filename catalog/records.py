"""Value types shared by the ingestion and search pipelines."""
from __future__ import annotations

from dataclasses import dataclass, field

MAX_ID_LENGTH = 16


@dataclass(frozen=True)
class ProductRecord:
    """A cleaned catalog row."""
    name: str
    short_description: str
    sku: str

    def embedding_text(self) -> str:
        """Text submitted to the embedding model for this product."""
        return (
            f"Name: {self.name}\n"
            f"Short Description: {self.short_description}\n"
            f"SKU: {self.sku}"
        )

    def metadata(self) -> dict[str, str]:
        """Metadata stored alongside the vector (feed column names)."""
        return {
            "name": self.name,
            "shortDescription": self.short_description,
            "sku": self.sku,
        }


@dataclass(frozen=True)
class StoredVectorEntry:
    """Vector plus identity and metadata, as handed to the vector store."""
    id: str
    values: list[float]
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchMatch:
    """Single similarity match."""
    score: float
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryOptions:
    """Options for a vector store similarity query."""
    top_k: int = 5
    return_metadata: bool = True


def entry_id(record: ProductRecord, batch_index: int, offset: int) -> str:
    """Vector id for a record.

    The sku truncated to MAX_ID_LENGTH, or a positional id when the sku is
    blank. Positional ids embed the batch index so they are unique per run.
    """
    sku = (record.sku or "").strip()
    if sku:
        return sku[:MAX_ID_LENGTH]
    return f"_{batch_index}_{offset}"[:MAX_ID_LENGTH]
