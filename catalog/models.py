"""SQLAlchemy models (2.x style) for the product vector index.

Using PostgreSQL with pgvector for embeddings.
"""

from __future__ import annotations

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .config import settings
from .records import MAX_ID_LENGTH


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ProductVector(Base):
    """Product embeddings keyed by vector id (sku or positional fallback)."""
    __tablename__ = "product_vectors"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True)
    embedding: Mapped[list[float]] = mapped_column(Vector(settings.embeddings.dim), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    short_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sku: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
