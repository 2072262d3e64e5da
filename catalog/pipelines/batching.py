"""Batch planning for embedding calls."""
from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def plan_batches(records: Sequence[T], batch_size: int) -> list[list[T]]:
    """Split records into consecutive batches of at most batch_size.

    Order is preserved and only the last batch may be shorter.

    Raises:
        ValueError: If batch_size is less than 1
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    return [
        list(records[start:start + batch_size])
        for start in range(0, len(records), batch_size)
    ]
