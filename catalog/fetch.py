"""Catalog feed download."""
from __future__ import annotations

import asyncio
import logging

import requests

from .config import settings

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the catalog source is unreachable or answers with an error."""
    pass


def _get_text(url: str, timeout: float) -> str:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text


async def fetch_text(url: str, *, timeout: float | None = None) -> str:
    """Download a text document.

    Args:
        url: Source URL (e.g. a shared spreadsheet CSV export)
        timeout: Seconds to wait (default: settings.ingestion.fetch_timeout)

    Returns:
        Response body as text

    Raises:
        FetchError: On network failure, timeout, or a non-success status
    """
    timeout = timeout or settings.ingestion.fetch_timeout
    logger.info(f"Fetching catalog from {url}")

    try:
        text = await asyncio.to_thread(_get_text, url, timeout)
    except requests.RequestException as e:
        logger.error(f"Catalog fetch failed: {e}")
        raise FetchError(f"Failed to fetch {url}: {e}") from e

    logger.info(f"Fetched {len(text)} characters")
    return text
