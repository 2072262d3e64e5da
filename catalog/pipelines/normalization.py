"""CSV feed normalization for product catalogs.

Parses the raw feed, strips markup from name and description, and
deduplicates by sku. The sku is only trimmed, so it is used verbatim as the
dedup key and vector id.
Fields are split on bare commas; quoted fields containing commas are not
supported by the feed format.
"""
from __future__ import annotations

import logging
import re

from catalog.records import ProductRecord

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("name", "shortDescription", "sku")

_TAG_PATTERN = re.compile(r"<[^>]*>")
_ENTITY_PATTERN = re.compile(r"&[^;]+;")
_EDGE_QUOTE_PATTERN = re.compile(r"^[\"']|[\"']\Z")


def clean_html(text: str) -> str:
    """Remove HTML tags from text."""
    return _TAG_PATTERN.sub("", text)


def replace_entities(text: str) -> str:
    """Replace entity references such as &amp; or &#39; with a single space."""
    return _ENTITY_PATTERN.sub(" ", text)


def strip_html(text: str) -> str:
    """Remove tags, then replace entity references. Idempotent."""
    return replace_entities(clean_html(text))


def strip_edge_quotes(text: str) -> str:
    """Drop one leading and one trailing quote character, if present."""
    return _EDGE_QUOTE_PATTERN.sub("", text)


def clean_field(value: str | None) -> str:
    """Normalize a single CSV field.

    Trims, strips markup, removes one layer of surrounding quotes and trims
    again. Missing values become an empty string.
    """
    if not value:
        return ""
    text = strip_html(value.strip())
    text = strip_edge_quotes(text)
    return text.strip()


def split_line(line: str) -> list[str]:
    """Split a feed line into exactly three raw fields.

    Short lines are padded with empty fields; extra fields are ignored.
    """
    fields = line.split(",")
    fields += [""] * (len(CSV_COLUMNS) - len(fields))
    return fields[: len(CSV_COLUMNS)]


def parse_line(line: str) -> ProductRecord | None:
    """Turn one feed line into a ProductRecord.

    Returns None for blank lines, lines with an empty first field, and rows
    whose trimmed sku is empty.
    """
    if not line.strip():
        return None

    raw_name, raw_description, raw_sku = split_line(line)
    if not raw_name.strip():
        return None

    record = ProductRecord(
        name=clean_field(raw_name),
        short_description=clean_field(raw_description),
        sku=raw_sku.strip(),
    )
    if not record.sku:
        return None
    return record


def normalize_catalog_csv(raw_csv_text: str) -> list[ProductRecord]:
    """Parse raw CSV text into deduplicated product records.

    Lines are split on newline characters only; other Unicode line separators
    can occur inside product text. The first line is the header and is skipped.
    Only the first record seen for each sku is kept; output follows first-seen
    order.

    Args:
        raw_csv_text: Whole feed contents

    Returns:
        Cleaned, deduplicated ProductRecord list
    """
    lines = raw_csv_text.split("\n")[1:]

    unique: dict[str, ProductRecord] = {}
    skipped = 0
    duplicates = 0

    for line in lines:
        record = parse_line(line)
        if record is None:
            skipped += 1
            continue
        if record.sku in unique:
            duplicates += 1
            logger.debug(f"Dropping duplicate sku {record.sku!r}")
            continue
        unique[record.sku] = record

    logger.info(
        f"Normalized {len(unique)} products from {len(lines)} lines "
        f"({duplicates} duplicates, {skipped} skipped)"
    )
    return list(unique.values())
