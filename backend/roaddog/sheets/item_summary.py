# Overview: Human-readable "Items" cell encoding and its best-effort decoder.

"""
Item summary strings.

Sales rows carry a display string like "T-Shirt (M) x2, Vinyl x1" in the
Items column. Newer rows also carry the structured line items as JSON in the
Items JSON column, and readers go through ItemBreakdownSource so that rows
with structured data never touch the regex below.

The text decoder is kept for sheets written before the JSON column existed.
Its grammar is frozen: a product whose name itself contains " x<digits>"
is mis-read, and that is accepted so historical reports stay stable.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Sequence
from typing import Protocol

from ..records import LineItem, RecordError


logger = logging.getLogger(__name__)


SEGMENT_PATTERN = re.compile(r"^(.+?)\s*(?:\([^)]+\))?\s*x(\d+)$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})$")


def encode_item_summary(items: Iterable[LineItem]) -> str:
    """Render line items as '<name>[ (<size>)] x<qty>' joined by ', '."""
    parts = []
    for item in items:
        size_info = f" ({item.size})" if item.size else ""
        parts.append(f"{item.product_name}{size_info} x{item.quantity}")
    return ", ".join(parts)


def encode_line_items(items: Iterable[LineItem]) -> str:
    """Structured Items JSON cell."""
    return json.dumps([item.to_payload() for item in items], separators=(",", ":"))


def decode_line_items(cell: str | None) -> list[LineItem] | None:
    """Items JSON cell -> line items; None when the cell is blank or unreadable."""
    if not cell:
        return None
    try:
        raw = json.loads(cell)
        if not isinstance(raw, list):
            raise ValueError("expected a list")
        return [LineItem.from_payload(entry) for entry in raw]
    except (ValueError, RecordError) as exc:
        logger.warning("Ignoring unreadable Items JSON cell: %s", exc)
        return None


def parse_item_summary(cell: str | None) -> dict[str, int]:
    """
    Decode an Items cell into {product name: total quantity}.

    Segments that do not match are skipped. The result is ordered by
    descending quantity; ties keep first-seen order.
    """
    totals: dict[str, int] = {}
    for segment in (cell or "").split(","):
        segment = segment.strip()
        if not segment:
            continue
        match = SEGMENT_PATTERN.match(segment)
        if not match:
            continue
        name = match.group(1).strip()
        totals[name] = totals.get(name, 0) + int(match.group(2))
    return dict(sorted(totals.items(), key=lambda kv: kv[1], reverse=True))


def normalize_date(value: str | None) -> str:
    """
    Normalize a date cell to YYYY-MM-DD.

    Accepts YYYY-MM-DD, M/D/YYYY and M/D/YY (month first; two-digit years
    are 20YY). Legacy locale timestamps
    like "10/26/2025, 3:04:05 PM" are cut at the comma first. Anything else
    is returned stripped and unchanged.
    """
    text = (value or "").strip()
    candidate = text.split(",", 1)[0].strip()
    if _ISO_DATE.match(candidate):
        return candidate
    match = _SLASH_DATE.match(candidate)
    if match:
        month, day, year = match.groups()
        if len(year) == 2:
            year = f"20{year}"
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return text


class ItemBreakdownSource(Protocol):
    def quantities(self, row: Sequence[str]) -> dict[str, int] | None:
        """Return {product name: qty} for a Sales row, or None when not applicable."""


class StructuredItems:
    """Reads the Items JSON column."""

    def __init__(self, json_index: int):
        self.json_index = json_index

    def quantities(self, row: Sequence[str]) -> dict[str, int] | None:
        if len(row) <= self.json_index or not row[self.json_index]:
            return None
        items = decode_line_items(row[self.json_index])
        if items is None:
            return None
        totals: dict[str, int] = {}
        for item in items:
            totals[item.product_name] = totals.get(item.product_name, 0) + item.quantity
        return totals


class SummaryText:
    """Falls back to parsing the display string."""

    def __init__(self, items_index: int):
        self.items_index = items_index

    def quantities(self, row: Sequence[str]) -> dict[str, int] | None:
        if len(row) <= self.items_index:
            return None
        return parse_item_summary(row[self.items_index])


def product_breakdown(
    rows: Iterable[Sequence[str]],
    sources: Sequence[ItemBreakdownSource],
) -> list[dict]:
    """
    Aggregate sold quantities over rows, using the first source that answers.

    Returns [{"productName", "quantity"}] sorted by quantity, descending.
    """
    totals: dict[str, int] = {}
    for row in rows:
        for source in sources:
            counts = source.quantities(row)
            if counts is not None:
                for name, qty in counts.items():
                    totals[name] = totals.get(name, 0) + qty
                break
    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [{"productName": name, "quantity": qty} for name, qty in ordered]
