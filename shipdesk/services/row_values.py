"""ShipDesk — Tolerant lookups into uploaded tabular rows.

Spreadsheet exporters change header casing and spacing, so lookups try the
exact alias first and then a header-normalized match.
"""
import re
from collections.abc import Iterable, Mapping
from typing import Any

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def cell_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_header_key(value: Any) -> str:
    """'Z - Express' -> 'zexpress'."""
    return _NON_ALNUM.sub("", cell_text(value).lower())


def pick_first_value(row: Mapping[str, Any], aliases: Iterable[str]) -> str:
    """First non-empty value among exact alias keys."""
    for key in aliases:
        value = cell_text(row.get(key))
        if value:
            return value
    return ""


def pick_row_value(row: Mapping[str, Any], aliases: Iterable[str]) -> str:
    """First non-empty value by exact alias, then by normalized header."""
    aliases = list(aliases)
    value = pick_first_value(row, aliases)
    if value:
        return value

    normalized: dict[str, str] = {}
    for key, raw in row.items():
        text = cell_text(raw)
        nk = normalize_header_key(key)
        if text and nk and nk not in normalized:
            normalized[nk] = text

    for key in aliases:
        nk = normalize_header_key(key)
        if nk and normalized.get(nk):
            return normalized[nk]
    return ""
