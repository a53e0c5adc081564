"""Deterministic ordering of composite row and column keys.

Row keys compare positionally by each axis field's declared type: dates
chronologically (parseable before unparseable), numbers numerically,
everything else with a natural, case-insensitive string order. Column keys
use the natural string order at every position. ``"(blank)"`` sorts after
every other label at its position, and the raw key breaks remaining ties.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from .catalog import FieldCatalog, is_date_path
from .dates import label_to_date
from .grouping import decode_key
from .models import FieldType, PivotAxisField
from .values import to_number
from .vocab import BLANK_LABEL

_CHUNK_RE = re.compile(r"(\d+)")


def natural_key(text: str) -> tuple[tuple[int, int, str], ...]:
    """Split ``text`` into digit and non-digit runs so ``"a10"`` follows ``"a9"``."""

    out: list[tuple[int, int, str]] = []
    for chunk in _CHUNK_RE.split(text.casefold()):
        if not chunk:
            continue
        if chunk.isdigit():
            out.append((0, int(chunk), chunk))
        else:
            out.append((1, 0, chunk))
    return tuple(out)


def axis_type(axis: PivotAxisField, catalog: FieldCatalog | None) -> FieldType:
    if catalog is not None:
        return catalog.field_type(axis.field)
    return "date" if is_date_path(axis.field) else "string"


def _position_key(label: str, ftype: FieldType) -> tuple[Any, ...]:
    if label == BLANK_LABEL:
        return (2,)
    if ftype == "date":
        d = label_to_date(label)
        if d is not None:
            return (0, d.toordinal())
        return (1, natural_key(label))
    if ftype == "number":
        n = to_number(label)
        if n is not None:
            return (0, n)
        return (1, natural_key(label))
    return (0, natural_key(label))


def _sort(keys: Iterable[str], types: Sequence[FieldType]) -> list[str]:
    def sort_key(key: str) -> tuple[Any, ...]:
        parts = decode_key(key)
        positions = tuple(
            _position_key(label, types[i] if i < len(types) else "string")
            for i, label in enumerate(parts)
        )
        return (positions, key)

    return sorted(keys, key=sort_key)


def sort_row_keys(
    keys: Iterable[str],
    rows: Sequence[PivotAxisField],
    catalog: FieldCatalog | None = None,
) -> list[str]:
    return _sort(keys, [axis_type(a, catalog) for a in rows])


def sort_col_keys(keys: Iterable[str]) -> list[str]:
    return _sort(keys, ())


__all__ = ["axis_type", "natural_key", "sort_col_keys", "sort_row_keys"]
