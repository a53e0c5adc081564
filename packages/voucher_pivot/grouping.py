"""Composite keys and bucketing of records into row x column cells.

A composite key is the JSON array of an axis's bucket labels, one per axis
field in order. JSON keeps the encoding injective even when a label contains
``|`` or quotes. An axis with no fields maps every record to ``"Total"``.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeAlias

from .catalog import FieldCatalog, is_date_path
from .dates import bucket_value
from .filters import value_label
from .models import PivotAxisField, Record
from .vocab import BLANK_LABEL, TOTAL_KEY

Accessor: TypeAlias = Callable[[Record, str], Any]
Buckets: TypeAlias = dict[str, dict[str, list[Record]]]

# Separator of keys produced by older string-joined encoders.
_LEGACY_SEPARATOR = "|"


def encode_key(labels: Sequence[str]) -> str:
    if not labels:
        return TOTAL_KEY
    return json.dumps(list(labels), ensure_ascii=False)


def decode_key(key: str) -> tuple[str, ...]:
    """Inverse of :func:`encode_key`.

    Anything that is not a JSON array of strings is split on ``"|"`` so a
    foreign key still renders.
    """

    if key == TOTAL_KEY:
        return ()
    try:
        parsed = json.loads(key)
    except ValueError:
        return tuple(key.split(_LEGACY_SEPARATOR))
    if isinstance(parsed, list) and all(isinstance(p, str) for p in parsed):
        return tuple(parsed)
    return tuple(key.split(_LEGACY_SEPARATOR))


def key_parts(key: str) -> tuple[str, ...]:
    """Labels to display for ``key``; ``"Total"`` displays as itself."""

    return decode_key(key) or (TOTAL_KEY,)


def axis_label(
    record: Record,
    axis: PivotAxisField,
    accessor: Accessor,
    *,
    catalog: FieldCatalog | None = None,
) -> str:
    value = accessor(record, axis.field)
    granularity = axis.date_grouping
    if granularity is not None and granularity != "day" and is_date_path(axis.field, catalog):
        return bucket_value(value, granularity)
    return value_label(value) or BLANK_LABEL


def axis_key(
    record: Record,
    axes: Sequence[PivotAxisField],
    accessor: Accessor,
    *,
    catalog: FieldCatalog | None = None,
) -> str:
    return encode_key([axis_label(record, a, accessor, catalog=catalog) for a in axes])


def bucket_records(
    records: Iterable[Record],
    rows: Sequence[PivotAxisField],
    columns: Sequence[PivotAxisField],
    accessor: Accessor,
    *,
    catalog: FieldCatalog | None = None,
) -> Buckets:
    """Partition records into ``row_key -> col_key -> records``."""

    buckets: Buckets = {}
    for rec in records:
        row_key = axis_key(rec, rows, accessor, catalog=catalog)
        col_key = axis_key(rec, columns, accessor, catalog=catalog)
        buckets.setdefault(row_key, {}).setdefault(col_key, []).append(rec)
    return buckets


__all__ = [
    "axis_key",
    "axis_label",
    "bucket_records",
    "decode_key",
    "encode_key",
    "key_parts",
]
