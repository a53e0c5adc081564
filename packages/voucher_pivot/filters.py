"""Filter engine: keep records whose resolved value is in an allowed set."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeAlias

from .catalog import FieldCatalog, is_date_path
from .dates import bucket_date, bucket_value, is_bucket_label, label_to_date, parse_date
from .models import FilterSpec, Record
from .values import to_label
from .vocab import BLANK_LABEL

Accessor: TypeAlias = Callable[[Record, str], Any]


def value_label(value: Any) -> str:
    """String form used for filter membership (trimmed, blank -> ``""``)."""

    return to_label(value).strip()


def allowed_labels(spec: FilterSpec, *, date_field: bool) -> frozenset[str]:
    """Normalize a filter's configured values for membership tests.

    For bucketed date filters a bucket label (any case) or a parseable date is
    rewritten to the canonical bucket label; anything else is kept verbatim.
    Blank matches both ``""`` and ``"(blank)"``.
    """

    granularity = spec.date_grouping if date_field else None
    out: set[str] = set()
    for raw in spec.values:
        v = raw.strip()
        if granularity is not None and v and v != BLANK_LABEL:
            d = label_to_date(v) if is_bucket_label(v, granularity) else parse_date(v)
            if d is not None:
                v = bucket_date(d, granularity)
        out.add(v)
    if "" in out or BLANK_LABEL in out:
        out.update(("", BLANK_LABEL))
    return frozenset(out)


def record_label(value: Any, spec: FilterSpec, *, date_field: bool) -> str:
    if date_field and spec.date_grouping is not None:
        return bucket_value(value, spec.date_grouping)
    return value_label(value)


def apply_filters(
    records: Iterable[Record],
    filters: Sequence[FilterSpec],
    accessor: Accessor,
    *,
    catalog: FieldCatalog | None = None,
) -> list[Record]:
    """Return the records passing every filter, input order preserved.

    A filter with no values selected is inactive.
    """

    active = [f for f in filters if f.values]
    prepared = []
    for spec in active:
        date_field = is_date_path(spec.field, catalog)
        prepared.append((spec, date_field, allowed_labels(spec, date_field=date_field)))

    out: list[Record] = []
    for rec in records:
        for spec, date_field, allowed in prepared:
            label = record_label(accessor(rec, spec.field), spec, date_field=date_field)
            if label not in allowed:
                break
        else:
            out.append(rec)
    return out


__all__ = ["allowed_labels", "apply_filters", "record_label", "value_label"]
