"""Reduce a bucket of records to one number per value field.

``sum``, ``average``, ``min`` and ``max`` ignore blank and non-numeric values
(numeric strings are coerced). ``count`` counts records regardless of value.
``distinctCount`` counts distinct non-blank labels. Empty inputs give 0,
never NaN.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeAlias

from .models import Record, ValueField, ValueMap
from .values import is_blank, to_label, to_number

Accessor: TypeAlias = Callable[[Record, str], Any]


def _numbers(values: Iterable[Any]) -> list[float]:
    return [n for n in (to_number(v) for v in values) if n is not None]


def _sum(values: list[Any]) -> float:
    return float(sum(_numbers(values)))


def _average(values: list[Any]) -> float:
    nums = _numbers(values)
    return sum(nums) / len(nums) if nums else 0.0


def _min(values: list[Any]) -> float:
    nums = _numbers(values)
    return min(nums) if nums else 0.0


def _max(values: list[Any]) -> float:
    nums = _numbers(values)
    return max(nums) if nums else 0.0


def _count(values: list[Any]) -> float:
    return float(len(values))


def _distinct_count(values: list[Any]) -> float:
    return float(len({to_label(v).strip() for v in values if not is_blank(v)} - {""}))


AGGREGATORS: dict[str, Callable[[list[Any]], float]] = {
    "sum": _sum,
    "average": _average,
    "min": _min,
    "max": _max,
    "count": _count,
    "distinctCount": _distinct_count,
}


def aggregate(values: Sequence[Any], aggregation: str) -> float:
    fn = AGGREGATORS.get(aggregation, _sum)
    return fn(list(values))


def aggregate_bucket(
    records: Sequence[Record],
    value_fields: Sequence[ValueField],
    accessor: Accessor,
) -> ValueMap:
    """One cell: ``{value_field.key: number}`` for every value field."""

    out: ValueMap = {}
    for vf in value_fields:
        if vf.aggregation == "count":
            out[vf.key] = float(len(records))
            continue
        out[vf.key] = aggregate([accessor(rec, vf.field) for rec in records], vf.aggregation)
    return out


__all__ = ["AGGREGATORS", "aggregate", "aggregate_bucket"]
