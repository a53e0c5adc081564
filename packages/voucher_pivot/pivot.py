"""``recompute``: the pure pivot pipeline.

expand -> filter -> bucket -> aggregate -> sort -> totals

Given the same dataset, relationships and config the result is structurally
identical on every call. Nothing in the inputs is mutated; every stage builds
new structures. Data problems (join misses, unparsable dates, non-numeric
values) degrade to blanks and zeros and never raise.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from .accessor import ValueAccessor
from .aggregation import aggregate_bucket
from .catalog import FieldCatalog, build_catalog
from .expansion import expand_records, expansion_group
from .filters import apply_filters
from .grouping import bucket_records
from .joins import JoinContext
from .logging_setup import get_logger
from .models import Dataset, PivotConfig, PivotResult, Record, Relationship, ValueMap
from .ordering import sort_col_keys, sort_row_keys
from .settings import Settings

_logger = get_logger("voucher_pivot.pivot")


def working_set(
    dataset: Dataset,
    fields: Iterable[str],
    joins: JoinContext,
) -> list[Record]:
    """Primary records, expanded by the repeating group the fields select."""

    group = expansion_group(fields)
    return expand_records(dataset.primary, group, owner_of=joins.owner_of)


def _sum_maps(maps: Iterable[ValueMap], keys: Sequence[str]) -> ValueMap:
    out: ValueMap = dict.fromkeys(keys, 0.0)
    for m in maps:
        for k in keys:
            out[k] += m.get(k, 0.0)
    return out


def recompute(
    dataset: Dataset,
    relationships: Mapping[str, Relationship] | Iterable[Relationship],
    config: PivotConfig,
    *,
    catalog: FieldCatalog | None = None,
    settings: Settings | None = None,
) -> PivotResult:
    """Compute the pivot of ``dataset`` for ``config``.

    A config without values yields an empty result. With values but no rows
    or columns every record lands in the single ``"Total"`` x ``"Total"``
    cell. ``catalog`` supplies field types for date bucketing and sorting; it
    is built from the dataset when omitted.
    """

    if not config.values:
        _logger.debug("pivot:skip reason=no_values")
        return PivotResult()

    if catalog is None:
        catalog = build_catalog(
            dataset.primary, dataset.customers, dataset.stockitems, settings=settings
        )
    joins = JoinContext(dataset, relationships)
    accessor = ValueAccessor(joins)

    records = working_set(dataset, config.selected_fields(), joins)
    filtered = apply_filters(records, config.filters, accessor, catalog=catalog)
    buckets = bucket_records(filtered, config.rows, config.columns, accessor, catalog=catalog)

    row_keys = sort_row_keys(buckets.keys(), config.rows, catalog)
    col_keys = sort_col_keys({c for cols in buckets.values() for c in cols})
    value_keys = [vf.key for vf in config.values]

    data: dict[str, dict[str, ValueMap]] = {}
    for row_key in row_keys:
        cells = buckets[row_key]
        data[row_key] = {
            col_key: aggregate_bucket(cells[col_key], config.values, accessor)
            for col_key in col_keys
            if col_key in cells
        }

    totals = {r: _sum_maps(data[r].values(), value_keys) for r in row_keys}
    col_totals = {
        c: _sum_maps((data[r][c] for r in row_keys if c in data[r]), value_keys) for c in col_keys
    }
    grand_total = _sum_maps(totals.values(), value_keys)

    _logger.debug(
        "pivot:recompute records=%d filtered=%d rows=%d cols=%d",
        len(records),
        len(filtered),
        len(row_keys),
        len(col_keys),
    )
    return PivotResult(
        row_keys=tuple(row_keys),
        col_keys=tuple(col_keys),
        data=data,
        totals=totals,
        col_totals=col_totals,
        grand_total=grand_total,
    )


__all__ = ["recompute", "working_set"]
