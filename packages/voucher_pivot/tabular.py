"""Tabular (non-pivot) reports: one output row per filtered working record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .accessor import ValueAccessor
from .catalog import FieldCatalog, build_catalog, format_label, leaf_name
from .filters import apply_filters
from .joins import JoinContext
from .logging_setup import get_logger
from .models import Dataset, ReportDefinition
from .pivot import working_set
from .relationships import resolve_relationships
from .vocab import NUMBER_FORMAT_TOKENS

_logger = get_logger("voucher_pivot.tabular")


@dataclass(frozen=True, slots=True)
class Column:
    key: str
    label: str
    format: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "format": self.format}


@dataclass(frozen=True, slots=True)
class Table:
    columns: tuple[Column, ...] = ()
    rows: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"columns": [c.to_dict() for c in self.columns], "rows": list(self.rows)}


def _column_format(path: str) -> str | None:
    leaf = leaf_name(path)
    return "number" if any(tok in leaf for tok in NUMBER_FORMAT_TOKENS) else None


def order_columns(report: ReportDefinition) -> list[Column]:
    """Columns in ``sortIndexes`` order; unindexed fields follow, in report order."""

    indexed = [
        (report.sort_indexes.get(path), i, path) for i, path in enumerate(report.fields)
    ]
    indexed.sort(key=lambda t: (t[0] is None, t[0] if t[0] is not None else 0, t[1]))
    return [Column(key=p, label=format_label(p), format=_column_format(p)) for _, _, p in indexed]


def build_table(
    dataset: Dataset,
    report: ReportDefinition,
    catalog: FieldCatalog | None = None,
) -> Table:
    if not report.fields:
        return Table()

    if catalog is None:
        catalog = build_catalog(dataset.primary, dataset.customers, dataset.stockitems)
    selected = list(report.fields) + [f.field for f in report.filters]
    relationships = resolve_relationships(dataset, selected, report.relationships)
    joins = JoinContext(dataset, relationships)
    accessor = ValueAccessor(joins)

    records = working_set(dataset, selected, joins)
    filtered = apply_filters(records, report.filters, accessor, catalog=catalog)
    columns = order_columns(report)
    rows = [{c.key: accessor(rec, c.key) for c in columns} for rec in filtered]

    _logger.debug(
        "tabular:build records=%d filtered=%d columns=%d",
        len(records),
        len(filtered),
        len(columns),
    )
    return Table(columns=tuple(columns), rows=rows)


__all__ = ["Column", "Table", "build_table", "order_columns"]
