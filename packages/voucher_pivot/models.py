"""Data models and type aliases for ``voucher_pivot``.

Two families live here:

- Report configuration documents (filters, pivot axes, value fields,
  relationships, saved report definitions). These are frozen pydantic models
  that serialize with camelCase aliases so a definition written by the
  presentation layer round-trips through JSON unchanged.
- Computed structures (field descriptors, the dataset snapshot, pivot
  results). These are frozen dataclasses created fresh by each computation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .vocab import CUSTOMERS, PRIMARY, STOCKITEMS

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

Record: TypeAlias = Mapping[str, Any]
"""A single voucher or master record: an arbitrarily nested JSON-like mapping.

Records are read-only inputs. Every stage of the pipeline produces new
structures and never writes into a record.
"""

Granularity: TypeAlias = Literal["day", "week", "month", "quarter", "year", "financialYear"]
Aggregation: TypeAlias = Literal["sum", "count", "average", "min", "max", "distinctCount"]
FieldKind: TypeAlias = Literal["category", "value"]
FieldType: TypeAlias = Literal["date", "number", "string"]

GRANULARITIES: tuple[str, ...] = ("day", "week", "month", "quarter", "year", "financialYear")


# ---------------------------------------------------------------------------
# Report configuration (pydantic, camelCase on the wire)
# ---------------------------------------------------------------------------


class _ConfigModel(BaseModel):
    # Keys this package does not know (UI state) are kept so a stored
    # document round-trips unchanged. Values are not trimmed here; filters
    # trim when comparing.
    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FilterSpec(_ConfigModel):
    """Keep records whose resolved value's string form is one of ``values``."""

    field: str
    values: tuple[str, ...] = ()
    date_grouping: Granularity | None = None

    @field_validator("values", mode="before")
    @classmethod
    def _stringify_values(cls, v: Any) -> Any:
        # Filter values picked in the UI may arrive as numbers.
        if isinstance(v, (list, tuple)):
            return tuple("" if x is None else str(x) for x in v)
        return v


class PivotAxisField(_ConfigModel):
    field: str
    label: str = ""
    custom_label: str | None = None
    date_grouping: Granularity | None = None

    @property
    def display_label(self) -> str:
        return self.custom_label or self.label or self.field


class ValueField(_ConfigModel):
    """A measure in the pivot.

    ``format`` and ``scale_factor`` are presentation hints; the aggregation
    core carries them through untouched.
    """

    field: str
    label: str = ""
    aggregation: Aggregation = "sum"
    format: str | None = None
    scale_factor: float | None = None
    custom_label: str | None = None

    @property
    def key(self) -> str:
        """Name of this measure inside :class:`PivotResult` maps."""
        return f"{self.field}_{self.aggregation}"

    @property
    def display_label(self) -> str:
        return self.custom_label or self.label or self.field


class PivotConfig(_ConfigModel):
    filters: tuple[FilterSpec, ...] = ()
    rows: tuple[PivotAxisField, ...] = ()
    columns: tuple[PivotAxisField, ...] = ()
    values: tuple[ValueField, ...] = ()

    @property
    def is_computable(self) -> bool:
        return bool(self.values) and bool(self.rows or self.columns)

    def selected_fields(self) -> list[str]:
        """All field paths referenced by the config, rows first, without repeats."""

        seen: dict[str, None] = {}
        for group in (self.rows, self.columns, self.values, self.filters):
            for item in group:
                seen.setdefault(item.field, None)
        return list(seen)


class Relationship(_ConfigModel):
    """A left join from a primary-side field to a reference-collection field."""

    from_collection: str = PRIMARY
    from_field: str
    to_collection: Literal["customers", "stockitems"]
    to_field: str
    join_type: Literal["left"] = "left"

    @model_validator(mode="after")
    def _one_direction(self) -> Relationship:
        if self.from_collection == self.to_collection:
            raise ValueError("a relationship must join two different collections")
        return self


class SavedPivot(_ConfigModel):
    id: str
    name: str
    config: PivotConfig


class ReportDefinition(BaseModel):
    """A persisted report as kept by the report-definition store.

    Unknown keys are preserved so documents written by newer front-ends
    survive a load/save cycle.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    title: str = ""
    fields: tuple[str, ...] = ()
    filters: tuple[FilterSpec, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    pivot_config: PivotConfig | None = None
    is_pivot_mode: bool = False
    saved_pivots: tuple[SavedPivot, ...] = ()
    sort_indexes: dict[str, int] = {}

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Computed structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One selectable field discovered by the catalog builder.

    Attributes
    ----------
    path:
        Dot-separated path; reference-collection fields are prefixed with the
        collection name (``customers.parent``).
    kind:
        ``"category"`` for dimensions, ``"value"`` for measures.
    hierarchy_level:
        Structural origin: ``voucher``, a repeating group, or a reference
        collection.
    default_aggregation:
        ``"sum"`` or ``"average"`` for value fields, ``None`` otherwise.
    """

    path: str
    label: str
    kind: FieldKind
    hierarchy_level: str
    default_aggregation: Literal["sum", "average"] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "path": self.path,
            "label": self.label,
            "kind": self.kind,
            "hierarchyLevel": self.hierarchy_level,
        }
        if self.default_aggregation is not None:
            out["defaultAggregation"] = self.default_aggregation
        return out


@dataclass(frozen=True, slots=True)
class Dataset:
    """A read-only snapshot of the three collections for one computation.

    ``owners`` optionally carries the unflattened vouchers that flattened
    primary rows were derived from; dotted paths consult them via the shared
    master id. When omitted, the primary records serve as their own owners.
    """

    primary: Sequence[Record] = ()
    customers: Sequence[Record] = ()
    stockitems: Sequence[Record] = ()
    owners: Sequence[Record] | None = None

    def collection(self, name: str) -> Sequence[Record]:
        if name == CUSTOMERS:
            return self.customers
        if name == STOCKITEMS:
            return self.stockitems
        if name == PRIMARY:
            return self.primary
        return ()


ValueMap: TypeAlias = dict[str, float]


@dataclass(frozen=True, slots=True)
class PivotResult:
    """The computed pivot model handed to the presentation layer.

    ``data[row_key][col_key][value_key]`` holds one cell; buckets with no
    records are absent rather than zero. Value keys are
    :attr:`ValueField.key`.
    """

    row_keys: tuple[str, ...] = ()
    col_keys: tuple[str, ...] = ()
    data: dict[str, dict[str, ValueMap]] = field(default_factory=dict)
    totals: dict[str, ValueMap] = field(default_factory=dict)
    col_totals: dict[str, ValueMap] = field(default_factory=dict)
    grand_total: ValueMap = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.row_keys

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowKeys": list(self.row_keys),
            "colKeys": list(self.col_keys),
            "data": {r: {c: dict(v) for c, v in cols.items()} for r, cols in self.data.items()},
            "totals": {r: dict(v) for r, v in self.totals.items()},
            "colTotals": {c: dict(v) for c, v in self.col_totals.items()},
            "grandTotal": dict(self.grand_total),
        }


__all__ = [
    "GRANULARITIES",
    "Aggregation",
    "Dataset",
    "FieldDescriptor",
    "FieldKind",
    "FieldType",
    "FilterSpec",
    "Granularity",
    "PivotAxisField",
    "PivotConfig",
    "PivotResult",
    "Record",
    "Relationship",
    "ReportDefinition",
    "SavedPivot",
    "ValueField",
]
