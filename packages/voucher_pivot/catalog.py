"""Field catalog: discover selectable fields from sample records.

The voucher schema is implicit and inconsistent: keys vary per record and
nesting depth varies per array. The builder walks a small sample of primary
records (the first ``sample_size`` plus any record whose top-level key set has
not been seen yet) and full scans of the reference collections, and emits one
:class:`FieldDescriptor` per distinct path in first-seen order.

Classification ladder for ``kind`` (first hit wins):

1. the lowercase leaf name matches an always-category pattern
   (dates, ids, codes, names, phone/GST/PAN, periods, pincodes, ...);
2. the name contains a numeric semantic token (amount, qty, rate, ...);
3. the sampled runtime type: numbers and numeric strings are values,
   everything else is a category. Blank samples defer the decision to a later
   record.

Arrays of sub-records are walked (up to ``max_depth``) and contribute dotted
child paths; the containers themselves are never selectable.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .logging_setup import get_logger
from .models import FieldDescriptor, FieldKind, FieldType, Record
from .settings import Settings, load_settings
from .values import is_blank, to_number
from .vocab import (
    AVERAGE_TOKENS,
    CUSTOMERS,
    FIELD_LABELS,
    FORCE_CATEGORY_PATTERNS,
    HIERARCHY_LABELS,
    INTERNAL_PREFIXES,
    NUMERIC_TOKENS,
    REFERENCE_COLLECTIONS,
    REPEATING_GROUPS,
    STOCKITEMS,
    VOUCHER_LEVEL,
)

_logger = get_logger("voucher_pivot.catalog")

_DATE_NAME_RE = re.compile(r"date")


# ---------------------------------------------------------------------------
# Classification helpers
# ---------------------------------------------------------------------------


def leaf_name(path: str) -> str:
    return path.rsplit(".", 1)[-1].lower()


def is_forced_category(name: str) -> bool:
    lowered = name.lower()
    return any(rx.search(lowered) for _label, rx in FORCE_CATEGORY_PATTERNS)


def has_numeric_token(name: str) -> bool:
    lowered = name.lower()
    return any(tok in lowered for tok in NUMERIC_TOKENS)


def classify(name: str, value: Any) -> FieldKind | None:
    """Return the field kind for ``name`` given one sampled ``value``.

    ``None`` means the sample is blank and the name alone is not decisive.
    """

    if is_forced_category(name):
        return "category"
    if has_numeric_token(name):
        return "value"
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return "category"
    if isinstance(value, (int, float, Decimal)):
        return "value"
    if isinstance(value, str):
        return "value" if to_number(value) is not None else "category"
    return "category"


def default_aggregation(name: str) -> str:
    lowered = name.lower()
    if any(tok in lowered for tok in AVERAGE_TOKENS):
        return "average"
    return "sum"


def hierarchy_level(path: str) -> str:
    """Structural origin of ``path`` (voucher, repeating group or collection)."""

    parts = [p.lower() for p in path.split(".")]
    first = parts[0]
    second = parts[1] if len(parts) > 2 else None

    if first in REFERENCE_COLLECTIONS:
        return first
    if first in ("ledgerentries", "allledgerentries"):
        return "billallocations" if second == "billallocations" else "ledgerentries"
    if first in ("allinventoryentries", "inventoryentries"):
        if second in ("batchallocation", "batchallocations"):
            return "batchallocation"
        if second in ("accountingallocation", "accountingallocations", "accalloc"):
            return "accountingallocation"
        return "allinventoryentries"
    if first == "address" and len(parts) > 1:
        return "address"
    return VOUCHER_LEVEL


def _title(name: str) -> str:
    known = FIELD_LABELS.get(name.lower())
    if known:
        return known
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name).replace("_", " ")
    return " ".join(w[:1].upper() + w[1:] for w in spaced.split())


def format_label(path: str) -> str:
    parts = path.split(".")
    formatted = _title(parts[-1])
    if len(parts) > 1:
        level = hierarchy_level(path)
        return f"{HIERARCHY_LABELS.get(level, level)} → {formatted}"
    return formatted


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldCatalog:
    """Ordered, immutable set of field descriptors with case-insensitive lookup."""

    fields: tuple[FieldDescriptor, ...] = ()
    _index: Mapping[str, FieldDescriptor] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {f.path.lower(): f for f in self.fields})

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and path.lower() in self._index

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.fields]

    def get(self, path: str) -> FieldDescriptor | None:
        return self._index.get(path.lower())

    def field_type(self, path: str) -> FieldType:
        """Declared comparison type of ``path`` for sorting and date bucketing.

        Paths absent from the catalog are typed from their name alone.
        """

        if _DATE_NAME_RE.search(leaf_name(path)):
            return "date"
        desc = self.get(path)
        if desc is not None:
            return "number" if desc.kind == "value" else "string"
        if not is_forced_category(leaf_name(path)) and has_numeric_token(leaf_name(path)):
            return "number"
        return "string"

    def is_date_field(self, path: str) -> bool:
        return self.field_type(path) == "date"

    def by_kind(self, kind: FieldKind) -> list[FieldDescriptor]:
        return [f for f in self.fields if f.kind == kind]

    def grouped(self) -> dict[str, list[FieldDescriptor]]:
        """Fields grouped by hierarchy level, keeping catalog order."""

        out: dict[str, list[FieldDescriptor]] = {}
        for f in self.fields:
            out.setdefault(f.hierarchy_level, []).append(f)
        return out


def is_date_path(path: str, catalog: FieldCatalog | None = None) -> bool:
    """Date-typed per ``catalog``; without one, by the leaf name alone."""

    if catalog is not None:
        return catalog.is_date_field(path)
    return bool(_DATE_NAME_RE.search(leaf_name(path)))


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def select_sample(records: Sequence[Record], size: int) -> list[Record]:
    """First ``size`` records plus every later record with an unseen key set."""

    sample: list[Record] = []
    seen: set[frozenset[str]] = set()
    for i, rec in enumerate(records):
        if not isinstance(rec, Mapping):
            continue
        keys = frozenset(k for k in rec.keys() if isinstance(k, str))
        if i < size or keys not in seen:
            sample.append(rec)
        seen.add(keys)
    return sample


class _CatalogBuilder:
    def __init__(self, *, max_depth: int) -> None:
        self.max_depth = max_depth
        self._fields: dict[str, FieldDescriptor] = {}

    def walk(self, obj: Mapping[str, Any], prefix: str = "", depth: int = 0) -> None:
        if depth >= self.max_depth:
            return
        for key, value in obj.items():
            if not isinstance(key, str) or key.startswith(INTERNAL_PREFIXES):
                continue
            path = f"{prefix}.{key}" if prefix else key

            if isinstance(value, Mapping):
                self.walk(value, path, depth + 1)
                continue
            if isinstance(value, list):
                entries = [v for v in value if isinstance(v, Mapping)]
                if entries:
                    for entry in entries:
                        self.walk(entry, path, depth + 1)
                    continue
                if key.lower() in REPEATING_GROUPS:
                    # Empty container: its children show up on another record.
                    continue
                value = next((v for v in value if not is_blank(v)), None)

            self._add(path, key, value)

    def _add(self, path: str, key: str, value: Any) -> None:
        lowered = path.lower()
        if lowered in self._fields:
            return
        kind = classify(key, value)
        if kind is None:
            return
        self._fields[lowered] = FieldDescriptor(
            path=path,
            label=format_label(path),
            kind=kind,
            hierarchy_level=hierarchy_level(path),
            default_aggregation=default_aggregation(key) if kind == "value" else None,
        )

    def result(self) -> FieldCatalog:
        return FieldCatalog(tuple(self._fields.values()))


def build_catalog(
    primary: Sequence[Record],
    customers: Iterable[Record] = (),
    stockitems: Iterable[Record] = (),
    *,
    settings: Settings | None = None,
) -> FieldCatalog:
    """Build the field catalog for one dataset snapshot.

    Primary records are sampled; reference collections are scanned in full and
    contribute paths prefixed by the collection name.
    """

    s = settings or load_settings()
    builder = _CatalogBuilder(max_depth=s.max_depth)

    sample = select_sample(primary, s.sample_size)
    for rec in sample:
        builder.walk(rec)

    for name, records in ((CUSTOMERS, customers), (STOCKITEMS, stockitems)):
        for rec in records:
            if isinstance(rec, Mapping):
                builder.walk(rec, name, 0)

    catalog = builder.result()
    _logger.debug(
        "catalog:built fields=%d sampled=%d of=%d",
        len(catalog),
        len(sample),
        len(primary),
    )
    return catalog


__all__ = [
    "FieldCatalog",
    "build_catalog",
    "classify",
    "default_aggregation",
    "format_label",
    "hierarchy_level",
    "is_date_path",
    "leaf_name",
    "select_sample",
]
