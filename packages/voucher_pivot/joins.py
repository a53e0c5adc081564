"""Per-computation join state.

:class:`JoinContext` bundles the active relationships, one lookup index per
reference collection and the master-id index of owning vouchers. It is built
once per computation from a :class:`~voucher_pivot.models.Dataset` and passed
explicitly to the value accessor; nothing here is cached on module state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .models import Dataset, Record, Relationship
from .values import get_ci, is_blank, to_label, to_number
from .vocab import (
    JOIN_ID_FALLBACKS,
    JOIN_NAME_FALLBACKS,
    MASTER_ID_FIELDS,
    REFERENCE_NAME_FIELDS,
)


def master_id_of(record: Record) -> str | None:
    for name in MASTER_ID_FIELDS:
        value = get_ci(record, name)
        if not is_blank(value):
            return to_label(value).strip()
    return None


@dataclass(frozen=True, slots=True)
class ReferenceIndex:
    """Lookup of reference records by their join field and display name."""

    records: Sequence[Record]
    to_field: str
    exact: Mapping[str, Record]
    folded: Mapping[str, Record]
    by_name: Mapping[str, Record]

    @classmethod
    def build(cls, records: Sequence[Record], to_field: str) -> ReferenceIndex:
        exact: dict[str, Record] = {}
        folded: dict[str, Record] = {}
        by_name: dict[str, Record] = {}
        for rec in records:
            if not isinstance(rec, Mapping):
                continue
            key = get_ci(rec, to_field)
            if not is_blank(key):
                label = to_label(key).strip()
                exact.setdefault(label, rec)
                folded.setdefault(label.casefold(), rec)
            for name_field in REFERENCE_NAME_FIELDS:
                name = get_ci(rec, name_field)
                if not is_blank(name):
                    by_name.setdefault(to_label(name).strip().casefold(), rec)
                    break
        return cls(records=records, to_field=to_field, exact=exact, folded=folded, by_name=by_name)

    def find(self, key: object) -> Record | None:
        """Exact key, then case-insensitive key, then a numeric scan of the join field."""

        if is_blank(key):
            return None
        label = to_label(key).strip()
        hit = self.exact.get(label) or self.folded.get(label.casefold())
        if hit is not None:
            return hit
        wanted = to_number(label)
        if wanted is None:
            return None
        for rec in self.records:
            if isinstance(rec, Mapping) and to_number(get_ci(rec, self.to_field)) == wanted:
                return rec
        return None

    def find_by_name(self, name: object) -> Record | None:
        if is_blank(name):
            return None
        return self.by_name.get(to_label(name).strip().casefold())


class JoinContext:
    """Relationships plus lookup indexes for one computation."""

    def __init__(
        self,
        dataset: Dataset,
        relationships: Mapping[str, Relationship] | Iterable[Relationship] = (),
    ) -> None:
        if isinstance(relationships, Mapping):
            rels = dict(relationships)
        else:
            rels = {r.to_collection: r for r in relationships}
        self.relationships: dict[str, Relationship] = rels
        self._indexes: dict[str, ReferenceIndex] = {
            coll: ReferenceIndex.build(dataset.collection(coll), rel.to_field)
            for coll, rel in rels.items()
        }
        owners = dataset.owners if dataset.owners is not None else dataset.primary
        by_master: dict[str, Record] = {}
        for rec in owners:
            if isinstance(rec, Mapping):
                mid = master_id_of(rec)
                if mid:
                    by_master.setdefault(mid, rec)
        self._owners = by_master

    def relationship(self, collection: str) -> Relationship | None:
        return self.relationships.get(collection)

    def index(self, collection: str) -> ReferenceIndex | None:
        return self._indexes.get(collection)

    def owner_of(self, record: Record) -> Record | None:
        mid = master_id_of(record)
        return self._owners.get(mid) if mid else None

    def lookup(self, sources: Sequence[Record], collection: str) -> Record | None:
        """Find the reference record joined to the first source carrying a key.

        ``sources`` are searched in order (an expanded entry before its
        voucher). The relationship's from-field is used when present; only
        when it is absent everywhere are the id-based and then name-based
        fallback fields tried.
        """

        rel = self.relationship(collection)
        idx = self.index(collection)
        if rel is None or idx is None:
            return None

        for src in sources:
            key = get_ci(src, rel.from_field)
            if not is_blank(key):
                return idx.find(key)

        from_lower = rel.from_field.lower()
        for alt in JOIN_ID_FALLBACKS.get(from_lower, ()):
            for src in sources:
                key = get_ci(src, alt)
                if not is_blank(key):
                    hit = idx.find(key)
                    if hit is not None:
                        return hit
        for alt in JOIN_NAME_FALLBACKS.get(from_lower, ()):
            for src in sources:
                name = get_ci(src, alt)
                if not is_blank(name):
                    hit = idx.find_by_name(name)
                    if hit is not None:
                        return hit
        return None


__all__ = ["JoinContext", "ReferenceIndex", "master_id_of"]
