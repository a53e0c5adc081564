"""Relationship resolution between vouchers and the reference collections.

A relationship is a left join from a field on the primary side to a field on
``customers`` or ``stockitems``. At most one relationship is active per
reference collection. Resolution order per collection:

1. a user-supplied relationship always wins;
2. the default wiring: the from-field chosen by
   :data:`~voucher_pivot.vocab.DEFAULT_JOIN_PRECEDENCE` for the selected
   fields' hierarchy levels, joined to the reference collection's master-id
   field;
3. the name heuristic of :func:`propose_join` when the reference collection
   carries no master-id field, or when the default wiring matches no
   reference record and the heuristic pair does.

A join that still matches nothing is logged and kept: the accessor then yields
blanks for the joined fields instead of aborting the report.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .catalog import hierarchy_level
from .logging_setup import get_logger
from .models import Dataset, Record, Relationship
from .values import is_blank, to_label
from .vocab import (
    DEFAULT_JOIN_PRECEDENCE,
    GROUP_REFERENCE_COLLECTION,
    JOIN_ID_TOKENS,
    MASTER_ID_FIELDS,
    PRIMARY,
    REFERENCE_COLLECTIONS,
)

_logger = get_logger("voucher_pivot.relationships")

# Records inspected when collecting field names or validating a join.
_SCAN_LIMIT = 200

_NORMALIZE_RE = re.compile(r"[_\s]+")


def _first_segment(path: str) -> str:
    return path.split(".", 1)[0].lower()


def involved_collections(fields: Iterable[str]) -> list[str]:
    """Reference collections a set of selected fields needs, in first-use order."""

    out: list[str] = []
    for path in fields:
        head = _first_segment(path)
        coll = head if head in REFERENCE_COLLECTIONS else GROUP_REFERENCE_COLLECTION.get(head)
        if coll and coll not in out:
            out.append(coll)
    return out


def default_from_field(collection: str, fields: Iterable[str]) -> str | None:
    """Pick the primary-side join field for ``collection`` from the precedence table."""

    levels = {hierarchy_level(p) for p in fields if _first_segment(p) not in REFERENCE_COLLECTIONS}
    for level, from_field in DEFAULT_JOIN_PRECEDENCE.get(collection, ()):
        if level is None or level in levels:
            return from_field
    return None


def field_names(records: Iterable[Record], *, limit: int = _SCAN_LIMIT) -> list[str]:
    """Top-level keys across the first ``limit`` records, first-seen order."""

    seen: dict[str, None] = {}
    for i, rec in enumerate(records):
        if i >= limit:
            break
        if isinstance(rec, Mapping):
            for k in rec.keys():
                if isinstance(k, str):
                    seen.setdefault(k, None)
    return list(seen)


def master_id_field(records: Sequence[Record]) -> str | None:
    """Actual key of the master-id field on ``records`` (case preserved)."""

    names = field_names(records)
    lowered = {n.lower(): n for n in names}
    for candidate in MASTER_ID_FIELDS:
        if candidate in lowered:
            return lowered[candidate]
    return None


def _is_id_like(name: str) -> bool:
    lowered = name.lower()
    return any(tok in lowered for tok in JOIN_ID_TOKENS)


def _normalize(name: str) -> str:
    return _NORMALIZE_RE.sub("", name.lower())


def propose_join(
    from_records: Sequence[Record],
    to_records: Sequence[Record],
) -> tuple[str, str] | None:
    """Guess a ``(from_field, to_field)`` pair from field names alone.

    Priority: a shared id-like name, then an exact case-insensitive match,
    then a match after stripping ``_`` and spaces, then the first field on
    each side. ``None`` when either side has no fields.
    """

    from_names = field_names(from_records)
    to_names = field_names(to_records)
    if not from_names or not to_names:
        return None

    to_lower = {n.lower(): n for n in reversed(to_names)}
    for name in from_names:
        if _is_id_like(name) and name.lower() in to_lower:
            return name, to_lower[name.lower()]
    for name in from_names:
        if name.lower() in to_lower:
            return name, to_lower[name.lower()]
    to_norm = {_normalize(n): n for n in reversed(to_names)}
    for name in from_names:
        if _normalize(name) in to_norm:
            return name, to_norm[_normalize(name)]
    return from_names[0], to_names[0]


def _values_of(records: Iterable[Record], name: str, *, limit: int) -> set[str]:
    """Labels of ``name`` on records and on their repeating-group entries."""

    lowered = name.lower()
    out: set[str] = set()

    def _scan(obj: Mapping[str, Any], depth: int) -> None:
        for k, v in obj.items():
            if isinstance(k, str) and k.lower() == lowered and not is_blank(v):
                out.add(to_label(v).strip().lower())
            elif depth == 0 and isinstance(v, list):
                for entry in v:
                    if isinstance(entry, Mapping):
                        _scan(entry, 1)

    for i, rec in enumerate(records):
        if i >= limit:
            break
        if isinstance(rec, Mapping):
            _scan(rec, 0)
    return out


def count_matches(
    rel: Relationship,
    from_records: Sequence[Record],
    to_records: Sequence[Record],
    *,
    limit: int = _SCAN_LIMIT,
) -> int:
    """Number of distinct from-side keys that find a reference record."""

    left = _values_of(from_records, rel.from_field, limit=limit)
    right = _values_of(to_records, rel.to_field, limit=len(to_records))
    return len(left & right)


def _left_join(collection: str, from_field: str, to_field: str) -> Relationship:
    return Relationship(
        from_collection=PRIMARY,
        from_field=from_field,
        to_collection=collection,
        to_field=to_field,
    )


def resolve_relationships(
    dataset: Dataset,
    fields: Iterable[str],
    user_relationships: Iterable[Relationship] = (),
) -> dict[str, Relationship]:
    """Return the active relationship per involved reference collection."""

    selected = list(fields)
    overrides: dict[str, Relationship] = {}
    for rel in user_relationships:
        if rel.from_collection == PRIMARY:
            # Later entries replace earlier ones for the same pair.
            overrides[rel.to_collection] = rel

    active: dict[str, Relationship] = {}
    for coll in involved_collections(selected):
        if coll in overrides:
            active[coll] = overrides[coll]
            continue

        to_records = dataset.collection(coll)
        if not to_records:
            _logger.debug("relationships:skip collection=%s reason=empty", coll)
            continue

        to_field = master_id_field(to_records)
        from_field = default_from_field(coll, selected)
        proposal = propose_join(dataset.primary, to_records)
        if to_field is None or from_field is None:
            if proposal is None:
                _logger.debug("relationships:skip collection=%s reason=no_fields", coll)
                continue
            from_field, to_field = proposal
            proposal = None

        rel = _left_join(coll, from_field, to_field)
        matches = count_matches(rel, dataset.primary, to_records)
        if matches == 0 and proposal is not None:
            # The default wiring finds nothing; keep the name heuristic if it does better.
            candidate = _left_join(coll, *proposal)
            candidate_matches = count_matches(candidate, dataset.primary, to_records)
            if candidate_matches > matches:
                _logger.debug(
                    "relationships:fallback collection=%s from_field=%s to_field=%s",
                    coll,
                    candidate.from_field,
                    candidate.to_field,
                )
                rel, matches = candidate, candidate_matches
        if matches == 0:
            _logger.info(
                "relationships:no_matches collection=%s from_field=%s to_field=%s",
                coll,
                rel.from_field,
                rel.to_field,
            )
        active[coll] = rel

    # Overrides for collections the current fields do not touch stay active.
    for coll, rel in overrides.items():
        active.setdefault(coll, rel)
    return active


__all__ = [
    "count_matches",
    "default_from_field",
    "field_names",
    "involved_collections",
    "master_id_field",
    "propose_join",
    "resolve_relationships",
]
