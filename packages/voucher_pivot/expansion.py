"""Expand records by the entries of a repeating group.

When a report selects a dotted field inside a repeating group (for example
``ledgerentries.amount``), each voucher row is replaced by one
:class:`ExpandedRecord` per entry of that group so the field resolves to one
value per row. The first dotted field whose leading segment is a known
repeating group decides which group is expanded.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any

from .models import Record
from .vocab import REFERENCE_COLLECTIONS, REPEATING_GROUPS


class ExpandedRecord(Mapping[str, Any]):
    """Read-only view of ``base`` carrying one entry of ``group``.

    Key access reads the base record only; the entry is consulted by the
    accessor for paths under ``group``.
    """

    __slots__ = ("base", "entry", "group")

    def __init__(self, base: Record, group: str, entry: Record) -> None:
        self.base = base
        self.group = group
        self.entry = entry

    def __getitem__(self, key: str) -> Any:
        return self.base[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.base)

    def __len__(self) -> int:
        return len(self.base)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"ExpandedRecord(group={self.group!r}, entry={dict(self.entry)!r})"


def expansion_group(fields: Iterable[str]) -> str | None:
    for path in fields:
        if "." not in path:
            continue
        head = path.split(".", 1)[0].lower()
        if head in REFERENCE_COLLECTIONS:
            continue
        if head in REPEATING_GROUPS:
            return head
    return None


def group_entries(record: Record | None, group: str) -> list[Record]:
    if record is None:
        return []
    base = record.base if isinstance(record, ExpandedRecord) else record
    for k, v in base.items():
        if isinstance(k, str) and k.lower() == group:
            if isinstance(v, Mapping):
                return [v]
            if isinstance(v, list):
                return [e for e in v if isinstance(e, Mapping)]
    return []


def expand_records(
    records: Sequence[Record],
    group: str | None,
    *,
    owner_of: Callable[[Record], Record | None] | None = None,
) -> list[Record]:
    """One row per group entry; records without entries pass through as-is.

    Entries come from the record itself, else from its owning voucher.
    """

    if group is None:
        return list(records)

    out: list[Record] = []
    for rec in records:
        entries = group_entries(rec, group)
        if not entries and owner_of is not None:
            entries = group_entries(owner_of(rec), group)
        if entries:
            out.extend(ExpandedRecord(rec, group, e) for e in entries)
        else:
            out.append(rec)
    return out


__all__ = ["ExpandedRecord", "expand_records", "expansion_group", "group_entries"]
