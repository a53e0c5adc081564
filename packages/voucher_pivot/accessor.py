"""Resolve one field path on one record.

Resolution is an ordered pipeline of named strategies. Each strategy either
answers (possibly with ``None``) or passes by returning :data:`MISSING`; the
first answer wins. The default pipeline:

1. :class:`ReferenceJoinResolver`: ``customers.*`` / ``stockitems.*`` paths
   are resolved through the active relationship. This strategy always
   answers for such paths, so a join miss yields ``None`` rather than falling
   through to unrelated keys on the voucher.
2. :class:`NestedArrayResolver`: a dotted path under the group an
   :class:`~voucher_pivot.expansion.ExpandedRecord` carries reads the entry.
3. :class:`NestedPathResolver`: other dotted paths read the owning voucher
   (found by master id), then the record itself.
4. :class:`DirectKeyResolver`: exact key, then case-insensitive key.
5. :class:`SynonymResolver`: named synonyms (``item``, ``category``,
   ``date``, ``customer``, ``party``), then a substring scan for
   ``item``/``category``-like requests.

Blank values (``None``, ``""``, NaN) count as absent at every step. A list
value resolves to its first non-blank element.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final, Protocol

from .expansion import ExpandedRecord
from .joins import JoinContext
from .models import Record
from .values import get_ci, is_blank
from .vocab import FIELD_SYNONYMS, REFERENCE_COLLECTIONS, SUBSTRING_SYNONYMS


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


# ---------------------------------------------------------------------------
# Nested lookup
# ---------------------------------------------------------------------------


def _key_variants(key: str) -> tuple[str, ...]:
    variants = (
        key,
        key.lower(),
        key.upper(),
        key[:1].lower() + key[1:],
        key[:1].upper() + key[1:],
    )
    return tuple(dict.fromkeys(variants))


def _lookup(obj: Mapping[str, Any], key: str) -> Any:
    for variant in _key_variants(key):
        value = obj.get(variant)
        if not is_blank(value):
            return value
    return get_ci(obj, key)


def normalize(value: Any) -> Any:
    if isinstance(value, list):
        value = next((v for v in value if not is_blank(v)), None)
    return None if is_blank(value) else value


def get_nested_value(obj: Any, path: str) -> Any:
    """Walk ``path`` through mappings, stepping into the first entry of lists.

    Each segment is tried as written, lowercased, uppercased, with its first
    letter lowered or raised, and finally case-insensitively.
    """

    current = obj
    for segment in path.split("."):
        if isinstance(current, list):
            current = next((e for e in current if isinstance(e, Mapping)), None)
        if not isinstance(current, Mapping):
            return None
        current = _lookup(current, segment)
        if current is None:
            return None
    return normalize(current)


def _split(path: str) -> tuple[str, str]:
    head, _, rest = path.partition(".")
    return head, rest


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class Resolver(Protocol):
    name: str

    def __call__(self, record: Record, path: str, joins: JoinContext | None) -> Any: ...


class ReferenceJoinResolver:
    name = "reference_join"

    def __call__(self, record: Record, path: str, joins: JoinContext | None) -> Any:
        head, rest = _split(path)
        collection = head.lower()
        if collection not in REFERENCE_COLLECTIONS or not rest:
            return MISSING
        if joins is None:
            return None

        sources: list[Record] = []
        if isinstance(record, ExpandedRecord):
            sources.extend((record.entry, record.base))
        else:
            sources.append(record)
        owner = joins.owner_of(record)
        if owner is not None and all(owner is not s for s in sources):
            sources.append(owner)

        target = joins.lookup(sources, collection)
        if target is None:
            return None
        return get_nested_value(target, rest)


class NestedArrayResolver:
    name = "nested_array"

    def __call__(self, record: Record, path: str, joins: JoinContext | None) -> Any:
        if not isinstance(record, ExpandedRecord):
            return MISSING
        head, rest = _split(path)
        if not rest or head.lower() != record.group:
            return MISSING
        value = get_nested_value(record.entry, rest)
        return MISSING if value is None else value


class NestedPathResolver:
    name = "nested_path"

    def __call__(self, record: Record, path: str, joins: JoinContext | None) -> Any:
        if "." not in path:
            return MISSING
        owner = joins.owner_of(record) if joins is not None else None
        candidates: list[Any] = [owner] if owner is not None else []
        candidates.append(record.base if isinstance(record, ExpandedRecord) else record)
        for candidate in candidates:
            value = get_nested_value(candidate, path)
            if value is not None:
                return value
        return MISSING


class DirectKeyResolver:
    name = "direct_key"

    def __call__(self, record: Record, path: str, joins: JoinContext | None) -> Any:
        value = normalize(get_ci(record, path))
        return MISSING if value is None else value


class SynonymResolver:
    name = "synonym"

    def __call__(self, record: Record, path: str, joins: JoinContext | None) -> Any:
        requested = path.lower()
        for alias in FIELD_SYNONYMS.get(requested, ()):
            value = normalize(get_ci(record, alias))
            if value is not None:
                return value

        if "." in path or not any(tok in requested for tok in SUBSTRING_SYNONYMS):
            return MISSING
        for key, raw in record.items():
            if isinstance(key, str) and requested in key.lower():
                value = normalize(raw)
                if value is not None:
                    return value
        return MISSING


DEFAULT_RESOLVERS: tuple[Resolver, ...] = (
    ReferenceJoinResolver(),
    NestedArrayResolver(),
    NestedPathResolver(),
    DirectKeyResolver(),
    SynonymResolver(),
)


class ValueAccessor:
    """Resolve field paths against records for one computation."""

    def __init__(
        self,
        joins: JoinContext | None = None,
        resolvers: Sequence[Resolver] = DEFAULT_RESOLVERS,
    ) -> None:
        self.joins = joins
        self.resolvers = tuple(resolvers)

    def resolve(self, record: Record, path: str) -> Any:
        for resolver in self.resolvers:
            value = resolver(record, path, self.joins)
            if value is not MISSING:
                return normalize(value)
        return None

    __call__ = resolve


__all__ = [
    "DEFAULT_RESOLVERS",
    "MISSING",
    "DirectKeyResolver",
    "NestedArrayResolver",
    "NestedPathResolver",
    "ReferenceJoinResolver",
    "Resolver",
    "SynonymResolver",
    "ValueAccessor",
    "get_nested_value",
    "normalize",
]
