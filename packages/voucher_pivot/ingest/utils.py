"""Ingest utilities shared by CLI commands.

Record sources hand over JSON exports in a few shapes; ``load_records``
accepts all of them and returns the list of record mappings.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from os import PathLike
from pathlib import Path
from typing import Any

# Envelope keys searched, in order, when the document is not a bare list.
_ENVELOPE_PATHS: tuple[tuple[str, ...], ...] = (
    ("data", "vouchers"),
    ("vouchers",),
    ("data",),
    ("records",),
)


def _unwrap(doc: Any) -> Any:
    if isinstance(doc, list):
        return doc
    if not isinstance(doc, Mapping):
        return None
    for path in _ENVELOPE_PATHS:
        node: Any = doc
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if isinstance(node, list):
            return node
    return None


def load_records(path: str | PathLike[str]) -> list[Mapping[str, Any]]:
    """Read a JSON export and return its records.

    Accepted shapes: a JSON array, or an object carrying the array under
    ``data.vouchers``, ``vouchers``, ``data`` or ``records``. Non-object
    entries are dropped.
    """

    p = Path(path)
    with p.open(encoding="utf-8") as f:
        doc = json.load(f)
    records = _unwrap(doc)
    if records is None:
        raise ValueError(
            f"{path}: expected a JSON array or an object with a 'vouchers'/'data' array"
        )
    return [r for r in records if isinstance(r, Mapping)]


__all__ = ["load_records"]
