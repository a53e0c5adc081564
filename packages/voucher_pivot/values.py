"""Scalar helpers shared by the accessor, filters, grouping and aggregation.

Voucher exports mix numbers, numeric strings and Tally-style amounts such as
``"(-)1,250.00"``. These helpers give every stage the same answer to three
questions: is a value blank, what is its label, and what is its number.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def is_blank(value: Any) -> bool:
    """``None``, the empty string and NaN all mean "no value"."""

    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def to_label(value: Any) -> str:
    """Return the string form used for filter matching and bucket labels.

    Integral floats drop their fractional part (``100.0`` -> ``"100"``) so a
    number and its JSON-exported twin produce the same label.
    """

    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    return str(value)


def get_ci(obj: Mapping[str, Any], key: str) -> Any:
    """Exact key lookup, then the first case-insensitive match; blanks skipped."""

    value = obj.get(key)
    if not is_blank(value):
        return value
    lowered = key.lower()
    for k, v in obj.items():
        if isinstance(k, str) and k.lower() == lowered and not is_blank(v):
            return v
    return None


def to_number(value: Any) -> float | None:
    """Coerce numbers and numeric-looking strings; anything else is ``None``.

    Accepts thousands separators, a leading ``+``/``-``, surrounding
    parentheses and the ``(-)`` negative marker used by Tally exports.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        f = float(value)
        return f if math.isfinite(f) else None
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None
    negative = False
    if s.startswith("(-)"):
        negative = True
        s = s[3:].strip()
    if s.startswith("(") and s.endswith(")") and len(s) >= 2:
        negative = True
        s = s[1:-1].strip()
    s = s.replace(",", "")
    if not _NUMERIC_RE.match(s):
        return None
    f = float(s)
    if not math.isfinite(f):
        return None
    return -abs(f) if negative else f


__all__ = ["get_ci", "is_blank", "to_label", "to_number"]
