"""Adapter for turning Tally voucher exports into flat sales rows.

Only sales vouchers are kept: reserved name ``sales`` or ``credit note``, not
optional, not cancelled, with at least one ledger entry flagged as the party
ledger. Each kept voucher yields one row per inventory entry (or one row when
it has none). A row carries:

- normalized voucher fields: ``masterid``/``mstid``, ISO ``date``/``cp_date``,
  ``customer``/``partyledgername``, ``partyledgernameid``/``partyid``,
  ``vouchernumber``/``vchno``, ``gstno``, ``region``, ``country``,
  ``salesperson``, ...
- every original voucher key (original keys win over the aliases);
- for inventory rows: ``item``/``stockitemname``, ``stockitemnameid``/
  ``itemid``, ``category``, ``stockitemgroup``, ``ledgerGroup``, numeric
  ``quantity``, ``amount``, ``profit``, ``grosscost``, ``grossexpense``, then
  every original inventory-entry key.

Rows keep ``masterid``, so dotted paths into the voucher's repeating groups
still resolve through the owning voucher.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ...values import to_number

_COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

_SALES_RESERVED_NAMES = frozenset({"sales", "credit note"})


def _flag(record: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = record.get(name)
        if value is not None and value != "":
            return str(value).strip().lower()
    return ""


def _first(record: Mapping[str, Any], *names: str, default: Any = "") -> Any:
    for name in names:
        value = record.get(name)
        if value is not None and value != "":
            return value
    return default


def _first_of_list(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value.split("|", 1)[0]
    return None


def parse_amount(value: Any) -> float:
    """Parse an export amount; blank or malformed input is 0.

    Understands thousands separators, parentheses, a leading ``-`` and the
    ``(-)`` negative marker.
    """

    if value is None or value == "":
        return 0.0
    n = to_number(value if not isinstance(value, str) else value.strip())
    return n if n is not None else 0.0


def parse_quantity(value: Any) -> int:
    """Leading integer of a quantity such as ``"12 Nos"``; 0 when absent."""

    if value is None or value == "":
        return 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    m = _LEADING_INT_RE.match(str(value).replace(",", ""))
    return int(m.group(1)) if m else 0


def normalize_voucher_date(value: Any) -> Any:
    """``YYYYMMDD`` becomes ``YYYY-MM-DD``; anything else is returned as-is."""

    if value is None or value == "":
        return None
    s = str(value).strip()
    m = _COMPACT_DATE_RE.match(s)
    if m:
        return f"{m.group(1)}-{m.group(2)}-{m.group(3)}"
    return s


def is_sales_voucher(voucher: Mapping[str, Any]) -> bool:
    if _flag(voucher, "reservedname") not in _SALES_RESERVED_NAMES:
        return False
    if _flag(voucher, "isoptional", "isOptional") != "no":
        return False
    if _flag(voucher, "iscancelled", "isCancelled") != "no":
        return False
    ledgers = voucher.get("ledgerentries") or voucher.get("ledgers") or []
    if not isinstance(ledgers, list):
        return False
    return any(
        isinstance(entry, Mapping) and _flag(entry, "ispartyledger", "isPartyLedger") == "yes"
        for entry in ledgers
    )


def _base_row(voucher: Mapping[str, Any]) -> dict[str, Any]:
    raw_date = _first(voucher, "cp_date", "date", "DATE", "CP_DATE", default=None)
    date = normalize_voucher_date(raw_date)
    party = _first(voucher, "partyledgername", "party", default="Unknown")
    party_id = _first(voucher, "partyledgernameid", "partyid")
    vch_no = _first(voucher, "vouchernumber", "vchno")
    row: dict[str, Any] = {
        "masterid": _first(voucher, "masterid", "mstid", default=None),
        "mstid": _first(voucher, "mstid", "masterid", default=None),
        "date": date,
        "cp_date": date,
        "customer": party,
        "partyledgername": party,
        "partyledgernameid": party_id,
        "partyid": party_id,
        "vouchernumber": vch_no,
        "vchno": vch_no,
        "alterid": voucher.get("alterid"),
        "gstno": _first(voucher, "partygstin", "gstno"),
        "pincode": _first(voucher, "pincode"),
        "reference": _first(voucher, "reference"),
        "vchtype": _first(voucher, "vouchertypename", "vchtype"),
        "region": _first(voucher, "state", default="Unknown"),
        "country": _first(voucher, "country", default="Unknown"),
        "salesperson": _first(
            voucher, "salesprsn", "salesperson", "salespersonname", default="Unassigned"
        ),
    }
    row.update(voucher)
    # Original keys win, except that the normalized date stays ISO.
    if date is not None:
        row["date"] = date
        row["cp_date"] = date
    return row


def _ledger_group(entry: Mapping[str, Any]) -> str:
    allocations = entry.get("accalloc")
    if isinstance(allocations, list) and allocations and isinstance(allocations[0], Mapping):
        alloc = allocations[0]
        return (
            _first(alloc, "ledgergroupidentify", "group", default=None)
            or _first_of_list(alloc.get("grouplist"))
            or "Other"
        )
    return "Other"


def _inventory_row(base: Mapping[str, Any], entry: Mapping[str, Any]) -> dict[str, Any]:
    group = (
        _first(entry, "stockitemgroup", "group", default=None)
        or _first_of_list(entry.get("stockitemgrouplist"))
        or _first_of_list(entry.get("grouplist"))
        or "Other"
    )
    category = (
        _first(entry, "stockitemcategory", default=None)
        or _first_of_list(entry.get("stockitemcategorylist"))
        or group
    )
    item = _first(entry, "stockitemname", "item", default="Unknown")
    item_id = _first(entry, "stockitemnameid", "itemid")
    row = dict(base)
    row.update(
        {
            "item": item,
            "stockitemname": item,
            "stockitemnameid": item_id,
            "itemid": item_id,
            "category": category,
            "stockitemcategory": category,
            "stockitemgroup": group,
            "quantity": parse_quantity(
                _first(entry, "billedqty", "qty", "actualqty", default=None)
            ),
            "amount": parse_amount(_first(entry, "amount", "amt", default=None)),
            "profit": parse_amount(entry.get("profit")),
            "ledgerGroup": _ledger_group(entry),
            "uom": _first(entry, "uom"),
            "grosscost": parse_amount(entry.get("grosscost")),
            "grossexpense": parse_amount(entry.get("grossexpense")),
        }
    )
    row.update(entry)
    # Measures stay numeric even when the entry carries the raw export strings.
    for key in ("amount", "profit", "grosscost", "grossexpense"):
        if entry.get(key) not in (None, ""):
            row[key] = parse_amount(entry[key])
    if entry.get("quantity") not in (None, ""):
        row["quantity"] = parse_quantity(entry["quantity"])
    return row


def flatten_voucher(voucher: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
    base = _base_row(voucher)
    entries = voucher.get("allinventoryentries") or voucher.get("inventry") or []
    entries = [e for e in entries if isinstance(e, Mapping)] if isinstance(entries, list) else []
    if not entries:
        yield base
        return
    for entry in entries:
        yield _inventory_row(base, entry)


def flatten_sales_vouchers(vouchers: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Flatten the sales vouchers of ``vouchers`` into report rows."""

    out: list[dict[str, Any]] = []
    for voucher in vouchers:
        if isinstance(voucher, Mapping) and is_sales_voucher(voucher):
            out.extend(flatten_voucher(voucher))
    return out


__all__ = [
    "flatten_sales_vouchers",
    "flatten_voucher",
    "is_sales_voucher",
    "normalize_voucher_date",
    "parse_amount",
    "parse_quantity",
]
