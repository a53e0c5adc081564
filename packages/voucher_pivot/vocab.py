"""Declarative vocabularies used to classify and resolve voucher fields.

Nothing in here is executed logic: the catalog builder, the relationship
resolver and the value accessor read these tables so that tuning a name list
never means touching control flow.
"""

from __future__ import annotations

import re
from types import MappingProxyType

# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

PRIMARY = "primary"
CUSTOMERS = "customers"
STOCKITEMS = "stockitems"

REFERENCE_COLLECTIONS: tuple[str, ...] = (CUSTOMERS, STOCKITEMS)

# Keys beginning with these prefixes are internal markers, never fields.
INTERNAL_PREFIXES: tuple[str, ...] = ("_", "$")

# Master-id keys tried (in order) on reference records and voucher owners.
MASTER_ID_FIELDS: tuple[str, ...] = ("masterid", "mstid", "guid")

# Display-name keys tried on reference records for name-based joins.
REFERENCE_NAME_FIELDS: tuple[str, ...] = ("name", "ledgername", "stockitemname", "$name")

# ---------------------------------------------------------------------------
# Field classification
# ---------------------------------------------------------------------------

# Words ending in "id" that are not identifiers.
ID_SUFFIX_EXCEPTIONS: tuple[str, ...] = (
    "paid",
    "valid",
    "void",
    "fluid",
    "liquid",
    "rapid",
    "solid",
    "humid",
    "acid",
    "vivid",
)

# Always-category patterns, matched against the lowercase leaf name of a path.
# Order only matters for readability; any hit forces ``kind="category"``.
FORCE_CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (label, re.compile(rx))
    for label, rx in (
        ("date", r"date"),
        ("period", r"period|^(month|year|quarter|week|fy)$"),
        ("id", rf"^(?!.*(?:{'|'.join(ID_SUFFIX_EXCEPTIONS)})$).*id$|guid"),
        ("code", r"code"),
        ("number", r"number|vchno|(^|_)no$|reference|ref_?no"),
        ("name", r"name"),
        ("phone", r"phone|mobile|telephone|contact"),
        ("tax_registration", r"gstin|gstn|gst_?no|^pan$|pan_?no"),
        ("pincode", r"pincode|pin_code|^pin$|zip"),
        ("address", r"address"),
        ("voucher_type", r"vchtype|vouchertype|reservedname"),
    )
)

# Semantic tokens that mark a field as a measure regardless of sampled type.
NUMERIC_TOKENS: tuple[str, ...] = (
    "amount",
    "qty",
    "quantity",
    "profit",
    "cost",
    "expense",
    "price",
    "rate",
    "total",
    "discount",
    "tax",
)

# Value fields whose natural roll-up is an average rather than a sum.
AVERAGE_TOKENS: tuple[str, ...] = ("rate", "price", "margin", "percent")

# Tabular columns formatted as numbers by the presentation layer.
NUMBER_FORMAT_TOKENS: tuple[str, ...] = ("amount", "quantity", "qty", "profit", "rate", "price")

# ---------------------------------------------------------------------------
# Repeating groups and hierarchy levels
# ---------------------------------------------------------------------------

VOUCHER_LEVEL = "voucher"

# Nested arrays of sub-records inside a voucher. These containers are never
# emitted as selectable fields; only their children are.
REPEATING_GROUPS: frozenset[str] = frozenset(
    {
        "ledgerentries",
        "allledgerentries",
        "allinventoryentries",
        "inventoryentries",
        "billallocations",
        "batchallocation",
        "batchallocations",
        "accountingallocation",
        "accountingallocations",
        "accalloc",
        "address",
    }
)

LEDGER_GROUPS: frozenset[str] = frozenset({"ledgerentries", "allledgerentries"})
INVENTORY_GROUPS: frozenset[str] = frozenset({"allinventoryentries", "inventoryentries"})

HIERARCHY_LABELS = MappingProxyType(
    {
        "voucher": "Voucher Fields",
        "ledgerentries": "Ledger Entries",
        "billallocations": "Bill Allocations",
        "allinventoryentries": "Inventory Entries",
        "batchallocation": "Batch Allocations",
        "accountingallocation": "Accounting Allocations",
        "address": "Address",
        CUSTOMERS: "Customers",
        STOCKITEMS: "Stock Items",
    }
)

# Repeating groups whose entries conventionally reference a master collection.
GROUP_REFERENCE_COLLECTION = MappingProxyType(
    {
        "ledgerentries": CUSTOMERS,
        "allledgerentries": CUSTOMERS,
        "billallocations": CUSTOMERS,
        "allinventoryentries": STOCKITEMS,
        "inventoryentries": STOCKITEMS,
        "batchallocation": STOCKITEMS,
        "accountingallocation": STOCKITEMS,
    }
)

# ---------------------------------------------------------------------------
# Join defaults
# ---------------------------------------------------------------------------

# Substrings marking a field name as an identifier for join heuristics.
JOIN_ID_TOKENS: tuple[str, ...] = ("masterid", "id", "guid")

# Default from-field per reference collection, keyed by the hierarchy level of
# the selected fields. The first row whose level is present among the selected
# fields wins; the final ``None`` row is the fallback.
DEFAULT_JOIN_PRECEDENCE = MappingProxyType(
    {
        CUSTOMERS: (
            ("ledgerentries", "ledgernameid"),
            ("billallocations", "ledgernameid"),
            (None, "partyledgernameid"),
        ),
        STOCKITEMS: (
            ("allinventoryentries", "stockitemnameid"),
            (None, "stockitemnameid"),
        ),
    }
)

# Alternate id keys and name keys tried when the configured from-field is
# absent on a record.
JOIN_ID_FALLBACKS = MappingProxyType(
    {
        "partyledgernameid": ("partyid", "ledgernameid"),
        "ledgernameid": ("partyledgernameid", "partyid"),
        "stockitemnameid": ("itemid",),
    }
)
JOIN_NAME_FALLBACKS = MappingProxyType(
    {
        "partyledgernameid": ("partyledgername", "partyname", "customer", "party"),
        "ledgernameid": ("ledgername", "partyledgername"),
        "stockitemnameid": ("stockitemname", "item"),
    }
)

# ---------------------------------------------------------------------------
# Synonyms for common report field names
# ---------------------------------------------------------------------------

FIELD_SYNONYMS = MappingProxyType(
    {
        "item": ("stockitemname", "item", "stockitemnameid", "itemid"),
        "category": ("stockitemcategory", "category", "stockitemgroup"),
        "date": ("cp_date", "date", "DATE", "CP_DATE"),
        "customer": ("partyledgername", "partyname", "customer", "party"),
        "party": ("partyledgername", "partyname", "customer", "party"),
    }
)

# Requests for these names may fall back to "any key containing the name".
SUBSTRING_SYNONYMS: tuple[str, ...] = ("item", "category")

# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

BLANK_LABEL = "(blank)"
TOTAL_KEY = "Total"

FIELD_LABELS = MappingProxyType(
    {
        "partyledgername": "Party Ledger Name",
        "customer": "Customer",
        "stockitemname": "Stock Item Name",
        "item": "Item",
        "region": "State/Region",
        "state": "State",
        "country": "Country",
        "pincode": "PIN Code",
        "ledgername": "Ledger Name",
        "ledgergroup": "Ledger Group",
        "salesperson": "Salesperson",
        "date": "Date",
        "amount": "Amount",
        "quantity": "Quantity",
        "profit": "Profit",
        "vouchernumber": "Voucher Number",
    }
)
