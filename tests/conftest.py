"""Pytest configuration for test isolation and shared fixtures.

The report store defaults to a project-relative directory (``./.reports``).
Tests that run in the same working tree would otherwise see each other's
saved reports, so the store root is redirected to a per-test temporary
directory via an autouse fixture. Settings env vars are cleared for the same
reason.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from voucher_pivot.models import Dataset


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Force a per-test report store and default settings."""

    reports_root = tmp_path / "reports"
    reports_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("VOUCHER_PIVOT_REPORTS_DIR", os.fspath(reports_root))
    for name in (
        "VOUCHER_PIVOT_SAMPLE_SIZE",
        "VOUCHER_PIVOT_MAX_DEPTH",
        "VOUCHER_PIVOT_DEBOUNCE_MS",
        "VOUCHER_PIVOT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def scenario_records() -> list[dict[str, Any]]:
    return [
        {"date": "2024-04-01", "amount": 100, "region": "West"},
        {"date": "2024-04-15", "amount": 50, "region": "West"},
        {"date": "2024-05-01", "amount": 75, "region": "East"},
    ]


@pytest.fixture
def vouchers() -> list[dict[str, Any]]:
    """Two Tally-style vouchers with ledger and inventory repeating groups."""

    return [
        {
            "masterid": "101",
            "date": "20240405",
            "vouchernumber": "S-1",
            "reservedname": "Sales",
            "isoptional": "No",
            "iscancelled": "No",
            "partyledgername": "Acme Traders",
            "partyledgernameid": "C1",
            "state": "Karnataka",
            "ledgerentries": [
                {"ledgername": "Acme Traders", "ledgernameid": "C1", "ispartyledger": "Yes",
                 "amount": "-1,500.00"},
                {"ledgername": "Sales GST", "ledgernameid": "L9", "ispartyledger": "No",
                 "amount": "1,500.00"},
            ],
            "allinventoryentries": [
                {"stockitemname": "Widget", "stockitemnameid": "S1", "billedqty": "10 Nos",
                 "amount": "1,000.00", "rate": "100"},
                {"stockitemname": "Gadget", "stockitemnameid": "S2", "billedqty": "5 Nos",
                 "amount": "500.00", "rate": "100"},
            ],
        },
        {
            "masterid": "102",
            "date": "20240512",
            "vouchernumber": "S-2",
            "reservedname": "Sales",
            "isoptional": "No",
            "iscancelled": "No",
            "partyledgername": "Bolt Stores",
            "partyledgernameid": "C2",
            "state": "Kerala",
            "ledgerentries": [
                {"ledgername": "Bolt Stores", "ledgernameid": "C2", "ispartyledger": "Yes",
                 "amount": "-300.00"},
            ],
            "allinventoryentries": [
                {"stockitemname": "Widget", "stockitemnameid": "S1", "billedqty": "3 Nos",
                 "amount": "300.00", "rate": "100"},
            ],
        },
    ]


@pytest.fixture
def customers() -> list[dict[str, Any]]:
    return [
        {"masterid": "C1", "name": "Acme Traders", "parent": "Sundry Debtors", "city": "Mysore"},
        {"masterid": "C2", "name": "Bolt Stores", "parent": "Retail", "city": "Kochi"},
        {"masterid": "L9", "name": "Sales GST", "parent": "Sales Accounts", "city": ""},
    ]


@pytest.fixture
def stockitems() -> list[dict[str, Any]]:
    return [
        {"masterid": "S1", "name": "Widget", "category": "Hardware", "baseunits": "Nos"},
        {"masterid": "S2", "name": "Gadget", "category": "Electronics", "baseunits": "Nos"},
    ]


@pytest.fixture
def voucher_dataset(vouchers, customers, stockitems) -> Dataset:
    return Dataset(primary=vouchers, customers=customers, stockitems=stockitems)
