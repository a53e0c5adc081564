from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from voucher_pivot.cli import app
from voucher_pivot.grouping import encode_key
from voucher_pivot.models import ReportDefinition
from voucher_pivot.store import ReportStore

runner = CliRunner()


@pytest.fixture
def files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, vouchers, customers, stockitems):
    monkeypatch.chdir(tmp_path)
    out = {}
    for name, payload in (
        ("vouchers", {"data": {"vouchers": vouchers}}),
        ("customers", customers),
        ("stockitems", stockitems),
    ):
        path = tmp_path / f"{name}.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        out[name] = path
    return out


def _write(path: Path, doc) -> Path:
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def test_pivot_json_from_bare_config(files, tmp_path: Path):
    config = _write(
        tmp_path / "config.json",
        {
            "rows": [{"field": "customers.parent"}],
            "values": [{"field": "allinventoryentries.amount", "aggregation": "sum"}],
        },
    )

    result = runner.invoke(
        app,
        [
            "pivot",
            "--vouchers", str(files["vouchers"]),
            "--customers", str(files["customers"]),
            "--report", str(config),
            "--json",
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["rowKeys"] == [encode_key(["Retail"]), encode_key(["Sundry Debtors"])]
    assert payload["grandTotal"] == {"allinventoryentries.amount_sum": 1800.0}


def test_pivot_from_store_renders_table(files):
    report = ReportDefinition.model_validate(
        {
            "title": "By state",
            "pivotConfig": {
                "rows": [{"field": "region"}],
                "values": [{"field": "amount", "aggregation": "sum"}],
            },
            "isPivotMode": True,
        }
    )
    ReportStore().save("by-state", report)

    result = runner.invoke(
        app,
        ["pivot", "--vouchers", str(files["vouchers"]), "--report-id", "by-state",
         "--flatten-sales"],
    )

    assert result.exit_code == 0, result.output
    assert "Karnataka" in result.stdout
    assert "Grand Total" in result.stdout
    assert "1,800" in result.stdout


def test_fields_json(files):
    result = runner.invoke(
        app,
        ["fields", "--vouchers", str(files["vouchers"]), "--stockitems", str(files["stockitems"]),
         "--json"],
    )

    assert result.exit_code == 0, result.output
    by_path = {f["path"]: f for f in json.loads(result.stdout)}
    assert by_path["allinventoryentries.amount"]["kind"] == "value"
    assert by_path["allinventoryentries.amount"]["hierarchyLevel"] == "allinventoryentries"
    assert by_path["stockitems.category"]["kind"] == "category"
    assert "allinventoryentries" not in by_path


def test_table_json(files, tmp_path: Path):
    report = _write(
        tmp_path / "report.json",
        {
            "fields": ["vouchernumber", "customers.parent"],
            "filters": [{"field": "customers.parent", "values": ["Sundry Debtors"]}],
        },
    )

    result = runner.invoke(
        app,
        ["table", "--vouchers", str(files["vouchers"]), "--customers", str(files["customers"]),
         "--report", str(report), "--json"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert [c["key"] for c in payload["columns"]] == ["vouchernumber", "customers.parent"]
    assert payload["rows"] == [{"vouchernumber": "S-1", "customers.parent": "Sundry Debtors"}]


@pytest.mark.parametrize(
    "args",
    [
        ["pivot", "--report-id", "missing"],
        ["pivot"],
        ["table", "--report-id", "missing"],
    ],
)
def test_errors_exit_nonzero(files, args):
    cmd, *rest = args

    result = runner.invoke(app, [cmd, "--vouchers", str(files["vouchers"]), *rest])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_pivot_without_values_is_an_error(files, tmp_path: Path):
    config = _write(tmp_path / "config.json", {"rows": [{"field": "region"}]})

    result = runner.invoke(
        app, ["pivot", "--vouchers", str(files["vouchers"]), "--report", str(config)]
    )

    assert result.exit_code == 1


def test_unreadable_vouchers_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["fields", "--vouchers", str(tmp_path / "none.json")])

    assert result.exit_code == 1


def test_optional_master_files_are_loaded_when_given(files):
    base = ["fields", "--vouchers", str(files["vouchers"]), "--json"]

    bare = runner.invoke(app, base)
    full = runner.invoke(
        app,
        [*base, "--customers", str(files["customers"]), "--stockitems", str(files["stockitems"])],
    )

    assert bare.exit_code == 0, bare.output
    assert full.exit_code == 0, full.output
    bare_paths = {f["path"] for f in json.loads(bare.stdout)}
    full_paths = {f["path"] for f in json.loads(full.stdout)}
    assert not any(p.startswith(("customers.", "stockitems.")) for p in bare_paths)
    assert "customers.parent" in full_paths
    assert "stockitems.category" in full_paths
