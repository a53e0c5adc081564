from __future__ import annotations

import json

import pytest

from voucher_pivot.grouping import decode_key, encode_key
from voucher_pivot.ingest.adapters.tally_sales import flatten_sales_vouchers
from voucher_pivot.models import Dataset, PivotConfig
from voucher_pivot.pivot import recompute
from voucher_pivot.relationships import resolve_relationships


def _config(**doc) -> PivotConfig:
    return PivotConfig.model_validate(doc)


def _rows(result) -> list[tuple[str, ...]]:
    return [decode_key(k) for k in result.row_keys]


AMOUNT_SUM = {"field": "amount", "aggregation": "sum"}


def test_scenario_a_rows_by_region(scenario_records):
    config = _config(rows=[{"field": "region"}], values=[AMOUNT_SUM])

    result = recompute(Dataset(primary=scenario_records), {}, config)

    assert _rows(result) == [("East",), ("West",)]
    assert result.col_keys == ("Total",)
    assert result.totals[encode_key(["East"])] == {"amount_sum": 75.0}
    assert result.totals[encode_key(["West"])] == {"amount_sum": 150.0}
    assert result.grand_total == {"amount_sum": 225.0}


def test_scenario_b_rows_by_month(scenario_records):
    config = _config(rows=[{"field": "date", "dateGrouping": "month"}], values=[AMOUNT_SUM])

    result = recompute(Dataset(primary=scenario_records), {}, config)

    assert _rows(result) == [("Apr-24",), ("May-24",)]
    assert result.data[encode_key(["Apr-24"])]["Total"] == {"amount_sum": 150.0}
    assert result.data[encode_key(["May-24"])]["Total"] == {"amount_sum": 75.0}


def test_scenario_c_filter_removes_bucket(scenario_records):
    config = _config(
        filters=[{"field": "region", "values": ["West"]}],
        rows=[{"field": "date", "dateGrouping": "month"}],
        values=[AMOUNT_SUM],
    )

    result = recompute(Dataset(primary=scenario_records), {}, config)

    assert _rows(result) == [("Apr-24",)]
    assert encode_key(["May-24"]) not in result.data
    assert result.grand_total == {"amount_sum": 150.0}


def test_scenario_d_missing_value_is_blank_and_last(scenario_records):
    records = scenario_records + [{"date": "2024-05-03", "amount": 5}]
    config = _config(rows=[{"field": "region"}], values=[AMOUNT_SUM])

    result = recompute(Dataset(primary=records), {}, config)

    assert _rows(result) == [("East",), ("West",), ("(blank)",)]
    assert result.totals[encode_key(["(blank)"])] == {"amount_sum": 5.0}


def test_scenario_e_count_without_axes(scenario_records):
    config = _config(values=[{"field": "amount", "aggregation": "count"}])

    result = recompute(Dataset(primary=scenario_records), {}, config)

    assert result.row_keys == ("Total",)
    assert result.col_keys == ("Total",)
    assert result.data["Total"]["Total"] == {"amount_count": 3.0}
    assert result.grand_total == {"amount_count": 3.0}


def test_no_values_yields_empty_result(scenario_records):
    config = _config(rows=[{"field": "region"}])

    result = recompute(Dataset(primary=scenario_records), {}, config)

    assert result.is_empty
    assert not config.is_computable


@pytest.mark.parametrize("aggregation", ["sum", "count", "distinctCount"])
def test_totals_are_consistent(scenario_records, aggregation):
    records = scenario_records + [
        {"date": "2024-06-09", "amount": "12.5", "region": "East"},
        {"date": "2024-06-10", "amount": None, "region": "North"},
    ]
    config = _config(
        rows=[{"field": "region"}],
        columns=[{"field": "date", "dateGrouping": "month"}],
        values=[{"field": "amount", "aggregation": aggregation}],
    )

    result = recompute(Dataset(primary=records), {}, config)

    key = f"amount_{aggregation}"
    by_rows = sum(result.totals[r][key] for r in result.row_keys)
    by_cols = sum(result.col_totals[c][key] for c in result.col_keys)
    assert result.grand_total[key] == pytest.approx(by_rows)
    assert result.grand_total[key] == pytest.approx(by_cols)
    for r in result.row_keys:
        assert result.totals[r][key] == pytest.approx(
            sum(cell[key] for cell in result.data[r].values())
        )


def test_recompute_is_idempotent(voucher_dataset):
    fields = ["customers.parent", "allinventoryentries.amount"]
    rels = resolve_relationships(voucher_dataset, fields)
    config = _config(
        rows=[{"field": "customers.parent"}],
        columns=[{"field": "date", "dateGrouping": "quarter"}],
        values=[{"field": "allinventoryentries.amount", "aggregation": "sum"}],
    )

    first = recompute(voucher_dataset, rels, config)
    second = recompute(voucher_dataset, rels, config)

    assert first == second
    assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())


def test_inputs_are_not_mutated(scenario_records):
    snapshot = json.dumps(scenario_records, sort_keys=True)
    config = _config(rows=[{"field": "region"}], values=[AMOUNT_SUM])

    recompute(Dataset(primary=scenario_records), {}, config)

    assert json.dumps(scenario_records, sort_keys=True) == snapshot


def test_repeating_group_fields_expand_rows(voucher_dataset):
    config = _config(
        rows=[{"field": "allinventoryentries.stockitemname"}],
        values=[
            {"field": "allinventoryentries.amount", "aggregation": "sum"},
            {"field": "allinventoryentries.billedqty", "aggregation": "count"},
        ],
    )

    result = recompute(voucher_dataset, {}, config)

    assert _rows(result) == [("Gadget",), ("Widget",)]
    widget = result.totals[encode_key(["Widget"])]
    assert widget["allinventoryentries.amount_sum"] == 1300.0
    assert widget["allinventoryentries.billedqty_count"] == 2.0


def test_reference_fields_group_through_joins(voucher_dataset):
    config = _config(
        rows=[{"field": "customers.parent"}],
        values=[{"field": "allinventoryentries.amount", "aggregation": "sum"}],
    )
    rels = resolve_relationships(voucher_dataset, config.selected_fields())

    result = recompute(voucher_dataset, rels, config)

    assert _rows(result) == [("Retail",), ("Sundry Debtors",)]
    assert result.grand_total == {"allinventoryentries.amount_sum": 1800.0}


def test_stock_item_category_rows(voucher_dataset):
    config = _config(
        rows=[{"field": "stockitems.category"}],
        values=[{"field": "allinventoryentries.amount", "aggregation": "sum"}],
    )
    rels = resolve_relationships(voucher_dataset, config.selected_fields())

    result = recompute(voucher_dataset, rels, config)

    totals = {decode_key(k)[0]: v for k, v in result.totals.items()}
    assert totals == {
        "Electronics": {"allinventoryentries.amount_sum": 500.0},
        "Hardware": {"allinventoryentries.amount_sum": 1300.0},
    }


def test_join_miss_groups_as_blank(vouchers):
    dataset = Dataset(primary=vouchers, customers=[{"masterid": "C1", "parent": "Debtors"}])
    config = _config(
        rows=[{"field": "customers.parent"}],
        values=[{"field": "masterid", "aggregation": "count"}],
    )
    rels = resolve_relationships(dataset, config.selected_fields())

    result = recompute(dataset, rels, config)

    assert _rows(result) == [("Debtors",), ("(blank)",)]


def test_flattened_sales_rows(vouchers, customers):
    rows = flatten_sales_vouchers(vouchers)
    dataset = Dataset(primary=rows, customers=customers, owners=vouchers)
    config = _config(
        rows=[{"field": "region"}],
        columns=[{"field": "date", "dateGrouping": "financialYear"}],
        values=[
            {"field": "amount", "aggregation": "sum"},
            {"field": "quantity", "aggregation": "sum"},
        ],
    )

    result = recompute(dataset, {}, config)

    assert _rows(result) == [("Karnataka",), ("Kerala",)]
    assert result.col_keys == (encode_key(["FY-2024"]),)
    karnataka = result.totals[encode_key(["Karnataka"])]
    assert karnataka == {"amount_sum": 1500.0, "quantity_sum": 15.0}
    assert result.grand_total == {"amount_sum": 1800.0, "quantity_sum": 18.0}
