from __future__ import annotations

from datetime import date, datetime

import pytest

from voucher_pivot.dates import (
    bucket_date,
    bucket_value,
    financial_year,
    is_bucket_label,
    label_to_date,
    parse_date,
    week_number,
)
from voucher_pivot.grouping import encode_key
from voucher_pivot.models import PivotAxisField
from voucher_pivot.ordering import sort_row_keys


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-04-01", date(2024, 4, 1)),
        ("2024-04-01T10:30:00", date(2024, 4, 1)),
        ("20240405", date(2024, 4, 5)),
        (20240405, date(2024, 4, 5)),
        ("5-Apr-24", date(2024, 4, 5)),
        ("5-apr-2024", date(2024, 4, 5)),
        ("1-Jan-99", date(1999, 1, 1)),
        ("April 5, 2024", date(2024, 4, 5)),
        (datetime(2024, 4, 5, 12, 0), date(2024, 4, 5)),
        (date(2024, 4, 5), date(2024, 4, 5)),
    ],
)
def test_parse_date_accepts_supported_formats(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "not a date", "100", "2024-13-01", "31-Feb-24", True])
def test_parse_date_rejects_garbage(raw):
    assert parse_date(raw) is None


def test_bucket_labels_per_granularity():
    d = date(2024, 4, 1)
    assert bucket_date(d, "day") == "2024-04-01"
    assert bucket_date(d, "month") == "Apr-24"
    assert bucket_date(d, "quarter") == "2024-Q2"
    assert bucket_date(d, "year") == "2024"
    assert bucket_date(d, "financialYear") == "FY-2024"
    assert bucket_date(date(2024, 3, 31), "financialYear") == "FY-2023"


def test_week_number_counts_from_sunday_aligned_jan1():
    # 2024-01-01 is a Monday.
    assert week_number(date(2024, 1, 1)) == 1
    assert week_number(date(2024, 1, 6)) == 1
    assert week_number(date(2024, 1, 7)) == 2
    assert bucket_date(date(2024, 1, 7), "week") == "Week 2 - 2024"


def test_financial_year_starts_in_april():
    assert financial_year(date(2024, 4, 1)) == 2024
    assert financial_year(date(2025, 1, 15)) == 2024


def test_bucket_value_unparsable_is_blank():
    assert bucket_value("garbage", "month") == "(blank)"
    assert bucket_value(None, "year") == "(blank)"
    assert bucket_value("2024-05-01", "month") == "May-24"


def test_bucket_label_detection():
    assert is_bucket_label("Apr-24", "month")
    assert is_bucket_label("FY-2024", "financialYear")
    assert is_bucket_label("Week 14 - 2024", "week")
    assert not is_bucket_label("2024-04-01", "month")


def test_label_to_date_maps_bucket_starts():
    assert label_to_date("Apr-24") == date(2024, 4, 1)
    assert label_to_date("2024-Q3") == date(2024, 7, 1)
    assert label_to_date("FY-2024") == date(2024, 4, 1)
    assert label_to_date("2023") == date(2023, 1, 1)
    assert label_to_date("Week 2 - 2024") == date(2024, 1, 8)
    assert label_to_date("(blank)") is None


@pytest.mark.parametrize("granularity", ["month", "quarter", "year", "financialYear"])
def test_bucket_labels_sort_like_their_dates(granularity):
    dates = [date(2023, 2, 10), date(2023, 11, 5), date(2024, 6, 30)]
    keys = [encode_key([bucket_date(d, granularity)]) for d in dates]
    axis = PivotAxisField(field="date", date_grouping=granularity)

    assert sort_row_keys(list(reversed(keys)), [axis]) == keys
