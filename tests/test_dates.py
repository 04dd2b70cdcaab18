from datetime import datetime

from dotoracle.utils.dates import (
    dates_in_month,
    day_difference,
    is_date_key,
    local_date_key,
    month_key,
    next_month_key,
    previous_month_key,
)


def test_keys_from_datetime():
    when = datetime(2024, 3, 9, 23, 59)
    assert local_date_key(when) == "2024-03-09"
    assert month_key(when) == "2024-03"


def test_is_date_key():
    assert is_date_key("2024-02-29")
    assert not is_date_key("2023-02-29")
    assert not is_date_key("2024-2-1")
    assert not is_date_key("")


def test_day_difference_across_month_and_dst():
    assert day_difference("2024-01-31", "2024-02-01") == 1
    assert day_difference("2024-03-09", "2024-03-11") == 2
    assert day_difference("2024-01-01", "garbage") is None


def test_month_navigation():
    assert previous_month_key("2024-01") == "2023-12"
    assert next_month_key("2024-12") == "2025-01"


def test_dates_in_month():
    keys = ["2024-02-01", "2024-01-31", "2024-02-01", "2024-02-15"]
    assert dates_in_month(keys, "2024-02") == ["2024-02-01", "2024-02-15"]
