from datetime import date
from decimal import Decimal

import pytest

from debt_planner.data_models import Frequency
from debt_planner.utils import (
    add_months,
    parse_date,
    parse_frequency,
    parse_year_month,
    periods_per_year,
    to_annual,
    to_decimal,
    to_monthly,
)


@pytest.mark.parametrize(
    "frequency, expected",
    [
        (Frequency.WEEKLY, 52),
        (Frequency.FORTNIGHTLY, 26),
        (Frequency.MONTHLY, 12),
        (Frequency.QUARTERLY, 4),
        (Frequency.ANNUAL, 1),
    ],
)
def test_periods_per_year(frequency, expected):
    assert periods_per_year(frequency) == expected


def test_to_monthly_conversions():
    assert to_monthly(Decimal("500"), Frequency.MONTHLY) == Decimal("500")
    assert to_monthly(Decimal("1200"), Frequency.ANNUAL) == Decimal("100")
    assert to_monthly(Decimal("300"), Frequency.QUARTERLY) == Decimal("100")
    assert to_monthly(Decimal("1000"), Frequency.FORTNIGHTLY) == Decimal("26000") / Decimal("12")
    assert to_annual(Decimal("100"), Frequency.WEEKLY) == Decimal("5200")


def test_parse_frequency_accepts_names():
    assert parse_frequency("fortnightly") == Frequency.FORTNIGHTLY
    assert parse_frequency(Frequency.ANNUAL) == Frequency.ANNUAL
    with pytest.raises(ValueError):
        parse_frequency("daily")


def test_add_months_clamps_day_and_rolls_year():
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 11, 1), 2) == date(2027, 1, 1)
    assert add_months(date(2026, 1, 1), 1200) == date(2126, 1, 1)


def test_date_parsing():
    assert parse_year_month("2027-03") == date(2027, 3, 1)
    assert parse_date("2027-03-15") == date(2027, 3, 15)
    assert parse_date("2027-03") == date(2027, 3, 1)
    with pytest.raises(ValueError):
        parse_year_month("March")


def test_to_decimal_avoids_float_artefacts():
    assert to_decimal(0.055) == Decimal("0.055")
    assert to_decimal("1,500") == Decimal("1500")
    assert to_decimal(7) == Decimal("7")
    with pytest.raises(ValueError):
        to_decimal("abc")
