"""Utility functions for the debt planner.

This module provides helpers for parsing user input into Python data types,
for handling dates (adding months, normalizing year-month strings to
``datetime.date`` instances) and for converting amounts between repayment
frequencies.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext
import calendar
from typing import Union

from .data_models import Frequency

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

_PERIODS_PER_YEAR = {
    Frequency.WEEKLY: 52,
    Frequency.FORTNIGHTLY: 26,
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.ANNUAL: 1,
}


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except Exception as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` or ``YYYY-MM`` into a ``date``."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        return parse_year_month(value)


def month_start(dt: date) -> date:
    return dt.replace(day=1)


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "")
        return Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce a number to ``Decimal`` without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return decimal_from_str(value)


def parse_frequency(value: Union[Frequency, str]) -> Frequency:
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(str(value).strip().upper())
    except ValueError as exc:
        raise ValueError(f"Unknown frequency: {value}") from exc


def periods_per_year(frequency: Union[Frequency, str]) -> int:
    """Number of repayment periods in a year for ``frequency``."""
    return _PERIODS_PER_YEAR[parse_frequency(frequency)]


def to_annual(amount: Decimal, frequency: Union[Frequency, str]) -> Decimal:
    return amount * periods_per_year(frequency)


def to_monthly(amount: Decimal, frequency: Union[Frequency, str]) -> Decimal:
    """Convert an amount paid at ``frequency`` to its monthly equivalent.

    A fortnightly 1000 is 26000 a year, i.e. 2166.67 a month.
    """
    return to_annual(amount, frequency) / Decimal(12)
