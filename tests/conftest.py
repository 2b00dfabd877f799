from datetime import date
from decimal import Decimal

import pytest

from debt_planner.data_models import (
    Frequency,
    LoanCategory,
    LoanInput,
    PlannerSettings,
    RateType,
    Strategy,
)


@pytest.fixture
def start():
    return date(2026, 1, 1)


@pytest.fixture
def make_loan():
    def _make(
        loan_id="home",
        *,
        principal="300000",
        rate="0.055",
        term=360,
        min_repayment="0",
        category=LoanCategory.HOME,
        rate_type=RateType.VARIABLE,
        interest_only=False,
        frequency=Frequency.MONTHLY,
        offset="0",
        cap=None,
        fixed_expiry=None,
    ):
        return LoanInput(
            id=loan_id,
            name=loan_id.title(),
            category=category,
            principal=Decimal(principal),
            annual_rate=Decimal(rate),
            rate_type=rate_type,
            term_months_remaining=term,
            min_repayment=Decimal(min_repayment),
            repayment_frequency=frequency,
            interest_only=interest_only,
            fixed_expiry=fixed_expiry,
            offset_balance=Decimal(offset),
            extra_repayment_cap=Decimal(cap) if cap is not None else None,
        )

    return _make


@pytest.fixture
def make_settings():
    def _make(strategy=Strategy.AVALANCHE, surplus="0", **kwargs):
        return PlannerSettings(strategy=strategy, surplus_amount=Decimal(surplus), **kwargs)

    return _make
