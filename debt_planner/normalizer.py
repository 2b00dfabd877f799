"""Conversion of raw loan records into simulation-ready state.

Every amount leaves this module in a monthly cadence. Minimum repayments that
could never retire a loan are repaired here, so the simulator can assume its
inputs are sane and non-negative.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Iterable, List

from .config import MIN_REPAYMENT_TOLERANCE, MONTHS_PER_YEAR
from .data_models import (
    LoanCategory,
    LoanInput,
    PlannerSettings,
    RateType,
    SimulationLoan,
    Strategy,
)
from .utils import parse_frequency, to_decimal, to_monthly

logger = logging.getLogger(__name__)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def is_degenerate(loan: LoanInput) -> bool:
    """A loan with no remaining term or no positive rate is paid off at once."""
    return loan.term_months_remaining <= 0 or loan.annual_rate <= 0


def amortized_payment(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    """Return the level monthly payment that retires ``principal``.

        M = P * r(1 + r)^n / ((1 + r)^n - 1)

    where ``r`` is the monthly rate and ``n`` the number of months.
    """
    r = annual_rate / MONTHS_PER_YEAR
    factor = (1 + r) ** term_months
    if factor == 1:
        # rate too small to register at this precision
        return principal / term_months
    return principal * (r * factor) / (factor - 1)


def required_min_repayment(loan: LoanInput) -> Decimal:
    """Monthly repayment the loan requires to stay on schedule."""
    if is_degenerate(loan):
        return loan.principal
    if loan.interest_only:
        effective = max(Decimal("0"), loan.principal - loan.offset_balance)
        return effective * loan.annual_rate / MONTHS_PER_YEAR
    return amortized_payment(loan.principal, loan.annual_rate, loan.term_months_remaining)


def validate_min_repayment(loan: LoanInput) -> Decimal:
    """Return the loan's monthly minimum repayment, repaired if necessary.

    Principal-and-interest minimums below 95 % of the amortized payment are
    replaced by it. Interest-only minimums are raised to at least the monthly
    interest on the offset-reduced principal.
    """
    loan = coerce_loan(loan)
    supplied = to_monthly(loan.min_repayment, loan.repayment_frequency)
    required = required_min_repayment(loan)
    if is_degenerate(loan):
        return required
    if loan.interest_only:
        if supplied < required:
            logger.info("Loan %s: interest-only minimum %s raised to %s", loan.id, supplied, required)
            return required
        return supplied
    if supplied < required * MIN_REPAYMENT_TOLERANCE:
        logger.info("Loan %s: minimum repayment %s replaced by amortized %s", loan.id, supplied, required)
        return required
    return supplied


def _enum(enum_cls, value, label: str):
    try:
        return enum_cls(value.value if isinstance(value, Enum) else str(value).upper())
    except ValueError as exc:
        raise ValueError(f"Unknown {label} {value!r}.") from exc


def coerce_loan(loan: LoanInput) -> LoanInput:
    """Return ``loan`` with enum and ``Decimal`` fields in canonical form."""
    cap = loan.extra_repayment_cap
    return replace(
        loan,
        category=_enum(LoanCategory, loan.category, "loan category"),
        rate_type=_enum(RateType, loan.rate_type, "rate type"),
        repayment_frequency=parse_frequency(loan.repayment_frequency),
        principal=to_decimal(loan.principal),
        annual_rate=to_decimal(loan.annual_rate),
        min_repayment=to_decimal(loan.min_repayment),
        offset_balance=to_decimal(loan.offset_balance),
        extra_repayment_cap=to_decimal(cap) if cap is not None else None,
    )


def coerce_settings(settings: PlannerSettings) -> PlannerSettings:
    return replace(
        settings,
        strategy=_enum(Strategy, settings.strategy, "strategy"),
        surplus_frequency=parse_frequency(settings.surplus_frequency),
        surplus_amount=to_decimal(settings.surplus_amount),
        emergency_buffer=to_decimal(settings.emergency_buffer),
    )


def validate_loan(loan: LoanInput) -> None:
    _require(bool(loan.id), "Loan id is required.")
    _require(loan.principal > 0, f"Loan {loan.id}: principal must be positive.")
    _require(loan.annual_rate >= 0, f"Loan {loan.id}: interest rate cannot be negative.")
    _require(loan.min_repayment >= 0, f"Loan {loan.id}: minimum repayment cannot be negative.")
    _require(loan.offset_balance >= 0, f"Loan {loan.id}: offset balance cannot be negative.")
    _require(
        loan.extra_repayment_cap is None or loan.extra_repayment_cap >= 0,
        f"Loan {loan.id}: extra repayment cap cannot be negative.",
    )


def validate_settings(settings: PlannerSettings) -> None:
    _require(settings.surplus_amount >= 0, "Surplus cannot be negative.")
    _require(settings.emergency_buffer >= 0, "Emergency buffer cannot be negative.")


def normalize_settings(settings: PlannerSettings) -> PlannerSettings:
    """Coerce and validate settings; raises ``ValueError`` when malformed."""
    settings = coerce_settings(settings)
    validate_settings(settings)
    return settings


def monthly_surplus(settings: PlannerSettings) -> Decimal:
    return to_monthly(to_decimal(settings.surplus_amount), settings.surplus_frequency)


def normalize_loan(loan: LoanInput) -> SimulationLoan:
    """Validate a loan record and build its initial simulation state."""
    loan = coerce_loan(loan)
    validate_loan(loan)
    minimum = validate_min_repayment(loan)
    freed = minimum
    if is_degenerate(loan):
        # the principal-sized minimum is a one-off; only the supplied one recurs
        freed = to_monthly(loan.min_repayment, loan.repayment_frequency)
    return SimulationLoan(
        id=loan.id,
        name=loan.name,
        category=loan.category,
        annual_rate=loan.annual_rate,
        rate_type=loan.rate_type,
        fixed_expiry=loan.fixed_expiry,
        # a degenerate interest-only loan must still be retired by its minimum
        interest_only=loan.interest_only and not is_degenerate(loan),
        min_repayment=minimum,
        freed_repayment=freed,
        offset_balance=loan.offset_balance,
        extra_repayment_cap=loan.extra_repayment_cap,
        original_principal=loan.principal,
        principal=loan.principal,
    )


def normalize_loans(loans: Iterable[LoanInput]) -> List[SimulationLoan]:
    """Return fresh simulation loans in input order."""
    loans = list(loans)
    _require(len(loans) > 0, "At least one loan is required.")
    ids = [loan.id for loan in loans]
    _require(len(ids) == len(set(ids)), "Loan ids must be unique.")
    return [normalize_loan(loan) for loan in loans]
