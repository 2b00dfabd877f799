"""Core simulation engine for the debt planner.

This module steps a set of loans forward one month at a time. Each month the
loans accrue interest on their offset-reduced balance and receive their
minimum repayment; any surplus left after the emergency buffer is paid to a
single loan chosen by the configured strategy, subject to fixed-rate extra
repayment caps. ``run_debt_plan`` runs the simulation twice, once with
minimum repayments only and once with the caller's settings, and reports the
difference per loan.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from .config import MAX_PERIODS, MONTHS_PER_YEAR, PAYOFF_EPSILON
from .data_models import (
    LoanInput,
    LoanResult,
    PlannerSettings,
    PlanResult,
    RateType,
    ScheduleEntry,
    SimulationLoan,
    SimulationRun,
    SimulationState,
)
from .normalizer import monthly_surplus, normalize_loans, normalize_settings
from .strategies import select_target_loan
from .utils import add_months, month_start

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def remaining_allowance(loan: SimulationLoan, current_date: date, settings: PlannerSettings) -> Optional[Decimal]:
    """Extra repayment allowed this month, or ``None`` if uncapped.

    Only fixed-rate loans inside their fixed term carry a cap, and only when the
    settings ask for caps to be respected. The annual cap is spread pro-rata
    over the year (one twelfth a month) and never exceeds what is left of it
    for the calendar year. A fixed loan without an expiry date has no fixed
    term to check and is uncapped.
    """
    if not settings.respect_fixed_caps or loan.rate_type != RateType.FIXED:
        return None
    if loan.extra_repayment_cap is None:
        return None
    if loan.fixed_expiry is None or current_date >= loan.fixed_expiry:
        return None
    left_this_year = max(ZERO, loan.extra_repayment_cap - loan.ytd_extra)
    return min(loan.extra_repayment_cap / MONTHS_PER_YEAR, left_this_year)


def _settle(loan: SimulationLoan, state: SimulationState) -> bool:
    """Freeze a loan that has been repaid. Returns True on the month it happens."""
    if loan.is_paid_off or loan.principal > PAYOFF_EPSILON:
        return False
    loan.principal = ZERO
    loan.is_paid_off = True
    loan.payoff_date = state.current_date
    loan.months_to_payoff = state.period + 1
    logger.debug("Loan %s paid off in %s (month %d)", loan.id, state.current_date, loan.months_to_payoff)
    return True


def _flag_non_payoffable(loans: Sequence[SimulationLoan], available: Decimal, settings: PlannerSettings) -> None:
    # Once no surplus is available and no payoff can ever add to the pool,
    # an interest-only balance can never fall.
    if available > 0:
        return
    if settings.rollover_repayments and any(loan.is_active and not loan.interest_only for loan in loans):
        return
    for loan in loans:
        if loan.is_active and loan.interest_only:
            loan.is_non_payoffable = True
            logger.warning("Loan %s is interest-only and receives no surplus; it will never be paid off", loan.id)


def initial_state(loans: Sequence[SimulationLoan], settings: PlannerSettings, start_date: date) -> SimulationState:
    start = month_start(start_date)
    return SimulationState(
        period=0,
        current_date=start,
        previous_year=start.year,
        surplus_pool=monthly_surplus(settings),
        loans={loan.id: replace(loan) for loan in loans},
    )


def advance_period(state: SimulationState, settings: PlannerSettings) -> Tuple[SimulationState, ScheduleEntry]:
    """Simulate one month and return the next state with the month's entry.

    ``state`` is left untouched; the returned state owns fresh loan copies.
    """
    loans: Dict[str, SimulationLoan] = {loan_id: replace(loan) for loan_id, loan in state.loans.items()}
    available = state.surplus_pool - settings.emergency_buffer
    freed = ZERO  # minimums released by this month's payoffs, spendable from next month
    total_interest = state.total_interest
    interest: Dict[str, Decimal] = {loan_id: ZERO for loan_id in loans}
    extra: Dict[str, Decimal] = {loan_id: ZERO for loan_id in loans}

    if state.current_date.year != state.previous_year:
        for loan in loans.values():
            loan.ytd_extra = ZERO

    _flag_non_payoffable(list(loans.values()), available, settings)

    for loan in loans.values():
        if loan.is_paid_off:
            continue
        charged = loan.effective_principal * loan.annual_rate / MONTHS_PER_YEAR
        loan.interest_paid += charged
        total_interest += charged
        interest[loan.id] = charged
        if not loan.interest_only and not loan.is_non_payoffable:
            reduction = max(ZERO, loan.min_repayment - charged)
            loan.principal = max(ZERO, loan.principal - reduction)
        if _settle(loan, state) and settings.rollover_repayments:
            freed += loan.freed_repayment

    target_id: Optional[str] = None
    if available > 0:
        for loan in loans.values():
            allowance = remaining_allowance(loan, state.current_date, settings)
            loan.cap_exhausted = allowance is not None and allowance <= 0
        target = select_target_loan(loans.values(), settings.strategy)
        if target is not None:
            payment = min(available, target.principal)
            allowance = remaining_allowance(target, state.current_date, settings)
            if allowance is not None:
                payment = min(payment, allowance)
            if payment > 0:
                target.principal = max(ZERO, target.principal - payment)
                target.ytd_extra += payment
                extra[target.id] = payment
                target_id = target.id
                if _settle(target, state) and settings.rollover_repayments:
                    freed += target.freed_repayment

    entry = ScheduleEntry(
        period=state.period + 1,
        date=state.current_date,
        balances={loan_id: loan.principal for loan_id, loan in loans.items()},
        interest=interest,
        extra=extra,
        target_loan_id=target_id,
        surplus_available=max(ZERO, available),
    )
    done = all(loan.is_paid_off or loan.is_non_payoffable for loan in loans.values())
    next_state = SimulationState(
        period=state.period + 1,
        current_date=add_months(state.current_date, 1),
        previous_year=state.current_date.year,
        surplus_pool=state.surplus_pool + freed,
        loans=loans,
        total_interest=total_interest,
        finished=done or state.period + 1 >= MAX_PERIODS,
    )
    return next_state, entry


def simulate(
    loans: Sequence[SimulationLoan], settings: PlannerSettings, start_date: Optional[date] = None
) -> SimulationRun:
    """Run one simulation to completion or to the safety horizon.

    Parameters
    ----------
    loans: Sequence[SimulationLoan]
        Normalized loans. They are copied; the caller's objects are not
        mutated.
    settings: PlannerSettings
        Normalized settings for this run.
    start_date: date, optional
        Month of the first repayment. Defaults to the current month.
    """
    settings = normalize_settings(settings)
    start = month_start(start_date or date.today())
    state = initial_state(loans, settings, start)
    schedule: List[ScheduleEntry] = []
    while not state.finished:
        state, entry = advance_period(state, settings)
        schedule.append(entry)

    final_loans = list(state.loans.values())
    unresolved = [loan for loan in final_loans if loan.is_active]
    hit_horizon = bool(unresolved)
    if hit_horizon:
        horizon_date = add_months(start, MAX_PERIODS)
        for loan in unresolved:
            loan.payoff_date = horizon_date
            loan.months_to_payoff = MAX_PERIODS
        logger.warning(
            "Simulation reached the %d month horizon with %d loan(s) outstanding: %s",
            MAX_PERIODS,
            len(unresolved),
            ", ".join(loan.id for loan in unresolved),
        )

    debt_free_date: Optional[date] = None
    if all(loan.is_paid_off for loan in final_loans):
        debt_free_date = max(loan.payoff_date for loan in final_loans)

    return SimulationRun(
        loans=final_loans,
        schedule=schedule,
        total_interest=state.total_interest,
        debt_free_date=debt_free_date,
        hit_horizon=hit_horizon,
    )


def compare_loan(strategy_loan: SimulationLoan, baseline_loan: SimulationLoan) -> LoanResult:
    """Per-loan savings of the strategy run over the baseline, floored at zero.

    A baseline that never pays the loan off is compared as if it ran to the
    horizon; a strategy that never pays it off saves no months.
    """
    months_saved = 0
    if strategy_loan.months_to_payoff is not None:
        baseline_months = baseline_loan.months_to_payoff
        if baseline_months is None:
            baseline_months = MAX_PERIODS
        months_saved = max(0, baseline_months - strategy_loan.months_to_payoff)
    return LoanResult(
        loan_id=strategy_loan.id,
        loan_name=strategy_loan.name,
        original_principal=strategy_loan.original_principal,
        payoff_date=strategy_loan.payoff_date,
        baseline_payoff_date=baseline_loan.payoff_date,
        total_interest_paid=strategy_loan.interest_paid,
        baseline_interest_paid=baseline_loan.interest_paid,
        months_to_payoff=strategy_loan.months_to_payoff,
        baseline_months_to_payoff=baseline_loan.months_to_payoff,
        months_saved=months_saved,
        interest_saved=max(ZERO, baseline_loan.interest_paid - strategy_loan.interest_paid),
        is_non_payoffable=strategy_loan.is_non_payoffable,
    )


def run_debt_plan(
    loans: Sequence[LoanInput], settings: PlannerSettings, start_date: Optional[date] = None
) -> PlanResult:
    """Compare the caller's strategy against minimum repayments only.

    Raises ``ValueError`` when a loan or the settings are malformed.
    """
    settings = normalize_settings(settings)
    sim_loans = normalize_loans(loans)
    start = month_start(start_date or date.today())

    baseline = simulate(sim_loans, PlannerSettings.baseline(settings.strategy), start)
    strategy = simulate(sim_loans, settings, start)

    baseline_by_id = {loan.id: loan for loan in baseline.loans}
    loan_results = [compare_loan(loan, baseline_by_id[loan.id]) for loan in strategy.loans]

    return PlanResult(
        loan_results=loan_results,
        total_interest_paid=strategy.total_interest,
        baseline_interest_paid=baseline.total_interest,
        total_interest_saved=max(ZERO, baseline.total_interest - strategy.total_interest),
        debt_free_date=strategy.debt_free_date,
        strategy_used=settings.strategy,
        schedule=strategy.schedule,
        baseline_schedule=baseline.schedule,
    )
