"""Surplus allocation strategies.

Each strategy is a pure function from the active loans (in input order) to the
loan that should receive this month's surplus. Ties keep the first loan
encountered, so callers control tie-breaks through input order.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from .data_models import LoanCategory, SimulationLoan, Strategy

Selector = Callable[[List[SimulationLoan]], Optional[SimulationLoan]]


def _highest_rate(loans: Iterable[SimulationLoan]) -> Optional[SimulationLoan]:
    best: Optional[SimulationLoan] = None
    for loan in loans:
        if best is None or loan.annual_rate > best.annual_rate:
            best = loan
    return best


def _eligible(loans: Iterable[SimulationLoan]) -> List[SimulationLoan]:
    return [loan for loan in loans if not loan.cap_exhausted]


def avalanche(loans: List[SimulationLoan]) -> Optional[SimulationLoan]:
    """Highest annual rate first."""
    return _highest_rate(_eligible(loans))


def snowball(loans: List[SimulationLoan]) -> Optional[SimulationLoan]:
    """Smallest current balance first."""
    best: Optional[SimulationLoan] = None
    for loan in _eligible(loans):
        if best is None or loan.principal < best.principal:
            best = loan
    return best


def tax_aware(loans: List[SimulationLoan]) -> Optional[SimulationLoan]:
    """Non-deductible HOME debt first, then INVESTMENT debt, each by rate.

    While any HOME loan is active no INVESTMENT loan is chosen, even if every
    HOME loan has used up its fixed-rate allowance for the year.
    """
    home = [loan for loan in loans if loan.category == LoanCategory.HOME]
    if home:
        return _highest_rate(_eligible(home))
    return _highest_rate(_eligible(loan for loan in loans if loan.category == LoanCategory.INVESTMENT))


STRATEGIES: Dict[Strategy, Selector] = {
    Strategy.TAX_AWARE_MINIMUM_INTEREST: tax_aware,
    Strategy.AVALANCHE: avalanche,
    Strategy.SNOWBALL: snowball,
}


def select_target_loan(loans: Iterable[SimulationLoan], strategy: Strategy) -> Optional[SimulationLoan]:
    """Return the loan that receives surplus this period, or ``None``.

    Paid-off and non-payoffable loans are never candidates.
    """
    try:
        selector = STRATEGIES[Strategy(strategy)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown strategy: {strategy}") from exc
    active = [loan for loan in loans if loan.is_active]
    if not active:
        return None
    return selector(active)
