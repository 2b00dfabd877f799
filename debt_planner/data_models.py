"""Data models for the debt planner.

This module defines the enums and dataclasses shared by the normalizer, the
strategy selector and the simulator: the loan records and settings supplied by
the calling application, the per-run simulation state and the result objects
returned to the caller. Monetary values are ``Decimal`` throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class LoanCategory(str, Enum):
    HOME = "HOME"
    INVESTMENT = "INVESTMENT"


class RateType(str, Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"


class Frequency(str, Enum):
    WEEKLY = "WEEKLY"
    FORTNIGHTLY = "FORTNIGHTLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


class Strategy(str, Enum):
    TAX_AWARE_MINIMUM_INTEREST = "TAX_AWARE_MINIMUM_INTEREST"
    AVALANCHE = "AVALANCHE"
    SNOWBALL = "SNOWBALL"


@dataclass(frozen=True)
class LoanInput:
    """A loan as supplied by the calling application.

    Attributes
    ----------
    principal: Decimal
        The outstanding balance. Must be positive.
    annual_rate: Decimal
        Annual interest rate as a decimal fraction (``Decimal("0.055")`` for
        5.5 %).
    fixed_expiry: Optional[date]
        End of the fixed-rate period. Only meaningful for ``FIXED`` loans.
    min_repayment: Decimal
        The minimum repayment in ``repayment_frequency`` cadence.
    offset_balance: Decimal
        Linked offset balance; reduces the principal that accrues interest.
    extra_repayment_cap: Optional[Decimal]
        Annual ceiling on extra repayments while the rate is fixed. ``None``
        means the lender imposes no cap.
    """

    id: str
    name: str
    category: LoanCategory
    principal: Decimal
    annual_rate: Decimal
    rate_type: RateType
    term_months_remaining: int
    min_repayment: Decimal
    repayment_frequency: Frequency = Frequency.MONTHLY
    interest_only: bool = False
    fixed_expiry: Optional[date] = None
    offset_balance: Decimal = Decimal("0")
    extra_repayment_cap: Optional[Decimal] = None


@dataclass(frozen=True)
class PlannerSettings:
    """Repayment policy for one plan.

    ``emergency_buffer`` is an absolute monthly amount held back from the
    surplus before anything is allocated.
    """

    strategy: Strategy
    surplus_amount: Decimal = Decimal("0")
    surplus_frequency: Frequency = Frequency.MONTHLY
    emergency_buffer: Decimal = Decimal("0")
    respect_fixed_caps: bool = True
    rollover_repayments: bool = False

    @classmethod
    def baseline(cls, strategy: Strategy = Strategy.AVALANCHE) -> "PlannerSettings":
        """Minimum repayments only: no surplus, no buffer, no rollover."""
        return cls(
            strategy=strategy,
            surplus_amount=Decimal("0"),
            surplus_frequency=Frequency.MONTHLY,
            emergency_buffer=Decimal("0"),
            respect_fixed_caps=True,
            rollover_repayments=False,
        )


@dataclass
class SimulationLoan:
    """Engine-owned state for one loan during a single simulation run.

    Static fields are copied from the normalized ``LoanInput`` (all amounts
    already converted to a monthly cadence). The remaining fields change from
    one period to the next; the simulator replaces instances rather than
    sharing them between runs.
    """

    id: str
    name: str
    category: LoanCategory
    annual_rate: Decimal
    rate_type: RateType
    fixed_expiry: Optional[date]
    interest_only: bool
    min_repayment: Decimal  # monthly
    freed_repayment: Decimal  # monthly cash released into the surplus on payoff
    offset_balance: Decimal
    extra_repayment_cap: Optional[Decimal]  # annual
    original_principal: Decimal
    principal: Decimal
    interest_paid: Decimal = Decimal("0")
    is_paid_off: bool = False
    is_non_payoffable: bool = False
    payoff_date: Optional[date] = None
    months_to_payoff: Optional[int] = None
    ytd_extra: Decimal = Decimal("0")
    cap_exhausted: bool = False

    @property
    def effective_principal(self) -> Decimal:
        return max(Decimal("0"), self.principal - self.offset_balance)

    @property
    def is_active(self) -> bool:
        return not self.is_paid_off and not self.is_non_payoffable


@dataclass
class ScheduleEntry:
    """One month of a simulation run.

    ``balances``, ``interest`` and ``extra`` are keyed by loan id. A loan that
    was already paid off before the month still appears with a zero balance.
    """

    period: int
    date: date
    balances: Dict[str, Decimal]
    interest: Dict[str, Decimal]
    extra: Dict[str, Decimal]
    target_loan_id: Optional[str]
    surplus_available: Decimal


@dataclass
class SimulationState:
    """The record threaded through the period fold.

    ``loans`` is an insertion-ordered mapping keyed by loan id, so input order
    is preserved for strategy tie-breaks.
    """

    period: int
    current_date: date
    previous_year: int
    surplus_pool: Decimal
    loans: Dict[str, SimulationLoan]
    total_interest: Decimal = Decimal("0")
    finished: bool = False


@dataclass
class SimulationRun:
    loans: List[SimulationLoan]
    schedule: List[ScheduleEntry]
    total_interest: Decimal
    debt_free_date: Optional[date]
    hit_horizon: bool


@dataclass
class LoanResult:
    loan_id: str
    loan_name: str
    original_principal: Decimal
    payoff_date: Optional[date]
    baseline_payoff_date: Optional[date]
    total_interest_paid: Decimal
    baseline_interest_paid: Decimal
    months_to_payoff: Optional[int]
    baseline_months_to_payoff: Optional[int]
    months_saved: int
    interest_saved: Decimal
    is_non_payoffable: bool


@dataclass
class PlanResult:
    loan_results: List[LoanResult]
    total_interest_paid: Decimal
    baseline_interest_paid: Decimal
    total_interest_saved: Decimal
    debt_free_date: Optional[date]
    strategy_used: Strategy
    schedule: List[ScheduleEntry] = field(default_factory=list)
    baseline_schedule: List[ScheduleEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable summary (schedules excluded)."""

        def _date(value: Optional[date]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "strategy_used": self.strategy_used.value,
            "total_interest_paid": float(self.total_interest_paid),
            "baseline_interest_paid": float(self.baseline_interest_paid),
            "total_interest_saved": float(self.total_interest_saved),
            "debt_free_date": _date(self.debt_free_date),
            "loans": [
                {
                    "loan_id": r.loan_id,
                    "loan_name": r.loan_name,
                    "original_principal": float(r.original_principal),
                    "payoff_date": _date(r.payoff_date),
                    "baseline_payoff_date": _date(r.baseline_payoff_date),
                    "total_interest_paid": float(r.total_interest_paid),
                    "baseline_interest_paid": float(r.baseline_interest_paid),
                    "months_to_payoff": r.months_to_payoff,
                    "baseline_months_to_payoff": r.baseline_months_to_payoff,
                    "months_saved": r.months_saved,
                    "interest_saved": float(r.interest_saved),
                    "is_non_payoffable": r.is_non_payoffable,
                }
                for r in self.loan_results
            ],
        }
