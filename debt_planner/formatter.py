"""Output helpers for the debt planner command line.

This module renders plan results and monthly schedules in a tabular text
format using built-in printing and string formatting.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence

from .data_models import PlanResult, ScheduleEntry


def _month(value: Optional[date]) -> str:
    return value.strftime("%Y-%m") if value else "never"


def print_summary(result: PlanResult) -> None:
    """Print plan totals and the per-loan comparison."""
    print("Summary")
    print("-" * 72)
    print(f"Strategy           : {result.strategy_used.value}")
    print(f"Total interest     : {result.total_interest_paid:.2f}")
    print(f"Baseline interest  : {result.baseline_interest_paid:.2f}")
    print(f"Interest saved     : {result.total_interest_saved:.2f}")
    print(f"Debt free          : {_month(result.debt_free_date)}")
    print("-" * 72)
    print(f"{'Loan':20s} {'Payoff':>8s} {'Baseline':>8s} {'Months':>7s} {'Interest':>13s} {'Saved':>12s}")
    for r in result.loan_results:
        print(
            f"{r.loan_name[:20]:20s} {_month(r.payoff_date):>8s} {_month(r.baseline_payoff_date):>8s} "
            f"{r.months_saved:7d} {r.total_interest_paid:13.2f} {r.interest_saved:12.2f}"
        )
    warnings = [r for r in result.loan_results if r.is_non_payoffable]
    for r in warnings:
        print(f"Warning: {r.loan_name} is interest-only and will never be paid off under these settings.")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry], loan_ids: Sequence[str]) -> None:
    """Print the monthly schedule as a simple table, one balance column per loan."""
    headers = ["Period", "Date"] + [f"Bal:{loan_id}" for loan_id in loan_ids] + ["Extra", "Target"]
    print("\t".join(headers))
    for entry in schedule:
        row: List[str] = [str(entry.period), entry.date.strftime("%Y-%m")]
        row.extend(f"{entry.balances[loan_id]:.2f}" for loan_id in loan_ids)
        row.append(f"{sum(entry.extra.values()):.2f}")
        row.append(entry.target_loan_id or "-")
        print("\t".join(row))


def print_comparison(results: Sequence[PlanResult]) -> None:
    """Print several strategies' outcomes for the same loans side by side."""
    print("Comparison")
    print("=" * 72)
    print(f"{'Strategy':28s} {'Interest':>14s} {'Saved':>14s} {'Debt free':>12s}")
    for result in results:
        print(
            f"{result.strategy_used.value:28s} {result.total_interest_paid:14.2f} "
            f"{result.total_interest_saved:14.2f} {_month(result.debt_free_date):>12s}"
        )
    print("=" * 72)
