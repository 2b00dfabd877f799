"""Command-line interface for the debt planner.

This module uses the ``click`` library to implement a multi-command
interface. Users describe their loans in a JSON plan file (see
``debt_planner.config``) and can run a plan, view the month-by-month schedule
or compare all strategies. Results can be printed to the terminal or exported
to JSON/CSV files. Every option can also be supplied through a
``DEBT_PLANNER_<COMMAND>_<OPTION>`` environment variable.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import click

from .config import load_plan_file
from .data_models import Frequency, LoanInput, PlannerSettings, PlanResult, ScheduleEntry, Strategy
from .engine import run_debt_plan
from .formatter import print_comparison, print_schedule, print_summary
from .utils import decimal_from_str, parse_frequency, parse_year_month, to_decimal


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500") and shorthand with ``k``/``m`` suffixes
    (e.g., "1.5k" meaning 1500).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def build_settings(file_settings: Dict[str, Any], **overrides: Any) -> PlannerSettings:
    """Merge plan-file settings with command line overrides (``None`` = unset)."""
    merged = dict(file_settings)
    merged.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return PlannerSettings(
            strategy=Strategy(str(merged.get("strategy", Strategy.TAX_AWARE_MINIMUM_INTEREST.value)).upper()),
            surplus_amount=to_decimal(merged.get("surplus_amount", 0)),
            surplus_frequency=parse_frequency(merged.get("surplus_frequency", Frequency.MONTHLY)),
            emergency_buffer=to_decimal(merged.get("emergency_buffer", 0)),
            respect_fixed_caps=bool(merged.get("respect_fixed_caps", True)),
            rollover_repayments=bool(merged.get("rollover_repayments", False)),
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _load(plan_file: str) -> Tuple[List[LoanInput], Dict[str, Any]]:
    try:
        loans, file_settings = load_plan_file(Path(plan_file))
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Could not read plan file {plan_file}: {exc}")
    if not loans:
        raise click.ClickException(f"Plan file {plan_file} contains no loans")
    return loans, file_settings


def _run(loans: Sequence[LoanInput], settings: PlannerSettings, start_date: Optional[date]) -> PlanResult:
    try:
        return run_debt_plan(loans, settings, start_date)
    except ValueError as exc:
        raise click.ClickException(str(exc))


def export_to_json(path: Path, result: PlanResult) -> None:
    """Export the plan summary to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2)


def export_summary_to_csv(path: Path, result: PlanResult) -> None:
    """Export the per-loan comparison to a CSV file."""
    rows = result.to_dict()["loans"]
    header = list(rows[0].keys()) if rows else []
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=header)
        writer.writeheader()
        writer.writerows(rows)


def export_schedule_to_csv(path: Path, schedule: Sequence[ScheduleEntry], loan_ids: Sequence[str]) -> None:
    """Export a monthly schedule to a CSV file."""
    header = ["Period", "Date"]
    for loan_id in loan_ids:
        header.extend([f"Balance_{loan_id}", f"Interest_{loan_id}", f"Extra_{loan_id}"])
    header.extend(["Surplus_Available", "Target"])
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            row: List[Any] = [e.period, e.date.strftime("%Y-%m")]
            for loan_id in loan_ids:
                row.extend([float(e.balances[loan_id]), float(e.interest[loan_id]), float(e.extra[loan_id])])
            row.extend([float(e.surplus_available), e.target_loan_id or ""])
            writer.writerow(row)


def plan_options(func: Callable) -> Callable:
    """Options shared by every command. ``--strategy`` is added per command."""
    options = [
        click.argument("plan_file", type=click.Path(exists=True, dir_okay=False)),
        click.option("--surplus", "surplus", help="Surplus available for extra repayments (e.g. 500 or 1.5k)"),
        click.option(
            "--surplus-frequency",
            "surplus_frequency",
            type=click.Choice([f.value for f in Frequency], case_sensitive=False),
            help="Cadence of the surplus amount",
        ),
        click.option("--buffer", "buffer", help="Monthly emergency buffer held back from the surplus"),
        click.option("--ignore-caps", "ignore_caps", is_flag=True, help="Ignore fixed-rate extra repayment caps"),
        click.option("--rollover", "rollover", is_flag=True, help="Add paid-off loans' minimums to the surplus"),
        click.option("--start-date", "-s", "start_date", help="First repayment month (YYYY-MM); defaults to this month"),
        click.option("--verbose", "-v", "verbose", is_flag=True, help="Log engine diagnostics"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


strategy_option = click.option(
    "--strategy",
    "strategy",
    type=click.Choice([s.value for s in Strategy], case_sensitive=False),
    help="Surplus allocation strategy",
)


def _settings_from_options(
    file_settings: Dict[str, Any],
    strategy: Optional[str],
    surplus: Optional[str],
    surplus_frequency: Optional[str],
    buffer: Optional[str],
    ignore_caps: bool,
    rollover: bool,
) -> PlannerSettings:
    return build_settings(
        file_settings,
        strategy=strategy,
        surplus_amount=parse_amount(surplus) if surplus else None,
        surplus_frequency=surplus_frequency,
        emergency_buffer=parse_amount(buffer) if buffer else None,
        respect_fixed_caps=False if ignore_caps else None,
        rollover_repayments=True if rollover else None,
    )


def _start(start_date: Optional[str]) -> Optional[date]:
    if not start_date:
        return None
    try:
        return parse_year_month(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@click.group()
def cli() -> None:
    """Debt repayment planner: compare surplus strategies against minimum repayments."""
    pass


@cli.command()
@plan_options
@strategy_option
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def plan(
    plan_file: str,
    strategy: Optional[str],
    surplus: Optional[str],
    surplus_frequency: Optional[str],
    buffer: Optional[str],
    ignore_caps: bool,
    rollover: bool,
    start_date: Optional[str],
    verbose: bool,
    output: Optional[str],
) -> None:
    """Run a plan and print the per-loan comparison against the baseline."""
    _configure_logging(verbose)
    loans, file_settings = _load(plan_file)
    settings = _settings_from_options(file_settings, strategy, surplus, surplus_frequency, buffer, ignore_caps, rollover)
    result = _run(loans, settings, _start(start_date))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_summary_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Plan exported to {path}")
    else:
        print_summary(result)


@cli.command()
@plan_options
@strategy_option
@click.option("--baseline", "baseline", is_flag=True, help="Show the minimum-repayments-only schedule instead")
@click.option("--output", "output", type=str, help="Output file path (.csv)")
def schedule(
    plan_file: str,
    strategy: Optional[str],
    surplus: Optional[str],
    surplus_frequency: Optional[str],
    buffer: Optional[str],
    ignore_caps: bool,
    rollover: bool,
    start_date: Optional[str],
    verbose: bool,
    baseline: bool,
    output: Optional[str],
) -> None:
    """Print the month-by-month balances of the strategy run."""
    _configure_logging(verbose)
    loans, file_settings = _load(plan_file)
    settings = _settings_from_options(file_settings, strategy, surplus, surplus_frequency, buffer, ignore_caps, rollover)
    result = _run(loans, settings, _start(start_date))
    entries = result.baseline_schedule if baseline else result.schedule
    loan_ids = [loan.id for loan in loans]
    if output:
        path = Path(output)
        if path.suffix.lower() != ".csv":
            raise click.BadParameter("Schedule export must use .csv extension")
        export_schedule_to_csv(path, entries, loan_ids)
        click.echo(f"Schedule exported to {path}")
        return
    # Limit schedule length printed to avoid flooding the terminal
    max_rows = 120
    if len(entries) > max_rows:
        click.echo(f"Schedule has {len(entries)} rows; showing first {max_rows} rows.")
        print_schedule(entries[:max_rows], loan_ids)
    else:
        print_schedule(entries, loan_ids)


@cli.command()
@plan_options
def compare(
    plan_file: str,
    surplus: Optional[str],
    surplus_frequency: Optional[str],
    buffer: Optional[str],
    ignore_caps: bool,
    rollover: bool,
    start_date: Optional[str],
    verbose: bool,
) -> None:
    """Run every strategy on the same loans and settings."""
    _configure_logging(verbose)
    loans, file_settings = _load(plan_file)
    settings = _settings_from_options(file_settings, None, surplus, surplus_frequency, buffer, ignore_caps, rollover)
    start = _start(start_date)
    results = [_run(loans, replace(settings, strategy=s), start) for s in Strategy]
    print_comparison(results)


def main() -> None:
    cli(auto_envvar_prefix="DEBT_PLANNER")


if __name__ == "__main__":
    main()
