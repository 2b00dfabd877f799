from dataclasses import replace
from datetime import date
from decimal import Decimal

from debt_planner.data_models import RateType
from debt_planner.engine import advance_period, initial_state, remaining_allowance
from debt_planner.normalizer import normalize_loan, normalize_settings


def _fixed(make_loan, **kwargs):
    kwargs.setdefault("fixed_expiry", date(2030, 1, 1))
    return normalize_loan(make_loan("fixed", rate_type=RateType.FIXED, cap="10000", **kwargs))


def test_step_leaves_input_state_untouched(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(surplus="1000"))
    state = initial_state([normalize_loan(make_loan())], settings, start)
    nxt, entry = advance_period(state, settings)
    assert state.loans["home"].principal == Decimal("300000")
    assert state.period == 0
    assert nxt.loans["home"].principal < Decimal("300000") - Decimal("1000")
    assert nxt.period == 1
    assert nxt.current_date == date(2026, 2, 1)
    assert entry.date == start
    assert entry.target_loan_id == "home"
    assert entry.extra["home"] == Decimal("1000")


def test_interest_accrues_on_offset_reduced_principal(make_loan, make_settings, start):
    settings = normalize_settings(make_settings())
    loan = normalize_loan(make_loan(principal="120000", rate="0.06", offset="20000"))
    _, entry = advance_period(initial_state([loan], settings, start), settings)
    assert entry.interest["home"] == Decimal("500")


def test_year_boundary_resets_year_to_date_extras(make_loan, make_settings):
    settings = normalize_settings(make_settings(surplus="2000"))
    loan = replace(_fixed(make_loan), ytd_extra=Decimal("10000"))

    new_year = replace(initial_state([loan], settings, date(2027, 1, 1)), previous_year=2026)
    nxt, entry = advance_period(new_year, settings)
    assert entry.extra["fixed"] == Decimal("10000") / 12
    assert nxt.loans["fixed"].ytd_extra == Decimal("10000") / 12

    same_year = initial_state([loan], settings, date(2027, 3, 1))
    nxt, entry = advance_period(same_year, settings)
    assert entry.extra["fixed"] == Decimal("0")
    assert entry.target_loan_id is None
    assert nxt.loans["fixed"].cap_exhausted


def test_extra_is_capped_at_remaining_allowance(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(surplus="2000"))
    loan = replace(_fixed(make_loan), ytd_extra=Decimal("9500"))
    _, entry = advance_period(initial_state([loan], settings, start), settings)
    assert entry.extra["fixed"] == Decimal("500")


def test_allowance_only_applies_inside_fixed_term(make_loan, make_settings):
    settings = normalize_settings(make_settings(surplus="2000"))
    loan = _fixed(make_loan, fixed_expiry=date(2027, 6, 1))
    assert remaining_allowance(loan, date(2027, 5, 1), settings) == Decimal("10000") / 12
    assert remaining_allowance(loan, date(2027, 6, 1), settings) is None
    ignoring = normalize_settings(make_settings(surplus="2000", respect_fixed_caps=False))
    assert remaining_allowance(loan, date(2027, 5, 1), ignoring) is None
    variable = normalize_loan(make_loan(cap="10000"))
    assert remaining_allowance(variable, date(2027, 5, 1), settings) is None
    open_ended = _fixed(make_loan, fixed_expiry=None)
    assert remaining_allowance(open_ended, date(2027, 5, 1), settings) is None


def test_extra_never_exceeds_principal(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(surplus="50000"))
    loan = normalize_loan(make_loan(principal="20000", rate="0.06", term=60))
    nxt, entry = advance_period(initial_state([loan], settings, start), settings)
    paid = nxt.loans["home"]
    assert paid.is_paid_off
    assert paid.principal == Decimal("0")
    assert paid.payoff_date == start
    assert paid.months_to_payoff == 1
    assert entry.extra["home"] < Decimal("20000")
    assert nxt.finished


def test_interest_only_loan_without_surplus_is_flagged(make_loan, make_settings, start):
    settings = normalize_settings(make_settings())
    loan = normalize_loan(make_loan(principal="200000", rate="0.065", interest_only=True))
    nxt, entry = advance_period(initial_state([loan], settings, start), settings)
    flagged = nxt.loans["home"]
    assert flagged.is_non_payoffable
    assert flagged.principal == Decimal("200000")
    assert entry.interest["home"] > 0
    assert nxt.finished


def test_rollover_adds_freed_minimum_to_pool(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(surplus="10000", rollover_repayments=True))
    car = normalize_loan(make_loan("car", principal="5000", rate="0.08", term=12))
    home = normalize_loan(make_loan())
    nxt, first = advance_period(initial_state([car, home], settings, start), settings)
    assert first.target_loan_id == "car"
    assert nxt.loans["car"].is_paid_off
    assert nxt.surplus_pool == Decimal("10000") + car.min_repayment
    assert first.extra["home"] == Decimal("0")

    _, second = advance_period(nxt, settings)
    assert second.extra["home"] == Decimal("10000") + car.min_repayment
    assert second.balances["car"] == Decimal("0")
    assert second.interest["car"] == Decimal("0")


def test_degenerate_loan_rolls_over_its_supplied_minimum(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(rollover_repayments=True))
    car = normalize_loan(make_loan("car", principal="50000", rate="0", term=60, min_repayment="450"))
    home = normalize_loan(make_loan())
    assert car.min_repayment == Decimal("50000")
    nxt, _ = advance_period(initial_state([car, home], settings, start), settings)
    assert nxt.loans["car"].is_paid_off
    assert nxt.surplus_pool == Decimal("450")

    _, second = advance_period(nxt, settings)
    assert second.extra["home"] == Decimal("450")


def test_interest_only_loan_waits_for_rollover(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(rollover_repayments=True))
    io = normalize_loan(make_loan("io", principal="100000", interest_only=True))
    home = normalize_loan(make_loan())
    nxt, _ = advance_period(initial_state([io, home], settings, start), settings)
    assert not nxt.loans["io"].is_non_payoffable
    assert not nxt.finished


def test_monthly_allowance_is_a_twelfth_of_the_annual_cap(make_loan, make_settings, start):
    settings = normalize_settings(make_settings(surplus="2000"))
    loan = _fixed(make_loan)
    assert remaining_allowance(loan, start, settings) == Decimal("10000") / 12
    nearly_used = replace(loan, ytd_extra=Decimal("9900"))
    assert remaining_allowance(nearly_used, start, settings) == Decimal("100")
    used = replace(loan, ytd_extra=Decimal("10000"))
    assert remaining_allowance(used, start, settings) == Decimal("0")
