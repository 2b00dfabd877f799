"""Engine constants and plan-file loading.

A plan file is a JSON document of the form::

    {
      "loans": [
        {"id": "home", "name": "Home loan", "category": "HOME",
         "principal": 300000, "annual_rate": 0.055, "rate_type": "VARIABLE",
         "term_months_remaining": 360, "min_repayment": 0}
      ],
      "settings": {"strategy": "AVALANCHE", "surplus_amount": 500}
    }

``settings`` is optional; command line options override it.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .data_models import LoanCategory, LoanInput, RateType
from .utils import parse_date, parse_frequency, to_decimal

MONTHS_PER_YEAR = 12
MAX_PERIODS = 1200  # 100 years; guarantees termination
PAYOFF_EPSILON = Decimal("0.01")
MIN_REPAYMENT_TOLERANCE = Decimal("0.95")

_REQUIRED_LOAN_KEYS = (
    "id",
    "name",
    "category",
    "principal",
    "annual_rate",
    "rate_type",
    "term_months_remaining",
    "min_repayment",
)


def loan_from_dict(data: Dict[str, Any]) -> LoanInput:
    """Build a ``LoanInput`` from a plain mapping (e.g. parsed JSON)."""
    missing = [key for key in _REQUIRED_LOAN_KEYS if key not in data]
    if missing:
        raise ValueError(f"Loan record missing required field(s): {', '.join(missing)}")
    try:
        category = LoanCategory(str(data["category"]).upper())
        rate_type = RateType(str(data["rate_type"]).upper())
    except ValueError as exc:
        raise ValueError(f"Loan {data['id']}: {exc}") from exc
    fixed_expiry = data.get("fixed_expiry")
    cap = data.get("extra_repayment_cap")
    return LoanInput(
        id=str(data["id"]),
        name=str(data["name"]),
        category=category,
        principal=to_decimal(data["principal"]),
        annual_rate=to_decimal(data["annual_rate"]),
        rate_type=rate_type,
        term_months_remaining=int(data["term_months_remaining"]),
        min_repayment=to_decimal(data["min_repayment"]),
        repayment_frequency=parse_frequency(data.get("repayment_frequency", "MONTHLY")),
        interest_only=bool(data.get("interest_only", False)),
        fixed_expiry=parse_date(fixed_expiry) if fixed_expiry else None,
        offset_balance=to_decimal(data.get("offset_balance", 0)),
        extra_repayment_cap=to_decimal(cap) if cap is not None else None,
    )


def load_plan_file(path: Path) -> Tuple[List[LoanInput], Dict[str, Any]]:
    """Read loans and (raw) settings from a JSON plan file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"loans": data}
    loans = [loan_from_dict(item) for item in data.get("loans", [])]
    return loans, dict(data.get("settings") or {})
