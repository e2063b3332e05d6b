# due_status.py
# Cycle-based schedule status for a loan + the "overdue / due soon" warning list.
#
# A loan of `givenAmount` over `loanDays` is repaid in cycles of `payInterval` days.
# Each cycle owes ceil(givenAmount * payInterval / loanDays); paidTotal is converted
# into "cycles paid" and compared with the cycles elapsed since startDate.
#
# Note: suppress_soon_warning only silences the "due soon" signal; overdue is
# computed from overdue_cycles alone.

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from contract_ids import fmt_contract_id
from schema_adapter import LoanStatus, normalize_status

DEFAULT_SOON_DAYS = 3

WARN_OVERDUE = "overdue"
WARN_SOON = "soon"
TONE_INACTIVE = "inactive"


@dataclass(frozen=True)
class DueStatus:
    per_cycle_amount: int
    expected_due_cycles: int
    cycles_paid_equivalent: int
    max_cycles: float          # int, or math.inf when the term is open-ended
    next_unpaid_due_date: Optional[date]
    days_until_due: Optional[int]
    overdue_cycles: int
    suppress_soon_warning: bool


@dataclass(frozen=True)
class DueWarning:
    contract_id: Optional[int]
    kind: str
    text: str
    overdue_cycles: int
    days_until_due: Optional[int]


def _to_date(x) -> date | None:
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    try:
        return date.fromisoformat(str(x).strip()[:10])
    except (TypeError, ValueError):
        return None


def _ceil_div(a, b) -> int:
    return int(-(-a // b))


def _as_int(x) -> int | None:
    if x is None or isinstance(x, bool):
        return None
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return int(f)


def _as_number(x) -> int | float | None:
    """Finite number; whole values come back as int."""
    if x is None or isinstance(x, bool):
        return None
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return int(f) if f.is_integer() else f


def compute_due_status(
    start_date,
    interval_days,
    total_days,
    given_amount,
    paid_total,
    today: date | datetime | None = None,
) -> DueStatus | None:
    """
    Schedule status of one loan as of `today` (time of day ignored).
    Returns None when the start date is missing/unparseable or interval_days <= 0.
    """
    start = _to_date(start_date) if start_date else None
    if start is None:
        return None

    interval = _as_number(interval_days)
    if interval is None or interval <= 0:
        return None

    total = _as_int(total_days) or 0
    given = _as_int(given_amount) or 0
    paid = _as_int(paid_total) or 0
    d_today = _to_date(today) if today is not None else date.today()

    days_passed = max(0, (d_today - start).days)
    expected_due_cycles = int(days_passed // interval)

    if total > 0:
        max_cycles: float = _ceil_div(total, interval)
        per_cycle = _ceil_div(given * interval, total)
    else:
        max_cycles = math.inf
        per_cycle = 0

    cycles_paid = paid // per_cycle if per_cycle > 0 else 0

    if math.isfinite(max_cycles) and cycles_paid >= max_cycles:
        next_due = None
    else:
        next_due = start + timedelta(days=(cycles_paid + 1) * interval)

    days_until_due = (next_due - d_today).days if next_due else None

    return DueStatus(
        per_cycle_amount=per_cycle,
        expected_due_cycles=expected_due_cycles,
        cycles_paid_equivalent=cycles_paid,
        max_cycles=max_cycles,
        next_unpaid_due_date=next_due,
        days_until_due=days_until_due,
        overdue_cycles=max(expected_due_cycles - cycles_paid, 0),
        suppress_soon_warning=cycles_paid >= expected_due_cycles + 1,
    )


def loan_due_status(loan: dict, today=None) -> DueStatus | None:
    """compute_due_status() fed from a canonical loan record."""
    return compute_due_status(
        loan.get("startDate"),
        loan.get("payInterval"),
        loan.get("loanDays"),
        loan.get("givenAmount"),
        loan.get("paidTotal"),
        today=today,
    )


def is_due_soon(info: DueStatus, soon_days: int = DEFAULT_SOON_DAYS) -> bool:
    return (
        not info.suppress_soon_warning
        and info.days_until_due is not None
        and info.days_until_due <= soon_days
    )


def classify_loan(loan: dict, today=None, soon_days: int = DEFAULT_SOON_DAYS) -> str | None:
    """'overdue' | 'soon' | 'inactive' | None"""
    if normalize_status(loan.get("status")) != LoanStatus.ACTIVE.value:
        return TONE_INACTIVE
    info = loan_due_status(loan, today=today)
    if info is None:
        return None
    if info.overdue_cycles > 0:
        return WARN_OVERDUE
    if is_due_soon(info, soon_days):
        return WARN_SOON
    return None


def _warning_text(contract_id, kind: str, info: DueStatus) -> str:
    label = f"Contract #{fmt_contract_id(contract_id)}"
    if kind == WARN_OVERDUE:
        late = ""
        if info.days_until_due is not None and info.days_until_due < 0:
            late = f", {abs(info.days_until_due)} day(s) late"
        return f"{label}: {info.overdue_cycles} cycle(s) overdue{late}"
    return f"{label}: due in {info.days_until_due} day(s)"


def loan_warnings(loans: Iterable[dict], today=None, soon_days: int = DEFAULT_SOON_DAYS) -> list[DueWarning]:
    """Warnings for active loans; overdue first, otherwise in collection order."""
    items: list[DueWarning] = []
    for loan in loans:
        kind = classify_loan(loan, today=today, soon_days=soon_days)
        if kind not in (WARN_OVERDUE, WARN_SOON):
            continue
        info = loan_due_status(loan, today=today)
        items.append(DueWarning(
            contract_id=loan.get("contractId"),
            kind=kind,
            text=_warning_text(loan.get("contractId"), kind, info),
            overdue_cycles=info.overdue_cycles,
            days_until_due=info.days_until_due,
        ))
    return sorted(items, key=lambda w: 0 if w.kind == WARN_OVERDUE else 1)
