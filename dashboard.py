# dashboard.py
# pandas views of the loan collection for the Streamlit page (and CSV export).

from __future__ import annotations

from typing import Iterable

import pandas as pd

from contract_ids import fmt_contract_id
from due_status import DEFAULT_SOON_DAYS, classify_loan, loan_due_status, loan_warnings

LEDGER_COLUMNS = [
    "contract",
    "contract_id",
    "name",
    "phone",
    "imei",
    "loan_amount",
    "given_amount",
    "paid_total",
    "remaining",
    "loan_days",
    "pay_interval",
    "start_date",
    "status",
    "per_cycle",
    "next_due_date",
    "days_until_due",
    "overdue_cycles",
    "payments",
    "tone",
]

WARNING_COLUMNS = ["contract", "contract_id", "kind", "text", "overdue_cycles", "days_until_due"]


def loans_frame(loans: Iterable[dict], today=None, soon_days: int = DEFAULT_SOON_DAYS) -> pd.DataFrame:
    """One row per loan with its due status; `tone` is overdue / soon / inactive / ''."""
    rows = []
    for l in loans:
        info = loan_due_status(l, today=today)
        rows.append({
            "contract": fmt_contract_id(l.get("contractId")),
            "contract_id": l.get("contractId"),
            "name": l.get("name"),
            "phone": l.get("phone"),
            "imei": l.get("imei"),
            "loan_amount": l.get("loanAmount"),
            "given_amount": l.get("givenAmount"),
            "paid_total": l.get("paidTotal"),
            "remaining": l.get("repayAmount"),
            "loan_days": l.get("loanDays"),
            "pay_interval": l.get("payInterval"),
            "start_date": l.get("startDate"),
            "status": l.get("status"),
            "per_cycle": info.per_cycle_amount if info else None,
            "next_due_date": info.next_unpaid_due_date.isoformat() if info and info.next_unpaid_due_date else None,
            "days_until_due": info.days_until_due if info else None,
            "overdue_cycles": info.overdue_cycles if info else None,
            "payments": len(l.get("history") or []),
            "tone": classify_loan(l, today=today, soon_days=soon_days) or "",
        })

    df = pd.DataFrame(rows, columns=LEDGER_COLUMNS)
    if not df.empty:
        df = df.sort_values("contract_id", kind="stable").reset_index(drop=True)
    return df


def warnings_frame(loans: Iterable[dict], today=None, soon_days: int = DEFAULT_SOON_DAYS) -> pd.DataFrame:
    rows = [
        {
            "contract": fmt_contract_id(w.contract_id),
            "contract_id": w.contract_id,
            "kind": w.kind,
            "text": w.text,
            "overdue_cycles": w.overdue_cycles,
            "days_until_due": w.days_until_due,
        }
        for w in loan_warnings(loans, today=today, soon_days=soon_days)
    ]
    return pd.DataFrame(rows, columns=WARNING_COLUMNS)


def history_frame(loan: dict) -> pd.DataFrame:
    """Payment history in append order."""
    return pd.DataFrame(list(loan.get("history") or []), columns=["date", "amount", "remaining"])
