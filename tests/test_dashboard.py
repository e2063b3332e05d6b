"""Tests for the pandas ledger views."""

from dashboard import LEDGER_COLUMNS, WARNING_COLUMNS, history_frame, loans_frame, warnings_frame
from fakes import TODAY, canonical_loan


def sample_loans():
    return [
        canonical_loan(contractId=222222, startDate="2025-03-01"),
        canonical_loan(contractId=111111, startDate="2025-03-13"),
        canonical_loan(contractId=42, status="Closed"),
        canonical_loan(contractId=333333, startDate=""),
    ]


def test_loans_frame():
    df = loans_frame(sample_loans(), today=TODAY)

    assert list(df.columns) == LEDGER_COLUMNS
    assert list(df["contract_id"]) == [42, 111111, 222222, 333333]
    assert list(df["contract"]) == ["000042", "111111", "222222", "333333"]
    assert list(df["tone"]) == ["inactive", "soon", "overdue", ""]

    overdue = df.set_index("contract_id").loc[222222]
    assert overdue["per_cycle"] == 1000
    assert overdue["overdue_cycles"] == 2
    assert overdue["next_due_date"] == "2025-03-11"
    assert overdue["days_until_due"] == -10


def test_loans_frame_empty():
    df = loans_frame([], today=TODAY)
    assert df.empty
    assert list(df.columns) == LEDGER_COLUMNS


def test_warnings_frame():
    df = warnings_frame(sample_loans(), today=TODAY)

    assert list(df.columns) == WARNING_COLUMNS
    assert list(df["kind"]) == ["overdue", "soon"]
    assert list(df["contract"]) == ["222222", "111111"]


def test_history_frame():
    loan = canonical_loan(history=[
        {"date": "2025-03-11", "amount": 1000, "remaining": 2000},
        {"date": "2025-03-15", "amount": 500, "remaining": 1500},
    ])
    df = history_frame(loan)

    assert list(df.columns) == ["date", "amount", "remaining"]
    assert list(df["amount"]) == [1000, 500]
    assert history_frame(canonical_loan()).empty
