# ledger.py
# The loan collection of one signed-in session + every mutation on it.
#
# Rules:
# - repayAmount is always max(givenAmount - paidTotal, 0)
# - paidTotal only grows; history only gets appended to (new list each time)
# - status: Active -> Settled when nothing remains; anything -> Closed; never back to Active
# - memory is patched only after the store confirmed the write

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from audit import audit
from contract_ids import taken_ids_of
from due_status import DEFAULT_SOON_DAYS, DueWarning, loan_warnings
from errors import LoanNotFound, TerminalStoreError, ValidationError
from gateway import LoanGateway, sort_by_contract_id
from rbac import Actor, require
from schema_adapter import LoanStatus, normalize_status

log = logging.getLogger(__name__)


# ============================================================
# INPUT
# ============================================================
def _parse_whole(x) -> int:
    """Whole, non-negative number from form input ('1,500,000', 1500000.0, '30'); invalid -> 0."""
    if x is None or isinstance(x, bool):
        return 0
    if isinstance(x, (int, float, Decimal)):
        f = float(x)
        return int(f) if math.isfinite(f) and f > 0 else 0
    digits = re.sub(r"\D", "", str(x))
    return int(digits) if digits else 0


def _iso_date(x) -> str:
    if isinstance(x, datetime):
        return x.date().isoformat()
    if isinstance(x, date):
        return x.isoformat()
    return str(x or "").strip()


@dataclass(frozen=True)
class LoanTerms:
    name: str = ""
    phone: str = ""
    imei: str = ""
    loan_amount: int = 0
    given_amount: int = 0
    loan_days: int = 0
    pay_interval: int = 0
    start_date: str = ""

    @classmethod
    def from_form(cls, form: dict) -> "LoanTerms":
        def pick(*keys):
            for k in keys:
                if k in form and form[k] is not None:
                    return form[k]
            return None

        return cls(
            name=str(pick("name") or "").strip(),
            phone=str(pick("phone") or "").strip(),
            imei=str(pick("imei") or "").strip(),
            loan_amount=_parse_whole(pick("loan_amount", "loanAmount")),
            given_amount=_parse_whole(pick("given_amount", "givenAmount")),
            loan_days=_parse_whole(pick("loan_days", "loanDays")),
            pay_interval=_parse_whole(pick("pay_interval", "payInterval")),
            start_date=_iso_date(pick("start_date", "startDate")),
        )

    def to_row(self) -> dict:
        return {
            "name": self.name.strip(),
            "phone": self.phone.strip(),
            "imei": self.imei.strip(),
            "loanAmount": int(self.loan_amount),
            "givenAmount": int(self.given_amount),
            "loanDays": int(self.loan_days),
            "payInterval": int(self.pay_interval),
            "startDate": _iso_date(self.start_date),
        }


# ============================================================
# PURE RULES
# ============================================================
def remaining_of(given_amount, paid_total) -> int:
    return max(int(given_amount or 0) - int(paid_total or 0), 0)


def advance_status(current, remaining: int) -> str:
    """Active becomes Settled once nothing remains; Settled/Closed never move back."""
    status = normalize_status(current)
    if status == LoanStatus.ACTIVE.value and remaining <= 0:
        return LoanStatus.SETTLED.value
    return status


def append_payment(history: Iterable[dict], entry: dict) -> list[dict]:
    """New history list with `entry` at the end; the input is left untouched."""
    return [dict(h) for h in (history or [])] + [dict(entry)]


def validate_payment_amount(amount) -> int:
    if amount is None or isinstance(amount, bool):
        raise ValidationError("Payment amount is required.")
    try:
        f = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Payment amount is not a number: {amount!r}.")
    if not math.isfinite(f):
        raise ValidationError("Payment amount must be finite.")
    if f <= 0:
        raise ValidationError("Payment amount must be > 0.")
    if not f.is_integer():
        raise ValidationError(f"Payment amount must be a whole number: {amount!r}.")
    return int(f)


# ============================================================
# LEDGER
# ============================================================
class LoanLedger:
    """
    In-memory loan collection backed by a LoanGateway.
    `actor` is the authorization gate: None means nobody is signed in.
    """

    def __init__(self, gateway: LoanGateway, actor: Actor | None = None, audit_enabled: bool = True):
        self.gateway = gateway
        self.actor = actor
        self.audit_enabled = audit_enabled
        self.loans: List[dict] = []

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------
    def _audit(self, action: str, details: dict) -> None:
        if not self.audit_enabled:
            return
        audit(
            self.gateway.sb,
            action,
            "ok",
            details,
            actor_user_id=self.actor.user_id if self.actor else None,
            schema=self.gateway.schema,
        )

    def _replace(self, contract_id, record: dict) -> None:
        self.loans = [record if l.get("contractId") == contract_id else l for l in self.loans]

    def find(self, contract_id) -> Optional[dict]:
        for loan in self.loans:
            if loan.get("contractId") == contract_id:
                return loan
        return None

    def _get(self, contract_id) -> dict:
        loan = self.find(contract_id)
        if loan is None:
            raise LoanNotFound(contract_id)
        return loan

    def taken_ids(self) -> set[int]:
        return taken_ids_of(self.loans)

    def total_loan_amount(self) -> int:
        return sum(int(l.get("loanAmount") or 0) for l in self.loans)

    def warnings(self, today=None, soon_days: int = DEFAULT_SOON_DAYS) -> list[DueWarning]:
        return loan_warnings(self.loans, today=today, soon_days=soon_days)

    # ------------------------------------------------------------
    # read
    # ------------------------------------------------------------
    def load(self) -> List[dict]:
        require(self.actor, "view_ledger")
        self.loans = self.gateway.load()
        return self.loans

    # ------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------
    def create(self, terms: LoanTerms) -> dict:
        actor = require(self.actor, "create_loan")
        taken = self.taken_ids()
        given = int(terms.given_amount)

        row: dict[str, Any] = {
            "contractId": self.gateway.issue_id(taken),
            **terms.to_row(),
            "paidTotal": 0,
            "repayAmount": given,
            "status": (LoanStatus.SETTLED if given <= 0 else LoanStatus.ACTIVE).value,
            "history": [],
            "owner": actor.user_id,
        }

        created = self.gateway.create(row, taken_ids=taken)
        self.loans = sort_by_contract_id(self.loans + [created])
        self._audit("loan_created", {"contract_id": created.get("contractId"), "given_amount": given})
        return created

    def edit(self, contract_id, terms: LoanTerms) -> dict:
        require(self.actor, "edit_loan")
        current = self._get(contract_id)

        base = terms.to_row()
        remaining = remaining_of(base["givenAmount"], current.get("paidTotal"))
        patch = {
            **base,
            "repayAmount": remaining,
            "status": advance_status(current.get("status"), remaining),
        }

        updated = self.gateway.update(contract_id, patch)
        self._replace(contract_id, updated)
        self._audit("loan_edited", {"contract_id": contract_id, "patch": patch})
        return updated

    def apply_payment(self, contract_id, amount, paid_on=None) -> dict:
        require(self.actor, "record_payment")
        pay = validate_payment_amount(amount)
        current = self._get(contract_id)

        new_paid = int(current.get("paidTotal") or 0) + pay
        new_remaining = max(int(current.get("givenAmount") or 0) - new_paid, 0)
        entry = {
            "date": _iso_date(paid_on) or date.today().isoformat(),
            "amount": pay,
            "remaining": new_remaining,
        }
        new_history = append_payment(current.get("history"), entry)
        patch = {
            "paidTotal": new_paid,
            "repayAmount": new_remaining,
            "status": advance_status(current.get("status"), new_remaining),
            "history": new_history,
        }

        updated = self.gateway.update(contract_id, patch)
        if len(updated.get("history") or []) < len(new_history):
            raise TerminalStoreError(f"Store did not keep the payment history of contract {contract_id}.")

        self._replace(contract_id, updated)
        log.info("payment of %s on contract %s, remaining %s", pay, contract_id, new_remaining)
        self._audit("loan_payment_applied", {
            "contract_id": contract_id,
            "amount": pay,
            "paid_on": entry["date"],
            "remaining": new_remaining,
        })
        return updated

    def close(self, contract_id) -> dict:
        require(self.actor, "close_loan")
        self._get(contract_id)

        updated = self.gateway.update(contract_id, {"status": LoanStatus.CLOSED.value})
        self._replace(contract_id, updated)
        self._audit("loan_closed", {"contract_id": contract_id})
        return updated

    def delete_all(self) -> None:
        actor = require(self.actor, "wipe_loans")
        self.gateway.delete_owned(actor.user_id)
        count = len(self.loans)
        self.loans = []
        self._audit("loans_wiped", {"owner": actor.user_id, "count": count})
