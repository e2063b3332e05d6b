# schema_adapter.py
# Column-naming adapter for the loans table.
#
# Three conventions are seen in deployed schemas:
#   CAMEL  -> loanAmount, givenAmount, startDate ...   (canonical)
#   SNAKE  -> loan_amount, given_amount, start_date ...
#   LOWER  -> loanamount, givenamount, startdate ...   (unquoted Postgres identifiers)
#
# Records travel inside the app in canonical (camel) form only.
# StoreProfile is the per-ledger memory of which convention + primary key the store accepted.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping


class NamingMode(str, Enum):
    CAMEL = "camel"
    SNAKE = "snake"
    LOWER = "lower"


class LoanStatus(str, Enum):
    ACTIVE = "Active"
    SETTLED = "Settled"
    CLOSED = "Closed"


# canonical -> (snake, lower)
FIELD_TABLE: tuple[tuple[str, str, str], ...] = (
    ("contractId", "contract_id", "contractid"),
    ("name", "name", "name"),
    ("phone", "phone", "phone"),
    ("imei", "imei", "imei"),
    ("loanAmount", "loan_amount", "loanamount"),
    ("givenAmount", "given_amount", "givenamount"),
    ("paidTotal", "paid_total", "paidtotal"),
    ("repayAmount", "repay_amount", "repayamount"),
    ("loanDays", "loan_days", "loandays"),
    ("payInterval", "pay_interval", "payinterval"),
    ("startDate", "start_date", "startdate"),
    ("status", "status", "status"),
    ("history", "history", "history"),
)

CANONICAL_FIELDS: tuple[str, ...] = tuple(row[0] for row in FIELD_TABLE)

FIELD_NAMES: dict[NamingMode, dict[str, str]] = {
    NamingMode.CAMEL: {camel: camel for camel, _, _ in FIELD_TABLE},
    NamingMode.SNAKE: {camel: snake for camel, snake, _ in FIELD_TABLE},
    NamingMode.LOWER: {camel: lower for camel, _, lower in FIELD_TABLE},
}

# extra spellings accepted on read only
READ_ALIASES: dict[str, tuple[str, ...]] = {
    "contractId": ("id",),
    "name": ("Name", "NAME"),
    "phone": ("Phone", "PHONE"),
    "imei": ("IMEI", "Imei"),
    "status": ("Status", "STATUS"),
}

NUMERIC_FIELDS = ("loanAmount", "givenAmount", "paidTotal", "repayAmount", "loanDays", "payInterval")
TEXT_FIELDS = ("name", "phone", "imei")

FIELD_DEFAULTS: dict[str, Any] = {
    "contractId": None,
    "name": "",
    "phone": "",
    "imei": "",
    "loanAmount": 0,
    "givenAmount": 0,
    "paidTotal": 0,
    "repayAmount": 0,
    "loanDays": 0,
    "payInterval": 0,
    "startDate": "",
    "status": LoanStatus.ACTIVE.value,
    "history": [],
}

DETECT_FIELD = "givenAmount"
PRIMARY_KEY_CANDIDATES = ("contractId", "contract_id", "contractid", "id")
DEFAULT_PRIMARY_KEY = "contractId"

STATUS_ALIASES: dict[str, LoanStatus] = {
    "active": LoanStatus.ACTIVE,
    "open": LoanStatus.ACTIVE,
    "đang vay": LoanStatus.ACTIVE,
    "settled": LoanStatus.SETTLED,
    "paid": LoanStatus.SETTLED,
    "đã tất toán": LoanStatus.SETTLED,
    "closed": LoanStatus.CLOSED,
    "đã đóng": LoanStatus.CLOSED,
}


@dataclass
class StoreProfile:
    """
    Which column convention and primary-key column the store is believed to use.
    Advisory only: writes try `mode` first and fall back to the others.
    """
    mode: NamingMode = NamingMode.CAMEL
    primary_key: str = DEFAULT_PRIMARY_KEY


# ============================================================
# DETECTION
# ============================================================
def detect_mode(sample: Mapping[str, Any] | None) -> NamingMode:
    if not sample:
        return NamingMode.CAMEL
    for mode in (NamingMode.CAMEL, NamingMode.SNAKE, NamingMode.LOWER):
        if FIELD_NAMES[mode][DETECT_FIELD] in sample:
            return mode
    return NamingMode.CAMEL


def detect_primary_key(sample: Mapping[str, Any] | None) -> str:
    if not sample:
        return DEFAULT_PRIMARY_KEY
    for key in PRIMARY_KEY_CANDIDATES:
        if key in sample:
            return key
    return DEFAULT_PRIMARY_KEY


def candidate_modes(preferred: NamingMode) -> list[NamingMode]:
    """[preferred, camel, lower, snake] without duplicates."""
    out: list[NamingMode] = []
    for m in (preferred, NamingMode.CAMEL, NamingMode.LOWER, NamingMode.SNAKE):
        if m not in out:
            out.append(m)
    return out


# ============================================================
# VALUE COERCION
# ============================================================
def _to_int(x) -> int:
    if x is None or x == "" or isinstance(x, bool):
        return 0
    try:
        return int(x)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(str(x).replace(",", "")))
    except (TypeError, ValueError):
        return 0


def _to_contract_id(x) -> int | None:
    if x is None or x == "":
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def _to_date_str(x) -> str:
    if x is None:
        return ""
    if isinstance(x, datetime):
        return x.date().isoformat()
    if isinstance(x, date):
        return x.isoformat()
    return str(x).strip()


def normalize_status(x) -> str:
    if isinstance(x, LoanStatus):
        return x.value
    key = str(x or "").strip().lower()
    for status in LoanStatus:
        if key == status.value.lower():
            return status.value
    return STATUS_ALIASES.get(key, LoanStatus.ACTIVE).value


def normalize_history(x) -> list[dict]:
    if not isinstance(x, (list, tuple)):
        return []
    out = []
    for entry in x:
        if not isinstance(entry, Mapping):
            continue
        remaining = entry.get("remaining")
        if remaining is None:
            remaining = entry.get("remainingAfter", entry.get("remaining_after"))
        out.append({
            "date": _to_date_str(entry.get("date")),
            "amount": _to_int(entry.get("amount")),
            "remaining": _to_int(remaining),
        })
    return out


# ============================================================
# NORMALIZE / PROJECT
# ============================================================
def _lookup(raw: Mapping[str, Any], field: str):
    spellings = [FIELD_NAMES[m][field] for m in NamingMode] + list(READ_ALIASES.get(field, ()))
    for key in spellings:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def normalize_record(raw: Mapping[str, Any] | None) -> dict:
    """
    Canonical, fully populated loan record from a row in any naming convention.
    Defaults are taken from FIELD_DEFAULTS for anything missing.
    """
    raw = raw or {}
    rec: dict[str, Any] = {}
    for field in CANONICAL_FIELDS:
        value = _lookup(raw, field)
        if value is None:
            default = FIELD_DEFAULTS[field]
            rec[field] = list(default) if isinstance(default, list) else default
            continue

        if field == "contractId":
            rec[field] = _to_contract_id(value)
        elif field in NUMERIC_FIELDS:
            rec[field] = _to_int(value)
        elif field in TEXT_FIELDS:
            rec[field] = str(value)
        elif field == "startDate":
            rec[field] = _to_date_str(value)
        elif field == "status":
            rec[field] = normalize_status(value)
        elif field == "history":
            rec[field] = normalize_history(value)
    return rec


def project_payload(payload: Mapping[str, Any], mode: NamingMode) -> dict:
    """Rename canonical keys for `mode`; unknown keys (e.g. owner) pass through."""
    names = FIELD_NAMES[NamingMode(mode)]
    return {names.get(k, k): v for k, v in payload.items()}


def column_for(field: str, mode: NamingMode) -> str:
    return FIELD_NAMES[NamingMode(mode)].get(field, field)
