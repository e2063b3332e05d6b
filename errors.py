# errors.py
# Error taxonomy for the loan ledger + classification of Supabase / PostgREST failures.
#
# - ValidationError / AuthorizationError / LoanNotFound are raised before any store call
# - StoreError subclasses wrap the last underlying client error (chained with `raise ... from`)
# - classify_store_error() drives the gateway retry machine

from __future__ import annotations

from enum import Enum
from typing import Any

from postgrest.exceptions import APIError

UNIQUE_VIOLATION_CODE = "23505"
NAMING_ERROR_CODES = {"PGRST204", "PGRST200", "42703"}


class LedgerError(Exception):
    """Base for every error raised by the ledger."""


class ValidationError(LedgerError, ValueError):
    """Caller input is malformed (e.g. a non-positive payment)."""


class AuthorizationError(LedgerError, PermissionError):
    """No actor, or the actor lacks the permission for a mutating call."""


class LoanNotFound(LedgerError, LookupError):
    def __init__(self, contract_id: Any):
        super().__init__(f"Contract {contract_id} not found.")
        self.contract_id = contract_id


class StoreError(LedgerError):
    """A store call failed; `cause` is the last client error, if any."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class NamingModeMismatch(StoreError):
    """Every candidate column-naming convention was rejected by the store."""


class IdentifierConflict(StoreError):
    """The contract id kept colliding until the attempt budget ran out."""


class TerminalStoreError(StoreError):
    """Any other store failure."""


class StoreFailure(Enum):
    UNIQUE_VIOLATION = "unique_violation"
    NAMING_MISMATCH = "naming_mismatch"
    OTHER = "other"


# ============================================================
# Client error inspection
# ============================================================
def _error_fields(e: BaseException) -> tuple[str, str]:
    """
    Returns (code, text) from an APIError or any exception carrying
    code/message/details attributes (or a dict payload in args[0]).
    """
    code = getattr(e, "code", None)
    parts = [getattr(e, "message", None), getattr(e, "details", None), getattr(e, "hint", None)]

    payload = e.args[0] if getattr(e, "args", None) else None
    if isinstance(payload, dict):
        code = code or payload.get("code")
        parts.extend([payload.get("message"), payload.get("details")])

    text = " ".join(str(p) for p in parts if p)
    if not text:
        text = str(e)
    return str(code or "").strip(), text


def store_error_message(e: BaseException) -> str:
    """Readable message for a store exception (PostgREST payload first)."""
    if isinstance(e, StoreError) and e.cause is not None:
        return f"{e} ({store_error_message(e.cause)})"
    if isinstance(e, APIError):
        return str(e.message or e.details or e.hint or "APIError")
    _, text = _error_fields(e)
    return text


def is_unique_violation(e: BaseException) -> bool:
    code, text = _error_fields(e)
    low = text.lower()
    return code == UNIQUE_VIOLATION_CODE or "duplicate key value" in low or "unique constraint" in low


def is_naming_mismatch(e: BaseException) -> bool:
    code, text = _error_fields(e)
    if code in NAMING_ERROR_CODES:
        return True
    if "Could not find the '" in text and "' column" in text:
        return True
    low = text.lower()
    return "column" in low and "does not exist" in low


def classify_store_error(e: BaseException) -> StoreFailure:
    if is_unique_violation(e):
        return StoreFailure.UNIQUE_VIOLATION
    if is_naming_mismatch(e):
        return StoreFailure.NAMING_MISMATCH
    return StoreFailure.OTHER


# ============================================================
# User-facing messages
# ============================================================
FAILURE_TITLES = {
    "create": "Save failed",
    "edit": "Save failed",
    "save": "Save failed",
    "payment": "Payment failed",
    "close": "Close failed",
    "delete": "Delete failed",
    "load": "Load failed",
}


def describe_failure(action: str, e: BaseException) -> str:
    """
    Message shown to the user when an operation fails.
    Authorization and validation problems are named as such regardless of action.
    """
    if isinstance(e, AuthorizationError):
        return f"Not authorized: {e}"
    if isinstance(e, ValidationError):
        return f"Invalid input: {e}"
    title = FAILURE_TITLES.get(action, "Operation failed")
    return f"{title}: {store_error_message(e)}"
