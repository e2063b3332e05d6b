# rbac.py
# Who may touch the loan ledger.
# - Signed-in users own their loans (role "owner"); "viewer" can only read
# - No actor at all means "not signed in" -> every call is denied

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from errors import AuthorizationError

ROLE_OWNER = "owner"
ROLE_VIEWER = "viewer"

VALID_ROLES = {ROLE_OWNER, ROLE_VIEWER}

# ============================================================
# Canonical permissions by role
# ============================================================
PERMISSIONS: dict[str, set[str]] = {
    ROLE_OWNER: {
        "view_ledger",
        "create_loan",
        "edit_loan",
        "record_payment",
        "close_loan",
        "wipe_loans",
    },
    ROLE_VIEWER: {
        "view_ledger",
    },
}

PERMISSION_ALIASES: dict[str, str] = {
    "pay": "record_payment",
    "apply_payment": "record_payment",
    "delete_all": "wipe_loans",
}


def _canon_perm(perm: str) -> str:
    p = (perm or "").strip()
    return PERMISSION_ALIASES.get(p, p)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str = ROLE_OWNER
    email: str | None = None


def normalize_role(role: str | None) -> str:
    r = (role or ROLE_OWNER).strip().lower()
    return r if r in VALID_ROLES else ROLE_VIEWER


def can(actor: Actor | None, perm: str) -> bool:
    if actor is None or not str(actor.user_id or "").strip():
        return False
    return _canon_perm(perm) in PERMISSIONS.get(normalize_role(actor.role), set())


def require(actor: Actor | None, perm: str) -> Actor:
    if actor is None or not str(actor.user_id or "").strip():
        raise AuthorizationError("Sign in required.")
    if not can(actor, perm):
        raise AuthorizationError(f"Permission denied: {perm} for role '{actor.role}'.")
    return actor


def actor_from_session(session: Any, role: str = ROLE_OWNER) -> Actor | None:
    """
    Actor from a Supabase auth session:
    - supabase-py object: session.user.id / session.user.email
    - dict-like: session["user"]["id"]
    """
    if session is None:
        return None

    user = getattr(session, "user", None)
    if user is None and isinstance(session, dict):
        user = session.get("user")
    if user is None:
        return None

    if isinstance(user, dict):
        user_id, email = user.get("id"), user.get("email")
    else:
        user_id, email = getattr(user, "id", None), getattr(user, "email", None)

    if not user_id:
        return None
    return Actor(user_id=str(user_id), role=normalize_role(role), email=email)
