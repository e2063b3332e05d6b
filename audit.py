# audit.py
# Schema-safe audit trail for ledger mutations (table: audit_log).
#
# Minimum required columns: created_at, action, status
# Optional columns:        details (JSON text), actor_user_id
# Optional columns are written only if the table has them; the check runs once
# per schema/table/column and is remembered (bounded LRU).

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

log = logging.getLogger(__name__)

AUDIT_TABLE = "audit_log"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _ClientRef:
    """Carries the client into the cached check without being part of its key."""

    __slots__ = ("c",)

    def __init__(self, c):
        self.c = c

    def __hash__(self) -> int:
        return 0

    def __eq__(self, other) -> bool:
        return isinstance(other, _ClientRef)


@lru_cache(maxsize=256)
def _column_exists(schema: str, table: str, col: str, ref: _ClientRef) -> bool:
    try:
        ref.c.schema(schema).table(table).select(col).limit(1).execute()
        return True
    except Exception:
        log.debug("%s.%s has no column %s", schema, table, col)
        return False


def _has_column(c, schema: str, table: str, col: str) -> bool:
    """True if `col` can be selected from schema.table (cached per schema/table/column)."""
    return _column_exists(schema, table, col, _ClientRef(c))


def clear_column_cache() -> None:
    _column_exists.cache_clear()


def audit(
    c,
    action: str,
    status: str = "ok",
    details: dict[str, Any] | None = None,
    actor_user_id: str | None = None,
    schema: str = "public",
) -> bool:
    """
    Write one audit row. Never raises; returns True when the row was written.
    """
    try:
        payload: dict[str, Any] = {
            "created_at": _now_iso(),
            "action": action,
            "status": status,
        }
        if _has_column(c, schema, AUDIT_TABLE, "details"):
            payload["details"] = json.dumps(details or {}, default=str)
        if actor_user_id is not None and _has_column(c, schema, AUDIT_TABLE, "actor_user_id"):
            payload["actor_user_id"] = actor_user_id

        c.schema(schema).table(AUDIT_TABLE).insert(payload).execute()
        return True
    except Exception:
        log.warning("audit write failed for action %s", action, exc_info=True)
        return False
