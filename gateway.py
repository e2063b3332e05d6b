# gateway.py
# Loans table access through Supabase (PostgREST), tolerant of:
#   - the column-naming convention (camel / snake / lower), learned into StoreProfile
#   - the primary-key column name (contractId / contract_id / contractid / id)
#   - contract-id collisions on insert (unique violation -> new id -> restart)
#
# Retries are strictly sequential. The caller's record/patch dicts are never mutated.

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterable, List

from contract_ids import issue_contract_id
from errors import (
    IdentifierConflict,
    LoanNotFound,
    NamingModeMismatch,
    StoreFailure,
    TerminalStoreError,
    classify_store_error,
    store_error_message,
)
from schema_adapter import (
    DEFAULT_PRIMARY_KEY,
    NamingMode,
    StoreProfile,
    candidate_modes,
    column_for,
    detect_mode,
    detect_primary_key,
    normalize_record,
    project_payload,
)

log = logging.getLogger(__name__)

LOANS_TABLE = "loans"
OWNER_COL = "owner"
MAX_CREATE_ATTEMPTS = 7
LOAD_LIMIT = 5000


class CreateState(Enum):
    TRYING_MODE = "trying_mode"
    REGENERATING = "regenerating"
    EXHAUSTED = "exhausted"


def sort_by_contract_id(loans: Iterable[dict]) -> List[dict]:
    return sorted(loans, key=lambda r: int(r.get("contractId") or 0))


class LoanGateway:
    """
    Create / update / load / delete loans, retrying across naming modes.

    `profile` is shared by reference with whoever built the gateway; it is
    only changed here, after a read or write the store accepted.
    """

    def __init__(
        self,
        sb,
        schema: str = "public",
        table: str = LOANS_TABLE,
        profile: StoreProfile | None = None,
        issue_id: Callable[[set[int]], int] = issue_contract_id,
    ):
        self.sb = sb
        self.schema = schema
        self.table = table
        self.profile = profile if profile is not None else StoreProfile()
        self.issue_id = issue_id

    def _table(self):
        return self.sb.schema(self.schema).table(self.table)

    def _lock_mode(self, mode: NamingMode) -> None:
        if self.profile.mode != mode:
            log.info("loans table naming mode: %s -> %s", self.profile.mode.value, mode.value)
        self.profile.mode = mode

    def _pk_column(self, mode: NamingMode) -> str:
        pk = self.profile.primary_key
        # the default key was never confirmed by a loaded row, so follow the write mode
        if pk == DEFAULT_PRIMARY_KEY:
            return column_for(pk, mode)
        return pk

    @staticmethod
    def _modes_exhausted(op: str, failures: list[StoreFailure], last_error: BaseException):
        msg = f"Loan {op} failed in every column naming mode: {store_error_message(last_error)}"
        if failures and all(f is StoreFailure.NAMING_MISMATCH for f in failures):
            return NamingModeMismatch(msg, last_error)
        return TerminalStoreError(msg, last_error)

    # ============================================================
    # READ
    # ============================================================
    def load(self, limit: int = LOAD_LIMIT) -> List[dict]:
        """All loans (normalized, sorted by contractId). Learns mode + pk from the first row."""
        try:
            res = self._table().select("*").limit(int(limit)).execute()
        except Exception as e:
            raise TerminalStoreError(f"Loading loans failed: {store_error_message(e)}", e) from e

        rows = getattr(res, "data", None) or []
        if rows:
            sample = rows[0]
            self._lock_mode(detect_mode(sample))
            self.profile.primary_key = detect_primary_key(sample)
        log.debug("loaded %d loan row(s) from %s.%s", len(rows), self.schema, self.table)
        return sort_by_contract_id(normalize_record(r) for r in rows)

    # ============================================================
    # CREATE (naming retry + id collision retry)
    # ============================================================
    def _insert(self, row: dict, mode: NamingMode) -> dict:
        res = self._table().insert(project_payload(row, mode)).execute()
        data = getattr(res, "data", None) or []
        # no representation returned (e.g. RLS hides the row): trust what was sent
        return normalize_record(data[0] if data else row)

    def create(self, record: dict, taken_ids: Iterable[int] = ()) -> dict:
        """
        Insert one canonical loan record; returns the normalized stored record.

        State machine:
          TRYING_MODE  -> success: lock mode, return
                       -> unique violation: REGENERATING
                       -> other failure: next mode, or fail if none left in this attempt
          REGENERATING -> new contractId, back to TRYING_MODE with the first mode
                       -> attempt budget spent: EXHAUSTED
          EXHAUSTED    -> IdentifierConflict (chained to the last store error)
        """
        row = dict(record)
        taken = {int(x) for x in taken_ids}
        modes = candidate_modes(self.profile.mode)

        state = CreateState.TRYING_MODE
        attempt = 1
        mode_idx = 0
        failures: list[StoreFailure] = []
        last_error: BaseException | None = None

        while True:
            if state is CreateState.TRYING_MODE:
                mode = modes[mode_idx]
                try:
                    written = self._insert(row, mode)
                except Exception as e:
                    last_error = e
                    failure = classify_store_error(e)
                    failures.append(failure)
                    if failure is StoreFailure.UNIQUE_VIOLATION:
                        log.warning(
                            "contract id %s already taken (attempt %d/%d)",
                            row.get("contractId"), attempt, MAX_CREATE_ATTEMPTS,
                        )
                        state = CreateState.REGENERATING
                    elif mode_idx + 1 < len(modes):
                        log.debug("insert rejected in %s mode (%s), trying next", mode.value, failure.value)
                        mode_idx += 1
                    else:
                        raise self._modes_exhausted("insert", failures, e) from e
                    continue

                self._lock_mode(mode)
                log.info("created loan %s (%s mode, attempt %d)", written.get("contractId"), mode.value, attempt)
                return written

            if state is CreateState.REGENERATING:
                if attempt >= MAX_CREATE_ATTEMPTS:
                    state = CreateState.EXHAUSTED
                    continue
                rejected = row.get("contractId")
                if rejected is not None:
                    taken.add(int(rejected))
                row["contractId"] = self.issue_id(taken)
                attempt += 1
                mode_idx = 0
                failures = []
                state = CreateState.TRYING_MODE
                continue

            raise IdentifierConflict(
                f"Could not find a free contract id after {MAX_CREATE_ATTEMPTS} attempts.",
                last_error,
            ) from last_error

    # ============================================================
    # UPDATE (naming retry only)
    # ============================================================
    def update(self, contract_id: Any, patch: dict) -> dict:
        """Patch one loan by primary key; returns the normalized stored record."""
        failures: list[StoreFailure] = []
        last_error: BaseException | None = None

        for mode in candidate_modes(self.profile.mode):
            pk_col = self._pk_column(mode)
            try:
                res = (
                    self._table()
                    .update(project_payload(patch, mode))
                    .eq(pk_col, contract_id)
                    .execute()
                )
            except Exception as e:
                last_error = e
                failures.append(classify_store_error(e))
                log.debug("update of %s rejected in %s mode: %s", contract_id, mode.value, store_error_message(e))
                continue

            self._lock_mode(mode)
            rows = getattr(res, "data", None) or []
            if not rows:
                raise LoanNotFound(contract_id)
            return normalize_record(rows[0])

        raise self._modes_exhausted("update", failures, last_error) from last_error

    # ============================================================
    # DELETE
    # ============================================================
    def delete_owned(self, owner: str) -> None:
        """Bulk delete every loan tagged with `owner`."""
        try:
            self._table().delete().eq(OWNER_COL, owner).execute()
        except Exception as e:
            raise TerminalStoreError(f"Deleting loans failed: {store_error_message(e)}", e) from e
        log.warning("deleted all loans owned by %s", owner)
