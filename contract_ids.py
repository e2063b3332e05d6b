# contract_ids.py
# Short numeric contract ids: optimistic random issue + 6-digit display form.
# The store's unique constraint is the real authority; callers must still handle 23505.

from __future__ import annotations

import random
import re
import time
from typing import Callable, Iterable, Optional

CONTRACT_ID_DIGITS = 6
MAX_RANDOM_DRAWS = 100


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def issue_contract_id(
    taken_ids: Iterable[int],
    digits: int = CONTRACT_ID_DIGITS,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], int]] = None,
) -> int:
    """
    Draw a `digits`-digit id not present in `taken_ids`.
    After MAX_RANDOM_DRAWS collisions, falls back to a clock-derived id in range
    (not guaranteed unique).
    """
    if digits < 1:
        raise ValueError("digits must be >= 1")

    lo = 10 ** (digits - 1)
    hi = 10 ** digits - 1
    taken = {int(x) for x in taken_ids}
    draw = (rng or random).randint

    for _ in range(MAX_RANDOM_DRAWS):
        n = draw(lo, hi)
        if n not in taken:
            return n

    folded = (clock or _now_ms)() % (hi - lo + 1)
    return max(lo, min(hi, folded + lo))


def fmt_contract_id(value) -> str:
    """Display form: digits only, zero-padded, last 6 kept. '' for empty input."""
    if value is None or value == "":
        return ""
    s = re.sub(r"\D", "", str(value))
    return s.zfill(CONTRACT_ID_DIGITS)[-CONTRACT_ID_DIGITS:]


def taken_ids_of(loans: Iterable[dict]) -> set[int]:
    """Ids already used by a loaded collection (missing/zero ids ignored)."""
    out: set[int] = set()
    for loan in loans:
        try:
            cid = int(loan.get("contractId") or 0)
        except (TypeError, ValueError):
            continue
        if cid > 0:
            out.add(cid)
    return out
