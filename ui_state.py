# ui_state.py
# Page-state helpers: after a successful write the page reruns so totals,
# warnings and the table are rebuilt from the updated collection. The success
# message is parked in session state to survive that rerun.
from __future__ import annotations

from typing import Callable, MutableMapping, Optional

import streamlit as st

FLASH_KEY = "flash"


def finish_write(
    message: str,
    state: Optional[MutableMapping] = None,
    rerun: Optional[Callable[[], None]] = None,
) -> None:
    (st.session_state if state is None else state)[FLASH_KEY] = message
    (rerun or st.rerun)()


def take_flash(state: Optional[MutableMapping] = None) -> Optional[str]:
    """Message left by finish_write() on the previous run (shown once)."""
    return (st.session_state if state is None else state).pop(FLASH_KEY, None)
