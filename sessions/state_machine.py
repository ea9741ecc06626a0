from __future__ import annotations

from core.enums import Stage

STATE_AWAITING_DATE = Stage.AWAITING_DATE.value
STATE_AWAITING_IDENTIFIER = Stage.AWAITING_IDENTIFIER.value


def initial_state() -> str:
    return STATE_AWAITING_DATE


def next_state(current: str) -> str | None:
    """Stage that follows ``current``; None once the dialogue is finished."""
    if current == STATE_AWAITING_DATE:
        return STATE_AWAITING_IDENTIFIER
    return None
