"""
Booking Status Finite State Machine

State transitions:
- PENDING -> CONFIRMED (payment succeeded)
- PENDING -> CANCELLED (client cancelled, or pending hold timed out)
- PENDING -> EXPIRED
- CONFIRMED -> COMPLETED (spot released after the window)
- CONFIRMED -> CANCELLED (client cancelled)
- CONFIRMED -> NO_SHOW (client never arrived)

COMPLETED, CANCELLED, EXPIRED and NO_SHOW are terminal.
"""

from __future__ import annotations

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
EXPIRED = "expired"
NO_SHOW = "no-show"

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED, EXPIRED}),
    CONFIRMED: frozenset({COMPLETED, CANCELLED, NO_SHOW}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
    EXPIRED: frozenset(),
    NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)


class InvalidTransition(ValueError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        if new not in ALLOWED_TRANSITIONS:
            message = f"Unknown booking status {new!r}."
        else:
            message = f"Cannot move booking from {current!r} to {new!r}."
        super().__init__(message)


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransition(current, new)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
