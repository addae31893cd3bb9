"""Negotiation status enums and transition maps.

Every satellite record (quotes, requests, pending price changes) moves
only through the transitions listed here. Services read the current
status, check the transition, and write the new status in the same
transaction.
"""

from __future__ import annotations

from enum import StrEnum

# --- Status enums ---


class ReplenishmentStatus(StrEnum):
    """Replenishment quote lifecycle."""

    SUGGESTED = "suggested"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdvanceRequestStatus(StrEnum):
    """Advance payment request lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PlanChangeStatus(StrEnum):
    """Plan upgrade request lifecycle."""

    PENDING = "pending"
    QUOTED = "quoted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class PriceChangeStatus(StrEnum):
    """Pending price change lifecycle."""

    PENDING = "pending"
    APPLIED = "applied"


class BudgetStatus(StrEnum):
    """Pre-budget lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# --- Transition maps ---

REPLENISHMENT_TRANSITIONS: dict[str, list[str]] = {
    "suggested": ["sent"],
    "sent": ["approved", "rejected"],
    "approved": [],
    "rejected": [],
}

ADVANCE_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["approved", "rejected"],
    "approved": [],
    "rejected": [],
}

PLAN_CHANGE_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["quoted", "rejected"],
    "quoted": ["accepted", "rejected"],
    "accepted": [],
    "rejected": [],
}

PRICE_CHANGE_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["applied"],
    "applied": [],
}

BUDGET_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["approved", "rejected"],
    "approved": [],
    "rejected": [],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]],
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed


def is_terminal(status: str, transitions: dict[str, list[str]]) -> bool:
    """A status with no outgoing transitions is terminal."""
    return not transitions.get(status, [])


def open_statuses(transitions: dict[str, list[str]]) -> frozenset[str]:
    return frozenset(s for s in transitions if not is_terminal(s, transitions))


# Statuses that block a new record of the same kind for the same client.
OPEN_REPLENISHMENT_STATUSES = open_statuses(REPLENISHMENT_TRANSITIONS)
OPEN_ADVANCE_STATUSES = open_statuses(ADVANCE_TRANSITIONS)
OPEN_PLAN_CHANGE_STATUSES = open_statuses(PLAN_CHANGE_TRANSITIONS)
