"""Billing-cycle rules: due dates, settlement, and advance-payment gating.

Everything here is pure. :func:`settle` computes the client's state after
a payment; the settlement service persists it together with the ledger
entry in a single transaction.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from poolctl.domain.models import Client
from poolctl.domain.types import PaymentStatus


def add_months(start: date, months: int) -> date:
    """Shift *start* by *months* calendar months, clamping to month end.

    ``add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)``.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_due_date(current: date, months: int, *, today: date | None = None) -> date:
    """Due date after paying *months* periods.

    Counting starts from the later of *today* and *current*, so an
    overdue client lands in the next future cycle. The billing day of
    *current* is kept (clamped to month end).
    """
    base = max(current, today) if today is not None else current
    shifted = add_months(base.replace(day=1), months)
    last_day = calendar.monthrange(shifted.year, shifted.month)[1]
    return shifted.replace(day=min(current.day, last_day))


def settle(
    client: Client,
    months: int,
    *,
    protect_until_due: bool = False,
    today: date | None = None,
) -> Client:
    """Client state after paying *months* periods.

    The due date moves forward by *months* (from *today* when the client
    is overdue, see :func:`next_due_date`) and the invoice is marked
    paid. An existing advance-protection window is consumed, unless
    *protect_until_due* is set (advance approvals), in which case the
    window is reset to the new due date. A scheduled plan change becomes
    the client's plan and is cleared.
    """
    if months < 1:
        msg = f"settlement must cover at least one period, got {months}"
        raise ValueError(msg)

    new_due = next_due_date(client.payment.due_date, months, today=today)
    changes: dict[str, object] = {
        "payment": client.payment.model_copy(
            update={"status": PaymentStatus.PAID, "due_date": new_due}
        ),
        "advance_payment_until": new_due if protect_until_due else None,
    }

    scheduled = client.scheduled_plan_change
    if scheduled is not None:
        changes["plan"] = scheduled.new_plan
        changes["fidelity_plan"] = scheduled.fidelity_plan
        changes["scheduled_plan_change"] = None

    return client.model_copy(update=changes)


# --- Advance payment gating ---

ADOPTION_CAP_PERCENT = 10.0
DUE_DATE_BLOCK_DAYS = 15


@dataclass(frozen=True)
class AdoptionStats:
    """How many active clients currently sit inside an advance window."""

    count: int
    percentage: float


def advance_adoption(clients: Iterable[Client], today: date) -> AdoptionStats:
    """Share of active clients whose ``advance_payment_until`` is still in the future."""
    active = [c for c in clients if c.is_active]
    if not active:
        return AdoptionStats(count=0, percentage=0.0)
    count = sum(
        1
        for c in active
        if c.advance_payment_until is not None and c.advance_payment_until > today
    )
    return AdoptionStats(count=count, percentage=count / len(active) * 100)


def advance_globally_available(
    enabled: bool,
    stats: AdoptionStats,
    *,
    cap_percent: float = ADOPTION_CAP_PERCENT,
) -> bool:
    """The plan is offered only while enabled and below the adoption cap."""
    return enabled and stats.percentage < cap_percent


def blocked_by_due_date(
    client: Client,
    today: date,
    *,
    block_days: int = DUE_DATE_BLOCK_DAYS,
) -> bool:
    """An unpaid invoice due within *block_days* must be settled first."""
    if client.payment.status == PaymentStatus.PAID:
        return False
    return client.payment.due_date <= today + timedelta(days=block_days)


def advance_amounts(monthly_fee: float, months: int, discount_percent: float) -> tuple[float, float]:
    """``(original, final)`` amounts for prepaying *months* periods."""
    original = round(monthly_fee * months, 2)
    final = round(original * (1 - discount_percent / 100), 2)
    return original, final
