"""Atomic sequential ID generation for every stored collection.

Uses the ``id_counters`` table inside the caller's transaction so the
counter increment commits or rolls back together with the insert that
consumes it. Minimum 4 digits, grows naturally past 9999.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select, update

from poolctl.infrastructure.database.schema import id_counters

if TYPE_CHECKING:
    from sqlalchemy import Connection

CLIENT = "CLI-"
TRANSACTION = "TX-"
ORDER = "ORD-"
BUDGET = "BQ-"
PRODUCT = "PRD-"
BANK = "BNK-"
REPLENISHMENT = "RQ-"
ADVANCE = "APR-"
PLAN_CHANGE = "PCR-"
PRICE_CHANGE = "PPC-"

SEQUENTIAL_PREFIXES = frozenset(
    {
        CLIENT,
        TRANSACTION,
        ORDER,
        BUDGET,
        PRODUCT,
        BANK,
        REPLENISHMENT,
        ADVANCE,
        PLAN_CHANGE,
        PRICE_CHANGE,
    }
)


def claim_next_value(conn: Connection, type_prefix: str) -> int:
    """Claim and return the next counter value for *type_prefix*.

    Raises:
        ValueError: If *type_prefix* is not a recognized sequential type.
    """
    if type_prefix not in SEQUENTIAL_PREFIXES:
        msg = (
            f"Unknown sequential type prefix: {type_prefix!r}. "
            f"Expected one of {sorted(SEQUENTIAL_PREFIXES)}"
        )
        raise ValueError(msg)

    row = conn.execute(
        select(id_counters.c.next_value).where(id_counters.c.type_prefix == type_prefix)
    ).one()

    current_value: int = row.next_value

    conn.execute(
        update(id_counters)
        .where(id_counters.c.type_prefix == type_prefix)
        .values(next_value=current_value + 1)
    )
    return current_value


def format_id(type_prefix: str, value: int) -> str:
    return f"{type_prefix}{value:04d}"


def next_sequential_id(conn: Connection, type_prefix: str) -> str:
    """Claim the next sequential ID for *type_prefix* (e.g. ``"CLI-0001"``).

    The caller must provide a ``Connection`` within an active transaction
    (e.g. from ``engine.begin()``).
    """
    return format_id(type_prefix, claim_next_value(conn, type_prefix))
