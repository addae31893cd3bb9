"""SQLite document store schema, engine, and ID counters via SQLAlchemy Core."""

from poolctl.infrastructure.database.counters import claim_next_value, next_sequential_id
from poolctl.infrastructure.database.engine import create_db_engine, init_database
from poolctl.infrastructure.database.schema import (
    advance_payment_requests,
    automation_runs,
    banks,
    budget_quotes,
    clients,
    id_counters,
    metadata,
    orders,
    pending_price_changes,
    plan_change_requests,
    products,
    replenishment_quotes,
    settings_doc,
    transactions,
)

__all__ = [
    "advance_payment_requests",
    "automation_runs",
    "banks",
    "budget_quotes",
    "claim_next_value",
    "clients",
    "create_db_engine",
    "id_counters",
    "init_database",
    "metadata",
    "next_sequential_id",
    "orders",
    "pending_price_changes",
    "plan_change_requests",
    "products",
    "replenishment_quotes",
    "settings_doc",
    "transactions",
]
