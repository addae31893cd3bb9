"""SQLAlchemy Core table definitions for the poolctl store.

Each table is one document collection. Nested structures (stock lines,
pricing snapshots, quote items) live in JSON columns; dates are ISO
strings, as the rest of the store writes them.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    REAL,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

clients = Table(
    "clients",
    metadata,
    Column("id", Text, primary_key=True),
    Column("seq", Integer, nullable=False),  # creation order
    Column("name", Text, nullable=False),
    Column("email", Text, default="", server_default=""),
    Column("status", Text, nullable=False),
    Column("pool_volume", REAL, default=0.0, server_default="0.0"),
    Column("has_well_water", Integer, default=0, server_default="0"),
    Column("include_products", Integer, default=0, server_default="0"),
    Column("is_party_pool", Integer, default=0, server_default="0"),
    Column("distance_from_hq", REAL, default=0.0, server_default="0.0"),
    Column("plan", Text, nullable=False),
    Column("fidelity_plan", JSON),
    Column("payment_status", Text, nullable=False),
    Column("due_date", Text, nullable=False),
    Column("bank_id", Text, ForeignKey("banks.id")),
    Column("advance_payment_until", Text),
    Column("custom_pricing", JSON),
    Column("scheduled_plan_change", JSON),
    Column("stock", JSON, nullable=False),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
)

settings_doc = Table(
    "settings",
    metadata,
    Column("key", Text, primary_key=True),
    Column("data", JSON, nullable=False),
    Column("modified", Text, nullable=False),
)

products = Table(
    "products",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("description", Text, default="", server_default=""),
    Column("price", REAL, nullable=False),
    Column("stock", Integer, default=0, server_default="0"),
)

banks = Table(
    "banks",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("pix_key", Text),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Text, primary_key=True),
    Column("client_id", Text, ForeignKey("clients.id"), nullable=False),
    Column("client_name", Text),
    Column("bank_id", Text, ForeignKey("banks.id"), nullable=False),
    Column("bank_name", Text),
    Column("amount", REAL, nullable=False),
    Column("date", Text, nullable=False),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Text, primary_key=True),
    Column("client_id", Text, ForeignKey("clients.id"), nullable=False),
    Column("client_name", Text),
    Column("items", JSON, nullable=False),
    Column("total", REAL, nullable=False),
    Column("status", Text, nullable=False),
    Column("quote_id", Text),
    Column("created", Text, nullable=False),
)

budget_quotes = Table(
    "budget_quotes",
    metadata,
    Column("id", Text, primary_key=True),
    Column("data", JSON, nullable=False),
    Column("status", Text, nullable=False),
    Column("client_id", Text),
    Column("created", Text, nullable=False),
)

replenishment_quotes = Table(
    "replenishment_quotes",
    metadata,
    Column("id", Text, primary_key=True),
    Column("seq", Integer, nullable=False),
    Column("client_id", Text, ForeignKey("clients.id"), nullable=False),
    Column("client_name", Text),
    Column("items", JSON, nullable=False),
    Column("total", REAL, nullable=False),
    Column("status", Text, nullable=False),
    Column("created", Text, nullable=False),
    Column("updated", Text, nullable=False),
)

advance_payment_requests = Table(
    "advance_payment_requests",
    metadata,
    Column("id", Text, primary_key=True),
    Column("seq", Integer, nullable=False),
    Column("client_id", Text, ForeignKey("clients.id"), nullable=False),
    Column("client_name", Text),
    Column("months", Integer, nullable=False),
    Column("discount_percent", REAL, nullable=False),
    Column("original_amount", REAL, nullable=False),
    Column("final_amount", REAL, nullable=False),
    Column("status", Text, nullable=False),
    Column("created", Text, nullable=False),
    Column("updated", Text, nullable=False),
)

plan_change_requests = Table(
    "plan_change_requests",
    metadata,
    Column("id", Text, primary_key=True),
    Column("seq", Integer, nullable=False),
    Column("client_id", Text, ForeignKey("clients.id"), nullable=False),
    Column("client_name", Text),
    Column("current_plan", Text, nullable=False),
    Column("requested_plan", Text, nullable=False),
    Column("status", Text, nullable=False),
    Column("proposed_price", REAL),
    Column("admin_notes", Text),
    Column("created", Text, nullable=False),
    Column("updated", Text, nullable=False),
)

pending_price_changes = Table(
    "pending_price_changes",
    metadata,
    Column("id", Text, primary_key=True),
    Column("effective_date", Text, nullable=False),
    Column("new_pricing", JSON, nullable=False),
    Column("affected_clients", JSON, nullable=False),
    Column("status", Text, nullable=False),
    Column("created", Text, nullable=False),
    Column("applied_at", Text),
)

# Persistent per-day trigger ledger for automation passes.
automation_runs = Table(
    "automation_runs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job", Text, nullable=False),
    Column("run_date", Text, nullable=False),
    Column("created", Text, nullable=False),
    UniqueConstraint("job", "run_date"),
)

id_counters = Table(
    "id_counters",
    metadata,
    Column("type_prefix", Text, primary_key=True),
    Column("next_value", Integer, nullable=False, default=1, server_default="1"),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_clients_status", clients.c.status)
Index("ix_clients_plan", clients.c.plan)
Index("ix_transactions_client", transactions.c.client_id)
Index("ix_replenishment_client_status", replenishment_quotes.c.client_id, replenishment_quotes.c.status)
Index("ix_advance_client_status", advance_payment_requests.c.client_id, advance_payment_requests.c.status)
Index("ix_plan_change_client_status", plan_change_requests.c.client_id, plan_change_requests.c.status)
Index("ix_price_changes_status", pending_price_changes.c.status)

# Collection names published on the change feed, keyed by table name.
COLLECTIONS: dict[str, Table] = {
    "clients": clients,
    "settings": settings_doc,
    "products": products,
    "banks": banks,
    "transactions": transactions,
    "orders": orders,
    "budget_quotes": budget_quotes,
    "replenishment_quotes": replenishment_quotes,
    "advance_payment_requests": advance_payment_requests,
    "plan_change_requests": plan_change_requests,
    "pending_price_changes": pending_price_changes,
}
