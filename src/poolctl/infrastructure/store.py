"""Store — repository over the document collections with atomic batches.

The Store is the single dependency injected into every service. Its
:meth:`Store.transaction` context manager is the atomic multi-document
batch: every write made through the yielded :class:`StoreTransaction`
commits together or not at all, and only a committed batch is published
on the change feed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update

from poolctl.domain.lifecycle import (
    OPEN_ADVANCE_STATUSES,
    OPEN_PLAN_CHANGE_STATUSES,
    OPEN_REPLENISHMENT_STATUSES,
    PriceChangeStatus,
)
from poolctl.domain.snapshot import StoreSnapshot
from poolctl.infrastructure import records
from poolctl.infrastructure.database import counters
from poolctl.infrastructure.database.engine import init_database
from poolctl.infrastructure.database.schema import (
    advance_payment_requests,
    banks,
    budget_quotes,
    clients,
    orders,
    pending_price_changes,
    plan_change_requests,
    products,
    replenishment_quotes,
    settings_doc,
    transactions,
)
from poolctl.infrastructure.feeds import ChangeFeed, Snapshot, SnapshotHandler, Subscription

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

    from poolctl.config.settings import PoolSettings
    from poolctl.domain.models import (
        AdvancePaymentRequest,
        Bank,
        BudgetQuote,
        Client,
        Order,
        PendingPriceChange,
        PlanChangeRequest,
        Product,
        ReplenishmentQuote,
        Transaction,
    )
    from poolctl.domain.settings import Settings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "main"


# ---------------------------------------------------------------------------
# StoreTransaction: yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class StoreTransaction:
    """Active batch with typed reads and writes over the collections.

    Writes record the collection they touch so the Store can publish
    fresh snapshots once the batch commits.
    """

    conn: Connection
    _store: Store
    _touched: set[str] = field(default_factory=set, repr=False)

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def touch(self, collection: str) -> None:
        self._touched.add(collection)

    def next_id(self, prefix: str) -> tuple[str, int]:
        """Claim ``(id, seq)`` for a new record; part of this batch."""
        value = counters.claim_next_value(self.conn, prefix)
        return counters.format_id(prefix, value), value

    def _first(self, table: Table, record_id: str) -> Any:
        return self.conn.execute(select(table).where(table.c.id == record_id)).first()

    def _set(self, table: Table, record_id: str, **values: Any) -> None:
        self.conn.execute(update(table).where(table.c.id == record_id).values(**values))
        self.touch(table.name)

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def get_client(self, client_id: str) -> Client | None:
        row = self._first(clients, client_id)
        return records.client_from_row(row) if row is not None else None

    def list_clients(self, *, active_only: bool = False) -> list[Client]:
        stmt = select(clients).order_by(clients.c.seq)
        if active_only:
            stmt = stmt.where(clients.c.status == "active")
        return [records.client_from_row(r) for r in self.conn.execute(stmt)]

    def insert_client(self, client: Client, now: datetime) -> Client:
        client_id, seq = self.next_id(counters.CLIENT)
        self.conn.execute(
            insert(clients).values(
                id=client_id,
                seq=seq,
                created=now.isoformat(),
                modified=now.isoformat(),
                **records.client_values(client),
            )
        )
        self.touch("clients")
        return client.model_copy(update={"id": client_id})

    def save_client(self, client: Client, now: datetime) -> None:
        """Write every mutable field of *client* in this batch."""
        self._set(clients, client.id, modified=now.isoformat(), **records.client_values(client))

    # ------------------------------------------------------------------
    # Settings document
    # ------------------------------------------------------------------

    def get_settings(self) -> Settings:
        row = self.conn.execute(
            select(settings_doc.c.data).where(settings_doc.c.key == SETTINGS_KEY)
        ).first()
        return records.settings_from_data(row.data if row is not None else None)

    def save_settings(self, settings: Settings, now: datetime) -> None:
        data = records.settings_data(settings)
        exists = self.conn.execute(
            select(settings_doc.c.key).where(settings_doc.c.key == SETTINGS_KEY)
        ).first()
        if exists is None:
            self.conn.execute(
                insert(settings_doc).values(key=SETTINGS_KEY, data=data, modified=now.isoformat())
            )
        else:
            self.conn.execute(
                update(settings_doc)
                .where(settings_doc.c.key == SETTINGS_KEY)
                .values(data=data, modified=now.isoformat())
            )
        self.touch("settings")

    # ------------------------------------------------------------------
    # Catalog, ledger, orders
    # ------------------------------------------------------------------

    def get_product(self, product_id: str) -> Product | None:
        row = self._first(products, product_id)
        return records.product_from_row(row) if row is not None else None

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(select(products).order_by(products.c.id))
        return [records.product_from_row(r) for r in rows]

    def insert_product(self, product: Product) -> Product:
        product_id, _ = self.next_id(counters.PRODUCT)
        self.conn.execute(
            insert(products).values(
                id=product_id,
                name=product.name,
                description=product.description,
                price=product.price,
                stock=product.stock,
            )
        )
        self.touch("products")
        return product.model_copy(update={"id": product_id})

    def get_bank(self, bank_id: str) -> Bank | None:
        row = self._first(banks, bank_id)
        return records.bank_from_row(row) if row is not None else None

    def list_banks(self) -> list[Bank]:
        return [records.bank_from_row(r) for r in self.conn.execute(select(banks).order_by(banks.c.id))]

    def insert_bank(self, bank: Bank) -> Bank:
        bank_id, _ = self.next_id(counters.BANK)
        self.conn.execute(insert(banks).values(id=bank_id, name=bank.name, pix_key=bank.pix_key))
        self.touch("banks")
        return bank.model_copy(update={"id": bank_id})

    def append_transaction(self, entry: Transaction) -> Transaction:
        """Append a ledger row. Ledger rows are never updated."""
        tx_id, _ = self.next_id(counters.TRANSACTION)
        self.conn.execute(
            insert(transactions).values(
                id=tx_id,
                client_id=entry.client_id,
                client_name=entry.client_name,
                bank_id=entry.bank_id,
                bank_name=entry.bank_name,
                amount=entry.amount,
                date=entry.date.isoformat(),
            )
        )
        self.touch("transactions")
        return entry.model_copy(update={"id": tx_id})

    def list_transactions(self, client_id: str | None = None) -> list[Transaction]:
        stmt = select(transactions).order_by(transactions.c.id)
        if client_id is not None:
            stmt = stmt.where(transactions.c.client_id == client_id)
        return [records.transaction_from_row(r) for r in self.conn.execute(stmt)]

    def insert_order(self, order: Order, *, quote_id: str | None = None) -> Order:
        order_id, _ = self.next_id(counters.ORDER)
        self.conn.execute(
            insert(orders).values(
                id=order_id,
                client_id=order.client_id,
                client_name=order.client_name,
                items=[i.model_dump(mode="json") for i in order.items],
                total=order.total,
                status=str(order.status),
                quote_id=quote_id,
                created=order.created.isoformat(),
            )
        )
        self.touch("orders")
        return order.model_copy(update={"id": order_id})

    def list_orders(self, client_id: str | None = None) -> list[Order]:
        stmt = select(orders).order_by(orders.c.id)
        if client_id is not None:
            stmt = stmt.where(orders.c.client_id == client_id)
        return [records.order_from_row(r) for r in self.conn.execute(stmt)]

    # ------------------------------------------------------------------
    # Replenishment quotes
    # ------------------------------------------------------------------

    def get_quote(self, quote_id: str) -> ReplenishmentQuote | None:
        row = self._first(replenishment_quotes, quote_id)
        return records.quote_from_row(row) if row is not None else None

    def list_quotes(self, client_id: str | None = None) -> list[ReplenishmentQuote]:
        stmt = select(replenishment_quotes).order_by(replenishment_quotes.c.seq)
        if client_id is not None:
            stmt = stmt.where(replenishment_quotes.c.client_id == client_id)
        return [records.quote_from_row(r) for r in self.conn.execute(stmt)]

    def open_quote_for_client(self, client_id: str) -> ReplenishmentQuote | None:
        """Most recent suggested/sent quote for the client."""
        row = self.conn.execute(
            select(replenishment_quotes)
            .where(
                replenishment_quotes.c.client_id == client_id,
                replenishment_quotes.c.status.in_(sorted(OPEN_REPLENISHMENT_STATUSES)),
            )
            .order_by(replenishment_quotes.c.seq.desc())
        ).first()
        return records.quote_from_row(row) if row is not None else None

    def insert_quote(self, quote: ReplenishmentQuote) -> ReplenishmentQuote:
        quote_id, seq = self.next_id(counters.REPLENISHMENT)
        self.conn.execute(
            insert(replenishment_quotes).values(
                id=quote_id,
                seq=seq,
                client_id=quote.client_id,
                client_name=quote.client_name,
                items=[i.model_dump(mode="json") for i in quote.items],
                total=quote.total,
                status=str(quote.status),
                created=quote.created.isoformat(),
                updated=quote.updated.isoformat(),
            )
        )
        self.touch("replenishment_quotes")
        return quote.model_copy(update={"id": quote_id})

    def set_quote_status(self, quote_id: str, status: str, now: datetime) -> None:
        self._set(replenishment_quotes, quote_id, status=status, updated=now.isoformat())

    # ------------------------------------------------------------------
    # Advance payment requests
    # ------------------------------------------------------------------

    def get_advance_request(self, request_id: str) -> AdvancePaymentRequest | None:
        row = self._first(advance_payment_requests, request_id)
        return records.advance_request_from_row(row) if row is not None else None

    def list_advance_requests(self, client_id: str | None = None) -> list[AdvancePaymentRequest]:
        stmt = select(advance_payment_requests).order_by(advance_payment_requests.c.seq.desc())
        if client_id is not None:
            stmt = stmt.where(advance_payment_requests.c.client_id == client_id)
        return [records.advance_request_from_row(r) for r in self.conn.execute(stmt)]

    def open_advance_request(self, client_id: str) -> AdvancePaymentRequest | None:
        """Most recent pending advance request for the client."""
        row = self.conn.execute(
            select(advance_payment_requests)
            .where(
                advance_payment_requests.c.client_id == client_id,
                advance_payment_requests.c.status.in_(sorted(OPEN_ADVANCE_STATUSES)),
            )
            .order_by(advance_payment_requests.c.seq.desc())
        ).first()
        return records.advance_request_from_row(row) if row is not None else None

    def insert_advance_request(self, request: AdvancePaymentRequest) -> AdvancePaymentRequest:
        request_id, seq = self.next_id(counters.ADVANCE)
        self.conn.execute(
            insert(advance_payment_requests).values(
                id=request_id,
                seq=seq,
                client_id=request.client_id,
                client_name=request.client_name,
                months=request.months,
                discount_percent=request.discount_percent,
                original_amount=request.original_amount,
                final_amount=request.final_amount,
                status=str(request.status),
                created=request.created.isoformat(),
                updated=request.updated.isoformat(),
            )
        )
        self.touch("advance_payment_requests")
        return request.model_copy(update={"id": request_id})

    def set_advance_status(self, request_id: str, status: str, now: datetime) -> None:
        self._set(advance_payment_requests, request_id, status=status, updated=now.isoformat())

    # ------------------------------------------------------------------
    # Plan change requests
    # ------------------------------------------------------------------

    def get_plan_change(self, request_id: str) -> PlanChangeRequest | None:
        row = self._first(plan_change_requests, request_id)
        return records.plan_change_from_row(row) if row is not None else None

    def open_plan_change(self, client_id: str) -> PlanChangeRequest | None:
        """Most recent pending/quoted plan change request for the client."""
        row = self.conn.execute(
            select(plan_change_requests)
            .where(
                plan_change_requests.c.client_id == client_id,
                plan_change_requests.c.status.in_(sorted(OPEN_PLAN_CHANGE_STATUSES)),
            )
            .order_by(plan_change_requests.c.seq.desc())
        ).first()
        return records.plan_change_from_row(row) if row is not None else None

    def insert_plan_change(self, request: PlanChangeRequest) -> PlanChangeRequest:
        request_id, seq = self.next_id(counters.PLAN_CHANGE)
        self.conn.execute(
            insert(plan_change_requests).values(
                id=request_id,
                seq=seq,
                client_id=request.client_id,
                client_name=request.client_name,
                current_plan=str(request.current_plan),
                requested_plan=str(request.requested_plan),
                status=str(request.status),
                created=request.created.isoformat(),
                updated=request.updated.isoformat(),
            )
        )
        self.touch("plan_change_requests")
        return request.model_copy(update={"id": request_id})

    def update_plan_change(self, request_id: str, now: datetime, **values: Any) -> None:
        self._set(plan_change_requests, request_id, updated=now.isoformat(), **values)

    # ------------------------------------------------------------------
    # Pending price changes
    # ------------------------------------------------------------------

    def get_price_change(self, change_id: str) -> PendingPriceChange | None:
        row = self._first(pending_price_changes, change_id)
        return records.price_change_from_row(row) if row is not None else None

    def list_price_changes(self, *, status: str | None = None) -> list[PendingPriceChange]:
        stmt = select(pending_price_changes).order_by(pending_price_changes.c.effective_date)
        if status is not None:
            stmt = stmt.where(pending_price_changes.c.status == status)
        return [records.price_change_from_row(r) for r in self.conn.execute(stmt)]

    def due_price_changes(self, now: datetime) -> list[PendingPriceChange]:
        """Pending changes whose effective date has passed, oldest first."""
        return [
            c
            for c in self.list_price_changes(status=str(PriceChangeStatus.PENDING))
            if c.effective_date <= now
        ]

    def insert_price_change(self, change: PendingPriceChange) -> PendingPriceChange:
        change_id, _ = self.next_id(counters.PRICE_CHANGE)
        self.conn.execute(
            insert(pending_price_changes).values(
                id=change_id,
                effective_date=change.effective_date.isoformat(),
                new_pricing=change.new_pricing.model_dump(mode="json"),
                affected_clients=[a.model_dump(mode="json") for a in change.affected_clients],
                status=str(change.status),
                created=change.created.isoformat(),
            )
        )
        self.touch("pending_price_changes")
        return change.model_copy(update={"id": change_id})

    def mark_price_change_applied(self, change_id: str, now: datetime) -> None:
        self._set(
            pending_price_changes,
            change_id,
            status=str(PriceChangeStatus.APPLIED),
            applied_at=now.isoformat(),
        )

    # ------------------------------------------------------------------
    # Budget quotes
    # ------------------------------------------------------------------

    def get_budget(self, budget_id: str) -> BudgetQuote | None:
        row = self._first(budget_quotes, budget_id)
        return records.budget_from_row(row) if row is not None else None

    def insert_budget(self, budget: BudgetQuote) -> BudgetQuote:
        budget_id, _ = self.next_id(counters.BUDGET)
        data = budget.model_dump(mode="json", exclude={"id", "status", "created"})
        self.conn.execute(
            insert(budget_quotes).values(
                id=budget_id,
                data=data,
                status=str(budget.status),
                created=budget.created.isoformat(),
            )
        )
        self.touch("budget_quotes")
        return budget.model_copy(update={"id": budget_id})

    def set_budget_status(self, budget_id: str, status: str, *, client_id: str | None = None) -> None:
        self._set(budget_quotes, budget_id, status=status, client_id=client_id)


# ---------------------------------------------------------------------------
# Store: the repository
# ---------------------------------------------------------------------------

_LOADERS: dict[str, str] = {
    "clients": "list_clients",
    "products": "list_products",
    "banks": "list_banks",
    "transactions": "list_transactions",
    "orders": "list_orders",
    "replenishment_quotes": "list_quotes",
    "advance_payment_requests": "list_advance_requests",
    "pending_price_changes": "list_price_changes",
}


class Store:
    """Repository encapsulating the document collections.

    Constructed once per process from :class:`PoolSettings`. Services
    receive the Store via their :class:`BaseService` constructor.
    """

    def __init__(self, settings: PoolSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(settings.db_path)
        self._feed = ChangeFeed(self.load_collection)

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> PoolSettings:
        """The resolved application settings."""
        return self._settings

    @property
    def feed(self) -> ChangeFeed:
        return self._feed

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Atomic batch across any number of collections.

        Commits when the block exits normally, rolls back on exception.
        Change-feed subscribers are notified only after a commit.

        Usage::

            with store.transaction() as txn:
                txn.append_transaction(entry)
                txn.save_client(settled, now)
                # Both commit together or neither does.
        """
        touched: set[str] = set()
        with self._engine.begin() as conn:
            yield StoreTransaction(conn=conn, _store=self, _touched=touched)
        if touched:
            self._feed.publish(touched)

    @contextmanager
    def read(self) -> Iterator[StoreTransaction]:
        """Read-only access through the same typed helpers."""
        with self._engine.connect() as conn:
            yield StoreTransaction(conn=conn, _store=self)

    def load_collection(self, collection: str) -> Snapshot:
        """Materialize every record of *collection*."""
        with self.read() as txn:
            if collection == "settings":
                return Snapshot(collection, [txn.get_settings()])
            loader = _LOADERS.get(collection)
            if loader is None:
                msg = f"Unknown collection: {collection!r}"
                raise KeyError(msg)
            return Snapshot(collection, list(getattr(txn, loader)()))

    def load_snapshot(self) -> StoreSnapshot:
        """Everything the automation passes need, read in one go."""
        with self.read() as txn:
            return StoreSnapshot(
                settings=txn.get_settings(),
                clients=txn.list_clients(),
                products=txn.list_products(),
                replenishment_quotes=txn.list_quotes(),
                pending_price_changes=txn.list_price_changes(),
            )

    def subscribe(self, collection: str, handler: SnapshotHandler) -> Subscription:
        """Subscribe to a collection's change feed (initial snapshot delivered at once)."""
        return self._feed.subscribe(collection, handler)
