"""SettlementService — the single operation that moves a client's billing cycle.

"Mark as paid" and an approved advance payment both end here: one batch
appends the ledger row, advances the due date, consumes (or resets) the
advance window and applies a scheduled plan change. Nothing is written
unless all of it is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.billing import settle
from poolctl.domain.models import Bank, Client, Transaction
from poolctl.services._helpers import money
from poolctl.services.base import BaseService
from poolctl.services.fees import client_fee
from poolctl.services.result import NOT_FOUND, VALIDATION_FAILED, ServiceResult
from poolctl.services.telemetry import traced

if TYPE_CHECKING:
    from poolctl.infrastructure.store import StoreTransaction

logger = logging.getLogger(__name__)


class BankMissingError(LookupError):
    """The client has no bank, or its bank no longer exists."""

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class Settlement:
    """Outcome of :func:`settle_in`."""

    client: Client
    transaction: Transaction
    previous: Client

    @property
    def plan_changed(self) -> bool:
        return self.previous.scheduled_plan_change is not None


def resolve_bank(txn: StoreTransaction, client: Client) -> Bank:
    """The bank payments for *client* are booked against."""
    if not client.bank_id:
        msg = "Associate a bank with this client before recording a payment"
        raise BankMissingError(msg, code=VALIDATION_FAILED)
    bank = txn.get_bank(client.bank_id)
    if bank is None:
        msg = f"Associated bank not found: {client.bank_id}"
        raise BankMissingError(msg, code=NOT_FOUND)
    return bank


def settle_in(
    txn: StoreTransaction,
    client: Client,
    bank: Bank,
    *,
    months: int,
    amount: float,
    now: datetime,
    protect_until_due: bool = False,
    today: date | None = None,
) -> Settlement:
    """Write a settlement into *txn*; commits with the caller's batch.

    Pass *today* to count an overdue client's periods from today rather
    than from the missed due date.
    """
    settled = settle(client, months, protect_until_due=protect_until_due, today=today)
    entry = txn.append_transaction(
        Transaction(
            client_id=client.id,
            client_name=client.name,
            bank_id=bank.id,
            bank_name=bank.name,
            amount=money(amount),
            date=now,
        )
    )
    txn.save_client(settled, now)
    return Settlement(client=settled, transaction=entry, previous=client)


def settlement_data(result: Settlement) -> dict[str, object]:
    return {
        "client_id": result.client.id,
        "transaction_id": result.transaction.id,
        "amount": result.transaction.amount,
        "previous_due_date": result.previous.payment.due_date.isoformat(),
        "due_date": result.client.payment.due_date.isoformat(),
        "payment_status": str(result.client.payment.status),
        "plan": str(result.client.plan),
        "plan_changed": result.plan_changed,
    }


class SettlementService(BaseService):
    """Records payments against the ledger."""

    @traced
    def mark_as_paid(
        self,
        client_id: str,
        *,
        months: int = 1,
        amount: float | None = None,
    ) -> ServiceResult:
        """Settle *months* periods for a client.

        *amount* defaults to the client's current fee times *months*.
        """
        op = "mark_as_paid"
        if months < 1:
            return self._fail(op, VALIDATION_FAILED, "Months must be at least 1", months=months)
        if amount is not None and amount <= 0:
            return self._fail(op, VALIDATION_FAILED, "Amount must be positive", amount=amount)

        now = self._now()
        try:
            with self._store.transaction() as txn:
                client = txn.get_client(client_id)
                if client is None:
                    return self._not_found(op, "client", client_id)
                try:
                    bank = resolve_bank(txn, client)
                except BankMissingError as exc:
                    return self._fail(op, exc.code, str(exc), client_id=client_id)

                total = amount if amount is not None else client_fee(client, txn.get_settings()) * months
                result = settle_in(
                    txn, client, bank, months=months, amount=total, now=now, today=now.date()
                )
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info(
            "Settled %s: %d period(s), due %s",
            client_id,
            months,
            result.client.payment.due_date.isoformat(),
        )
        return ServiceResult(ok=True, op=op, data=settlement_data(result))

    @traced
    def history(self, client_id: str) -> ServiceResult:
        """Ledger rows for a client, oldest first."""
        op = "payment_history"
        with self._store.read() as txn:
            if txn.get_client(client_id) is None:
                return self._not_found(op, "client", client_id)
            rows = txn.list_transactions(client_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "client_id": client_id,
                "count": len(rows),
                "items": [r.model_dump(mode="json") for r in rows],
            },
        )
