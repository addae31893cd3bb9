"""PriceChangeService — scheduling and applying pricing changes.

A pricing save never touches the live pricing. It grandfathers every
active VIP client still on live pricing, records the Simple clients whose
fee changes, and stores a pending change that takes effect after the
notice period. Applying a due change repeats the grandfathering for
clients who became VIP during the notice window, then writes the new
pricing and flips the change to ``applied``, all in one batch.

INVARIANT: An applied change is never applied again.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.lifecycle import PRICE_CHANGE_TRANSITIONS, PriceChangeStatus
from poolctl.domain.models import Client, PendingPriceChange
from poolctl.domain.price_change import affected_clients, clients_to_grandfather
from poolctl.domain.pricing import PricingSettings
from poolctl.domain.settings import Settings
from poolctl.services.base import BaseService
from poolctl.services.result import INVALID_TRANSITION, NOT_ELIGIBLE, ServiceResult
from poolctl.services.telemetry import traced

if TYPE_CHECKING:
    from poolctl.infrastructure.store import StoreTransaction

log = structlog.get_logger(__name__)


class PriceChangeNotPendingError(ValueError):
    """The change can no longer move to applied."""


def grandfather(
    txn: StoreTransaction,
    clients: list[Client],
    pricing: PricingSettings,
    now: datetime,
) -> list[str]:
    """Snapshot *pricing* onto every active VIP client still on live pricing."""
    ids: list[str] = []
    for client in clients_to_grandfather(clients):
        txn.save_client(client.model_copy(update={"custom_pricing": pricing}), now)
        ids.append(client.id)
    return ids


def schedule_price_change(
    txn: StoreTransaction,
    current: Settings,
    new_pricing: PricingSettings,
    *,
    now: datetime,
    notice_days: int,
) -> tuple[PendingPriceChange, list[str]]:
    """Grandfather VIPs and record the pending change inside *txn*."""
    clients = txn.list_clients()
    grandfathered = grandfather(txn, clients, current.pricing, now)
    change = txn.insert_price_change(
        PendingPriceChange(
            effective_date=now + timedelta(days=notice_days),
            new_pricing=new_pricing,
            affected_clients=affected_clients(
                clients,
                current.pricing,
                new_pricing,
                vip_enabled=current.features.vip_plan_enabled,
            ),
            created=now,
        )
    )
    return change, grandfathered


class PriceChangeService(BaseService):
    """Previews, notices and application of pending price changes."""

    @traced
    def preview(self, new_pricing: PricingSettings) -> ServiceResult:
        """Clients whose fee would change, without saving anything."""
        with self._store.read() as txn:
            settings = txn.get_settings()
            clients = txn.list_clients()
        affected = affected_clients(
            clients,
            settings.pricing,
            new_pricing,
            vip_enabled=settings.features.vip_plan_enabled,
        )
        return ServiceResult(
            ok=True,
            op="preview_price_change",
            data={
                "affected_clients": [a.model_dump(mode="json") for a in affected],
                "count": len(affected),
                "grandfathered": [c.id for c in clients_to_grandfather(clients)],
            },
        )

    @traced
    def pending(self) -> ServiceResult:
        with self._store.read() as txn:
            changes = txn.list_price_changes(status=str(PriceChangeStatus.PENDING))
        return ServiceResult(
            ok=True,
            op="pending_price_changes",
            data={"count": len(changes), "items": [c.model_dump(mode="json") for c in changes]},
        )

    @traced
    def notice_for_client(self, client_id: str) -> ServiceResult:
        """The pending change listing this client among the affected, if any."""
        op = "price_change_notice"
        with self._store.read() as txn:
            if txn.get_client(client_id) is None:
                return self._not_found(op, "client", client_id)
            changes = txn.list_price_changes(status=str(PriceChangeStatus.PENDING))
        for change in changes:
            for entry in change.affected_clients:
                if entry.id == client_id:
                    return ServiceResult(
                        ok=True,
                        op=op,
                        data={
                            "notice": {
                                "change_id": change.id,
                                "effective_date": change.effective_date.isoformat(),
                                "old_fee": entry.old_fee,
                                "new_fee": entry.new_fee,
                            }
                        },
                    )
        return ServiceResult(ok=True, op=op, data={"notice": None})

    @traced
    def apply(self, change_id: str) -> ServiceResult:
        """Apply one change once its effective date has passed.

        Re-applying an already applied change is a no-op reported with
        ``applied=False``.
        """
        op = "apply_price_change"
        now = self._now()
        try:
            with self._store.transaction() as txn:
                change = txn.get_price_change(change_id)
                if change is None:
                    return self._not_found(op, "price change", change_id)
                if change.status == PriceChangeStatus.APPLIED:
                    return ServiceResult(
                        ok=True,
                        op=op,
                        data={"id": change_id, "applied": False, "status": str(change.status)},
                    )
                if change.effective_date > now:
                    return self._fail(
                        op,
                        NOT_ELIGIBLE,
                        f"Change takes effect on {change.effective_date.isoformat()}",
                        id=change_id,
                    )
                grandfathered = self._apply_in(txn, change, now)
        except PriceChangeNotPendingError as exc:
            return self._fail(op, INVALID_TRANSITION, str(exc), id=change_id)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        log.info("price_change.applied", change_id=change_id, grandfathered=len(grandfathered))
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": change_id, "applied": True, "grandfathered": grandfathered},
        )

    @traced
    def apply_due(self) -> ServiceResult:
        """Apply every pending change whose effective date has passed.

        Each change commits in its own batch; a failing one is logged,
        reported as a warning, and retried on the next check.
        """
        op = "apply_due_price_changes"
        now = self._now()
        with self._store.read() as txn:
            due = txn.due_price_changes(now)

        applied: list[str] = []
        warnings: list[str] = []
        for candidate in due:
            try:
                with self._store.transaction() as txn:
                    change = txn.get_price_change(candidate.id)
                    if change is None or change.status != PriceChangeStatus.PENDING:
                        continue
                    grandfathered = self._apply_in(txn, change, now)
            except (SQLAlchemyError, PriceChangeNotPendingError) as exc:
                log.warning("price_change.failed", change_id=candidate.id, exc_info=True)
                warnings.append(f"Price change {candidate.id} failed: {exc}")
                continue
            log.info(
                "price_change.applied", change_id=candidate.id, grandfathered=len(grandfathered)
            )
            applied.append(candidate.id)

        return ServiceResult(
            ok=True,
            op=op,
            data={"applied": applied, "count": len(applied)},
            warnings=warnings,
        )

    def _apply_in(
        self,
        txn: StoreTransaction,
        change: PendingPriceChange,
        now: datetime,
    ) -> list[str]:
        target = str(PriceChangeStatus.APPLIED)
        if self._check_transition("apply", str(change.status), target, PRICE_CHANGE_TRANSITIONS):
            msg = f"Price change {change.id} is {change.status}"
            raise PriceChangeNotPendingError(msg)
        settings = txn.get_settings()
        grandfathered = grandfather(txn, txn.list_clients(), settings.pricing, now)
        txn.save_settings(settings.model_copy(update={"pricing": change.new_pricing}), now)
        txn.mark_price_change_applied(change.id, now)
        return grandfathered
