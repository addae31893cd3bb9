"""ReplenishmentService — low-stock scans and the quote negotiation.

The scan plans drafts from a materialized snapshot, then writes each one
in its own batch after re-reading whether the client gained an open quote
in the meantime. One client's failure is logged and the scan moves on.

Quote lifecycle: suggested -> sent -> approved | rejected. Approval
creates the store order in the same batch.
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.lifecycle import REPLENISHMENT_TRANSITIONS, ReplenishmentStatus
from poolctl.domain.models import Order, ReplenishmentQuote
from poolctl.domain.replenishment import QuoteDraft, plan_replenishment
from poolctl.domain.snapshot import StoreSnapshot
from poolctl.services.base import BaseService
from poolctl.services.result import ServiceResult
from poolctl.services.telemetry import get_current_span, trace_span, traced

log = structlog.get_logger(__name__)


class ReplenishmentService(BaseService):
    """Generates and resolves replenishment quotes."""

    def plan(self, snapshot: StoreSnapshot) -> list[QuoteDraft]:
        """Drafts the scan would write for *snapshot* (no writes)."""
        cfg = self._store.settings.automation
        return plan_replenishment(
            snapshot.clients,
            snapshot.products,
            snapshot.open_quote_client_ids(),
            snapshot.settings.automation.replenishment_stock_threshold,
            ratio=cfg.low_stock_ratio,
            fallback=cfg.fallback_restock_quantity,
        )

    @traced
    def scan(self, snapshot: StoreSnapshot | None = None) -> ServiceResult:
        """Emit one suggested quote per low-stock client without an open quote."""
        op = "replenishment_scan"
        if snapshot is None:
            snapshot = self._store.load_snapshot()
        drafts = self.plan(snapshot)
        created: list[dict[str, object]] = []
        skipped: list[str] = []
        warnings: list[str] = []

        with trace_span("write_quotes"):
            for draft in drafts:
                try:
                    quote = self._write_draft(draft)
                except SQLAlchemyError as exc:
                    log.warning("replenishment.failed", client_id=draft.client_id, exc_info=True)
                    warnings.append(f"Quote for {draft.client_id} failed: {exc}")
                    continue
                if quote is None:
                    skipped.append(draft.client_id)
                    continue
                log.info(
                    "replenishment.suggested",
                    quote_id=quote.id,
                    client_id=quote.client_id,
                    items=len(quote.items),
                    total=quote.total,
                )
                created.append(quote.model_dump(mode="json"))

        span = get_current_span()
        if span is not None:
            span.count("quotes", len(created))
        return ServiceResult(
            ok=True,
            op=op,
            data={"created": created, "count": len(created), "skipped": skipped},
            warnings=warnings,
        )

    def _write_draft(self, draft: QuoteDraft) -> ReplenishmentQuote | None:
        now = self._now()
        with self._store.transaction() as txn:
            if txn.open_quote_for_client(draft.client_id) is not None:
                return None
            return txn.insert_quote(
                ReplenishmentQuote(
                    client_id=draft.client_id,
                    client_name=draft.client_name,
                    items=draft.items,
                    total=draft.total,
                    created=now,
                    updated=now,
                )
            )

    def _move(self, op: str, quote_id: str, target: ReplenishmentStatus) -> ServiceResult:
        try:
            with self._store.transaction() as txn:
                quote = txn.get_quote(quote_id)
                if quote is None:
                    return self._not_found(op, "replenishment quote", quote_id)
                denied = self._check_transition(
                    op, str(quote.status), str(target), REPLENISHMENT_TRANSITIONS
                )
                if denied is not None:
                    return denied
                now = self._now()
                txn.set_quote_status(quote_id, str(target), now)
                order = None
                if target == ReplenishmentStatus.APPROVED:
                    order = txn.insert_order(
                        Order(
                            client_id=quote.client_id,
                            client_name=quote.client_name,
                            items=quote.items,
                            total=quote.total,
                            created=now,
                        ),
                        quote_id=quote_id,
                    )
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        data: dict[str, object] = {"id": quote_id, "status": str(target)}
        if order is not None:
            data["order_id"] = order.id
            data["total"] = order.total
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def propose(self, quote_id: str) -> ServiceResult:
        """Admin sends a suggested quote to the client."""
        return self._move("propose_quote", quote_id, ReplenishmentStatus.SENT)

    @traced
    def approve(self, quote_id: str) -> ServiceResult:
        """Client approves a sent quote; an order mirroring it is created."""
        return self._move("approve_quote", quote_id, ReplenishmentStatus.APPROVED)

    @traced
    def reject(self, quote_id: str) -> ServiceResult:
        return self._move("reject_quote", quote_id, ReplenishmentStatus.REJECTED)

    @traced
    def list_quotes(self, *, client_id: str | None = None) -> ServiceResult:
        with self._store.read() as txn:
            quotes = txn.list_quotes(client_id)
        return ServiceResult(
            ok=True,
            op="list_quotes",
            data={"count": len(quotes), "items": [q.model_dump(mode="json") for q in quotes]},
        )
