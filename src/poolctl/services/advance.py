"""AdvancePaymentService — prepaying several periods at a discount.

Eligibility is computed on every call, never stored:

- globally, the plan must be enabled and adoption (active clients inside
  an advance window) below the configured cap;
- per client, there must be no pending request and no unpaid invoice
  due within the block window.

Approval settles through :func:`settle_in` with the protection window
reset to the new due date, in the same batch that approves the request.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.billing import (
    advance_adoption,
    advance_amounts,
    advance_globally_available,
    blocked_by_due_date,
)
from poolctl.domain.lifecycle import ADVANCE_TRANSITIONS, AdvanceRequestStatus
from poolctl.domain.models import AdvancePaymentRequest, Client
from poolctl.domain.settings import Settings
from poolctl.services.base import BaseService
from poolctl.services.fees import client_fee
from poolctl.services.result import NOT_ELIGIBLE, VALIDATION_FAILED, ServiceResult
from poolctl.services.settlement import BankMissingError, resolve_bank, settle_in, settlement_data
from poolctl.services.telemetry import traced

logger = logging.getLogger(__name__)


class AdvancePaymentService(BaseService):
    """Request, approve and reject advance payments."""

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _global_gate(self, settings: Settings, clients: list[Client], today: date) -> dict[str, Any]:
        cap = self._store.settings.advance.adoption_cap_percent
        stats = advance_adoption(clients, today)
        enabled = settings.features.advance_payment_plan_enabled
        return {
            "enabled": enabled,
            "count": stats.count,
            "percentage": round(stats.percentage, 2),
            "cap_percent": cap,
            "available": advance_globally_available(enabled, stats, cap_percent=cap),
        }

    def _client_block(
        self,
        client: Client,
        pending: AdvancePaymentRequest | None,
        today: date,
    ) -> str | None:
        """Why *client* may not request an advance right now, if anything."""
        if not client.is_active:
            return "Client is not active"
        if pending is not None:
            return f"Request {pending.id} is already pending"
        block_days = self._store.settings.advance.due_date_block_days
        if blocked_by_due_date(client, today, block_days=block_days):
            return f"Settle the invoice due {client.payment.due_date.isoformat()} first"
        return None

    @traced
    def availability(self) -> ServiceResult:
        """Adoption report: ``{enabled, count, percentage, cap_percent, available}``."""
        with self._store.read() as txn:
            gate = self._global_gate(txn.get_settings(), txn.list_clients(), self._today())
        return ServiceResult(ok=True, op="advance_availability", data=gate)

    @traced
    def eligibility(self, client_id: str) -> ServiceResult:
        """Whether a client may request now, with the amounts for every option."""
        op = "advance_eligibility"
        today = self._today()
        with self._store.read() as txn:
            client = txn.get_client(client_id)
            if client is None:
                return self._not_found(op, "client", client_id)
            settings = txn.get_settings()
            gate = self._global_gate(settings, txn.list_clients(), today)
            pending = txn.open_advance_request(client_id)

        reason = self._client_block(client, pending, today)
        if not gate["available"]:
            reason = "Advance payments are not available right now"
        fee = client_fee(client, settings)
        options = []
        for option in settings.advance_payment_options:
            original, final = advance_amounts(fee, option.months, option.discount_percent)
            options.append(
                {
                    "months": option.months,
                    "discount_percent": option.discount_percent,
                    "original_amount": original,
                    "final_amount": final,
                }
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "client_id": client_id,
                "eligible": reason is None,
                "reason": reason,
                "monthly_fee": fee,
                "options": options,
                "pending_request": pending.id if pending else None,
            },
        )

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------

    @traced
    def request(self, client_id: str, months: int) -> ServiceResult:
        """Create a pending request for the option covering *months*."""
        op = "request_advance"
        now = self._now()
        today = now.date()
        try:
            with self._store.transaction() as txn:
                client = txn.get_client(client_id)
                if client is None:
                    return self._not_found(op, "client", client_id)
                settings = txn.get_settings()
                option = settings.advance_option(months)
                if option is None:
                    offered = [o.months for o in settings.advance_payment_options]
                    return self._fail(
                        op,
                        VALIDATION_FAILED,
                        f"No advance option for {months} months. Offered: {offered}",
                    )
                gate = self._global_gate(settings, txn.list_clients(), today)
                if not gate["available"]:
                    return self._fail(
                        op,
                        NOT_ELIGIBLE,
                        "Advance payments are not available right now",
                        percentage=gate["percentage"],
                    )
                reason = self._client_block(client, txn.open_advance_request(client_id), today)
                if reason is not None:
                    return self._fail(op, NOT_ELIGIBLE, reason, client_id=client_id)

                original, final = advance_amounts(
                    client_fee(client, settings), option.months, option.discount_percent
                )
                created = txn.insert_advance_request(
                    AdvancePaymentRequest(
                        client_id=client.id,
                        client_name=client.name,
                        months=option.months,
                        discount_percent=option.discount_percent,
                        original_amount=original,
                        final_amount=final,
                        created=now,
                        updated=now,
                    )
                )
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info("Advance request %s created for %s", created.id, client_id)
        return ServiceResult(ok=True, op=op, data=created.model_dump(mode="json"))

    @traced
    def approve(self, request_id: str) -> ServiceResult:
        """Approve a pending request and settle its months in the same batch."""
        op = "approve_advance"
        now = self._now()
        target = str(AdvanceRequestStatus.APPROVED)
        try:
            with self._store.transaction() as txn:
                request = txn.get_advance_request(request_id)
                if request is None:
                    return self._not_found(op, "advance request", request_id)
                denied = self._check_transition(op, str(request.status), target, ADVANCE_TRANSITIONS)
                if denied is not None:
                    return denied
                client = txn.get_client(request.client_id)
                if client is None:
                    return self._not_found(op, "client", request.client_id)
                try:
                    bank = resolve_bank(txn, client)
                except BankMissingError as exc:
                    return self._fail(op, exc.code, str(exc), client_id=client.id)

                result = settle_in(
                    txn,
                    client,
                    bank,
                    months=request.months,
                    amount=request.final_amount,
                    now=now,
                    protect_until_due=True,
                )
                txn.set_advance_status(request_id, target, now)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info("Advance request %s approved", request_id)
        data = settlement_data(result)
        data["request_id"] = request_id
        data["advance_payment_until"] = result.client.payment.due_date.isoformat()
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def reject(self, request_id: str) -> ServiceResult:
        op = "reject_advance"
        target = str(AdvanceRequestStatus.REJECTED)
        try:
            with self._store.transaction() as txn:
                request = txn.get_advance_request(request_id)
                if request is None:
                    return self._not_found(op, "advance request", request_id)
                denied = self._check_transition(op, str(request.status), target, ADVANCE_TRANSITIONS)
                if denied is not None:
                    return denied
                txn.set_advance_status(request_id, target, self._now())
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": request_id, "status": target})

    @traced
    def latest_open(self, client_id: str) -> ServiceResult:
        """Most recent pending request for the client (``request`` is None when absent)."""
        op = "latest_advance"
        with self._store.read() as txn:
            if txn.get_client(client_id) is None:
                return self._not_found(op, "client", client_id)
            request = txn.open_advance_request(client_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"request": request.model_dump(mode="json") if request else None},
        )

    @traced
    def list_requests(self, *, status: str | None = None) -> ServiceResult:
        with self._store.read() as txn:
            requests = txn.list_advance_requests()
        if status is not None:
            requests = [r for r in requests if r.status == status]
        return ServiceResult(
            ok=True,
            op="list_advance_requests",
            data={"count": len(requests), "items": [r.model_dump(mode="json") for r in requests]},
        )
