"""PlanChangeService — Simple to VIP upgrades negotiated with an admin.

Lifecycle: pending -> quoted -> accepted | rejected, or pending -> rejected.
Acceptance only *schedules* the switch on the client; settlement applies
it on the next successful payment.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.lifecycle import PLAN_CHANGE_TRANSITIONS, PlanChangeStatus
from poolctl.domain.models import Client, PlanChangeRequest, ScheduledPlanChange
from poolctl.domain.pricing import compute_fee, effective_pricing
from poolctl.domain.settings import Settings
from poolctl.domain.types import PlanType
from poolctl.services.base import BaseService
from poolctl.services.result import NOT_ELIGIBLE, VALIDATION_FAILED, ServiceResult
from poolctl.services.telemetry import traced

logger = logging.getLogger(__name__)


def suggested_vip_price(client: Client, settings: Settings) -> float:
    """Fee with the plan forced to VIP and no fidelity discount."""
    as_vip = client.model_copy(update={"plan": PlanType.VIP, "fidelity_plan": None})
    return compute_fee(as_vip, effective_pricing(client, settings.pricing))


class PlanChangeService(BaseService):
    """Drives plan change requests through their lifecycle."""

    @traced
    def request(self, client_id: str) -> ServiceResult:
        """Client asks to move from Simple to VIP."""
        op = "request_plan_change"
        now = self._now()
        try:
            with self._store.transaction() as txn:
                client = txn.get_client(client_id)
                if client is None:
                    return self._not_found(op, "client", client_id)
                features = txn.get_settings().features
                if not (features.plan_upgrade_enabled and features.vip_plan_enabled):
                    return self._fail(op, NOT_ELIGIBLE, "Plan upgrades are disabled")
                if not client.is_active:
                    return self._fail(op, NOT_ELIGIBLE, "Client is not active", client_id=client_id)
                if client.plan != PlanType.SIMPLE:
                    return self._fail(op, NOT_ELIGIBLE, "Client is already on the VIP plan")
                if client.scheduled_plan_change is not None:
                    return self._fail(
                        op, NOT_ELIGIBLE, "A plan change is already scheduled for the next payment"
                    )
                existing = txn.open_plan_change(client_id)
                if existing is not None:
                    return self._fail(
                        op,
                        NOT_ELIGIBLE,
                        f"Request {existing.id} is still {existing.status}",
                        request_id=existing.id,
                    )
                created = txn.insert_plan_change(
                    PlanChangeRequest(
                        client_id=client.id,
                        client_name=client.name,
                        current_plan=client.plan,
                        requested_plan=PlanType.VIP,
                        created=now,
                        updated=now,
                    )
                )
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info("Plan change %s requested by %s", created.id, client_id)
        return ServiceResult(ok=True, op=op, data=created.model_dump(mode="json"))

    @traced
    def suggest_price(self, request_id: str) -> ServiceResult:
        op = "suggest_plan_price"
        with self._store.read() as txn:
            request = txn.get_plan_change(request_id)
            if request is None:
                return self._not_found(op, "plan change request", request_id)
            client = txn.get_client(request.client_id)
            if client is None:
                return self._not_found(op, "client", request.client_id)
            price = suggested_vip_price(client, txn.get_settings())
        return ServiceResult(ok=True, op=op, data={"id": request_id, "suggested_price": price})

    @traced
    def quote(
        self,
        request_id: str,
        *,
        proposed_price: float | None = None,
        notes: str | None = None,
    ) -> ServiceResult:
        """Admin prices a pending request; the suggested VIP fee when no price is given."""
        op = "quote_plan_change"
        if proposed_price is not None and proposed_price <= 0:
            return self._fail(op, VALIDATION_FAILED, "Proposed price must be positive")
        target = str(PlanChangeStatus.QUOTED)
        try:
            with self._store.transaction() as txn:
                request = txn.get_plan_change(request_id)
                if request is None:
                    return self._not_found(op, "plan change request", request_id)
                denied = self._check_transition(
                    op, str(request.status), target, PLAN_CHANGE_TRANSITIONS
                )
                if denied is not None:
                    return denied
                price = proposed_price
                if price is None:
                    client = txn.get_client(request.client_id)
                    if client is None:
                        return self._not_found(op, "client", request.client_id)
                    price = suggested_vip_price(client, txn.get_settings())
                    if price <= 0:
                        return self._fail(
                            op, VALIDATION_FAILED, "Cannot suggest a price for a pool without volume"
                        )
                txn.update_plan_change(
                    request_id,
                    self._now(),
                    status=target,
                    proposed_price=price,
                    admin_notes=notes,
                )
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": request_id, "status": target, "proposed_price": price, "notes": notes},
        )

    @traced
    def accept(self, request_id: str, *, fidelity_plan_id: str | None = None) -> ServiceResult:
        """Client accepts the quote; the switch waits for the next settlement."""
        op = "accept_plan_change"
        now = self._now()
        target = str(PlanChangeStatus.ACCEPTED)
        try:
            with self._store.transaction() as txn:
                request = txn.get_plan_change(request_id)
                if request is None:
                    return self._not_found(op, "plan change request", request_id)
                denied = self._check_transition(
                    op, str(request.status), target, PLAN_CHANGE_TRANSITIONS
                )
                if denied is not None:
                    return denied
                if request.proposed_price is None:
                    return self._fail(op, VALIDATION_FAILED, "Request has no proposed price")
                fidelity = None
                if fidelity_plan_id is not None:
                    fidelity = txn.get_settings().fidelity_plan(fidelity_plan_id)
                    if fidelity is None:
                        return self._fail(
                            op, VALIDATION_FAILED, f"Unknown fidelity plan: {fidelity_plan_id}"
                        )
                client = txn.get_client(request.client_id)
                if client is None:
                    return self._not_found(op, "client", request.client_id)

                scheduled = ScheduledPlanChange(
                    new_plan=request.requested_plan,
                    new_price=request.proposed_price,
                    fidelity_plan=fidelity,
                    effective_date=now,
                )
                txn.save_client(client.model_copy(update={"scheduled_plan_change": scheduled}), now)
                txn.update_plan_change(request_id, now, status=target)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info("Plan change %s accepted; applies on next payment", request_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": request_id,
                "status": target,
                "client_id": request.client_id,
                "scheduled_plan_change": scheduled.model_dump(mode="json"),
            },
        )

    @traced
    def reject(self, request_id: str, *, notes: str | None = None) -> ServiceResult:
        """Decline from pending (admin) or quoted (client)."""
        op = "reject_plan_change"
        target = str(PlanChangeStatus.REJECTED)
        try:
            with self._store.transaction() as txn:
                request = txn.get_plan_change(request_id)
                if request is None:
                    return self._not_found(op, "plan change request", request_id)
                denied = self._check_transition(
                    op, str(request.status), target, PLAN_CHANGE_TRANSITIONS
                )
                if denied is not None:
                    return denied
                values: dict[str, object] = {"status": target}
                if notes is not None:
                    values["admin_notes"] = notes
                txn.update_plan_change(request_id, self._now(), **values)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": request_id, "status": target})

    @traced
    def cancel_scheduled(self, client_id: str) -> ServiceResult:
        """Withdraw an accepted upgrade before the payment that would apply it.

        The accepted request keeps its status; only the client's pending
        switch is dropped, which lets the client ask again later.
        """
        op = "cancel_scheduled_plan_change"
        now = self._now()
        try:
            with self._store.transaction() as txn:
                client = txn.get_client(client_id)
                if client is None:
                    return self._not_found(op, "client", client_id)
                scheduled = client.scheduled_plan_change
                if scheduled is None:
                    return self._fail(
                        op, NOT_ELIGIBLE, "No plan change is scheduled", client_id=client_id
                    )
                txn.save_client(client.model_copy(update={"scheduled_plan_change": None}), now)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info("Scheduled plan change for %s cancelled", client_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "client_id": client_id,
                "plan": str(client.plan),
                "cancelled": scheduled.model_dump(mode="json"),
            },
        )

    @traced
    def latest_open(self, client_id: str) -> ServiceResult:
        """Most recent pending or quoted request for the client."""
        op = "latest_plan_change"
        with self._store.read() as txn:
            if txn.get_client(client_id) is None:
                return self._not_found(op, "client", client_id)
            request = txn.open_plan_change(client_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"request": request.model_dump(mode="json") if request else None},
        )
