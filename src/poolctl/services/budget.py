"""BudgetService — pre-budgets from prospective clients.

Lifecycle: pending -> approved | rejected. Approval creates the active
client and marks the budget approved in one batch.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.billing import add_months
from poolctl.domain.lifecycle import BUDGET_TRANSITIONS, BudgetStatus
from poolctl.domain.models import BudgetQuote, Client, Payment, PoolDimensions
from poolctl.domain.pricing import calculate_volume, compute_fee, normalize_dimension
from poolctl.domain.types import ClientStatus, PaymentStatus, PlanType
from poolctl.services.base import BaseService
from poolctl.services.result import NOT_ELIGIBLE, VALIDATION_FAILED, ServiceResult
from poolctl.services.telemetry import traced

logger = logging.getLogger(__name__)


class BudgetService(BaseService):
    """Submit, approve and reject pre-budgets."""

    @traced
    def submit(
        self,
        name: str,
        *,
        width: str | float,
        length: str | float,
        depth: str | float,
        email: str = "",
        phone: str = "",
        has_well_water: bool = False,
        is_party_pool: bool = False,
        distance_from_hq: float = 0.0,
        plan: str = PlanType.SIMPLE,
        fidelity_plan_id: str | None = None,
    ) -> ServiceResult:
        """Store a pending budget with its computed volume and monthly fee."""
        op = "submit_budget"
        volume = calculate_volume(width, length, depth)
        if volume <= 0:
            return self._fail(op, VALIDATION_FAILED, "Pool dimensions must all be positive")
        now = self._now()
        try:
            with self._store.transaction() as txn:
                settings = txn.get_settings()
                fidelity = None
                if fidelity_plan_id is not None:
                    fidelity = settings.fidelity_plan(fidelity_plan_id)
                    if fidelity is None:
                        return self._fail(
                            op, VALIDATION_FAILED, f"Unknown fidelity plan: {fidelity_plan_id}"
                        )
                try:
                    plan_type = PlanType(plan)
                    prospect = Client(
                        name=name,
                        email=email,
                        pool_volume=volume,
                        has_well_water=has_well_water,
                        is_party_pool=is_party_pool,
                        distance_from_hq=distance_from_hq,
                        plan=plan_type,
                        fidelity_plan=fidelity,
                        payment=Payment(due_date=now.date()),
                    )
                except (ValueError, ValidationError) as exc:
                    return self._fail(op, VALIDATION_FAILED, str(exc))
                if plan_type == PlanType.VIP and not settings.features.vip_plan_enabled:
                    return self._fail(op, NOT_ELIGIBLE, "The VIP plan is not offered right now")

                budget = txn.insert_budget(
                    BudgetQuote(
                        name=name,
                        email=email,
                        phone=phone,
                        dimensions=PoolDimensions(
                            width=normalize_dimension(width),
                            length=normalize_dimension(length),
                            depth=normalize_dimension(depth),
                        ),
                        pool_volume=volume,
                        has_well_water=has_well_water,
                        is_party_pool=is_party_pool,
                        distance_from_hq=distance_from_hq,
                        plan=plan_type,
                        fidelity_plan=fidelity,
                        monthly_fee=compute_fee(
                            prospect,
                            settings.pricing,
                            vip_enabled=settings.features.vip_plan_enabled,
                        ),
                        created=now,
                    )
                )
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data=budget.model_dump(mode="json"))

    @traced
    def approve(self, budget_id: str, *, distance_from_hq: float | None = None) -> ServiceResult:
        """Turn a pending budget into an active client with a pending first invoice."""
        op = "approve_budget"
        now = self._now()
        target = str(BudgetStatus.APPROVED)
        try:
            with self._store.transaction() as txn:
                budget = txn.get_budget(budget_id)
                if budget is None:
                    return self._not_found(op, "budget", budget_id)
                denied = self._check_transition(op, str(budget.status), target, BUDGET_TRANSITIONS)
                if denied is not None:
                    return denied
                if budget.email and any(c.email == budget.email for c in txn.list_clients()):
                    return self._fail(
                        op, NOT_ELIGIBLE, f"A client with e-mail {budget.email} already exists"
                    )
                client = txn.insert_client(
                    Client(
                        name=budget.name,
                        email=budget.email,
                        status=ClientStatus.ACTIVE,
                        pool_volume=budget.pool_volume,
                        has_well_water=budget.has_well_water,
                        is_party_pool=budget.is_party_pool,
                        distance_from_hq=(
                            distance_from_hq
                            if distance_from_hq is not None
                            else budget.distance_from_hq
                        ),
                        plan=budget.plan,
                        fidelity_plan=budget.fidelity_plan,
                        payment=Payment(
                            status=PaymentStatus.PENDING,
                            due_date=add_months(now.date(), 1),
                        ),
                    ),
                    now,
                )
                txn.set_budget_status(budget_id, target, client_id=client.id)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        logger.info("Budget %s approved as client %s", budget_id, client.id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": budget_id, "status": target, "client_id": client.id},
        )

    @traced
    def reject(self, budget_id: str) -> ServiceResult:
        op = "reject_budget"
        target = str(BudgetStatus.REJECTED)
        try:
            with self._store.transaction() as txn:
                budget = txn.get_budget(budget_id)
                if budget is None:
                    return self._not_found(op, "budget", budget_id)
                denied = self._check_transition(op, str(budget.status), target, BUDGET_TRANSITIONS)
                if denied is not None:
                    return denied
                txn.set_budget_status(budget_id, target)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": budget_id, "status": target})
