"""ClientService — client records, technician stock updates and bank links."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.billing import add_months
from poolctl.domain.models import Client, Payment, StockLine
from poolctl.domain.types import PlanType
from poolctl.services.base import BaseService
from poolctl.services.fees import client_fee
from poolctl.services.result import VALIDATION_FAILED, ServiceResult
from poolctl.services.telemetry import traced


class ClientService(BaseService):
    """Create, inspect and maintain client records."""

    @traced
    def add(
        self,
        name: str,
        *,
        email: str = "",
        pool_volume: float = 0.0,
        has_well_water: bool = False,
        include_products: bool = False,
        is_party_pool: bool = False,
        distance_from_hq: float = 0.0,
        plan: str = PlanType.SIMPLE,
        fidelity_plan_id: str | None = None,
        bank_id: str | None = None,
    ) -> ServiceResult:
        """Register an active client whose first invoice is due in a month."""
        op = "add_client"
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
                if bank_id is not None and txn.get_bank(bank_id) is None:
                    return self._not_found(op, "bank", bank_id)
                try:
                    draft = Client(
                        name=name,
                        email=email,
                        pool_volume=pool_volume,
                        has_well_water=has_well_water,
                        include_products=include_products,
                        is_party_pool=is_party_pool,
                        distance_from_hq=distance_from_hq,
                        plan=plan,
                        fidelity_plan=fidelity,
                        bank_id=bank_id,
                        payment=Payment(due_date=add_months(now.date(), 1)),
                    )
                except ValidationError as exc:
                    return self._fail(op, VALIDATION_FAILED, str(exc))
                client = txn.insert_client(draft, now)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        data = client.model_dump(mode="json")
        data["monthly_fee"] = client_fee(client, settings)
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def show(self, client_id: str) -> ServiceResult:
        op = "show_client"
        with self._store.read() as txn:
            client = txn.get_client(client_id)
            if client is None:
                return self._not_found(op, "client", client_id)
            settings = txn.get_settings()
        data = client.model_dump(mode="json")
        data["monthly_fee"] = client_fee(client, settings)
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def list_clients(self, *, active_only: bool = False) -> ServiceResult:
        with self._store.read() as txn:
            clients = txn.list_clients(active_only=active_only)
            settings = txn.get_settings()
        items = [
            {
                "id": c.id,
                "name": c.name,
                "plan": str(c.plan),
                "status": str(c.status),
                "due_date": c.payment.due_date.isoformat(),
                "payment_status": str(c.payment.status),
                "monthly_fee": client_fee(c, settings),
            }
            for c in clients
        ]
        return ServiceResult(ok=True, op="list_clients", data={"count": len(items), "items": items})

    @traced
    def update_stock(self, client_id: str, lines: Iterable[Mapping[str, Any]]) -> ServiceResult:
        """Replace the client's stock lines (technician visit).

        Each line names a catalog ``product_id`` with a ``quantity`` and an
        optional ``max_quantity``; the product name is filled from the catalog.
        """
        op = "update_stock"
        now = self._now()
        try:
            with self._store.transaction() as txn:
                client = txn.get_client(client_id)
                if client is None:
                    return self._not_found(op, "client", client_id)
                stock: list[StockLine] = []
                for raw in lines:
                    product = txn.get_product(str(raw.get("product_id", "")))
                    if product is None:
                        return self._fail(
                            op, VALIDATION_FAILED, f"Unknown product: {raw.get('product_id')!r}"
                        )
                    try:
                        stock.append(StockLine.model_validate({**raw, "name": product.name}))
                    except ValidationError as exc:
                        return self._fail(op, VALIDATION_FAILED, str(exc), product_id=product.id)
                txn.save_client(client.model_copy(update={"stock": stock}), now)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"client_id": client_id, "stock": [s.model_dump(mode="json") for s in stock]},
        )

    @traced
    def set_bank(self, client_id: str, bank_id: str) -> ServiceResult:
        """Associate the bank that this client's payments are booked against."""
        op = "set_bank"
        try:
            with self._store.transaction() as txn:
                client = txn.get_client(client_id)
                if client is None:
                    return self._not_found(op, "client", client_id)
                if txn.get_bank(bank_id) is None:
                    return self._not_found(op, "bank", bank_id)
                txn.save_client(client.model_copy(update={"bank_id": bank_id}), self._now())
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data={"client_id": client_id, "bank_id": bank_id})
