"""FeeService — monthly fee lookups over stored clients."""

from __future__ import annotations

from poolctl.domain.models import Client
from poolctl.domain.pricing import compute_fee, effective_pricing
from poolctl.domain.settings import Settings
from poolctl.services.base import BaseService
from poolctl.services.result import ServiceResult
from poolctl.services.telemetry import traced


def client_fee(client: Client, settings: Settings) -> float:
    """Fee under the pricing that applies to *client* (grandfathered or live)."""
    return compute_fee(
        client,
        effective_pricing(client, settings.pricing),
        vip_enabled=settings.features.vip_plan_enabled,
    )


class FeeService(BaseService):
    """Read-only fee computations for display and comparison."""

    @traced
    def fee(self, client_id: str) -> ServiceResult:
        op = "fee"
        with self._store.read() as txn:
            client = txn.get_client(client_id)
            if client is None:
                return self._not_found(op, "client", client_id)
            settings = txn.get_settings()

        data = {
            "client_id": client.id,
            "name": client.name,
            "plan": str(client.plan),
            "fee": client_fee(client, settings),
            "pricing": "custom" if client.custom_pricing is not None else "live",
        }
        if client.scheduled_plan_change is not None:
            data["scheduled_price"] = client.scheduled_plan_change.new_price
        return ServiceResult(ok=True, op=op, data=data)
