"""Price change planning: who is affected and who gets grandfathered."""

from __future__ import annotations

from collections.abc import Iterable

from poolctl.domain.models import AffectedClient, Client
from poolctl.domain.pricing import PricingSettings, compute_fee
from poolctl.domain.types import PlanType

PRICE_CHANGE_NOTICE_DAYS = 30


def affected_clients(
    clients: Iterable[Client],
    old: PricingSettings,
    new: PricingSettings,
    *,
    vip_enabled: bool = True,
) -> list[AffectedClient]:
    """Active Simple-plan clients on live pricing whose fee changes."""
    affected: list[AffectedClient] = []
    for client in clients:
        if not client.is_active or client.plan != PlanType.SIMPLE:
            continue
        if client.custom_pricing is not None:
            continue
        old_fee = compute_fee(client, old, vip_enabled=vip_enabled)
        new_fee = compute_fee(client, new, vip_enabled=vip_enabled)
        if old_fee != new_fee:
            affected.append(
                AffectedClient(id=client.id, name=client.name, old_fee=old_fee, new_fee=new_fee)
            )
    return affected


def clients_to_grandfather(clients: Iterable[Client]) -> list[Client]:
    """Active VIP clients that still follow the live pricing."""
    return [
        c
        for c in clients
        if c.is_active and c.plan == PlanType.VIP and c.custom_pricing is None
    ]
