"""Materialized view of the store handed to the automation passes."""

from __future__ import annotations

from dataclasses import dataclass, field

from poolctl.domain.lifecycle import OPEN_REPLENISHMENT_STATUSES
from poolctl.domain.models import Client, PendingPriceChange, Product, ReplenishmentQuote
from poolctl.domain.settings import Settings


@dataclass(frozen=True)
class StoreSnapshot:
    """Plain data; holds no connection or subscription."""

    settings: Settings
    clients: list[Client] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    replenishment_quotes: list[ReplenishmentQuote] = field(default_factory=list)
    pending_price_changes: list[PendingPriceChange] = field(default_factory=list)

    def open_quote_client_ids(self) -> set[str]:
        return {
            q.client_id for q in self.replenishment_quotes if q.status in OPEN_REPLENISHMENT_STATUSES
        }
