"""Low-stock detection and replenishment quote planning.

:func:`plan_replenishment` works on materialized snapshots only; the
service re-checks each client for an open quote immediately before
writing the drafts it returns.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from poolctl.domain.models import CartItem, Client, Product, StockLine

LOW_STOCK_RATIO = 0.3
FALLBACK_RESTOCK_QUANTITY = 5


def is_low_stock(line: StockLine, threshold: float, *, ratio: float = LOW_STOCK_RATIO) -> bool:
    """Whether *line* needs restocking.

    Lines with a ``max_quantity`` are low at or below the larger of the
    global threshold and *ratio* of their maximum.
    """
    if line.max_quantity:
        return line.quantity <= max(threshold, line.max_quantity * ratio)
    return line.quantity <= threshold


def suggested_quantity(line: StockLine, *, fallback: float = FALLBACK_RESTOCK_QUANTITY) -> float:
    """Fill up to ``max_quantity`` when known, else the fallback amount.

    A line already at its maximum needs nothing (0).
    """
    if line.max_quantity:
        return max(line.max_quantity - line.quantity, 0)
    return fallback


@dataclass(frozen=True)
class QuoteDraft:
    """A replenishment quote ready to be persisted."""

    client_id: str
    client_name: str
    items: list[CartItem] = field(default_factory=list)

    @property
    def total(self) -> float:
        return round(sum(item.subtotal for item in self.items), 2)


def draft_for_client(
    client: Client,
    catalog: Mapping[str, Product],
    threshold: float,
    *,
    ratio: float = LOW_STOCK_RATIO,
    fallback: float = FALLBACK_RESTOCK_QUANTITY,
) -> QuoteDraft | None:
    """Aggregate every low, in-catalog, in-stock line into one draft (None if empty)."""
    items: list[CartItem] = []
    for line in client.stock:
        if not is_low_stock(line, threshold, ratio=ratio):
            continue
        product = catalog.get(line.product_id)
        if product is None or product.stock <= 0:
            continue
        quantity = suggested_quantity(line, fallback=fallback)
        if quantity <= 0:
            continue
        items.append(
            CartItem(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=quantity,
            )
        )
    if not items:
        return None
    return QuoteDraft(client_id=client.id, client_name=client.name, items=items)


def plan_replenishment(
    clients: Iterable[Client],
    products: Iterable[Product],
    open_quote_client_ids: set[str],
    threshold: float,
    *,
    ratio: float = LOW_STOCK_RATIO,
    fallback: float = FALLBACK_RESTOCK_QUANTITY,
) -> list[QuoteDraft]:
    """One draft per active client without an open quote and with low stock."""
    catalog = {p.id: p for p in products}
    drafts: list[QuoteDraft] = []
    for client in clients:
        if not client.is_active or client.id in open_quote_client_ids:
            continue
        draft = draft_for_client(client, catalog, threshold, ratio=ratio, fallback=fallback)
        if draft is not None:
            drafts.append(draft)
    return drafts
