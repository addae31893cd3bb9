"""Row <-> domain record mapping for every stored collection."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from poolctl.domain.models import (
    AdvancePaymentRequest,
    Bank,
    BudgetQuote,
    CartItem,
    Client,
    Order,
    Payment,
    PendingPriceChange,
    PlanChangeRequest,
    Product,
    ReplenishmentQuote,
    ScheduledPlanChange,
    StockLine,
    Transaction,
)
from poolctl.domain.pricing import FidelityPlan, PricingSettings
from poolctl.domain.settings import Settings

if TYPE_CHECKING:
    from sqlalchemy import Row


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json") if model is not None else None


# --- clients ---


def client_from_row(row: Row[Any]) -> Client:
    return Client(
        id=row.id,
        name=row.name,
        email=row.email or "",
        status=row.status,
        pool_volume=row.pool_volume or 0.0,
        has_well_water=bool(row.has_well_water),
        include_products=bool(row.include_products),
        is_party_pool=bool(row.is_party_pool),
        distance_from_hq=row.distance_from_hq or 0.0,
        plan=row.plan,
        fidelity_plan=FidelityPlan.model_validate(row.fidelity_plan) if row.fidelity_plan else None,
        payment=Payment(status=row.payment_status, due_date=date.fromisoformat(row.due_date)),
        bank_id=row.bank_id,
        advance_payment_until=_date(row.advance_payment_until),
        custom_pricing=(
            PricingSettings.model_validate(row.custom_pricing) if row.custom_pricing else None
        ),
        scheduled_plan_change=(
            ScheduledPlanChange.model_validate(row.scheduled_plan_change)
            if row.scheduled_plan_change
            else None
        ),
        stock=[StockLine.model_validate(line) for line in row.stock or []],
    )


def client_values(client: Client) -> dict[str, Any]:
    """Column values for every mutable client field."""
    return {
        "name": client.name,
        "email": client.email,
        "status": str(client.status),
        "pool_volume": client.pool_volume,
        "has_well_water": int(client.has_well_water),
        "include_products": int(client.include_products),
        "is_party_pool": int(client.is_party_pool),
        "distance_from_hq": client.distance_from_hq,
        "plan": str(client.plan),
        "fidelity_plan": _dump(client.fidelity_plan),
        "payment_status": str(client.payment.status),
        "due_date": client.payment.due_date.isoformat(),
        "bank_id": client.bank_id,
        "advance_payment_until": _iso(client.advance_payment_until),
        "custom_pricing": _dump(client.custom_pricing),
        "scheduled_plan_change": _dump(client.scheduled_plan_change),
        "stock": [line.model_dump(mode="json") for line in client.stock],
    }


# --- settings ---


def settings_from_data(data: dict[str, Any] | None) -> Settings:
    """Stored document over code defaults; a missing document means all defaults."""
    return Settings.model_validate(data or {})


def settings_data(settings: Settings) -> dict[str, Any]:
    return settings.model_dump(mode="json")


# --- catalog and ledger ---


def product_from_row(row: Row[Any]) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        description=row.description or "",
        price=row.price,
        stock=row.stock or 0,
    )


def bank_from_row(row: Row[Any]) -> Bank:
    return Bank(id=row.id, name=row.name, pix_key=row.pix_key)


def transaction_from_row(row: Row[Any]) -> Transaction:
    return Transaction(
        id=row.id,
        client_id=row.client_id,
        client_name=row.client_name or "",
        bank_id=row.bank_id,
        bank_name=row.bank_name or "",
        amount=row.amount,
        date=datetime.fromisoformat(row.date),
    )


def order_from_row(row: Row[Any]) -> Order:
    return Order(
        id=row.id,
        client_id=row.client_id,
        client_name=row.client_name or "",
        items=[CartItem.model_validate(i) for i in row.items],
        total=row.total,
        status=row.status,
        created=datetime.fromisoformat(row.created),
    )


# --- satellite records ---


def quote_from_row(row: Row[Any]) -> ReplenishmentQuote:
    return ReplenishmentQuote(
        id=row.id,
        client_id=row.client_id,
        client_name=row.client_name or "",
        items=[CartItem.model_validate(i) for i in row.items],
        total=row.total,
        status=row.status,
        created=datetime.fromisoformat(row.created),
        updated=datetime.fromisoformat(row.updated),
    )


def advance_request_from_row(row: Row[Any]) -> AdvancePaymentRequest:
    return AdvancePaymentRequest(
        id=row.id,
        client_id=row.client_id,
        client_name=row.client_name or "",
        months=row.months,
        discount_percent=row.discount_percent,
        original_amount=row.original_amount,
        final_amount=row.final_amount,
        status=row.status,
        created=datetime.fromisoformat(row.created),
        updated=datetime.fromisoformat(row.updated),
    )


def plan_change_from_row(row: Row[Any]) -> PlanChangeRequest:
    return PlanChangeRequest(
        id=row.id,
        client_id=row.client_id,
        client_name=row.client_name or "",
        current_plan=row.current_plan,
        requested_plan=row.requested_plan,
        status=row.status,
        proposed_price=row.proposed_price,
        admin_notes=row.admin_notes,
        created=datetime.fromisoformat(row.created),
        updated=datetime.fromisoformat(row.updated),
    )


def price_change_from_row(row: Row[Any]) -> PendingPriceChange:
    return PendingPriceChange(
        id=row.id,
        effective_date=datetime.fromisoformat(row.effective_date),
        new_pricing=PricingSettings.model_validate(row.new_pricing),
        affected_clients=row.affected_clients or [],
        status=row.status,
        created=datetime.fromisoformat(row.created),
        applied_at=_datetime(row.applied_at),
    )


def budget_from_row(row: Row[Any]) -> BudgetQuote:
    return BudgetQuote.model_validate(
        {**row.data, "id": row.id, "status": row.status, "created": row.created}
    )
