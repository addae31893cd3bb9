"""Domain records: the client aggregate and its satellite records.

All records are frozen pydantic models. Services build new versions with
``model_copy(update=...)`` and persist them through the store; nothing
mutates a record in place.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from poolctl.domain.lifecycle import (
    AdvanceRequestStatus,
    BudgetStatus,
    PlanChangeStatus,
    PriceChangeStatus,
    ReplenishmentStatus,
)
from poolctl.domain.pricing import FidelityPlan, PricingSettings
from poolctl.domain.types import ClientStatus, OrderStatus, PaymentStatus, PlanType

# --- Client aggregate ---


class StockLine(BaseModel):
    """Quantity of one catalog product kept at the client's pool."""

    model_config = {"frozen": True}

    product_id: str
    name: str = ""
    quantity: float = Field(ge=0)
    max_quantity: float | None = Field(default=None, gt=0)


class Payment(BaseModel):
    """Current invoice state."""

    model_config = {"frozen": True}

    status: PaymentStatus = PaymentStatus.PENDING
    due_date: date


class ScheduledPlanChange(BaseModel):
    """Plan switch accepted by the client, applied on the next settlement."""

    model_config = {"frozen": True}

    new_plan: PlanType
    new_price: float
    fidelity_plan: FidelityPlan | None = None
    effective_date: datetime


class Client(BaseModel):
    """Root aggregate for pricing, billing and stock."""

    model_config = {"frozen": True}

    id: str = ""
    name: str
    email: str = ""
    status: ClientStatus = ClientStatus.ACTIVE
    pool_volume: float = 0.0
    has_well_water: bool = False
    include_products: bool = False
    is_party_pool: bool = False
    distance_from_hq: float = 0.0
    plan: PlanType = PlanType.SIMPLE
    fidelity_plan: FidelityPlan | None = None
    payment: Payment
    bank_id: str | None = None
    advance_payment_until: date | None = None
    custom_pricing: PricingSettings | None = None
    scheduled_plan_change: ScheduledPlanChange | None = None
    stock: list[StockLine] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE


# --- Catalog and ledger ---


class Product(BaseModel):
    """Store catalog product."""

    model_config = {"frozen": True}

    id: str = ""
    name: str
    description: str = ""
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)


class Bank(BaseModel):
    """Receiving account that payments are booked against."""

    model_config = {"frozen": True}

    id: str = ""
    name: str
    pix_key: str | None = None


class Transaction(BaseModel):
    """Immutable ledger row."""

    model_config = {"frozen": True}

    id: str = ""
    client_id: str
    client_name: str = ""
    bank_id: str
    bank_name: str = ""
    amount: float
    date: datetime


class CartItem(BaseModel):
    """A product line inside a quote or order."""

    model_config = {"frozen": True}

    product_id: str
    name: str
    price: float
    quantity: float = Field(gt=0)

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


class Order(BaseModel):
    """Store order, created when a client approves a replenishment quote."""

    model_config = {"frozen": True}

    id: str = ""
    client_id: str
    client_name: str = ""
    items: list[CartItem]
    total: float
    status: OrderStatus = OrderStatus.PENDING
    created: datetime


# --- Satellite negotiation records ---


class ReplenishmentQuote(BaseModel):
    """System-generated offer to restock a client's depleted products."""

    model_config = {"frozen": True}

    id: str = ""
    client_id: str
    client_name: str = ""
    items: list[CartItem]
    total: float
    status: ReplenishmentStatus = ReplenishmentStatus.SUGGESTED
    created: datetime
    updated: datetime


class AdvancePaymentOption(BaseModel):
    """Prepay *months* periods for *discount_percent* off."""

    model_config = {"frozen": True}

    months: int = Field(gt=0)
    discount_percent: float = Field(ge=0, le=100)


class AdvancePaymentRequest(BaseModel):
    """Client request to prepay several periods at a discount."""

    model_config = {"frozen": True}

    id: str = ""
    client_id: str
    client_name: str = ""
    months: int
    discount_percent: float
    original_amount: float
    final_amount: float
    status: AdvanceRequestStatus = AdvanceRequestStatus.PENDING
    created: datetime
    updated: datetime


class PlanChangeRequest(BaseModel):
    """Client-initiated plan upgrade negotiated with an admin."""

    model_config = {"frozen": True}

    id: str = ""
    client_id: str
    client_name: str = ""
    current_plan: PlanType
    requested_plan: PlanType
    status: PlanChangeStatus = PlanChangeStatus.PENDING
    proposed_price: float | None = None
    admin_notes: str | None = None
    created: datetime
    updated: datetime


class AffectedClient(BaseModel):
    """Preview row for a client whose fee changes with a pending price change."""

    model_config = {"frozen": True}

    id: str
    name: str
    old_fee: float | None = None
    new_fee: float | None = None


class PendingPriceChange(BaseModel):
    """New pricing waiting for its notice period to pass."""

    model_config = {"frozen": True}

    id: str = ""
    effective_date: datetime
    new_pricing: PricingSettings
    affected_clients: list[AffectedClient] = Field(default_factory=list)
    status: PriceChangeStatus = PriceChangeStatus.PENDING
    created: datetime
    applied_at: datetime | None = None


class PoolDimensions(BaseModel):
    """Pool measurements in metres."""

    model_config = {"frozen": True}

    width: float = 0.0
    length: float = 0.0
    depth: float = 0.0


class BudgetQuote(BaseModel):
    """Pre-budget submitted by a prospective client."""

    model_config = {"frozen": True}

    id: str = ""
    name: str
    email: str = ""
    phone: str = ""
    dimensions: PoolDimensions = Field(default_factory=PoolDimensions)
    pool_volume: float = 0.0
    has_well_water: bool = False
    is_party_pool: bool = False
    distance_from_hq: float = 0.0
    plan: PlanType = PlanType.SIMPLE
    fidelity_plan: FidelityPlan | None = None
    monthly_fee: float = 0.0
    status: BudgetStatus = BudgetStatus.PENDING
    created: datetime
