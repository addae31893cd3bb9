"""Business settings document edited by administrators.

The stored document only needs the fields an admin changed; everything
else comes from the defaults baked into these models. Partial edits go
through :class:`SettingsUpdate` and :func:`apply_settings_update`, one
typed field at a time.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from poolctl.domain.models import AdvancePaymentOption
from poolctl.domain.pricing import FidelityPlan, PricingSettings, VolumeTier


def _default_pricing() -> PricingSettings:
    return PricingSettings(
        volume_tiers=[
            VolumeTier(min=0, max=20000, price=150),
            VolumeTier(min=20001, max=50000, price=250),
            VolumeTier(min=50001, max=100000, price=400),
        ],
        well_water_fee=50,
        products_fee=75,
        party_pool_fee=100,
        per_km=1.5,
    )


def _default_fidelity_plans() -> list[FidelityPlan]:
    return [
        FidelityPlan(id="4_months", months=4, discount_percent=5),
        FidelityPlan(id="6_months", months=6, discount_percent=10),
        FidelityPlan(id="12_months", months=12, discount_percent=15),
    ]


def _default_advance_options() -> list[AdvancePaymentOption]:
    return [
        AdvancePaymentOption(months=3, discount_percent=5),
        AdvancePaymentOption(months=6, discount_percent=10),
    ]


class FeatureFlags(BaseModel):
    """Global on/off switches."""

    model_config = {"frozen": True}

    vip_plan_enabled: bool = True
    plan_upgrade_enabled: bool = True
    store_enabled: bool = True
    advance_payment_plan_enabled: bool = False


class AutomationSettings(BaseModel):
    """Thresholds for the consumption automation."""

    model_config = {"frozen": True}

    replenishment_stock_threshold: float = Field(default=2, ge=0)


class Settings(BaseModel):
    """The live business settings."""

    model_config = {"frozen": True}

    company_name: str = "S.O.S Piscina Limpa"
    pix_key: str = ""
    pricing: PricingSettings = Field(default_factory=_default_pricing)
    fidelity_plans: list[FidelityPlan] = Field(default_factory=_default_fidelity_plans)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    automation: AutomationSettings = Field(default_factory=AutomationSettings)
    advance_payment_options: list[AdvancePaymentOption] = Field(
        default_factory=_default_advance_options
    )

    def fidelity_plan(self, plan_id: str) -> FidelityPlan | None:
        """Look up a fidelity plan by id."""
        return next((p for p in self.fidelity_plans if p.id == plan_id), None)

    def advance_option(self, months: int) -> AdvancePaymentOption | None:
        """Look up the advance payment option for *months*."""
        return next((o for o in self.advance_payment_options if o.months == months), None)


class FeatureFlagsUpdate(BaseModel):
    """Partial edit of :class:`FeatureFlags`."""

    vip_plan_enabled: bool | None = None
    plan_upgrade_enabled: bool | None = None
    store_enabled: bool | None = None
    advance_payment_plan_enabled: bool | None = None


class SettingsUpdate(BaseModel):
    """Partial edit of :class:`Settings`. ``None`` means "leave unchanged"."""

    company_name: str | None = None
    pix_key: str | None = None
    pricing: PricingSettings | None = None
    fidelity_plans: list[FidelityPlan] | None = None
    features: FeatureFlagsUpdate | None = None
    replenishment_stock_threshold: float | None = Field(default=None, ge=0)
    advance_payment_options: list[AdvancePaymentOption] | None = None


def apply_settings_update(
    current: Settings,
    update: SettingsUpdate,
    *,
    include_pricing: bool = True,
) -> Settings:
    """Return *current* with every non-``None`` field of *update* applied.

    With ``include_pricing=False`` the pricing field is left as it is,
    which is how a save that schedules a price change keeps the live
    pricing until the change is applied.
    """
    changes: dict[str, object] = {}
    if update.company_name is not None:
        changes["company_name"] = update.company_name
    if update.pix_key is not None:
        changes["pix_key"] = update.pix_key
    if update.pricing is not None and include_pricing:
        changes["pricing"] = update.pricing
    if update.fidelity_plans is not None:
        changes["fidelity_plans"] = list(update.fidelity_plans)
    if update.advance_payment_options is not None:
        changes["advance_payment_options"] = list(update.advance_payment_options)
    if update.replenishment_stock_threshold is not None:
        changes["automation"] = current.automation.model_copy(
            update={"replenishment_stock_threshold": update.replenishment_stock_threshold}
        )
    if update.features is not None:
        flag_changes = update.features.model_dump(exclude_none=True)
        if flag_changes:
            changes["features"] = current.features.model_copy(update=flag_changes)
    return current.model_copy(update=changes)


def pricing_differs(old: PricingSettings, new: PricingSettings) -> bool:
    """Deep comparison of two pricing configurations."""
    return old.model_dump() != new.model_dump()
