"""Pricing models and the monthly fee calculation.

:func:`compute_fee` is pure: pricing is always an explicit argument and
the caller decides whether to pass the client's grandfathered
``custom_pricing`` or the live settings (see :func:`effective_pricing`).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from poolctl.domain.types import PlanType

if TYPE_CHECKING:
    from poolctl.domain.models import Client


class VolumeTier(BaseModel):
    """Monthly base price for pools whose volume falls in ``[min, max]`` litres."""

    model_config = {"frozen": True}

    min: float = Field(ge=0)
    max: float = Field(ge=0)
    price: float = Field(ge=0)


class PricingSettings(BaseModel):
    """Tiered base price plus flat add-ons.

    Tiers are kept sorted by ``min`` so two pricing objects with the same
    tiers in a different order compare equal.
    """

    model_config = {"frozen": True}

    volume_tiers: list[VolumeTier]
    well_water_fee: float = 0.0
    products_fee: float = 0.0
    party_pool_fee: float = 0.0
    per_km: float = 0.0

    @field_validator("volume_tiers")
    @classmethod
    def _sort_tiers(cls, tiers: list[VolumeTier]) -> list[VolumeTier]:
        if not tiers:
            msg = "pricing needs at least one volume tier"
            raise ValueError(msg)
        ordered = sorted(tiers, key=lambda t: t.min)
        for tier in ordered:
            if tier.max < tier.min:
                msg = f"tier max {tier.max} is below its min {tier.min}"
                raise ValueError(msg)
        for prev, nxt in zip(ordered, ordered[1:], strict=False):
            if nxt.min <= prev.max:
                msg = f"tiers overlap at {nxt.min}"
                raise ValueError(msg)
        return ordered


class FidelityPlan(BaseModel):
    """Multi-month commitment granting a percentage discount on the VIP fee."""

    model_config = {"frozen": True}

    id: str
    months: int = Field(gt=0)
    discount_percent: float = Field(ge=0, le=100)


def select_tier(tiers: Iterable[VolumeTier], pool_volume: float) -> VolumeTier:
    """Return the tier that prices *pool_volume*.

    Tiers are scanned in ascending ``min`` order and the first whose
    ``max`` is not exceeded wins, so a volume sitting exactly on a tier's
    ``max`` belongs to that tier and fractional volumes between two
    integer bounds go to the upper tier. Volumes above every tier use
    the highest tier.
    """
    ordered = sorted(tiers, key=lambda t: t.min)
    if not ordered:
        msg = "pricing needs at least one volume tier"
        raise ValueError(msg)
    for tier in ordered:
        if pool_volume <= tier.max:
            return tier
    return ordered[-1]


def compute_fee(client: Client, pricing: PricingSettings, *, vip_enabled: bool = True) -> float:
    """Monthly fee for *client* under *pricing*.

    Add-ons are flat; the fidelity discount applies multiplicatively to
    the whole amount, only for VIP clients and only while the VIP plan is
    enabled globally.
    """
    if client.pool_volume <= 0:
        return 0.0

    fee = select_tier(pricing.volume_tiers, client.pool_volume).price

    if client.has_well_water:
        fee += pricing.well_water_fee
    if client.include_products:
        fee += pricing.products_fee
    if client.is_party_pool:
        fee += pricing.party_pool_fee
    if client.distance_from_hq > 0:
        fee += client.distance_from_hq * pricing.per_km

    if client.plan == PlanType.VIP and client.fidelity_plan is not None and vip_enabled:
        fee *= 1 - client.fidelity_plan.discount_percent / 100

    return round(fee, 2)


def effective_pricing(client: Client, live: PricingSettings) -> PricingSettings:
    """Grandfathered snapshot when the client has one, else the live pricing."""
    return client.custom_pricing if client.custom_pricing is not None else live


def normalize_dimension(value: str | float | None) -> float:
    """Parse a pool dimension, accepting comma decimals ("2,5")."""
    if value is None:
        return 0.0
    raw = str(value).strip()
    if not raw:
        return 0.0
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        return 0.0


def calculate_volume(
    width: str | float | None,
    length: str | float | None,
    depth: str | float | None,
) -> float:
    """Pool volume in litres from dimensions in metres (0 if any is missing)."""
    w = normalize_dimension(width)
    ln = normalize_dimension(length)
    d = normalize_dimension(depth)
    if w > 0 and ln > 0 and d > 0:
        return round(w * ln * d * 1000, 3)
    return 0.0
