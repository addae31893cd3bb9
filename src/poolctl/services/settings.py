"""SettingsService — reading and saving the business settings document."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.lifecycle import PriceChangeStatus
from poolctl.domain.models import PendingPriceChange
from poolctl.domain.pricing import PricingSettings
from poolctl.domain.settings import SettingsUpdate, apply_settings_update, pricing_differs
from poolctl.services.base import BaseService
from poolctl.services.price_change import PriceChangeService, schedule_price_change
from poolctl.services.result import NOT_ELIGIBLE, VALIDATION_FAILED, ServiceResult
from poolctl.services.telemetry import traced

logger = logging.getLogger(__name__)


class SettingsService(BaseService):
    """Admin edits to pricing, plans, feature flags and thresholds."""

    @traced
    def show(self) -> ServiceResult:
        with self._store.read() as txn:
            settings = txn.get_settings()
        return ServiceResult(ok=True, op="show_settings", data=settings.model_dump(mode="json"))

    @traced
    def save(self, update: SettingsUpdate) -> ServiceResult:
        """Apply a partial update.

        A pricing that differs from the live one is not written directly:
        it becomes a pending price change, saved in the same batch as the
        other edits and the VIP grandfathering.
        """
        op = "save_settings"
        now = self._now()
        change: PendingPriceChange | None = None
        grandfathered: list[str] = []
        try:
            with self._store.transaction() as txn:
                current = txn.get_settings()
                new_pricing = update.pricing
                if new_pricing is not None and pricing_differs(current.pricing, new_pricing):
                    pending = txn.list_price_changes(status=str(PriceChangeStatus.PENDING))
                    if pending:
                        return self._fail(
                            op,
                            NOT_ELIGIBLE,
                            f"Price change {pending[0].id} is already pending",
                            change_id=pending[0].id,
                        )
                    change, grandfathered = schedule_price_change(
                        txn,
                        current,
                        new_pricing,
                        now=now,
                        notice_days=self._store.settings.automation.price_change_notice_days,
                    )

                saved = apply_settings_update(current, update, include_pricing=False)
                txn.save_settings(saved, now)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)

        if change is not None:
            logger.info(
                "Price change %s scheduled for %s; %d VIP client(s) grandfathered",
                change.id,
                change.effective_date.date().isoformat(),
                len(grandfathered),
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "settings": saved.model_dump(mode="json"),
                "price_change": change.model_dump(mode="json") if change else None,
                "grandfathered": grandfathered,
            },
        )

    def _merged_pricing(
        self,
        tiers: Sequence[tuple[float, float, float]] | None,
        fees: dict[str, float | None],
    ) -> PricingSettings:
        """Live pricing with the given tiers and fees swapped in."""
        with self._store.read() as txn:
            current = txn.get_settings().pricing
        data: dict[str, Any] = current.model_dump()
        if tiers:
            data["volume_tiers"] = [{"min": lo, "max": hi, "price": p} for lo, hi, p in tiers]
        data.update({k: v for k, v in fees.items() if v is not None})
        return PricingSettings.model_validate(data)

    @traced
    def set_pricing(
        self,
        *,
        tiers: Sequence[tuple[float, float, float]] | None = None,
        **fees: float | None,
    ) -> ServiceResult:
        """Schedule a pricing change built from the live pricing.

        *tiers* replaces every volume tier; *fees* (``well_water_fee``,
        ``products_fee``, ``party_pool_fee``, ``per_km``) replace single
        add-ons. Unchanged pricing is reported as not eligible.
        """
        op = "save_settings"
        try:
            pricing = self._merged_pricing(tiers, fees)
        except ValidationError as exc:
            return self._fail(op, VALIDATION_FAILED, str(exc))
        with self._store.read() as txn:
            unchanged = not pricing_differs(txn.get_settings().pricing, pricing)
        if unchanged:
            return self._fail(op, NOT_ELIGIBLE, "Pricing is unchanged")
        return self.save(SettingsUpdate(pricing=pricing))

    @traced
    def preview_pricing(
        self,
        *,
        tiers: Sequence[tuple[float, float, float]] | None = None,
        **fees: float | None,
    ) -> ServiceResult:
        """Affected-client preview for a pricing edit, without saving."""
        try:
            pricing = self._merged_pricing(tiers, fees)
        except ValidationError as exc:
            return self._fail("preview_price_change", VALIDATION_FAILED, str(exc))
        return PriceChangeService(self._store, clock=self._clock).preview(pricing)
