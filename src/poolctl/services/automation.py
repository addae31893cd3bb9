"""Automation passes and the admin session that drives them.

:class:`AutomationService` runs the two once-per-day passes behind
:class:`LastRunTracker` markers: the price-change check (session scoped)
and the replenishment scan (persisted, so at most once per calendar day
across every session). The marker is written *before* the pass runs.

:class:`AdminSession` is the cooperative, data-driven trigger: it
subscribes to the collections the passes read and re-evaluates the
automation whenever a fresh snapshot arrives once everything is loaded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from poolctl.domain.snapshot import StoreSnapshot
from poolctl.infrastructure.run_tracker import LastRunTracker, SessionRunTracker, StoreRunTracker
from poolctl.services.base import BaseService, Clock
from poolctl.services.price_change import PriceChangeService
from poolctl.services.replenishment import ReplenishmentService
from poolctl.services.result import ServiceResult
from poolctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from poolctl.infrastructure.feeds import Snapshot, Subscription
    from poolctl.infrastructure.store import Store

log = structlog.get_logger(__name__)

WATCHED_COLLECTIONS = (
    "settings",
    "clients",
    "products",
    "replenishment_quotes",
    "pending_price_changes",
)


class AutomationService(BaseService):
    """Once-per-day price-change application and replenishment scan."""

    def __init__(
        self,
        store: Store,
        *,
        clock: Clock | None = None,
        price_change_tracker: LastRunTracker | None = None,
        replenishment_tracker: LastRunTracker | None = None,
    ) -> None:
        super().__init__(store, clock=clock)
        self._price_tracker = price_change_tracker or SessionRunTracker()
        self._replenishment_tracker = replenishment_tracker or StoreRunTracker(store.engine)
        self._prices = PriceChangeService(store, clock=self._clock)
        self._replenishment = ReplenishmentService(store, clock=self._clock)

    @traced
    def run(self, snapshot: StoreSnapshot | None = None, *, force: bool = False) -> ServiceResult:
        """Run whichever passes have not run today (all of them with *force*)."""
        op = "automation_run"
        today = self._today()
        cfg = self._store.settings.automation
        data: dict[str, Any] = {"date": today.isoformat()}
        warnings: list[str] = []

        with trace_span("price_change_check"):
            if force or self._price_tracker.mark_run(cfg.price_change_job, today):
                result = self._prices.apply_due()
                data["price_changes"] = result.data
                warnings.extend(result.warnings)
            else:
                data["price_changes"] = {"skipped": True}

        with trace_span("replenishment_scan"):
            if force or self._replenishment_tracker.mark_run(cfg.replenishment_job, today):
                if snapshot is None or data["price_changes"].get("count"):
                    snapshot = self._store.load_snapshot()
                result = self._replenishment.scan(snapshot)
                data["replenishment"] = result.data
                warnings.extend(result.warnings)
            else:
                data["replenishment"] = {"skipped": True}

        log.info(
            "automation.run",
            price_changes=data["price_changes"].get("count", 0),
            quotes=data["replenishment"].get("count", 0),
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)


class AdminSession:
    """Keeps materialized snapshots fresh and triggers automation on arrival.

    Usage::

        with AdminSession(store) as session:
            ...  # automation already ran once everything loaded
    """

    def __init__(self, store: Store, automation: AutomationService | None = None) -> None:
        self._store = store
        self._automation = automation or AutomationService(store)
        self._latest: dict[str, list[Any]] = {}
        self._subscriptions: list[Subscription] = []
        self._running = False
        self.results: list[ServiceResult] = []

    @property
    def loaded(self) -> bool:
        return all(name in self._latest for name in WATCHED_COLLECTIONS)

    def open(self) -> AdminSession:
        for name in WATCHED_COLLECTIONS:
            self._subscriptions.append(self._store.subscribe(name, self._on_snapshot))
        return self

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()

    def __enter__(self) -> AdminSession:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    def snapshot(self) -> StoreSnapshot:
        """The session's current view, as plain data."""
        return StoreSnapshot(
            settings=self._latest["settings"][0],
            clients=list(self._latest["clients"]),
            products=list(self._latest["products"]),
            replenishment_quotes=list(self._latest["replenishment_quotes"]),
            pending_price_changes=list(self._latest["pending_price_changes"]),
        )

    def _on_snapshot(self, snap: Snapshot) -> None:
        self._latest[snap.collection] = snap.items
        if not self.loaded or self._running:
            return
        self._running = True
        try:
            result = self._automation.run(self.snapshot())
        finally:
            self._running = False
        if not all(result.data[key].get("skipped") for key in ("price_changes", "replenishment")):
            self.results.append(result)
