"""Tests for the once-per-day automation passes and the admin session."""

from __future__ import annotations

import pytest

from poolctl.infrastructure.run_tracker import SessionRunTracker
from poolctl.infrastructure.store import Store
from poolctl.services.automation import WATCHED_COLLECTIONS, AdminSession, AutomationService
from poolctl.services.clients import ClientService
from poolctl.services.settings import SettingsService
from tests.conftest import FrozenClock, add_client, add_product


@pytest.fixture
def low_client(store: Store, clock: FrozenClock) -> str:
    product = add_product(store, "Cloro 10kg", price=20.0, stock=50)
    client_id = add_client(store, "Ana", clock=clock, pool_volume=25000)["id"]
    ClientService(store, clock=clock).update_stock(
        client_id, [{"product_id": product["id"], "quantity": 1, "max_quantity": 4}]
    )
    return client_id


@pytest.fixture
def automation(store: Store, clock: FrozenClock) -> AutomationService:
    return AutomationService(store, clock=clock)


class TestRun:
    def test_first_run_of_the_day(self, automation: AutomationService, low_client: str) -> None:
        result = automation.run()
        assert result.ok
        assert result.data["date"] == "2026-03-10"
        assert result.data["price_changes"] == {"applied": [], "count": 0}
        assert result.data["replenishment"]["count"] == 1
        assert result.data["replenishment"]["created"][0]["client_id"] == low_client

    def test_second_run_same_day_is_skipped(
        self, automation: AutomationService, low_client: str
    ) -> None:
        automation.run()
        again = automation.run()
        assert again.data["price_changes"] == {"skipped": True}
        assert again.data["replenishment"] == {"skipped": True}

    def test_force(self, automation: AutomationService, low_client: str) -> None:
        automation.run()
        forced = automation.run(force=True)
        assert forced.data["price_changes"]["count"] == 0
        assert forced.data["replenishment"]["count"] == 0

    def test_next_day_runs_again(
        self, automation: AutomationService, clock: FrozenClock, low_client: str
    ) -> None:
        automation.run()
        clock.advance(days=1)
        result = automation.run()
        assert "skipped" not in result.data["price_changes"]
        assert result.data["replenishment"]["count"] == 0

    def test_replenishment_marker_shared_across_sessions(
        self, store: Store, clock: FrozenClock, low_client: str
    ) -> None:
        AutomationService(store, clock=clock).run()
        other = AutomationService(store, clock=clock).run()
        assert other.data["price_changes"] == {"applied": [], "count": 0}
        assert other.data["replenishment"] == {"skipped": True}

    def test_injected_trackers(self, store: Store, clock: FrozenClock) -> None:
        prices = SessionRunTracker()
        replenishment = SessionRunTracker()
        service = AutomationService(
            store,
            clock=clock,
            price_change_tracker=prices,
            replenishment_tracker=replenishment,
        )
        service.run()
        assert prices.has_run("price-change-check", clock().date())
        assert replenishment.has_run("replenishment-scan", clock().date())

    def test_due_price_change_applied(
        self, store: Store, clock: FrozenClock, automation: AutomationService
    ) -> None:
        scheduled = SettingsService(store, clock=clock).set_pricing(per_km=2.5)
        change_id = scheduled.data["price_change"]["id"]
        clock.advance(days=30)
        result = automation.run()
        assert result.data["price_changes"]["applied"] == [change_id]
        with store.read() as txn:
            assert txn.get_settings().pricing.per_km == 2.5


class TestAdminSession:
    def test_runs_once_everything_is_loaded(
        self, store: Store, automation: AutomationService, low_client: str
    ) -> None:
        with AdminSession(store, automation) as session:
            assert session.loaded
            assert len(session.results) == 1
            assert session.results[0].data["replenishment"]["count"] == 1
            assert session.snapshot().replenishment_quotes[0].client_id == low_client

    def test_later_snapshots_same_day_do_nothing(
        self, store: Store, clock: FrozenClock, automation: AutomationService, low_client: str
    ) -> None:
        with AdminSession(store, automation) as session:
            ClientService(store, clock=clock).update_stock(low_client, [])
            assert len(session.results) == 1
            assert session.snapshot().clients[0].stock == []

    def test_new_day_triggered_by_fresh_snapshot(
        self, store: Store, clock: FrozenClock, automation: AutomationService, low_client: str
    ) -> None:
        with AdminSession(store, automation) as session:
            clock.advance(days=1)
            add_client(store, "Bia", clock=clock, pool_volume=10000)
            assert len(session.results) == 2
            assert session.results[1].data["date"] == "2026-03-11"

    def test_close_cancels_subscriptions(self, store: Store, automation: AutomationService) -> None:
        session = AdminSession(store, automation).open()
        assert all(store.feed.subscriber_count(name) == 1 for name in WATCHED_COLLECTIONS)
        session.close()
        assert all(store.feed.subscriber_count(name) == 0 for name in WATCHED_COLLECTIONS)
