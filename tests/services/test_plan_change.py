"""Tests for PlanChangeService — Simple to VIP negotiation."""

from __future__ import annotations

import pytest

from poolctl.domain.types import PlanType
from poolctl.infrastructure.store import Store
from poolctl.services.plan_change import PlanChangeService
from poolctl.services.result import INVALID_TRANSITION, NOT_ELIGIBLE, NOT_FOUND, VALIDATION_FAILED
from poolctl.services.settlement import SettlementService
from tests.conftest import FrozenClock, add_bank, add_client, enable_features, get_client


@pytest.fixture
def client_id(store: Store, clock: FrozenClock) -> str:
    return add_client(store, "Ana", clock=clock, pool_volume=25000, has_well_water=True)["id"]


@pytest.fixture
def service(store: Store, clock: FrozenClock) -> PlanChangeService:
    return PlanChangeService(store, clock=clock)


class TestRequest:
    def test_creates_pending(self, service: PlanChangeService, client_id: str) -> None:
        result = service.request(client_id)
        assert result.ok, result.error
        assert result.data["status"] == "pending"
        assert result.data["current_plan"] == "simple"
        assert result.data["requested_plan"] == "vip"

    def test_single_open_request(self, service: PlanChangeService, client_id: str) -> None:
        first = service.request(client_id).data["id"]
        second = service.request(client_id)
        assert second.error.code == NOT_ELIGIBLE
        assert second.error.detail["request_id"] == first

    def test_quoted_request_still_blocks(self, service: PlanChangeService, client_id: str) -> None:
        service.quote(service.request(client_id).data["id"], proposed_price=300)
        assert service.request(client_id).error.code == NOT_ELIGIBLE

    def test_vip_client(self, store: Store, clock: FrozenClock, service: PlanChangeService) -> None:
        vip = add_client(store, "Vera", clock=clock, pool_volume=1000, plan="vip")["id"]
        assert service.request(vip).error.code == NOT_ELIGIBLE

    @pytest.mark.parametrize("flag", ["plan_upgrade_enabled", "vip_plan_enabled"])
    def test_disabled(
        self, store: Store, service: PlanChangeService, client_id: str, flag: str
    ) -> None:
        enable_features(store, **{flag: False})
        assert service.request(client_id).error.code == NOT_ELIGIBLE

    def test_unknown_client(self, service: PlanChangeService) -> None:
        assert service.request("CLI-0404").error.code == NOT_FOUND


class TestQuote:
    def test_suggested_price(self, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        assert service.suggest_price(request_id).data["suggested_price"] == 300

    def test_quote_defaults_to_suggestion(self, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        result = service.quote(request_id, notes="Weekly visits")
        assert result.data == {
            "id": request_id,
            "status": "quoted",
            "proposed_price": 300,
            "notes": "Weekly visits",
        }

    @pytest.mark.parametrize("price", [0.0, -10.0])
    def test_non_positive_price(
        self, service: PlanChangeService, client_id: str, price: float
    ) -> None:
        request_id = service.request(client_id).data["id"]
        assert service.quote(request_id, proposed_price=price).error.code == VALIDATION_FAILED
        assert service.latest_open(client_id).data["request"]["status"] == "pending"

    def test_quote_twice(self, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        assert service.quote(request_id, proposed_price=290).error.code == INVALID_TRANSITION


class TestAccept:
    def test_schedules_change_without_switching(
        self, store: Store, service: PlanChangeService, client_id: str
    ) -> None:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        result = service.accept(request_id, fidelity_plan_id="6_months")
        assert result.ok, result.error
        assert result.data["status"] == "accepted"

        client = get_client(store, client_id)
        assert client.plan == PlanType.SIMPLE
        scheduled = client.scheduled_plan_change
        assert scheduled is not None
        assert scheduled.new_plan == PlanType.VIP
        assert scheduled.new_price == 280
        assert scheduled.fidelity_plan.id == "6_months"

    def test_scheduled_change_blocks_new_request(
        self, service: PlanChangeService, client_id: str
    ) -> None:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        service.accept(request_id)
        assert service.request(client_id).error.code == NOT_ELIGIBLE

    def test_requires_quote(self, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        assert service.accept(request_id).error.code == INVALID_TRANSITION

    def test_unknown_fidelity(
        self, store: Store, service: PlanChangeService, client_id: str
    ) -> None:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        assert service.accept(request_id, fidelity_plan_id="99_months").error.code == VALIDATION_FAILED
        assert get_client(store, client_id).scheduled_plan_change is None


class TestReject:
    def test_from_pending(self, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        assert service.reject(request_id, notes="Not now").data["status"] == "rejected"
        assert service.latest_open(client_id).data["request"] is None

    def test_from_quoted(self, store: Store, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        assert service.reject(request_id).ok
        assert get_client(store, client_id).scheduled_plan_change is None

    def test_after_accept(self, service: PlanChangeService, client_id: str) -> None:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        service.accept(request_id)
        assert service.reject(request_id).error.code == INVALID_TRANSITION

    def test_new_request_after_rejection(self, service: PlanChangeService, client_id: str) -> None:
        service.reject(service.request(client_id).data["id"])
        assert service.request(client_id).ok


class TestCancelScheduled:
    @pytest.fixture
    def accepted(self, service: PlanChangeService, client_id: str) -> str:
        request_id = service.request(client_id).data["id"]
        service.quote(request_id, proposed_price=280)
        assert service.accept(request_id).ok
        return request_id

    def test_clears_the_switch(
        self, store: Store, service: PlanChangeService, client_id: str, accepted: str
    ) -> None:
        result = service.cancel_scheduled(client_id)
        assert result.ok, result.error
        assert result.data["plan"] == "simple"
        assert result.data["cancelled"]["new_price"] == 280
        assert get_client(store, client_id).scheduled_plan_change is None

    def test_client_can_ask_again(
        self, service: PlanChangeService, client_id: str, accepted: str
    ) -> None:
        service.cancel_scheduled(client_id)
        assert service.request(client_id).ok

    def test_next_payment_keeps_plan(
        self,
        store: Store,
        clock: FrozenClock,
        service: PlanChangeService,
        client_id: str,
        accepted: str,
    ) -> None:
        service.cancel_scheduled(client_id)
        bank_id = add_bank(store)["id"]
        with store.transaction() as txn:
            client = txn.get_client(client_id)
            txn.save_client(client.model_copy(update={"bank_id": bank_id}), clock())
        paid = SettlementService(store, clock=clock).mark_as_paid(client_id)
        assert paid.data["plan_changed"] is False
        assert get_client(store, client_id).plan == PlanType.SIMPLE

    def test_nothing_scheduled(self, service: PlanChangeService, client_id: str) -> None:
        assert service.cancel_scheduled(client_id).error.code == NOT_ELIGIBLE

    def test_unknown_client(self, service: PlanChangeService) -> None:
        assert service.cancel_scheduled("CLI-0404").error.code == NOT_FOUND
