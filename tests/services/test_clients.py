"""Tests for ClientService and CatalogService."""

from __future__ import annotations

from datetime import date

import pytest

from poolctl.domain.types import ClientStatus, PaymentStatus, PlanType
from poolctl.infrastructure.store import Store
from poolctl.services.catalog import CatalogService
from poolctl.services.clients import ClientService
from poolctl.services.result import NOT_FOUND, VALIDATION_FAILED
from tests.conftest import FrozenClock, add_bank, add_client, add_product, get_client


class TestAdd:
    def test_first_invoice_due_in_a_month(self, store: Store, clock: FrozenClock) -> None:
        data = add_client(store, "Ana", clock=clock, pool_volume=30000, has_well_water=True)
        assert data["id"] == "CLI-0001"
        assert data["monthly_fee"] == 300

        client = get_client(store, data["id"])
        assert client.status == ClientStatus.ACTIVE
        assert client.payment.status == PaymentStatus.PENDING
        assert client.payment.due_date == date(2026, 4, 10)

    def test_vip_with_fidelity(self, store: Store, clock: FrozenClock) -> None:
        data = add_client(
            store, "Bia", clock=clock, pool_volume=10000, plan="vip", fidelity_plan_id="6_months"
        )
        assert data["plan"] == PlanType.VIP
        assert data["monthly_fee"] == 135

    def test_unknown_fidelity_plan(self, store: Store) -> None:
        result = ClientService(store).add("Caio", plan="vip", fidelity_plan_id="2_years")
        assert result.error.code == VALIDATION_FAILED

    def test_unknown_bank(self, store: Store) -> None:
        result = ClientService(store).add("Caio", bank_id="BNK-0404")
        assert result.error.code == NOT_FOUND

    def test_invalid_plan(self, store: Store) -> None:
        result = ClientService(store).add("Caio", plan="gold")
        assert result.error.code == VALIDATION_FAILED
        assert ClientService(store).list_clients().data["count"] == 0


class TestReads:
    def test_show_and_list(self, store: Store, clock: FrozenClock) -> None:
        first = add_client(store, "Ana", clock=clock, pool_volume=30000)["id"]
        add_client(store, "Bia", clock=clock, pool_volume=10000)

        shown = ClientService(store).show(first)
        assert shown.data["name"] == "Ana"
        assert shown.data["monthly_fee"] == 250

        listed = ClientService(store).list_clients().data
        assert listed["count"] == 2
        assert [i["monthly_fee"] for i in listed["items"]] == [250, 150]
        assert listed["items"][0]["due_date"] == "2026-04-10"

    def test_show_unknown(self, store: Store) -> None:
        assert ClientService(store).show("CLI-0404").error.code == NOT_FOUND


class TestStock:
    @pytest.fixture
    def client_id(self, store: Store, clock: FrozenClock) -> str:
        return add_client(store, "Ana", clock=clock, pool_volume=30000)["id"]

    def test_lines_take_catalog_names(self, store: Store, client_id: str) -> None:
        chlorine = add_product(store, "Cloro 10kg", price=89.9)["id"]
        result = ClientService(store).update_stock(
            client_id, [{"product_id": chlorine, "quantity": 3, "max_quantity": 6}]
        )
        assert result.ok
        (line,) = get_client(store, client_id).stock
        assert line.name == "Cloro 10kg"
        assert (line.quantity, line.max_quantity) == (3, 6)

    def test_unknown_product(self, store: Store, client_id: str) -> None:
        result = ClientService(store).update_stock(
            client_id, [{"product_id": "PRD-0404", "quantity": 1}]
        )
        assert result.error.code == VALIDATION_FAILED
        assert get_client(store, client_id).stock == []

    def test_negative_quantity(self, store: Store, client_id: str) -> None:
        product = add_product(store, "Algicida", price=30)["id"]
        result = ClientService(store).update_stock(
            client_id, [{"product_id": product, "quantity": -1}]
        )
        assert result.error.code == VALIDATION_FAILED
        assert result.error.detail["product_id"] == product

    def test_set_bank(self, store: Store, client_id: str) -> None:
        bank = add_bank(store)["id"]
        assert ClientService(store).set_bank(client_id, bank).ok
        assert get_client(store, client_id).bank_id == bank
        assert ClientService(store).set_bank(client_id, "BNK-0404").error.code == NOT_FOUND


class TestCatalog:
    def test_products(self, store: Store) -> None:
        add_product(store, "Cloro", price=50, stock=4)
        items = CatalogService(store).list_products().data["items"]
        assert [(p["id"], p["stock"]) for p in items] == [("PRD-0001", 4)]

    def test_negative_price(self, store: Store) -> None:
        assert CatalogService(store).add_product("Cloro", price=-1).error.code == VALIDATION_FAILED

    def test_banks(self, store: Store) -> None:
        add_bank(store, "Banco Azul", pix_key="azul@pix")
        assert CatalogService(store).add_bank("  ").error.code == VALIDATION_FAILED
        (bank,) = CatalogService(store).list_banks().data["items"]
        assert bank == {"id": "BNK-0001", "name": "Banco Azul", "pix_key": "azul@pix"}
