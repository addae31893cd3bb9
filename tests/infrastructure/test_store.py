"""Tests for the Store: typed collections and the atomic batch."""

from datetime import UTC, date, datetime

import pytest

from poolctl.domain.models import Bank, Client, Payment, StockLine, Transaction
from poolctl.domain.settings import Settings
from poolctl.infrastructure.store import Store

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class Boom(Exception):
    pass


def _client(name: str = "Ana", **kwargs: object) -> Client:
    return Client(name=name, payment=Payment(due_date=date(2026, 4, 10)), **kwargs)


class TestClients:
    def test_insert_assigns_sequential_ids(self, store: Store) -> None:
        with store.transaction() as txn:
            first = txn.insert_client(_client(), NOW)
            second = txn.insert_client(_client(name="Bruno"), NOW)
        assert (first.id, second.id) == ("CLI-0001", "CLI-0002")

    def test_round_trip_nested_fields(self, store: Store) -> None:
        stock = [StockLine(product_id="PRD-0001", name="Chlorine", quantity=1.5, max_quantity=10)]
        with store.transaction() as txn:
            created = txn.insert_client(_client(stock=stock, distance_from_hq=7.5), NOW)
        with store.read() as txn:
            loaded = txn.get_client(created.id)
        assert loaded == created

    def test_list_active_only(self, store: Store) -> None:
        with store.transaction() as txn:
            txn.insert_client(_client(), NOW)
            txn.insert_client(_client(name="Pending", status="pending"), NOW)
        with store.read() as txn:
            assert [c.name for c in txn.list_clients(active_only=True)] == ["Ana"]
            assert len(txn.list_clients()) == 2

    def test_missing(self, store: Store) -> None:
        with store.read() as txn:
            assert txn.get_client("CLI-9999") is None


class TestAtomicBatch:
    def test_rollback_discards_every_write(self, store: Store) -> None:
        with store.transaction() as txn:
            bank = txn.insert_bank(Bank(name="Azul"))
            client = txn.insert_client(_client(bank_id=bank.id), NOW)

        with pytest.raises(Boom), store.transaction() as txn:
            txn.append_transaction(
                Transaction(client_id=client.id, bank_id=bank.id, amount=10, date=NOW)
            )
            txn.save_client(client.model_copy(update={"name": "Changed"}), NOW)
            raise Boom

        with store.read() as txn:
            assert txn.list_transactions(client.id) == []
            assert txn.get_client(client.id).name == "Ana"

    def test_settings_default_then_saved(self, store: Store) -> None:
        with store.read() as txn:
            assert txn.get_settings() == Settings()
        with store.transaction() as txn:
            txn.save_settings(Settings(company_name="Acme"), NOW)
        with store.transaction() as txn:
            txn.save_settings(txn.get_settings().model_copy(update={"pix_key": "k"}), NOW)
        with store.read() as txn:
            saved = txn.get_settings()
        assert (saved.company_name, saved.pix_key) == ("Acme", "k")


class TestSnapshots:
    def test_load_collection(self, store: Store) -> None:
        with store.transaction() as txn:
            txn.insert_client(_client(), NOW)
        snap = store.load_collection("clients")
        assert snap.collection == "clients"
        assert [c.name for c in snap.items] == ["Ana"]

    def test_settings_collection(self, store: Store) -> None:
        assert store.load_collection("settings").items == [Settings()]

    def test_unknown_collection(self, store: Store) -> None:
        with pytest.raises(KeyError):
            store.load_collection("nope")

    def test_load_snapshot(self, store: Store) -> None:
        with store.transaction() as txn:
            txn.insert_client(_client(), NOW)
        snapshot = store.load_snapshot()
        assert len(snapshot.clients) == 1
        assert snapshot.open_quote_client_ids() == set()
        assert snapshot.pending_price_changes == []
