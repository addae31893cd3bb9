"""Tests for client, catalog and billing CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from poolctl.cli import cli
from tests.conftest import invoke_json


@pytest.mark.usefixtures("_isolated_root")
class TestClientCommands:
    def test_add(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["client", "add", "Ana Souza", "--volume", "25000"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "CLI-0001" in result.output

    def test_add_json(self, cli_runner: CliRunner) -> None:
        data = invoke_json(
            cli_runner, "client", "add", "Bruno", "--volume", "40000", "--well-water",
            "--distance", "10",
        )
        assert data["ok"] is True
        assert data["data"]["monthly_fee"] == 315

    def test_add_unknown_fidelity(self, cli_runner: CliRunner) -> None:
        data = invoke_json(
            cli_runner, "client", "add", "Caio", "--plan", "vip", "--fidelity", "2_years",
            exit_code=1,
        )
        assert data["error"]["code"] == "VALIDATION_FAILED"

    def test_list_quiet(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["client", "add", "Ana"])
        cli_runner.invoke(cli, ["client", "add", "Bia"])
        result = cli_runner.invoke(cli, ["-q", "client", "list"])
        assert result.exit_code == 0
        assert result.output.split() == ["CLI-0001", "CLI-0002"]

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["client", "show", "CLI-0404"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_stock_lines(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["client", "add", "Ana"])
        cli_runner.invoke(cli, ["catalog", "product", "Cloro", "--price", "20", "--stock", "5"])
        data = invoke_json(cli_runner, "client", "stock", "CLI-0001", "--line", "PRD-0001:1:10")
        assert data["data"]["stock"] == [
            {"product_id": "PRD-0001", "name": "Cloro", "quantity": 1.0, "max_quantity": 10.0}
        ]

    def test_stock_bad_line(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["client", "stock", "CLI-0001", "--line", "PRD-0001"])
        assert result.exit_code == 2
        assert "PRODUCT:QTY[:MAX]" in result.output


@pytest.mark.usefixtures("_isolated_root")
class TestCatalogCommands:
    def test_products(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["catalog", "product", "Cloro", "--price", "20", "--stock", "5"])
        data = invoke_json(cli_runner, "catalog", "products")
        assert data["data"]["items"][0]["name"] == "Cloro"

    def test_banks_table(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["catalog", "bank", "Banco Azul", "--pix-key", "azul@pix"])
        result = cli_runner.invoke(cli, ["catalog", "banks"])
        assert result.exit_code == 0
        assert "Banco Azul" in result.output
        assert "1 items" in result.output


@pytest.mark.usefixtures("_isolated_root")
class TestBillingCommands:
    def _client_with_bank(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["catalog", "bank", "Banco Azul"])
        cli_runner.invoke(cli, ["client", "add", "Ana", "--volume", "25000", "--bank", "BNK-0001"])

    def test_fee(self, cli_runner: CliRunner) -> None:
        self._client_with_bank(cli_runner)
        data = invoke_json(cli_runner, "fee", "CLI-0001")
        assert data["data"]["fee"] == 250
        assert data["data"]["pricing"] == "live"

    def test_pay_and_history(self, cli_runner: CliRunner) -> None:
        self._client_with_bank(cli_runner)
        paid = invoke_json(cli_runner, "pay", "CLI-0001", "--months", "2")
        assert paid["data"]["amount"] == 500
        assert paid["data"]["payment_status"] == "paid"

        history = invoke_json(cli_runner, "history", "CLI-0001")
        assert history["data"]["count"] == 1
        assert history["data"]["items"][0]["bank_name"] == "Banco Azul"

    def test_pay_without_bank(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["client", "add", "Ana", "--volume", "25000"])
        data = invoke_json(cli_runner, "pay", "CLI-0001", exit_code=1)
        assert data["error"]["code"] == "VALIDATION_FAILED"

    def test_pay_rejects_zero_months(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["pay", "CLI-0001", "--months", "0"])
        assert result.exit_code == 2
