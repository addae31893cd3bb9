"""Tests for advance, plan and replenish CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from poolctl.cli import cli
from tests.conftest import invoke_json


def _client(cli_runner: CliRunner, *extra: str) -> None:
    cli_runner.invoke(cli, ["catalog", "bank", "Banco Azul"])
    cli_runner.invoke(
        cli, ["client", "add", "Ana", "--volume", "25000", "--bank", "BNK-0001", *extra]
    )


@pytest.mark.usefixtures("_isolated_root")
class TestAdvanceCommands:
    def test_disabled_by_default(self, cli_runner: CliRunner) -> None:
        data = invoke_json(cli_runner, "advance", "status")
        assert data["data"]["enabled"] is False
        assert data["data"]["available"] is False

    def test_request_and_approve(self, cli_runner: CliRunner) -> None:
        _client(cli_runner)
        cli_runner.invoke(cli, ["settings", "set", "--enable", "advance_payment_plan_enabled"])

        status = invoke_json(cli_runner, "advance", "status", "CLI-0001")
        assert status["data"]["eligible"] is True
        assert [o["final_amount"] for o in status["data"]["options"]] == [712.5, 1350]

        requested = invoke_json(cli_runner, "advance", "request", "CLI-0001", "--months", "3")
        assert requested["data"]["id"] == "APR-0001"

        listed = invoke_json(cli_runner, "advance", "list", "--status", "pending")
        assert listed["data"]["count"] == 1

        approved = invoke_json(cli_runner, "advance", "approve", "APR-0001")
        assert approved["data"]["amount"] == 712.5
        assert approved["data"]["payment_status"] == "paid"

    def test_request_unknown_option(self, cli_runner: CliRunner) -> None:
        _client(cli_runner)
        cli_runner.invoke(cli, ["settings", "set", "--enable", "advance_payment_plan_enabled"])
        data = invoke_json(cli_runner, "advance", "request", "CLI-0001", "--months", "4", exit_code=1)
        assert data["error"]["code"] == "VALIDATION_FAILED"


@pytest.mark.usefixtures("_isolated_root")
class TestPlanCommands:
    def test_full_negotiation(self, cli_runner: CliRunner) -> None:
        _client(cli_runner)
        requested = invoke_json(cli_runner, "plan", "request", "CLI-0001")
        request_id = requested["data"]["id"]
        assert requested["data"]["status"] == "pending"

        status = invoke_json(cli_runner, "plan", "status", "CLI-0001")
        assert status["data"]["request"]["id"] == request_id

        suggested = invoke_json(cli_runner, "plan", "suggest", request_id)
        assert suggested["data"]["suggested_price"] == 250

        quoted = invoke_json(cli_runner, "plan", "quote", request_id, "--price", "230")
        assert quoted["data"]["proposed_price"] == 230

        accepted = invoke_json(cli_runner, "plan", "accept", request_id, "--fidelity", "6_months")
        assert accepted["data"]["scheduled_plan_change"]["new_price"] == 230

        paid = invoke_json(cli_runner, "pay", "CLI-0001")
        assert paid["data"]["plan_changed"] is True
        assert paid["data"]["plan"] == "vip"

    def test_cancel_scheduled_switch(self, cli_runner: CliRunner) -> None:
        _client(cli_runner)
        request_id = invoke_json(cli_runner, "plan", "request", "CLI-0001")["data"]["id"]
        invoke_json(cli_runner, "plan", "quote", request_id, "--price", "230")
        invoke_json(cli_runner, "plan", "accept", request_id)

        cancelled = invoke_json(cli_runner, "plan", "cancel", "CLI-0001")
        assert cancelled["data"]["cancelled"]["new_plan"] == "vip"

        again = invoke_json(cli_runner, "plan", "cancel", "CLI-0001", exit_code=1)
        assert again["error"]["code"] == "NOT_ELIGIBLE"
        assert invoke_json(cli_runner, "pay", "CLI-0001")["data"]["plan"] == "simple"

    def test_vip_cannot_request(self, cli_runner: CliRunner) -> None:
        _client(cli_runner, "--plan", "vip")
        data = invoke_json(cli_runner, "plan", "request", "CLI-0001", exit_code=1)
        assert data["error"]["code"] == "NOT_ELIGIBLE"

    def test_reject(self, cli_runner: CliRunner) -> None:
        _client(cli_runner)
        request_id = invoke_json(cli_runner, "plan", "request", "CLI-0001")["data"]["id"]
        data = invoke_json(cli_runner, "plan", "reject", request_id, "--notes", "not now")
        assert data["data"]["status"] == "rejected"


@pytest.mark.usefixtures("_isolated_root")
class TestReplenishCommands:
    def _low_stock(self, cli_runner: CliRunner) -> None:
        _client(cli_runner)
        cli_runner.invoke(cli, ["catalog", "product", "Cloro", "--price", "20", "--stock", "50"])
        cli_runner.invoke(cli, ["client", "stock", "CLI-0001", "--line", "PRD-0001:1:10"])

    def test_scan_propose_approve(self, cli_runner: CliRunner) -> None:
        self._low_stock(cli_runner)
        scanned = invoke_json(cli_runner, "replenish", "scan")
        assert scanned["data"]["count"] == 1
        quote_id = scanned["data"]["created"][0]["id"]

        assert invoke_json(cli_runner, "replenish", "propose", quote_id)["data"]["status"] == "sent"
        approved = invoke_json(cli_runner, "replenish", "approve", quote_id)
        assert approved["data"]["order_id"] == "ORD-0001"
        assert approved["data"]["total"] == 180

    def test_approve_before_propose(self, cli_runner: CliRunner) -> None:
        self._low_stock(cli_runner)
        quote_id = invoke_json(cli_runner, "replenish", "scan")["data"]["created"][0]["id"]
        data = invoke_json(cli_runner, "replenish", "approve", quote_id, exit_code=1)
        assert data["error"]["code"] == "INVALID_TRANSITION"

    def test_list_for_client(self, cli_runner: CliRunner) -> None:
        self._low_stock(cli_runner)
        cli_runner.invoke(cli, ["replenish", "scan"])
        result = cli_runner.invoke(cli, ["replenish", "list", "--client", "CLI-0001"])
        assert result.exit_code == 0
        assert "suggested" in result.output


@pytest.mark.usefixtures("_isolated_root")
class TestAutomationCommands:
    def test_run_then_skip(self, cli_runner: CliRunner) -> None:
        first = invoke_json(cli_runner, "automation", "run")
        assert first["data"]["price_changes"]["count"] == 0
        again = invoke_json(cli_runner, "automation", "run")
        assert again["data"]["replenishment"] == {"skipped": True}

    def test_session_after_run(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["automation", "run"])
        result = cli_runner.invoke(cli, ["automation", "session"])
        assert result.exit_code == 0
        # The price-change check is session scoped, so a fresh session runs it.
        assert "automation_run" in result.output

    def test_force(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["automation", "run"])
        forced = invoke_json(cli_runner, "automation", "run", "--force")
        assert forced["data"]["replenishment"]["count"] == 0
