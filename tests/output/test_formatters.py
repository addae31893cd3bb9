"""Tests for output formatting of ServiceResult."""

from __future__ import annotations

import json

from poolctl.output.formatters import OutputSettings, format_result
from poolctl.output.renderers import render_quiet, render_result
from poolctl.services.result import NOT_ELIGIBLE, ServiceError, ServiceResult


def _list_result() -> ServiceResult:
    return ServiceResult(
        ok=True,
        op="list_clients",
        data={
            "count": 2,
            "items": [
                {"id": "CLI-0001", "name": "Ana", "plan": "simple", "monthly_fee": 250},
                {"id": "CLI-0002", "name": "Bia", "plan": "vip", "monthly_fee": 135},
            ],
        },
    )


def _error_result() -> ServiceResult:
    return ServiceResult(
        ok=False,
        op="request_advance",
        error=ServiceError(
            code=NOT_ELIGIBLE,
            message="Due date is too close",
            detail={"days_left": 3},
        ),
    )


class TestJson:
    def test_round_trips_model(self) -> None:
        output = format_result(_list_result(), settings=OutputSettings(json_output=True))
        parsed = json.loads(output)
        assert parsed["ok"] is True
        assert parsed["data"]["items"][1]["id"] == "CLI-0002"

    def test_json_wins_over_quiet(self) -> None:
        output = format_result(
            _error_result(), settings=OutputSettings(json_output=True, quiet=True)
        )
        assert json.loads(output)["error"]["code"] == "NOT_ELIGIBLE"


class TestQuiet:
    def test_list_ids(self) -> None:
        assert render_quiet(_list_result()) == "CLI-0001\nCLI-0002"

    def test_single_id(self) -> None:
        result = ServiceResult(ok=True, op="add_bank", data={"id": "BNK-0001", "name": "Azul"})
        assert render_quiet(result) == "BNK-0001"

    def test_status_line(self) -> None:
        assert render_quiet(ServiceResult(ok=True, op="save_settings")) == "OK: save_settings"

    def test_error(self) -> None:
        assert render_quiet(_error_result()) == "ERROR: request_advance: Due date is too close"


class TestRich:
    def test_ok_generic(self) -> None:
        result = ServiceResult(
            ok=True,
            op="mark_as_paid",
            data={"client_id": "CLI-0001", "amount": 250, "due_date": "2026-05-10"},
            warnings=["fee recalculated"],
        )
        output = render_result(result)
        assert output.startswith("OK")
        assert "mark_as_paid" in output.splitlines()[0]
        assert "amount: 250.00" in output
        assert "warning: fee recalculated" in output

    def test_error_with_code(self) -> None:
        output = format_result(_error_result())
        assert "ERROR" in output
        assert "[NOT_ELIGIBLE]" in output
        assert "Due date is too close" in output
        assert "days_left" not in output

    def test_error_detail_when_verbose(self) -> None:
        output = format_result(_error_result(), settings=OutputSettings(verbose=True))
        assert "days_left: 3" in output

    def test_list_table(self) -> None:
        output = render_result(_list_result())
        assert "CLI-0002" in output
        assert "135.00" in output
        assert "2 items" in output

    def test_empty_list(self) -> None:
        result = ServiceResult(ok=True, op="list_banks", data={"count": 0, "items": []})
        assert render_result(result) == "No items"

    def test_telemetry_meta_when_verbose(self) -> None:
        result = ServiceResult(
            ok=True,
            op="fee",
            data={"fee": 250},
            meta={"telemetry": {"name": "FeeService.fee", "duration_ms": 1.5}},
        )
        assert "FeeService.fee" in render_result(result, verbose=True)
        assert "FeeService.fee" not in render_result(result)
