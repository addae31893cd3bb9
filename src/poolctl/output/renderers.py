"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`;
unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from poolctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from poolctl.services.result import ServiceResult

Renderer = Callable[["ServiceResult", "Console"], None]

_MONEY_KEYS = frozenset(
    {
        "fee",
        "monthly_fee",
        "amount",
        "total",
        "original_amount",
        "final_amount",
        "proposed_price",
        "suggested_price",
        "scheduled_price",
        "old_fee",
        "new_fee",
    }
)


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if result.ok:
        _OP_RENDERERS.get(result.op, _render_generic)(result, console)
    else:
        _render_error(result, console, verbose=verbose)
    if verbose and result.meta:
        _render_meta(console, result.meta)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """IDs for list results, a one-line status otherwise."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    items = result.data.get("items")
    if isinstance(items, list) and items:
        return "\n".join(str(i.get("id", "")) for i in items if isinstance(i, dict))
    if "id" in result.data:
        return str(result.data["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _value_text(key: str, value: Any) -> Text:
    if isinstance(value, (dict, list)):
        return Text(json.dumps(value, separators=(",", ":"), default=str))
    if key == "id" or key.endswith("_id"):
        return Text(str(value), style="pool.id")
    if key in _MONEY_KEYS and isinstance(value, (int, float)):
        return Text(f"{value:.2f}", style="pool.money")
    if key.endswith("status"):
        return Text(str(value), style=style_for_status(str(value)))
    return Text(str(value))


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="pool.ok"), Text(f"  {result.op}", style="pool.op"))


def _field(console: Console, key: str, value: Any) -> None:
    console.print(Text(f"  {key}: ", style="pool.key"), _value_text(key, value), sep="")


def _render_meta(console: Console, meta: dict[str, Any]) -> None:
    console.print(Text("  meta:", style="dim"))
    for key, value in meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(f"    {key}: {value}")


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    line = f"{' ' * indent}[{style}]{duration:>8.2f}ms[/{style}]  {span.get('name', '?')}"
    counts = span.get("counts")
    if counts:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in counts.items()) + ")"
    console.print(line)
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


def _table(items: list[dict[str, Any]], columns: list[str]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for col in columns:
        justify = "right" if col in _MONEY_KEYS else "left"
        table.add_column(col.replace("_", " ").title(), justify=justify, no_wrap=col == "id")
    for item in items:
        table.add_row(*(_value_text(col, item.get(col, "")) for col in columns))
    return table


# ── Renderers ─────────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="pool.error"),
        Text(f"  {result.op}{code}", style="pool.op"),
        f": {msg}",
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")


def _render_generic(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    for warning in result.warnings:
        console.print(Text(f"  warning: {warning}", style="pool.warning"))


def _list_renderer(columns: list[str]) -> Renderer:
    def render(result: ServiceResult, console: Console) -> None:
        items = result.data.get("items", [])
        if not items:
            console.print("No items")
            return
        console.print(_table(items, columns))
        console.print(f"\n{result.data.get('count', len(items))} items")

    return render


def _render_automation(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    _field(console, "date", result.data.get("date", ""))
    prices = result.data.get("price_changes", {})
    quotes = result.data.get("replenishment", {})
    if prices.get("skipped"):
        _field(console, "price_changes", "already checked")
    else:
        _field(console, "price_changes_applied", prices.get("count", 0))
    if quotes.get("skipped"):
        _field(console, "replenishment", "already scanned today")
    else:
        _field(console, "quotes_created", quotes.get("count", 0))
        created = quotes.get("created", [])
        if created:
            console.print(_table(created, ["id", "client_id", "client_name", "total"]))
    for warning in result.warnings:
        console.print(Text(f"  warning: {warning}", style="pool.warning"))


def _render_scan(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    _field(console, "quotes_created", result.data.get("count", 0))
    created = result.data.get("created", [])
    if created:
        console.print(_table(created, ["id", "client_id", "client_name", "total"]))
    for warning in result.warnings:
        console.print(Text(f"  warning: {warning}", style="pool.warning"))


def _render_eligibility(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key in ("client_id", "eligible", "reason", "monthly_fee", "pending_request"):
        if result.data.get(key) is not None:
            _field(console, key, result.data[key])
    options = result.data.get("options", [])
    if options:
        console.print(
            _table(options, ["months", "discount_percent", "original_amount", "final_amount"])
        )


_OP_RENDERERS: dict[str, Renderer] = {
    "list_clients": _list_renderer(
        ["id", "name", "plan", "status", "payment_status", "due_date", "monthly_fee"]
    ),
    "list_products": _list_renderer(["id", "name", "price", "stock"]),
    "list_banks": _list_renderer(["id", "name", "pix_key"]),
    "list_quotes": _list_renderer(["id", "client_id", "client_name", "status", "total"]),
    "list_advance_requests": _list_renderer(
        ["id", "client_id", "months", "final_amount", "status"]
    ),
    "pending_price_changes": _list_renderer(["id", "effective_date", "status"]),
    "payment_history": _list_renderer(["id", "date", "bank_name", "amount"]),
    "replenishment_scan": _render_scan,
    "automation_run": _render_automation,
    "advance_eligibility": _render_eligibility,
}
