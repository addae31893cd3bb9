"""Command group: plan upgrade negotiation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.plan_change import PlanChangeService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_PLAN_EXAMPLES = """\
  poolctl plan request CLI-0001
  poolctl plan suggest PCR-0001
  poolctl plan quote PCR-0001 --price 240 --notes "Includes weekly visits"
  poolctl plan accept PCR-0001 --fidelity 6_months
  poolctl plan reject PCR-0002
  poolctl plan cancel CLI-0001"""


@click.group(cls=PoolGroup, examples=_PLAN_EXAMPLES)
def plan() -> None:
    """Simple to VIP upgrades."""


@plan.command()
@click.argument("client_id")
@click.pass_obj
def request(app: AppContext, client_id: str) -> None:
    """Client asks for the VIP plan."""
    app.act_as("client", client_id=client_id)
    app.emit(PlanChangeService(app.store).request(client_id))


@plan.command()
@click.argument("client_id")
@click.pass_obj
def status(app: AppContext, client_id: str) -> None:
    """Most recent open request for a client."""
    app.emit(PlanChangeService(app.store).latest_open(client_id))


@plan.command()
@click.argument("request_id")
@click.pass_obj
def suggest(app: AppContext, request_id: str) -> None:
    """VIP price the quote would default to."""
    app.emit(PlanChangeService(app.store).suggest_price(request_id))


@plan.command()
@click.argument("request_id")
@click.option("--price", type=float, default=None, help="Monthly price (default: suggested).")
@click.option("--notes", default=None)
@click.pass_obj
def quote(app: AppContext, request_id: str, price: float | None, notes: str | None) -> None:
    """Price a pending request."""
    app.act_as("admin")
    app.emit(PlanChangeService(app.store).quote(request_id, proposed_price=price, notes=notes))


@plan.command()
@click.argument("request_id")
@click.option("--fidelity", "fidelity_plan_id", default=None, help="Fidelity plan id.")
@click.pass_obj
def accept(app: AppContext, request_id: str, fidelity_plan_id: str | None) -> None:
    """Accept a quote; the plan switches on the next payment."""
    app.act_as("client")
    app.emit(PlanChangeService(app.store).accept(request_id, fidelity_plan_id=fidelity_plan_id))


@plan.command()
@click.argument("request_id")
@click.option("--notes", default=None)
@click.pass_obj
def reject(app: AppContext, request_id: str, notes: str | None) -> None:
    """Decline a request (admin) or a quote (client)."""
    app.emit(PlanChangeService(app.store).reject(request_id, notes=notes))


@plan.command()
@click.argument("client_id")
@click.pass_obj
def cancel(app: AppContext, client_id: str) -> None:
    """Drop an accepted upgrade that has not been paid for yet."""
    app.act_as("admin")
    app.emit(PlanChangeService(app.store).cancel_scheduled(client_id))
