"""Command group: replenishment quotes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.replenishment import ReplenishmentService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_REPLENISH_EXAMPLES = """\
  poolctl replenish scan
  poolctl replenish list --client CLI-0001
  poolctl replenish propose RQ-0001
  poolctl replenish approve RQ-0001"""


@click.group(cls=PoolGroup, examples=_REPLENISH_EXAMPLES)
def replenish() -> None:
    """Low-stock quotes and their negotiation."""


@replenish.command()
@click.pass_obj
def scan(app: AppContext) -> None:
    """Scan now, ignoring the once-per-day marker."""
    app.act_as("admin")
    app.emit(ReplenishmentService(app.store).scan())


@replenish.command(name="list")
@click.option("--client", "client_id", default=None, help="Only quotes for this client.")
@click.pass_obj
def list_cmd(app: AppContext, client_id: str | None) -> None:
    """List quotes."""
    app.emit(ReplenishmentService(app.store).list_quotes(client_id=client_id))


@replenish.command()
@click.argument("quote_id")
@click.pass_obj
def propose(app: AppContext, quote_id: str) -> None:
    """Send a suggested quote to the client."""
    app.act_as("admin")
    app.emit(ReplenishmentService(app.store).propose(quote_id))


@replenish.command()
@click.argument("quote_id")
@click.pass_obj
def approve(app: AppContext, quote_id: str) -> None:
    """Client approves a sent quote; an order is created."""
    app.act_as("client")
    app.emit(ReplenishmentService(app.store).approve(quote_id))


@replenish.command()
@click.argument("quote_id")
@click.pass_obj
def reject(app: AppContext, quote_id: str) -> None:
    """Client rejects a sent quote."""
    app.act_as("client")
    app.emit(ReplenishmentService(app.store).reject(quote_id))
