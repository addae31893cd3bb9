"""Commands: fee lookup, payment settlement and ledger history."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolCommand
from poolctl.services.fees import FeeService
from poolctl.services.settlement import SettlementService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext


@click.command(cls=PoolCommand, examples="  poolctl fee CLI-0001\n  poolctl --json fee CLI-0001")
@click.argument("client_id")
@click.pass_obj
def fee(app: AppContext, client_id: str) -> None:
    """Show a client's monthly fee."""
    app.emit(FeeService(app.store).fee(client_id))


@click.command(
    cls=PoolCommand,
    examples="""\
  poolctl pay CLI-0001
  poolctl pay CLI-0001 --months 3 --amount 700""",
)
@click.argument("client_id")
@click.option("--months", type=click.IntRange(min=1), default=1, help="Periods paid.")
@click.option("--amount", type=float, default=None, help="Amount received (default: fee x months).")
@click.pass_obj
def pay(app: AppContext, client_id: str, months: int, amount: float | None) -> None:
    """Mark a client as paid, advancing the due date."""
    app.act_as("admin", client_id=client_id)
    app.emit(SettlementService(app.store).mark_as_paid(client_id, months=months, amount=amount))


@click.command(cls=PoolCommand)
@click.argument("client_id")
@click.pass_obj
def history(app: AppContext, client_id: str) -> None:
    """List a client's ledger entries."""
    app.emit(SettlementService(app.store).history(client_id))
