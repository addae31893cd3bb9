"""Command group: client records, stock and bank association."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.clients import ClientService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_CLIENT_EXAMPLES = """\
  poolctl client add "Ana Souza" --volume 25000 --well-water --distance 12
  poolctl client add "Bruno Lima" --volume 40000 --plan vip --fidelity 6_months
  poolctl client show CLI-0001
  poolctl client stock CLI-0001 --line PRD-0001:1:10 --line PRD-0002:4
  poolctl client bank CLI-0001 BNK-0001"""


def _parse_stock_line(
    _ctx: click.Context, _param: click.Parameter, values: tuple[str, ...]
) -> list[dict[str, object]]:
    """``PRODUCT:QTY[:MAX]`` -> stock line mapping."""
    lines: list[dict[str, object]] = []
    for raw in values:
        parts = raw.split(":")
        if len(parts) not in (2, 3):
            raise click.BadParameter(f"{raw!r} is not PRODUCT:QTY[:MAX]")
        try:
            line: dict[str, object] = {"product_id": parts[0], "quantity": float(parts[1])}
            if len(parts) == 3:
                line["max_quantity"] = float(parts[2])
        except ValueError as exc:
            raise click.BadParameter(f"{raw!r}: {exc}") from exc
        lines.append(line)
    return lines


@click.group(cls=PoolGroup, examples=_CLIENT_EXAMPLES)
@click.pass_obj
def client(app: AppContext) -> None:
    """Manage clients."""
    app.act_as("admin")


@client.command()
@click.argument("name")
@click.option("--email", default="", help="Contact e-mail.")
@click.option("--volume", type=click.FloatRange(min=0), default=0.0, help="Pool volume in litres.")
@click.option("--well-water", is_flag=True, help="Pool is filled from a well.")
@click.option("--products", "include_products", is_flag=True, help="Fee includes products.")
@click.option("--party-pool", is_flag=True, help="Pool used for events.")
@click.option("--distance", type=click.FloatRange(min=0), default=0.0, help="Km from HQ.")
@click.option("--plan", type=click.Choice(["simple", "vip"]), default="simple")
@click.option("--fidelity", "fidelity_plan_id", default=None, help="Fidelity plan id.")
@click.option("--bank", "bank_id", default=None, help="Bank id for payments.")
@click.pass_obj
def add(
    app: AppContext,
    name: str,
    email: str,
    volume: float,
    well_water: bool,
    include_products: bool,
    party_pool: bool,
    distance: float,
    plan: str,
    fidelity_plan_id: str | None,
    bank_id: str | None,
) -> None:
    """Register a new active client."""
    app.emit(
        ClientService(app.store).add(
            name,
            email=email,
            pool_volume=volume,
            has_well_water=well_water,
            include_products=include_products,
            is_party_pool=party_pool,
            distance_from_hq=distance,
            plan=plan,
            fidelity_plan_id=fidelity_plan_id,
            bank_id=bank_id,
        )
    )


@client.command()
@click.argument("client_id")
@click.pass_obj
def show(app: AppContext, client_id: str) -> None:
    """Show a client with its current monthly fee."""
    app.emit(ClientService(app.store).show(client_id))


@client.command(name="list")
@click.option("--active", "active_only", is_flag=True, help="Only active clients.")
@click.pass_obj
def list_cmd(app: AppContext, active_only: bool) -> None:
    """List clients."""
    app.emit(ClientService(app.store).list_clients(active_only=active_only))


@client.command()
@click.argument("client_id")
@click.option(
    "--line",
    "lines",
    multiple=True,
    callback=_parse_stock_line,
    help="PRODUCT:QTY[:MAX], repeatable. Replaces all lines.",
)
@click.pass_obj
def stock(app: AppContext, client_id: str, lines: list[dict[str, object]]) -> None:
    """Record the stock found at a client's pool (technician visit)."""
    app.act_as("technician", client_id=client_id)
    app.emit(ClientService(app.store).update_stock(client_id, lines))


@client.command()
@click.argument("client_id")
@click.argument("bank_id")
@click.pass_obj
def bank(app: AppContext, client_id: str, bank_id: str) -> None:
    """Associate the bank a client's payments are booked against."""
    app.emit(ClientService(app.store).set_bank(client_id, bank_id))
