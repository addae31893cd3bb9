"""Command group: pre-budgets from prospective clients."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.budget import BudgetService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_BUDGET_EXAMPLES = """\
  poolctl budget submit "Carla Dias" --width 4 --length 8 --depth 1,4 --email carla@example.com
  poolctl budget approve BQ-0001 --distance 7.5
  poolctl budget reject BQ-0002"""


@click.group(cls=PoolGroup, examples=_BUDGET_EXAMPLES)
def budget() -> None:
    """Submit and decide pre-budgets."""


@budget.command()
@click.argument("name")
@click.option("--width", required=True, help="Metres; comma decimals accepted.")
@click.option("--length", required=True, help="Metres; comma decimals accepted.")
@click.option("--depth", required=True, help="Metres; comma decimals accepted.")
@click.option("--email", default="")
@click.option("--phone", default="")
@click.option("--well-water", is_flag=True)
@click.option("--party-pool", is_flag=True)
@click.option("--distance", type=click.FloatRange(min=0), default=0.0, help="Km from HQ.")
@click.option("--plan", type=click.Choice(["simple", "vip"]), default="simple")
@click.option("--fidelity", "fidelity_plan_id", default=None, help="Fidelity plan id.")
@click.pass_obj
def submit(
    app: AppContext,
    name: str,
    width: str,
    length: str,
    depth: str,
    email: str,
    phone: str,
    well_water: bool,
    party_pool: bool,
    distance: float,
    plan: str,
    fidelity_plan_id: str | None,
) -> None:
    """Submit a pre-budget; prints the computed volume and monthly fee."""
    app.act_as("prospect")
    app.emit(
        BudgetService(app.store).submit(
            name,
            width=width,
            length=length,
            depth=depth,
            email=email,
            phone=phone,
            has_well_water=well_water,
            is_party_pool=party_pool,
            distance_from_hq=distance,
            plan=plan,
            fidelity_plan_id=fidelity_plan_id,
        )
    )


@budget.command()
@click.argument("budget_id")
@click.option("--distance", type=click.FloatRange(min=0), default=None, help="Override km from HQ.")
@click.pass_obj
def approve(app: AppContext, budget_id: str, distance: float | None) -> None:
    """Approve a pre-budget, creating the client."""
    app.act_as("admin")
    app.emit(BudgetService(app.store).approve(budget_id, distance_from_hq=distance))


@budget.command()
@click.argument("budget_id")
@click.pass_obj
def reject(app: AppContext, budget_id: str) -> None:
    """Reject a pre-budget."""
    app.act_as("admin")
    app.emit(BudgetService(app.store).reject(budget_id))
