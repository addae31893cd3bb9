"""Command group: business settings and pricing changes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.domain.settings import FeatureFlagsUpdate, SettingsUpdate
from poolctl.services.price_change import PriceChangeService
from poolctl.services.settings import SettingsService

if TYPE_CHECKING:
    from collections.abc import Callable

    from poolctl.commands._context import AppContext

_SETTINGS_EXAMPLES = """\
  poolctl settings show
  poolctl settings set-pricing --tier 0:20000:150 --tier 20001:50000:300
  poolctl settings preview --per-km 2
  poolctl settings set --threshold 3 --enable advance_payment_plan_enabled
  poolctl settings pending
  poolctl settings apply PPC-0001"""

_FLAGS = tuple(FeatureFlagsUpdate.model_fields)


def _parse_tiers(
    _ctx: click.Context, _param: click.Parameter, values: tuple[str, ...]
) -> list[tuple[float, float, float]]:
    """``MIN:MAX:PRICE`` -> tier tuple."""
    tiers: list[tuple[float, float, float]] = []
    for raw in values:
        parts = raw.split(":")
        if len(parts) != 3:
            raise click.BadParameter(f"{raw!r} is not MIN:MAX:PRICE")
        try:
            lo, hi, price = (float(p) for p in parts)
        except ValueError as exc:
            raise click.BadParameter(f"{raw!r}: {exc}") from exc
        tiers.append((lo, hi, price))
    return tiers


def _pricing_options(func: Callable[..., None]) -> Callable[..., None]:
    options = [
        click.option(
            "--tier",
            "tiers",
            multiple=True,
            callback=_parse_tiers,
            help="MIN:MAX:PRICE, repeatable. Replaces all tiers.",
        ),
        click.option("--well-water-fee", type=click.FloatRange(min=0), default=None),
        click.option("--products-fee", type=click.FloatRange(min=0), default=None),
        click.option("--party-pool-fee", type=click.FloatRange(min=0), default=None),
        click.option("--per-km", type=click.FloatRange(min=0), default=None),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(cls=PoolGroup, examples=_SETTINGS_EXAMPLES)
@click.pass_obj
def settings(app: AppContext) -> None:
    """Business settings, pricing and scheduled price changes."""
    app.act_as("admin")


@settings.command()
@click.pass_obj
def show(app: AppContext) -> None:
    """Show the live business settings."""
    app.emit(SettingsService(app.store).show())


@settings.command(name="set-pricing")
@_pricing_options
@click.pass_obj
def set_pricing(
    app: AppContext,
    tiers: list[tuple[float, float, float]],
    **fees: float | None,
) -> None:
    """Schedule a pricing change (applies after the notice period)."""
    app.emit(SettingsService(app.store).set_pricing(tiers=tiers or None, **fees))


@settings.command()
@_pricing_options
@click.pass_obj
def preview(
    app: AppContext,
    tiers: list[tuple[float, float, float]],
    **fees: float | None,
) -> None:
    """Show which clients a pricing change would affect."""
    app.emit(SettingsService(app.store).preview_pricing(tiers=tiers or None, **fees))


@settings.command(name="set")
@click.option("--company-name", default=None)
@click.option("--pix-key", default=None)
@click.option("--threshold", type=click.FloatRange(min=0), default=None, help="Low-stock level.")
@click.option("--enable", multiple=True, type=click.Choice(_FLAGS), help="Turn a feature on.")
@click.option("--disable", multiple=True, type=click.Choice(_FLAGS), help="Turn a feature off.")
@click.pass_obj
def set_cmd(
    app: AppContext,
    company_name: str | None,
    pix_key: str | None,
    threshold: float | None,
    enable: tuple[str, ...],
    disable: tuple[str, ...],
) -> None:
    """Edit settings other than pricing."""
    flags = {name: True for name in enable} | {name: False for name in disable}
    update = SettingsUpdate(
        company_name=company_name,
        pix_key=pix_key,
        replenishment_stock_threshold=threshold,
        features=FeatureFlagsUpdate(**flags) if flags else None,
    )
    app.emit(SettingsService(app.store).save(update))


@settings.command()
@click.pass_obj
def pending(app: AppContext) -> None:
    """List pending price changes."""
    app.emit(PriceChangeService(app.store).pending())


@settings.command()
@click.argument("change_id")
@click.pass_obj
def apply(app: AppContext, change_id: str) -> None:
    """Apply a due price change now (no-op when already applied)."""
    app.emit(PriceChangeService(app.store).apply(change_id))


@settings.command()
@click.argument("client_id")
@click.pass_obj
def notice(app: AppContext, client_id: str) -> None:
    """Show the pending price change notice for a client, if any."""
    app.emit(PriceChangeService(app.store).notice_for_client(client_id))
