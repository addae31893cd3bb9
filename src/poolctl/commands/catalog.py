"""Command group: store catalog (products and banks)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.catalog import CatalogService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_CATALOG_EXAMPLES = """\
  poolctl catalog product "Chlorine 10kg" --price 120 --stock 30
  poolctl catalog bank "Banco do Brasil" --pix-key pix@example.com
  poolctl catalog products
  poolctl catalog banks"""


@click.group(cls=PoolGroup, examples=_CATALOG_EXAMPLES)
@click.pass_obj
def catalog(app: AppContext) -> None:
    """Manage store products and banks."""
    app.act_as("admin")


@catalog.command()
@click.argument("name")
@click.option("--price", type=float, required=True, help="Unit price.")
@click.option("--stock", type=click.IntRange(min=0), default=0, help="Units in the warehouse.")
@click.option("--description", default="", help="Short description.")
@click.pass_obj
def product(app: AppContext, name: str, price: float, stock: int, description: str) -> None:
    """Add a product to the catalog."""
    app.emit(
        CatalogService(app.store).add_product(
            name, price=price, stock=stock, description=description
        )
    )


@catalog.command()
@click.pass_obj
def products(app: AppContext) -> None:
    """List catalog products."""
    app.emit(CatalogService(app.store).list_products())


@catalog.command()
@click.argument("name")
@click.option("--pix-key", default=None, help="PIX key of the account.")
@click.pass_obj
def bank(app: AppContext, name: str, pix_key: str | None) -> None:
    """Add a receiving bank."""
    app.emit(CatalogService(app.store).add_bank(name, pix_key=pix_key))


@catalog.command()
@click.pass_obj
def banks(app: AppContext) -> None:
    """List banks."""
    app.emit(CatalogService(app.store).list_banks())
