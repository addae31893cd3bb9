"""Command group: advance payment negotiation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.advance import AdvancePaymentService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_ADVANCE_EXAMPLES = """\
  poolctl advance status
  poolctl advance status CLI-0001
  poolctl advance request CLI-0001 --months 6
  poolctl advance approve APR-0001
  poolctl advance reject APR-0002"""


@click.group(cls=PoolGroup, examples=_ADVANCE_EXAMPLES)
def advance() -> None:
    """Prepay several months at a discount."""


@advance.command()
@click.argument("client_id", required=False)
@click.pass_obj
def status(app: AppContext, client_id: str | None) -> None:
    """Adoption report, or a client's eligibility and options."""
    service = AdvancePaymentService(app.store)
    app.emit(service.eligibility(client_id) if client_id else service.availability())


@advance.command()
@click.argument("client_id")
@click.option("--months", type=int, required=True, help="Option to take (months prepaid).")
@click.pass_obj
def request(app: AppContext, client_id: str, months: int) -> None:
    """Request an advance payment for a client."""
    app.act_as("client", client_id=client_id)
    app.emit(AdvancePaymentService(app.store).request(client_id, months))


@advance.command(name="list")
@click.option("--status", "status_filter", default=None, help="Only requests in this status.")
@click.pass_obj
def list_cmd(app: AppContext, status_filter: str | None) -> None:
    """List advance requests, newest first."""
    app.emit(AdvancePaymentService(app.store).list_requests(status=status_filter))


@advance.command()
@click.argument("request_id")
@click.pass_obj
def approve(app: AppContext, request_id: str) -> None:
    """Approve a request: records the payment and extends the due date."""
    app.act_as("admin")
    app.emit(AdvancePaymentService(app.store).approve(request_id))


@advance.command()
@click.argument("request_id")
@click.pass_obj
def reject(app: AppContext, request_id: str) -> None:
    """Reject a request."""
    app.act_as("admin")
    app.emit(AdvancePaymentService(app.store).reject(request_id))
