"""Command group: once-per-day automation passes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.commands._base import PoolGroup
from poolctl.services.automation import AdminSession, AutomationService

if TYPE_CHECKING:
    from poolctl.commands._context import AppContext

_AUTOMATION_EXAMPLES = """\
  poolctl automation run
  poolctl automation run --force
  poolctl automation session"""


@click.group(cls=PoolGroup, examples=_AUTOMATION_EXAMPLES)
@click.pass_obj
def automation(app: AppContext) -> None:
    """Price-change application and replenishment scan."""
    app.act_as("admin")


@automation.command()
@click.option("--force", is_flag=True, help="Run even if today's passes already ran.")
@click.pass_obj
def run(app: AppContext, force: bool) -> None:
    """Run the passes that have not run today."""
    app.emit(AutomationService(app.store).run(force=force))


@automation.command()
@click.pass_obj
def session(app: AppContext) -> None:
    """Open an admin session: load every snapshot and let automation trigger."""
    with AdminSession(app.store) as admin:
        results = list(admin.results)
    if results:
        for result in results:
            app.emit(result)
    else:
        click.echo("Automation already ran today; nothing to do.")
