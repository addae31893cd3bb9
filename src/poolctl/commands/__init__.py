"""Subcommand modules for poolctl.

:func:`register_commands` imports each module on registration so the
root group stays the only import-time cost of ``poolctl --help``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every command group and standalone command to *cli*."""
    # --- Groups ---
    from poolctl.commands.advance import advance
    from poolctl.commands.automation import automation
    from poolctl.commands.budget import budget
    from poolctl.commands.catalog import catalog
    from poolctl.commands.client import client
    from poolctl.commands.plan import plan
    from poolctl.commands.replenish import replenish
    from poolctl.commands.settings import settings

    cli.add_command(client)
    cli.add_command(catalog)
    cli.add_command(budget)
    cli.add_command(settings)
    cli.add_command(advance)
    cli.add_command(plan)
    cli.add_command(replenish)
    cli.add_command(automation)

    # --- Standalone commands ---
    from poolctl.commands.billing import fee, history, pay

    cli.add_command(fee)
    cli.add_command(pay)
    cli.add_command(history)
