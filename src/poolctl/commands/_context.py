"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Opens the store lazily and routes results to
stdout/stderr with the right exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from poolctl.config.logging import bind_actor, configure_logging
from poolctl.output.formatters import OutputSettings, format_result
from poolctl.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from poolctl.config.settings import PoolSettings
    from poolctl.infrastructure.store import Store
    from poolctl.services.result import ServiceResult


class AppContext:
    """State shared by every command of one CLI invocation.

    The store opens on first use, so ``--help`` and ``--version`` never
    touch the database.
    """

    def __init__(self, settings: PoolSettings) -> None:
        self.settings = settings
        self._store: Store | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    @property
    def store(self) -> Store:
        if self._store is None:
            from poolctl.infrastructure.store import Store

            self._store = Store(self.settings)
        return self._store

    def act_as(self, role: str, **context: str) -> None:
        """Tag log lines of this invocation with the acting role."""
        bind_actor(role, **context)

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None

    def emit(self, result: ServiceResult) -> None:
        """Print a ServiceResult; exit 1 on failure.

        Success goes to stdout with warnings on stderr (JSON output already
        carries them). Failures go to stderr.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
