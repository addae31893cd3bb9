"""Shared pytest fixtures and test helpers for poolctl tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from poolctl.config.settings import PoolSettings
from poolctl.infrastructure.database.engine import default_db_path, init_database
from poolctl.infrastructure.store import Store

START = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Engine:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(default_db_path(tmp_path))
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def settings(tmp_path: Path) -> PoolSettings:
    return PoolSettings.from_cli(data_root=tmp_path)


@pytest.fixture
def store(settings: PoolSettings) -> Store:
    """Store on a temp directory, closed after the test."""
    s = Store(settings)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test
    classes.
    """
    monkeypatch.delenv("POOLCTL_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def add_bank(store: Store, name: str = "Banco Azul", **kwargs: Any) -> dict[str, Any]:
    """Create a bank via CatalogService, asserting success."""
    from poolctl.services.catalog import CatalogService

    result = CatalogService(store).add_bank(name, **kwargs)
    assert result.ok, result.error
    return result.data


def add_product(store: Store, name: str, *, price: float, stock: int = 10) -> dict[str, Any]:
    """Create a catalog product via CatalogService, asserting success."""
    from poolctl.services.catalog import CatalogService

    result = CatalogService(store).add_product(name, price=price, stock=stock)
    assert result.ok, result.error
    return result.data


def add_client(
    store: Store,
    name: str,
    *,
    clock: FrozenClock | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """Create a client via ClientService, asserting success."""
    from poolctl.services.clients import ClientService

    result = ClientService(store, clock=clock).add(name, **kwargs)
    assert result.ok, result.error
    return result.data


def get_client(store: Store, client_id: str) -> Any:
    """Read the stored Client record."""
    with store.read() as txn:
        client = txn.get_client(client_id)
    assert client is not None
    return client


def set_tiers(store: Store, *tiers: tuple[float, float, float], **fees: float) -> None:
    """Overwrite the live pricing directly (no price change scheduling)."""
    from poolctl.domain.pricing import PricingSettings, VolumeTier

    pricing = PricingSettings(
        volume_tiers=[VolumeTier(min=lo, max=hi, price=p) for lo, hi, p in tiers],
        **fees,
    )
    with store.transaction() as txn:
        current = txn.get_settings()
        txn.save_settings(current.model_copy(update={"pricing": pricing}), START)


def enable_features(store: Store, **flags: bool) -> None:
    """Flip feature flags directly in the settings document."""
    with store.transaction() as txn:
        current = txn.get_settings()
        features = current.features.model_copy(update=flags)
        txn.save_settings(current.model_copy(update={"features": features}), START)


def invoke_json(runner: CliRunner, *args: str, exit_code: int = 0) -> dict[str, Any]:
    """Run ``poolctl --json ARGS`` and parse the printed ServiceResult."""
    import json

    from poolctl.cli import cli

    result = runner.invoke(cli, ["--json", *args])
    assert result.exit_code == exit_code, result.output
    return json.loads(result.output)
