"""Tests for PoolSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from poolctl.config.settings import PoolSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("POOLCTL_CONFIG", raising=False)
    monkeypatch.delenv("POOLCTL_AUTOMATION__PRICE_CHANGE_NOTICE_DAYS", raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = PoolSettings.from_cli(data_root=tmp_path)
        assert settings.data_root == tmp_path
        assert settings.json_output is False
        assert settings.automation.price_change_notice_days == 30
        assert settings.automation.fallback_restock_quantity == 5
        assert settings.advance.adoption_cap_percent == 10.0
        assert settings.advance.due_date_block_days == 15
        assert settings.db_path == tmp_path / ".poolctl" / "poolctl.db"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = PoolSettings.from_cli(data_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_sparse_override(self, tmp_path: Path) -> None:
        (tmp_path / "poolctl.toml").write_text("[automation]\nprice_change_notice_days = 45\n")
        settings = PoolSettings.from_cli(data_root=tmp_path)
        assert settings.automation.price_change_notice_days == 45
        assert settings.automation.low_stock_ratio == 0.3

    def test_data_root_from_config_location(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "poolctl.toml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = PoolSettings.from_cli()
        assert settings.data_root == tmp_path.resolve()
        assert settings.config_path == tmp_path.resolve() / "poolctl.toml"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "pool.toml"
        custom.parent.mkdir()
        custom.write_text("[advance]\nadoption_cap_percent = 25\n")
        settings = PoolSettings.from_cli(config_path=str(custom), data_root=tmp_path)
        assert settings.advance.adoption_cap_percent == 25
        assert settings.config_path == custom

    def test_relative_store_path(self, tmp_path: Path) -> None:
        (tmp_path / "poolctl.toml").write_text('[store]\npath = "data/pool.db"\n')
        settings = PoolSettings.from_cli(data_root=tmp_path)
        assert settings.db_path == tmp_path / "data" / "pool.db"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "poolctl.toml").write_text("[automation\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            PoolSettings.from_cli(data_root=tmp_path)


class TestPriority:
    def test_env_over_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "poolctl.toml").write_text("[automation]\nprice_change_notice_days = 45\n")
        monkeypatch.setenv("POOLCTL_AUTOMATION__PRICE_CHANGE_NOTICE_DAYS", "7")
        settings = PoolSettings.from_cli(data_root=tmp_path)
        assert settings.automation.price_change_notice_days == 7

    def test_cli_flags_over_toml(self, tmp_path: Path) -> None:
        (tmp_path / "poolctl.toml").write_text("quiet = true\n")
        settings = PoolSettings.from_cli(data_root=tmp_path, quiet=False, json_output=True)
        assert settings.quiet is False
        assert settings.json_output is True

    def test_explicit_config_path_missing(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException, match="Config file not found"):
            PoolSettings.from_cli(config_path=str(tmp_path / "nope.toml"), data_root=tmp_path)

    def test_unknown_keys_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "poolctl.toml").write_text("[garden]\nenabled = true\n")
        settings = PoolSettings.from_cli(data_root=tmp_path)
        assert settings.config_path is not None
        assert settings.automation.price_change_notice_days == 30
