"""PoolSettings: the resolved runtime configuration.

Sources, strongest first: keyword arguments (CLI flags), ``POOLCTL_*``
environment variables (``__`` separates nested keys, e.g.
``POOLCTL_AUTOMATION__PRICE_CHANGE_NOTICE_DAYS``), the ``poolctl.toml``
file, then the defaults of the section models.
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from poolctl.config.discovery import find_config, read_config
from poolctl.config.models import AdvanceConfig, AutomationConfig, StoreConfig
from poolctl.infrastructure.database.engine import default_db_path

# TOML file read by the settings source for the construction in progress.
_active_toml: ContextVar[Path | None] = ContextVar("_active_toml", default=None)


class TomlFileSource(PydanticBaseSettingsSource):
    """Top-level keys and ``[section]`` tables of one TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._values = read_config(path) if path is not None else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, field_name in self._values

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._values.items() if k in self.settings_cls.model_fields}


class PoolSettings(BaseSettings):
    """Everything one poolctl process needs to know before opening the store.

    Attributes:
        data_root: Directory that holds ``.poolctl/``. Defaults to the
            directory of the config file in effect, else the cwd.
        config_path: The TOML file that was read, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "POOLCTL_",
        "env_nested_delimiter": "__",
    }

    data_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # output and logging switches (CLI only in practice)
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    store: StoreConfig = Field(default_factory=StoreConfig)
    automation: AutomationConfig = Field(default_factory=AutomationConfig)
    advance: AdvanceConfig = Field(default_factory=AdvanceConfig)

    @property
    def db_path(self) -> Path:
        """SQLite file of the store; a relative ``[store] path`` hangs off *data_root*."""
        configured = self.store.path
        if configured is None:
            return default_db_path(self.data_root)
        return configured if configured.is_absolute() else self.data_root / configured

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, TomlFileSource(settings_cls, _active_toml.get())

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        data_root: Path | None = None,
        **overrides: Any,
    ) -> PoolSettings:
        """Resolve the config file and data root, then build the settings.

        An explicit *config_path* must exist; without one the file is
        discovered by walking up from *data_root* (or the cwd).
        """
        if config_path:
            toml_path: Path | None = Path(config_path)
            if not toml_path.is_file():
                msg = f"Config file not found: {config_path}"
                raise click.ClickException(msg)
        else:
            toml_path = find_config(data_root)

        if data_root is None:
            data_root = toml_path.parent if toml_path is not None else Path.cwd()

        token = _active_toml.set(toml_path)
        try:
            return cls(data_root=data_root, config_path=toml_path, **overrides)
        finally:
            _active_toml.reset(token)
