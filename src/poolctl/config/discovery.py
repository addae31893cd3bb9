"""Locating and reading ``poolctl.toml``.

The file is looked up like git looks up ``.git/``: from the starting
directory towards the filesystem root, first match wins. ``POOLCTL_CONFIG``
short-circuits the search.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

import click

CONFIG_FILENAME = "poolctl.toml"
CONFIG_ENV_VAR = "POOLCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Nearest ``poolctl.toml`` at or above *start* (default: cwd).

    When ``POOLCTL_CONFIG`` is set it is the only candidate; a missing
    file there means no config rather than a fallback search.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_config(path: Path) -> dict[str, Any]:
    """Parse *path*; malformed TOML becomes a CLI-friendly error."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc
