"""Alembic migration helpers for the record store."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from alembic import command
from alembic.config import Config

from recoverymatch.config import get_database_config

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[5]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _load_pyproject_options() -> dict[str, Any]:
    """Load the ``[tool.alembic]`` table from pyproject.toml, if the checkout has one."""

    try:
        with PYPROJECT_PATH.open("rb") as pyproject_file:
            document = tomllib.load(pyproject_file)
    except FileNotFoundError:
        return {}

    alembic_section = document.get("tool", {}).get("alembic", {})
    return {str(key): value for key, value in alembic_section.items()}


def _resolve(location: str) -> Path:
    candidate = Path(location)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _build_config() -> Config:
    # an installed wheel ships without pyproject.toml; fall back to this package
    config = Config(toml_file=str(PYPROJECT_PATH)) if PYPROJECT_PATH.exists() else Config()
    options = _load_pyproject_options()

    script_location = options.get("script_location")
    script_path = MIGRATIONS_PATH
    if script_location is not None:
        resolved = _resolve(str(script_location))
        if resolved.exists():
            script_path = resolved
    config.set_main_option("script_location", str(script_path))

    prepend = options.get("prepend_sys_path", ["."])
    entries = prepend if isinstance(prepend, list) else [prepend]
    config.set_main_option("path_separator", "os")
    config.set_main_option(
        "prepend_sys_path",
        os.pathsep.join(str(_resolve(str(entry)).resolve()) for entry in entries),
    )

    for key, value in options.items():
        if key in {"script_location", "prepend_sys_path", "path_separator"}:
            continue
        config.set_main_option(key, str(value))

    config.attributes["pyproject_options"] = options
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision."""

    config = _build_config()
    if engine is not None:
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
        return
    config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
    command.upgrade(config, "head")
