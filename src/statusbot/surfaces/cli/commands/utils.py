from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from ....core.config import BotConfig, load_config
from ....core.config_contract import ConfigError
from ....core.logging_utils import LogConfig, setup_rotating_logger

CONFIG_PATH_ENV = "STATUSBOT_CONFIG"


def get_version() -> str:
    import importlib.metadata

    try:
        return importlib.metadata.version("statusbot")
    except importlib.metadata.PackageNotFoundError:
        from .... import __version__

        return __version__


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def require_config(path: Path) -> BotConfig:
    """Load and validate the config or terminate with the reason on stderr."""
    try:
        return load_config(path)
    except OSError as exc:
        raise_exit(f"cannot read config {path}: {exc}", cause=exc)
    except ConfigError as exc:
        raise_exit(f"invalid config {path}: {exc}", cause=exc)


def configure_logging(
    *, log_file: Optional[Path], verbose: bool, debug: bool = False
) -> logging.Logger:
    level = logging.DEBUG if verbose or debug else logging.INFO
    return setup_rotating_logger("statusbot", LogConfig(path=log_file, level=level))
