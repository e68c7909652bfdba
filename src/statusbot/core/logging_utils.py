from __future__ import annotations

import dataclasses
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 3
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclasses.dataclass
class LogConfig:
    path: Optional[Path] = None
    level: int = logging.INFO
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT


def _json_default(value: Any) -> str:
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return str(value)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with ``fields`` rendered as a compact JSON payload."""
    if not logger.isEnabledFor(level):
        return
    if fields:
        payload = json.dumps(
            fields, default=_json_default, ensure_ascii=False, separators=(",", ":")
        )
        logger.log(level, "%s %s", event, payload, extra={"event": event})
    else:
        logger.log(level, "%s", event, extra={"event": event})


def setup_rotating_logger(name: str, log_config: LogConfig) -> logging.Logger:
    """Set the level of ``name`` and attach a rotating file handler once.

    Without a path, records propagate to whatever the root logger does.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_config.level)
    if log_config.path is None:
        return logger
    path = log_config.path.resolve()
    for handler in logger.handlers:
        if (
            isinstance(handler, RotatingFileHandler)
            and Path(handler.baseFilename) == path
        ):
            return logger

    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        path,
        maxBytes=log_config.max_bytes,
        backupCount=log_config.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(file_handler)
    return logger
