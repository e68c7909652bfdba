from __future__ import annotations

import dataclasses
import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional

import typer
import yaml

from ....core.config import BotConfig
from ....core.logging_utils import log_event
from .utils import CONFIG_PATH_ENV, configure_logging

REDACTED = "<REDACTED>"

SECRET_PATTERNS = [
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----",
    r"^\d{5,}:[A-Za-z0-9_-]{30,}$",
    r"^(Bearer|Basic)\s+\S+",
]

SECRET_KEY_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|private[_-]?key)", re.IGNORECASE),
]

SECRET_HEADER_NAMES = frozenset(
    {"authorization", "proxy-authorization", "cookie", "set-cookie"}
)


def _is_secret_value(value: str) -> bool:
    value = value.strip()
    return any(re.search(pattern, value) for pattern in SECRET_PATTERNS)


def _looks_like_secret_key(key: str) -> bool:
    return any(pattern.search(key) for pattern in SECRET_KEY_PATTERNS)


def _redact_value(key: str, value: Any) -> Any:
    if isinstance(value, str):
        if value and (_looks_like_secret_key(key) or _is_secret_value(value)):
            return REDACTED
    elif isinstance(value, dict):
        return {k: _redact_value(k, v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_redact_value(key, item) for item in value]
    return value


def _redact_header(name: str, value: str) -> str:
    if name.lower() in SECRET_HEADER_NAMES:
        return REDACTED if value else value
    return _redact_value(name, value)


def describe_config(config: BotConfig) -> dict[str, Any]:
    """Plain, JSON-friendly view of a validated config with secrets redacted."""
    data: dict[str, Any] = {}
    for field in dataclasses.fields(config):
        value = getattr(config, field.name)
        if field.name == "endpoints":
            value = {
                name: dataclasses.asdict(endpoint) for name, endpoint in value.items()
            }
        elif field.name == "coin_payments" and value is not None:
            value = dataclasses.asdict(value)
            value["currencies"] = list(value["currencies"])
        elif field.name == "headers":
            data[field.name] = [
                [name, _redact_header(name, header)] for name, header in value
            ]
            continue
        elif isinstance(value, tuple):
            value = list(value)
        data[field.name] = _redact_value(field.name, value)
    return data


def _summary_lines(config: BotConfig) -> list[str]:
    addresses = [address or "<default>" for address in config.source_ip_addresses]
    lines = [
        f"website: {config.website}",
        f"endpoints: {', '.join(config.endpoints)} (admin: {config.admin_endpoint})",
        f"source addresses: {', '.join(addresses)}",
        f"dangerous error rate: {config.error_threshold}/{config.error_denominator}",
    ]
    if config.coin_payments is not None:
        packet = config.coin_payments
        lines.append(
            f"coin payments: {packet.packet_model_count} models "
            f"for {packet.packet_price} ({', '.join(packet.currencies)})"
        )
    else:
        lines.append("coin payments: disabled")
    return lines


def register_config_commands(
    app: typer.Typer,
    *,
    require_config: Callable[[Path], BotConfig],
) -> None:
    @app.command("check")
    def config_check(
        path: Path = typer.Argument(
            ..., envvar=CONFIG_PATH_ENV, help="Path to the JSON config file"
        ),
        log_file: Optional[Path] = typer.Option(
            None, "--log-file", help="Append logs to this rotating file"
        ),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    ) -> None:
        """Validate a config file and print a short summary."""
        configure_logging(log_file=log_file, verbose=verbose)
        config = require_config(path)
        logger = configure_logging(
            log_file=log_file, verbose=verbose, debug=config.debug
        )
        log_event(logger, logging.DEBUG, "cli.check.ok", path=str(path))
        typer.echo(f"Config OK: {path}")
        for line in _summary_lines(config):
            typer.echo(f"  {line}")

    @app.command("describe")
    def config_describe(
        path: Path = typer.Argument(
            ..., envvar=CONFIG_PATH_ENV, help="Path to the JSON config file"
        ),
        output_json: bool = typer.Option(False, "--json", help="Emit JSON, not YAML"),
        log_file: Optional[Path] = typer.Option(
            None, "--log-file", help="Append logs to this rotating file"
        ),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    ) -> None:
        """Print the validated config with secrets redacted."""
        configure_logging(log_file=log_file, verbose=verbose)
        data = describe_config(require_config(path))
        if output_json:
            typer.echo(json.dumps(data, indent=2))
        else:
            typer.echo(yaml.safe_dump(data, sort_keys=False).rstrip())
