from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import IO, Any, Mapping, Optional, Union

from .config_contract import (
    COIN_PAYMENTS_KEYS,
    ENDPOINT_KEYS,
    TOP_LEVEL_KEYS,
    ConfigDecodeError,
)
from .config_validation import validate_config
from .logging_utils import log_event

logger = logging.getLogger("statusbot.core.config")


@dataclasses.dataclass(frozen=True)
class EndpointConfig:
    """One bot of the fleet; all endpoints share the same database."""

    listen_path: str = ""
    listen_address: str = ""
    webhook_domain: str = ""
    certificate_path: str = ""
    certificate_key_path: str = ""
    bot_token: str = ""
    translation: str = ""

    @property
    def behind_proxy(self) -> bool:
        return not self.certificate_key_path


@dataclasses.dataclass(frozen=True)
class CoinPaymentsConfig:
    subscription_packet: str = ""
    currencies: tuple[str, ...] = ()
    public_key: str = ""
    private_key: str = ""
    ipn_listen_url: str = ""
    ipn_listen_address: str = ""
    ipn_secret: str = ""
    # Derived from subscription_packet by the validator.
    packet_model_count: int = 0
    packet_price: int = 0


@dataclasses.dataclass(frozen=True)
class BotConfig:
    website: str = ""
    period_seconds: int = 0
    max_models: int = 0
    timeout_seconds: int = 0
    admin_id: int = 0
    admin_endpoint: str = ""
    db_path: str = ""
    not_found_threshold: int = 0
    block_threshold: int = 0
    debug: bool = False
    interval_ms: int = 0
    source_ip_addresses: tuple[str, ...] = ()
    dangerous_error_rate: str = ""
    enable_cookies: bool = False
    headers: tuple[tuple[str, str], ...] = ()
    stat_password: str = ""
    error_reporting_period_minutes: int = 0
    endpoints: Mapping[str, EndpointConfig] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )
    coin_payments: Optional[CoinPaymentsConfig] = None
    heavy_user_remainder: int = 0
    mail_host: str = ""
    mail_listen_address: str = ""
    # Derived from dangerous_error_rate by the validator.
    error_threshold: int = 0
    error_denominator: int = 0

    @property
    def admin_endpoint_config(self) -> EndpointConfig:
        return self.endpoints[self.admin_endpoint]


def load_config(path: Union[str, Path]) -> BotConfig:
    """Read, decode and validate the config file at ``path``."""
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"config file does not exist: {config_path}")
    with config_path.open("rb") as handle:
        config = parse_config(handle)
    log_event(
        logger,
        logging.INFO,
        "config.loaded",
        path=str(config_path),
        website=config.website,
        endpoints=list(config.endpoints),
        source_addresses=len(config.source_ip_addresses),
        coin_payments=config.coin_payments is not None,
    )
    return config


def parse_config(stream: IO[Any]) -> BotConfig:
    # ValueError also covers UnicodeDecodeError and integers over the digit
    # limit; RecursionError comes from very deep nesting.
    try:
        raw = json.loads(stream.read(), object_pairs_hook=_collect_duplicate_keys)
    except (ValueError, RecursionError) as exc:
        raise ConfigDecodeError(f"config is not valid JSON: {exc}") from exc
    return validate_config(decode_config(raw))


def decode_config(raw: Any) -> BotConfig:
    """Map parsed JSON onto :class:`BotConfig`, rejecting unknown keys.

    Only the shape of the document is checked here; required values and
    cross-field rules belong to :func:`validate_config`.
    """
    cfg = _require_object(raw, "config", prefix="")
    _reject_unknown_keys(cfg, TOP_LEVEL_KEYS, prefix="")
    return BotConfig(
        website=_get_str(cfg, "website"),
        period_seconds=_get_int(cfg, "period_seconds"),
        max_models=_get_int(cfg, "max_models"),
        timeout_seconds=_get_int(cfg, "timeout_seconds"),
        admin_id=_get_int(cfg, "admin_id"),
        admin_endpoint=_get_str(cfg, "admin_endpoint"),
        db_path=_get_str(cfg, "db_path"),
        not_found_threshold=_get_int(cfg, "not_found_threshold"),
        block_threshold=_get_int(cfg, "block_threshold"),
        debug=_get_bool(cfg, "debug"),
        interval_ms=_get_int(cfg, "interval_ms"),
        source_ip_addresses=_get_str_list(cfg, "source_ip_addresses"),
        dangerous_error_rate=_get_str(cfg, "dangerous_error_rate"),
        enable_cookies=_get_bool(cfg, "enable_cookies"),
        headers=_get_headers(cfg, "headers"),
        stat_password=_get_str(cfg, "stat_password"),
        error_reporting_period_minutes=_get_int(
            cfg, "error_reporting_period_minutes"
        ),
        endpoints=_decode_endpoints(cfg.get("endpoints")),
        coin_payments=_decode_coin_payments(cfg.get("coin_payments")),
        heavy_user_remainder=_get_int(cfg, "heavy_user_remainder"),
        mail_host=_get_str(cfg, "mail_host"),
        mail_listen_address=_get_str(cfg, "mail_listen_address"),
    )


def _decode_endpoints(value: Any) -> Mapping[str, EndpointConfig]:
    if value is None:
        return MappingProxyType({})
    raw_endpoints = _require_object(value, "endpoints", prefix="endpoints.")
    endpoints: dict[str, EndpointConfig] = {}
    for name, raw_endpoint in raw_endpoints.items():
        prefix = f"endpoints.{name}."
        entry = _require_object(raw_endpoint, f"endpoints.{name}", prefix=prefix)
        _reject_unknown_keys(entry, ENDPOINT_KEYS, prefix=prefix)
        endpoints[name] = EndpointConfig(
            listen_path=_get_str(entry, "listen_path", prefix=prefix),
            listen_address=_get_str(entry, "listen_address", prefix=prefix),
            webhook_domain=_get_str(entry, "webhook_domain", prefix=prefix),
            certificate_path=_get_str(entry, "certificate_path", prefix=prefix),
            certificate_key_path=_get_str(
                entry, "certificate_key_path", prefix=prefix
            ),
            bot_token=_get_str(entry, "bot_token", prefix=prefix),
            translation=_get_str(entry, "translation", prefix=prefix),
        )
    return MappingProxyType(endpoints)


def _decode_coin_payments(value: Any) -> Optional[CoinPaymentsConfig]:
    if value is None:
        return None
    prefix = "coin_payments."
    cfg = _require_object(value, "coin_payments", prefix=prefix)
    _reject_unknown_keys(cfg, COIN_PAYMENTS_KEYS, prefix=prefix)
    return CoinPaymentsConfig(
        subscription_packet=_get_str(cfg, "subscription_packet", prefix=prefix),
        currencies=_get_str_list(cfg, "currencies", prefix=prefix),
        public_key=_get_str(cfg, "public_key", prefix=prefix),
        private_key=_get_str(cfg, "private_key", prefix=prefix),
        ipn_listen_url=_get_str(cfg, "ipn_listen_url", prefix=prefix),
        ipn_listen_address=_get_str(cfg, "ipn_listen_address", prefix=prefix),
        ipn_secret=_get_str(cfg, "ipn_secret", prefix=prefix),
    )


class _JSONObject(dict):
    """A decoded JSON object that remembers keys it saw more than once."""

    duplicate_keys: tuple[str, ...] = ()


def _collect_duplicate_keys(pairs: list[tuple[str, Any]]) -> _JSONObject:
    result = _JSONObject()
    duplicates: list[str] = []
    for key, value in pairs:
        if key in result:
            duplicates.append(key)
            continue
        result[key] = value
    if duplicates:
        result.duplicate_keys = tuple(duplicates)
    return result


def _require_object(value: Any, key: str, *, prefix: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigDecodeError(f"{key} must be a JSON object", field=key)
    # Duplicates are reported here, where the dotted path is known.
    duplicates = getattr(value, "duplicate_keys", ())
    if duplicates:
        field = f"{prefix}{duplicates[0]}"
        raise ConfigDecodeError(f"duplicate key {field!r}", field=field)
    return value


def _reject_unknown_keys(
    cfg: dict[str, Any], allowed: frozenset[str], *, prefix: str
) -> None:
    for key in cfg:
        if key not in allowed:
            field = f"{prefix}{key}"
            raise ConfigDecodeError(f"unknown field {field!r}", field=field)


def _get_str(cfg: dict[str, Any], key: str, *, prefix: str = "") -> str:
    value = cfg.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigDecodeError(
            f"{prefix}{key} must be a string", field=prefix + key
        )
    return value


def _get_int(cfg: dict[str, Any], key: str, *, prefix: str = "") -> int:
    value = cfg.get(key)
    if value is None:
        return 0
    # bool is an int subclass; JSON true/false is never a valid number here.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigDecodeError(
            f"{prefix}{key} must be an integer", field=prefix + key
        )
    return value


def _get_bool(cfg: dict[str, Any], key: str, *, prefix: str = "") -> bool:
    value = cfg.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigDecodeError(
            f"{prefix}{key} must be a boolean", field=prefix + key
        )
    return value


def _get_str_list(
    cfg: dict[str, Any], key: str, *, prefix: str = ""
) -> tuple[str, ...]:
    value = cfg.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigDecodeError(
            f"{prefix}{key} must be a list of strings", field=prefix + key
        )
    return tuple(value)


def _get_headers(cfg: dict[str, Any], key: str) -> tuple[tuple[str, str], ...]:
    value = cfg.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigDecodeError(
            f"{key} must be a list of [name, value] pairs", field=key
        )
    headers: list[tuple[str, str]] = []
    for item in value:
        if (
            not isinstance(item, list)
            or len(item) != 2
            or not all(isinstance(part, str) for part in item)
        ):
            raise ConfigDecodeError(
                f"{key} must be a list of [name, value] pairs", field=key
            )
        headers.append((item[0], item[1]))
    return tuple(headers)
