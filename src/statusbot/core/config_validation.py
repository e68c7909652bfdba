"""Validation helpers for the bot config.

Checks run in a fixed order and stop at the first violation, so the same
document always produces the same error.
"""

from __future__ import annotations

import dataclasses
import ipaddress
import logging
from typing import TYPE_CHECKING, Mapping

from .config_contract import KNOWN_WEBSITES, ConfigValidationError
from .fraction import parse_fraction
from .logging_utils import log_event

if TYPE_CHECKING:
    from .config import BotConfig, CoinPaymentsConfig, EndpointConfig

logger = logging.getLogger("statusbot.core.config_validation")

_REQUIRED_ENDPOINT_FIELDS = (
    "listen_address",
    "listen_path",
    "bot_token",
    "translation",
)

_REQUIRED_SETTINGS = (
    "period_seconds",
    "max_models",
    "timeout_seconds",
    "admin_id",
    "db_path",
    "not_found_threshold",
    "block_threshold",
    "website",
    "stat_password",
    "error_reporting_period_minutes",
    "heavy_user_remainder",
    "mail_host",
    "mail_listen_address",
)

# admin_id is an identity, so any non-zero value is accepted.
_NON_ZERO_SETTINGS = frozenset({"admin_id"})

_REQUIRED_COIN_PAYMENTS_FIELDS = (
    "public_key",
    "private_key",
    "ipn_listen_url",
    "ipn_listen_address",
    "ipn_secret",
)


def _missing(field: str) -> ConfigValidationError:
    return ConfigValidationError(f"configure {field}", field=field)


def _validate_source_addresses(addresses: tuple[str, ...]) -> None:
    for address in addresses:
        if address == "":
            continue
        try:
            ipaddress.ip_address(address)
        except ValueError as exc:
            raise ConfigValidationError(
                f"cannot parse source IP address {address!r}",
                field="source_ip_addresses",
            ) from exc


def _validate_endpoint(name: str, endpoint: "EndpointConfig") -> None:
    for key in _REQUIRED_ENDPOINT_FIELDS:
        if not getattr(endpoint, key):
            raise _missing(f"endpoints.{name}.{key}")


def _validate_endpoints(
    endpoints: Mapping[str, "EndpointConfig"], admin_endpoint: str
) -> None:
    if not endpoints:
        raise _missing("endpoints")
    for name, endpoint in endpoints.items():
        _validate_endpoint(name, endpoint)
    # Only meaningful once every entry is well-formed on its own.
    if admin_endpoint not in endpoints:
        raise _missing("admin_endpoint")


def _validate_required_settings(config: "BotConfig") -> None:
    for key in _REQUIRED_SETTINGS:
        value = getattr(config, key)
        if isinstance(value, str):
            if not value:
                raise _missing(key)
        elif key in _NON_ZERO_SETTINGS:
            if value == 0:
                raise _missing(key)
        elif value <= 0:
            raise _missing(key)
    if config.interval_ms < 0:
        raise ConfigValidationError("interval_ms must be >= 0", field="interval_ms")


def _validate_error_rate(config: "BotConfig") -> tuple[int, int]:
    if not config.dangerous_error_rate:
        raise _missing("dangerous_error_rate")
    threshold, denominator = parse_fraction(
        config.dangerous_error_rate, field="dangerous_error_rate"
    )
    if denominator == 0:
        raise ConfigValidationError(
            'configure dangerous_error_rate as "x/y", where y > 0',
            field="dangerous_error_rate",
        )
    return threshold, denominator


def validate_coin_payments(cfg: "CoinPaymentsConfig") -> "CoinPaymentsConfig":
    """Check the payment add-on and return it with the packet fields derived."""
    if not cfg.currencies:
        raise _missing("coin_payments.currencies")
    for key in _REQUIRED_COIN_PAYMENTS_FIELDS:
        if not getattr(cfg, key):
            raise _missing(f"coin_payments.{key}")
    if not cfg.subscription_packet:
        raise _missing("coin_payments.subscription_packet")
    # "N/D": N models for a price of D.
    model_count, price = parse_fraction(
        cfg.subscription_packet, field="coin_payments.subscription_packet"
    )
    if model_count == 0 or price == 0:
        raise ConfigValidationError(
            "invalid subscription packet", field="coin_payments.subscription_packet"
        )
    return dataclasses.replace(cfg, packet_model_count=model_count, packet_price=price)


def validate_config(config: "BotConfig") -> "BotConfig":
    """Return a checked copy of ``config`` with defaults and derived values filled.

    Raises :class:`ConfigValidationError` for the first violation found.
    """
    _validate_source_addresses(config.source_ip_addresses)
    _validate_endpoints(config.endpoints, config.admin_endpoint)
    _validate_required_settings(config)
    error_threshold, error_denominator = _validate_error_rate(config)
    coin_payments = config.coin_payments
    if coin_payments is not None:
        coin_payments = validate_coin_payments(coin_payments)

    if config.website not in KNOWN_WEBSITES:
        log_event(
            logger,
            logging.WARNING,
            "config.website.unknown",
            website=config.website,
            known=sorted(KNOWN_WEBSITES),
        )

    source_ip_addresses = config.source_ip_addresses or ("",)
    return dataclasses.replace(
        config,
        source_ip_addresses=source_ip_addresses,
        coin_payments=coin_payments,
        error_threshold=error_threshold,
        error_denominator=error_denominator,
    )
