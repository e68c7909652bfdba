"""Config error taxonomy and the JSON key contract for the bot config file."""

from __future__ import annotations

from typing import Optional

KNOWN_WEBSITES = frozenset({"bongacams", "stripchat", "chaturbate"})

FRACTION_PATTERN = r"^(\d+)/(\d+)$"

TOP_LEVEL_KEYS = frozenset(
    {
        "website",
        "period_seconds",
        "max_models",
        "timeout_seconds",
        "admin_id",
        "admin_endpoint",
        "db_path",
        "not_found_threshold",
        "block_threshold",
        "debug",
        "interval_ms",
        "source_ip_addresses",
        "dangerous_error_rate",
        "enable_cookies",
        "headers",
        "stat_password",
        "error_reporting_period_minutes",
        "endpoints",
        "coin_payments",
        "heavy_user_remainder",
        "mail_host",
        "mail_listen_address",
    }
)

ENDPOINT_KEYS = frozenset(
    {
        "listen_path",
        "listen_address",
        "webhook_domain",
        "certificate_path",
        "certificate_key_path",
        "bot_token",
        "translation",
    }
)

COIN_PAYMENTS_KEYS = frozenset(
    {
        "subscription_packet",
        "currencies",
        "public_key",
        "private_key",
        "ipn_listen_url",
        "ipn_listen_address",
        "ipn_secret",
    }
)


class ConfigError(Exception):
    """Raised when the bot config cannot be used."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class ConfigDecodeError(ConfigError):
    """Malformed JSON, an unknown or duplicate key, or a value of the wrong type."""


class ConfigValidationError(ConfigError):
    """A required value is missing or a cross-field invariant does not hold."""


class FractionError(ConfigValidationError):
    """A fraction field does not look like ``N/D``."""
