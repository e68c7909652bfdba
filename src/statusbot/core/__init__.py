"""Core runtime primitives."""

from .config import (
    BotConfig,
    CoinPaymentsConfig,
    EndpointConfig,
    decode_config,
    load_config,
    parse_config,
)
from .config_contract import (
    ConfigDecodeError,
    ConfigError,
    ConfigValidationError,
    FractionError,
)
from .config_validation import validate_config
from .fraction import parse_fraction
from .http_client import (
    DeadlineTransport,
    SourceBoundClient,
    build_client_pool,
    build_http_client,
)

__all__ = [
    "BotConfig",
    "CoinPaymentsConfig",
    "EndpointConfig",
    "decode_config",
    "load_config",
    "parse_config",
    "ConfigDecodeError",
    "ConfigError",
    "ConfigValidationError",
    "FractionError",
    "validate_config",
    "parse_fraction",
    "DeadlineTransport",
    "SourceBoundClient",
    "build_client_pool",
    "build_http_client",
]
