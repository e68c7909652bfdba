"""Test harness configuration.

This repo uses a `src/` layout. In some developer environments an older
installed `statusbot` package can shadow the local sources.

Ensure tests always import the in-repo code.
"""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 60

MINIMAL_CONFIG: dict[str, Any] = {
    "website": "stripchat",
    "period_seconds": 1,
    "max_models": 1,
    "timeout_seconds": 1,
    "admin_id": 1,
    "admin_endpoint": "main",
    "db_path": "db.sqlite",
    "not_found_threshold": 1,
    "block_threshold": 1,
    "dangerous_error_rate": "1/1000",
    "stat_password": "stat",
    "error_reporting_period_minutes": 1,
    "heavy_user_remainder": 1,
    "mail_host": "mail.example.test",
    "mail_listen_address": ":25",
    "endpoints": {
        "main": {
            "listen_path": "/hook",
            "listen_address": ":8080",
            "webhook_domain": "bot.example.test",
            "certificate_path": "",
            "certificate_key_path": "",
            "bot_token": "123:abc",
            "translation": "translations/en.yaml",
        }
    },
}

COIN_PAYMENTS: dict[str, Any] = {
    "subscription_packet": "15/10",
    "currencies": ["BTC", "LTC"],
    "public_key": "public",
    "private_key": "private",
    "ipn_listen_url": "/ipn",
    "ipn_listen_address": ":8081",
    "ipn_secret": "ipn-secret",
}


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    src_path = str(src_dir)
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """
    Apply a default per-test timeout to non-integration tests.

    This relies on `pytest-timeout` when installed; if it isn't installed, the
    marker is inert but still documents the intent.
    """
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def raw_config() -> dict[str, Any]:
    """A fresh copy of the smallest document that validates."""
    return copy.deepcopy(MINIMAL_CONFIG)


@pytest.fixture()
def coin_payments_raw() -> dict[str, Any]:
    return copy.deepcopy(COIN_PAYMENTS)


@pytest.fixture()
def write_config(tmp_path: Path) -> Callable[[Any], Path]:
    def _write(document: Any, name: str = "config.json") -> Path:
        path = tmp_path / name
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write
