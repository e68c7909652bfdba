from __future__ import annotations

import ipaddress
import logging
import socket
import ssl
from dataclasses import dataclass
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import TYPE_CHECKING, Iterable, Optional

import anyio
import certifi
import httpx

from .logging_utils import log_event

if TYPE_CHECKING:
    from .config import BotConfig

logger = logging.getLogger(__name__)

# One polling worker per client, so the idle pool stays small.
MAX_IDLE_CONNECTIONS = 10
IDLE_CONNECTION_TIMEOUT_SECONDS = 90.0
MIN_TLS_VERSION = ssl.TLSVersion.TLSv1_2


@dataclass
class SourceBoundClient:
    """An HTTP client whose connections originate from ``source_address``.

    An empty ``source_address`` leaves the choice to the OS. ``ssl_context`` is
    the context of the network transport, or ``None`` when a transport was
    injected.
    """

    client: httpx.AsyncClient
    source_address: str
    ssl_context: Optional[ssl.SSLContext]

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "SourceBoundClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()


class DeadlineTransport(httpx.AsyncBaseTransport):
    """Caps a whole exchange, body included, at ``timeout_seconds``.

    The body is read before the response is handed back, so streamed responses
    arrive fully buffered.
    """

    def __init__(
        self, wrapped: httpx.AsyncBaseTransport, timeout_seconds: float
    ) -> None:
        self.wrapped = wrapped
        self.timeout_seconds = timeout_seconds

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        try:
            with anyio.fail_after(self.timeout_seconds):
                response = await self.wrapped.handle_async_request(request)
                if response.is_stream_consumed:
                    return response
                try:
                    body = b"".join([chunk async for chunk in response.aiter_raw()])
                finally:
                    await response.aclose()
        except TimeoutError as exc:
            raise httpx.ReadTimeout(
                f"request exceeded {self.timeout_seconds}s", request=request
            ) from exc
        # Raw bytes keep Content-Encoding decoding with the client.
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            stream=httpx.ByteStream(body),
            extensions=response.extensions,
        )

    async def aclose(self) -> None:
        await self.wrapped.aclose()


def _tls_context() -> ssl.SSLContext:
    context = ssl.create_default_context(cafile=certifi.where())
    context.minimum_version = MIN_TLS_VERSION
    return context


def _cookie_jar(enabled: bool) -> CookieJar:
    if enabled:
        return CookieJar()
    # An empty allow-list makes the policy refuse every cookie it is offered.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def build_http_client(
    timeout_seconds: float,
    source_address: str,
    cookies: bool,
    *,
    headers: Iterable[tuple[str, str]] = (),
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SourceBoundClient:
    """Build a client that never follows redirects and binds to ``source_address``.

    ``transport`` replaces the network transport and is meant for tests.
    Proxy settings from the environment are ignored: a proxied request would
    leave from the proxy, not from ``source_address``.
    Raises ``ValueError`` when ``source_address`` is not an IP literal.
    """
    if source_address:
        try:
            ipaddress.ip_address(source_address)
        except ValueError as exc:
            raise ValueError(f"invalid source address: {source_address!r}") from exc

    ssl_context: Optional[ssl.SSLContext] = None
    if transport is None:
        ssl_context = _tls_context()
        transport = httpx.AsyncHTTPTransport(
            verify=ssl_context,
            http2=True,
            limits=httpx.Limits(
                max_keepalive_connections=MAX_IDLE_CONNECTIONS,
                keepalive_expiry=IDLE_CONNECTION_TIMEOUT_SECONDS,
            ),
            local_address=source_address or None,
            socket_options=[(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)],
        )
    client = httpx.AsyncClient(
        transport=DeadlineTransport(transport, timeout_seconds),
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=False,
        cookies=_cookie_jar(cookies),
        headers=list(headers),
        trust_env=False,
    )
    log_event(
        logger,
        logging.DEBUG,
        "http_client.built",
        source_address=source_address or "default",
        cookies=cookies,
        timeout_seconds=timeout_seconds,
    )
    return SourceBoundClient(
        client=client, source_address=source_address, ssl_context=ssl_context
    )


def build_client_pool(config: "BotConfig") -> list[SourceBoundClient]:
    """One client per configured source address, in config order."""
    return [
        build_http_client(
            config.timeout_seconds,
            address,
            config.enable_cookies,
            headers=config.headers,
        )
        for address in config.source_ip_addresses
    ]
