"""
Transport protocol for algod REST calls.

Defines the seam where concrete HTTP implementations plug in. The algod
client depends on this protocol, not on httpx directly, so tests can
substitute canned responses without touching parsing logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

HTTP error statuses are NOT raised — they come back in TransportResponse
so the client can tell a rejection (4xx) from an unavailable node (5xx).
Connection-level failures (DNS, TLS, refused, timeout) raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

# Content type algod expects for raw signed transactions.
BINARY_CONTENT_TYPE = "application/x-binary"


@dataclass(frozen=True)
class TransportResponse:
    """Status code and decoded JSON body of an HTTP response."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class AlgodTransport(Protocol):
    """Async transport for algod REST requests."""

    async def get_json(self, url: str, headers: dict[str, str]) -> TransportResponse:
        """Send a GET request and return status plus decoded JSON body.

        Raises:
            Exception: On transport-level failures (connection refused,
                timeout, TLS error, etc.). The adapter maps these to
                NETWORK_UNAVAILABLE.
        """
        ...

    async def post_bytes(
        self, url: str, body: bytes, headers: dict[str, str]
    ) -> TransportResponse:
        """Send raw bytes in a POST request and return the decoded response."""
        ...


def _decode(response: httpx.Response) -> TransportResponse:
    try:
        body = response.json()
    except ValueError:
        body = {"message": response.text}
    if not isinstance(body, dict):
        body = {"value": body}
    return TransportResponse(status_code=response.status_code, body=body)


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Args:
        timeout: Per-request timeout in seconds. Bounds every fetch,
            submit and poll round-trip.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def get_json(self, url: str, headers: dict[str, str]) -> TransportResponse:
        """Send GET via httpx."""
        logger.debug("GET %s", url)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(url, headers=headers)
        return _decode(response)

    async def post_bytes(
        self, url: str, body: bytes, headers: dict[str, str]
    ) -> TransportResponse:
        """Send POST with a raw binary body via httpx."""
        logger.debug("POST %s (%d bytes)", url, len(body))
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                url,
                content=body,
                headers={**headers, "Content-Type": BINARY_CONTENT_TYPE},
            )
        return _decode(response)
