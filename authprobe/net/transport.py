"""
authprobe/net/transport.py

Purpose:
    The only place authprobe touches the network.
    Sends an already-signed HttpRequest and returns the raw response.

Standards:
    - Bounded: every request carries a timeout; exceeding it is a
      TransportError, never an indefinite block.
    - No retries here: a retry must be signed again, which is the caller's job.
    - Network failures surface as TransportError so the prober can mark a
      single mutation inconclusive and move on.
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol, runtime_checkable

import httpx

from authprobe.errors import ErrorCode, TransportError
from .models import HttpRequest, TransportResponse

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@runtime_checkable
class Transport(Protocol):
    """
    Interface for request execution.
    Implementations might include:
    - HttpTransport (httpx)
    - A recorded-traffic replay in tests
    """

    async def send(self, request: HttpRequest) -> TransportResponse:
        ...


class HttpTransport:
    """
    httpx-backed Transport.
    Owns its AsyncClient unless one is injected (tests inject a MockTransport client).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
    ):
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            verify=verify_tls,
            follow_redirects=False,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )

    async def send(self, request: HttpRequest) -> TransportResponse:
        start = time.monotonic()
        content = request.body.encode("utf-8") if request.body is not None else None

        try:
            response = await self._client.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                content=content,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            log.warning(f"[Transport] Timeout after {self.timeout}s: {request.method} {request.url}")
            raise TransportError(
                ErrorCode.TRANSPORT_TIMEOUT,
                f"Request timed out after {self.timeout}s",
                details={"url": request.url, "error_type": type(e).__name__},
            ) from e
        except httpx.ProtocolError as e:
            log.warning(f"[Transport] Protocol error on {request.method} {request.url}: {e}")
            raise TransportError(
                ErrorCode.TRANSPORT_PROTOCOL_ERROR,
                f"Malformed HTTP exchange: {e}",
                details={"url": request.url, "error_type": type(e).__name__},
            ) from e
        except httpx.RequestError as e:
            log.warning(f"[Transport] Network error on {request.method} {request.url}: {e}")
            raise TransportError(
                ErrorCode.TRANSPORT_CONNECTION_FAILED,
                f"Request failed: {e}",
                details={"url": request.url, "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.monotonic() - start) * 1000
        log.debug(f"[Transport] {request.method} {request.url} -> {response.status_code} ({duration_ms:.0f}ms)")

        return TransportResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.text,
            duration_ms=duration_ms,
            reason=response.reason_phrase,
        )

    async def aclose(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            log.debug("[Transport] client closed")

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
