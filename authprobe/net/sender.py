"""
authprobe/net/sender.py

Purpose:
    Build -> sign -> send for one Query API request, with the retry policy
    every mode shares.

Standards:
    - The request is signed inside the retry loop, immediately before each
      attempt. Nothing signed is ever reused.
    - Throttling and gateway statuses (429, 502, 503, 504) are retried with
      exponential backoff and full jitter, up to max_retries.
    - Each attempt is bounded by asyncio.wait_for; a missed deadline is a
      TransportError like any other network failure.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Mapping, Optional, TYPE_CHECKING

from authprobe.errors import ErrorCode, TransportError
from .models import HttpExchange, HttpRequest
from .signer import SigningContext, build_unsigned_request, sign_request
from .transport import Transport

if TYPE_CHECKING:
    from authprobe.credentials.models import AwsCredentials

log = logging.getLogger(__name__)

Signer = Callable[[HttpRequest, SigningContext], HttpRequest]

RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


class RequestSender:
    def __init__(
        self,
        transport: Transport,
        *,
        signer: Signer = sign_request,
        user_agent: str = "authprobe/0.1.0",
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
        retry_max_delay: float = 5.0,
    ):
        self.transport = transport
        self.signer = signer
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay

    async def send(
        self,
        endpoint: str,
        params: Mapping[str, str],
        region: str,
        credentials: Optional["AwsCredentials"] = None,
        service: str = "sns",
    ) -> HttpExchange:
        """
        Send params to endpoint; signed when credentials are given.

        Raises:
            TransportError: network failure or deadline exceeded.
        """
        attempt = 0
        while True:
            request = build_unsigned_request(endpoint, params, self.user_agent)
            if credentials is not None:
                request = self.signer(request, SigningContext(service, region, credentials))

            try:
                response = await asyncio.wait_for(self.transport.send(request), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise TransportError(
                    ErrorCode.TRANSPORT_TIMEOUT,
                    f"Request timed out after {self.timeout}s",
                    details={"url": endpoint},
                ) from e

            if response.status in RETRYABLE_STATUSES and attempt < self.max_retries:
                log.info(f"[Sender] {response.status} from {endpoint}, retrying ({attempt + 1}/{self.max_retries})")
                await self._backoff(attempt)
                attempt += 1
                continue

            return HttpExchange(request=request, response=response)

    async def _backoff(self, attempt: int) -> None:
        """
        Exponential backoff with Full Jitter.
        Sleep = random_between(0, min(cap, base * 2 ** attempt))
        """
        cap = min(self.retry_max_delay, self.retry_base_delay * (2 ** attempt))
        await asyncio.sleep(random.uniform(0, cap))
