"""
authprobe/net/models.py

Wire-level records shared by the signer, the transport, and the reporting
layer. All are immutable; a signed request is a new HttpRequest.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    @property
    def signed(self) -> bool:
        return any(k.lower() == "authorization" for k in self.headers)


@dataclass(frozen=True)
class TransportResponse:
    status: int
    headers: Dict[str, str]
    body: str
    duration_ms: float
    reason: str = ""


@dataclass(frozen=True)
class HttpExchange:
    """One request/response pair, kept for transcripts."""
    request: HttpRequest
    response: TransportResponse
