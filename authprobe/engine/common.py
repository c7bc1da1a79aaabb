"""
authprobe/engine/common.py

Plumbing shared by the run modes: config resolution, transport lifetime,
credential loading, terminal output.
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional, TextIO

from authprobe.base.config import ProbeConfig, get_config
from authprobe.credentials.loader import load_credentials
from authprobe.credentials.models import AwsCredentials
from authprobe.credentials.sts import StsClientFactory, make_sts_client
from authprobe.net.sender import RequestSender
from authprobe.net.transport import HttpTransport, Transport

CredentialsProvider = Callable[[], Optional[AwsCredentials]]


def resolve_config(config: Optional[ProbeConfig]) -> ProbeConfig:
    cfg = config or get_config()
    cfg.validate()
    return cfg


def default_credentials_provider(config: ProbeConfig) -> CredentialsProvider:
    return lambda: load_credentials(config.aws.profile)


def default_sts_factory(config: ProbeConfig) -> StsClientFactory:
    return lambda credentials, region: make_sts_client(credentials, region, config.net)


@asynccontextmanager
async def open_transport(transport: Optional[Transport], config: ProbeConfig) -> AsyncIterator[Transport]:
    """Use the injected transport, or own an HttpTransport for the run."""
    if transport is not None:
        yield transport
        return
    async with HttpTransport(timeout=config.net.request_timeout, verify_tls=config.net.verify_tls) as owned:
        yield owned


def make_sender(transport: Transport, config: ProbeConfig) -> RequestSender:
    return RequestSender(
        transport,
        user_agent=config.net.user_agent,
        timeout=config.net.request_timeout,
        max_retries=config.net.max_retries,
    )


class Console:
    """Line-oriented terminal output."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def __call__(self, text: str = "") -> None:
        self.stream.write(text + "\n")
        self.stream.flush()
