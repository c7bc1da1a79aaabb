"""
authprobe/engine/request_mutations.py

Request-mutations mode: the differential probe. Builds the probe triple,
verifies credentials, runs the DifferentialProber over the selected actions
and writes the run's evidence and summary.

Configuration problems (incomplete triple, malformed ARN, no credentials)
are raised before the first request is sent.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, TextIO

from authprobe.actions import RunMode, get_actions_by_mode
from authprobe.base.config import ProbeConfig
from authprobe.credentials.sts import StsClientFactory, verify_credentials
from authprobe.executor.models import RunResult, build_probe_triple, validate_triple_arns
from authprobe.executor.prober import DifferentialProber
from authprobe.net.transport import Transport
from authprobe.reporting.directory import DirectorySink, OutputDirectory
from authprobe.reporting.sink import CompositeSink, ConsoleSink
from authprobe.reporting.summary import format_mutations_summary
from .common import (
    Console,
    CredentialsProvider,
    default_credentials_provider,
    default_sts_factory,
    open_transport,
    resolve_config,
)

logger = logging.getLogger(__name__)


async def run_request_mutations(
    allowed_arn: str,
    denied_arn: str,
    *,
    mode: RunMode = RunMode.ALL,
    region: Optional[str] = None,
    verbose: bool = False,
    config: Optional[ProbeConfig] = None,
    transport: Optional[Transport] = None,
    credentials_provider: Optional[CredentialsProvider] = None,
    sts_client_factory: Optional[StsClientFactory] = None,
    stream: Optional[TextIO] = None,
    suffix_factory: Optional[Callable[[], str]] = None,
) -> RunResult:
    """
    Raises:
        ConfigurationError: incomplete probe triple.
        ArnParseError: a topic ARN is malformed.
        CredentialsError: credentials fail verification.
    """
    cfg = resolve_config(config)
    echo = Console(stream)
    actions = get_actions_by_mode(mode)
    validate_triple_arns(allowed_arn, denied_arn)

    credentials = (credentials_provider or default_credentials_provider(cfg))()
    triple = build_probe_triple(allowed_arn, denied_arn, credentials, region, suffix_factory)

    async with open_transport(transport, cfg) as t:
        identity = await verify_credentials(
            credentials, triple.allowed.region, sts_client_factory or default_sts_factory(cfg)
        )
        echo(f"Credentials verified: {identity.arn}")
        echo()
        echo("Request Mutations Mode")
        echo()
        echo(f"Allowed topic:     {triple.allowed.arn}")
        echo(f"Denied topic:      {triple.denied.arn}")
        echo(f"Nonexistent topic: {triple.nonexistent.arn}")
        echo()

        output = OutputDirectory.create(
            cfg.output.base_dir,
            allowed_arn,
            suffix="request-mutations",
            write_http_logs=cfg.output.write_http_logs,
            write_reproduce_scripts=cfg.output.write_reproduce_scripts,
        )
        sink = CompositeSink([ConsoleSink(echo.stream, verbose=verbose), DirectorySink(output)])
        prober = DifferentialProber.from_config(triple, t, cfg, sink=sink)

        run = RunResult(mode=RunMode(mode).value, triple=triple, identity_arn=identity.arn)
        run.actions = await prober.run(actions)
        run.finished_at = datetime.now(timezone.utc)

    output.write_summary(run.to_dict())
    logger.info(
        f"[RequestMutations] {len(run.all_mutations)} mutations tested, {len(run.useful_mutations)} useful"
    )
    echo(format_mutations_summary(run))
    echo()
    echo(f"Output: {output.path}")
    return run
