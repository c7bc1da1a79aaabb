"""
authprobe/engine/probe.py

Probe mode: every selected action against one topic, unsigned and then (when
credentials are available and verified) signed.
"""

from __future__ import annotations

import logging
from typing import Optional, TextIO, Tuple

from authprobe.actions import RunMode, get_actions_by_mode
from authprobe.actions.models import Action
from authprobe.base.arn import endpoint_for_region, parse_sns_topic_arn
from authprobe.base.config import ProbeConfig
from authprobe.credentials.models import AwsCredentials
from authprobe.credentials.sts import StsClientFactory, verify_credentials
from authprobe.errors import CredentialsError, TransportError
from authprobe.executor.models import ResponseOutcome
from authprobe.net.sender import RequestSender
from authprobe.net.transport import Transport
from authprobe.reporting.directory import OutputDirectory
from authprobe.reporting.summary import format_probe_header, format_probe_row, format_probe_summary
from .common import (
    Console,
    CredentialsProvider,
    default_credentials_provider,
    default_sts_factory,
    make_sender,
    open_transport,
    resolve_config,
)
from .models import ProbeActionResult, ProbeRunResult

logger = logging.getLogger(__name__)


async def _send_leg(
    sender: RequestSender,
    output: OutputDirectory,
    name: str,
    endpoint: str,
    params: dict,
    region: str,
    credentials: Optional[AwsCredentials],
) -> Tuple[Optional[ResponseOutcome], Optional[str]]:
    try:
        exchange = await sender.send(endpoint, params, region, credentials)
    except TransportError as e:
        logger.warning(f"[Probe] {name} failed: {e.message}")
        return None, e.message
    output.record(name, exchange, region)
    return ResponseOutcome.from_response(exchange.response), None


async def _probe_action(
    action: Action,
    topic_arn: str,
    region: str,
    credentials: Optional[AwsCredentials],
    sender: RequestSender,
    output: OutputDirectory,
) -> ProbeActionResult:
    endpoint = endpoint_for_region(region)
    params = action.build_params(topic_arn)
    result = ProbeActionResult(action=action.name)

    result.unsigned, result.unsigned_error = await _send_leg(
        sender, output, f"{action.name}-unsigned", endpoint, params, region, None
    )
    if credentials is not None:
        result.signed_attempted = True
        result.signed, result.signed_error = await _send_leg(
            sender, output, f"{action.name}-signed", endpoint, params, region, credentials
        )
    return result


async def run_probe(
    topic_arn: str,
    *,
    mode: RunMode = RunMode.ALL,
    region: Optional[str] = None,
    verbose: bool = False,
    config: Optional[ProbeConfig] = None,
    transport: Optional[Transport] = None,
    credentials_provider: Optional[CredentialsProvider] = None,
    sts_client_factory: Optional[StsClientFactory] = None,
    stream: Optional[TextIO] = None,
) -> ProbeRunResult:
    """
    Raises:
        ArnParseError: the topic ARN is malformed (before any request).
    """
    cfg = resolve_config(config)
    echo = Console(stream)
    topic = parse_sns_topic_arn(topic_arn)
    region = region or topic.region
    actions = get_actions_by_mode(mode)
    credentials = (credentials_provider or default_credentials_provider(cfg))()

    if verbose:
        echo(f"Target: {topic_arn}")
        echo(f"Region: {region}")
        echo(f"Endpoint: {endpoint_for_region(region)}")
        echo(f"Mode: {RunMode(mode).value}")
        echo(f"Credentials: {'available' if credentials else 'not available'}")

    async with open_transport(transport, cfg) as t:
        sender = make_sender(t, cfg)

        identity_arn = None
        if credentials is not None:
            try:
                identity = await verify_credentials(
                    credentials, region, sts_client_factory or default_sts_factory(cfg)
                )
                identity_arn = identity.arn
                echo(f"Credentials verified: {identity.arn}")
            except CredentialsError as e:
                echo(f"Credential verification failed: {e.message}")
                echo("Continuing with unsigned requests only...")
                credentials = None

        output = OutputDirectory.create(
            cfg.output.base_dir,
            topic_arn,
            write_http_logs=cfg.output.write_http_logs,
            write_reproduce_scripts=cfg.output.write_reproduce_scripts,
        )
        run = ProbeRunResult(
            topic_arn=topic_arn,
            region=region,
            mode=RunMode(mode).value,
            credentials_available=credentials is not None,
            identity_arn=identity_arn,
            output_path=output.path,
        )

        echo()
        echo(format_probe_header())
        for action in actions:
            result = await _probe_action(action, topic_arn, region, credentials, sender, output)
            run.actions.append(result)
            echo(format_probe_row(result))

    output.write_summary(run.to_dict())
    echo()
    echo(format_probe_summary(run))
    echo()
    echo(f"Output: {output.path}")
    return run
