"""
authprobe/engine/compare.py

Compare mode: each action's baseline, signed, against an allowed and a denied
topic. A status mismatch is where request-mutations mode has something to
work with.
"""

from __future__ import annotations

import logging
from typing import Optional, TextIO

from authprobe.actions import RunMode, get_actions_by_mode
from authprobe.base.arn import endpoint_for_region, parse_sns_topic_arn
from authprobe.base.config import ProbeConfig
from authprobe.credentials.sts import StsClientFactory, verify_credentials
from authprobe.errors import ConfigurationError, CredentialsError, ErrorCode, TransportError
from authprobe.executor.models import ResponseOutcome
from authprobe.net.transport import Transport
from authprobe.reporting.directory import OutputDirectory
from authprobe.reporting.summary import format_compare_result
from .common import (
    Console,
    CredentialsProvider,
    default_credentials_provider,
    default_sts_factory,
    make_sender,
    open_transport,
    resolve_config,
)
from .models import CompareRunResult, ComparisonResult

logger = logging.getLogger(__name__)


async def run_compare(
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
) -> CompareRunResult:
    """
    Raises:
        ConfigurationError: a topic ARN is missing.
        ArnParseError: a topic ARN is malformed.
        CredentialsError: no credentials, or they fail verification.
    """
    if not allowed_arn or not denied_arn:
        raise ConfigurationError(
            ErrorCode.CONFIG_MISSING_REQUIRED,
            "Compare mode requires two topic ARNs: --compare <allow-arn> <deny-arn>",
        )

    cfg = resolve_config(config)
    echo = Console(stream)
    allowed_topic = parse_sns_topic_arn(allowed_arn)
    allowed_region = region or allowed_topic.region
    denied_region = parse_sns_topic_arn(denied_arn).region
    actions = get_actions_by_mode(mode)

    credentials = (credentials_provider or default_credentials_provider(cfg))()
    if credentials is None:
        raise CredentialsError(ErrorCode.CREDENTIALS_MISSING, "Compare mode requires AWS credentials")

    async with open_transport(transport, cfg) as t:
        sender = make_sender(t, cfg)
        identity = await verify_credentials(
            credentials, allowed_region, sts_client_factory or default_sts_factory(cfg)
        )
        echo(f"Credentials verified: {identity.arn}")
        echo()
        echo("Compare Mode")
        echo()
        echo(f"Allowed topic: {allowed_arn}")
        echo(f"Denied topic:  {denied_arn}")
        echo()

        output = OutputDirectory.create(
            cfg.output.base_dir,
            allowed_arn,
            suffix="compare",
            write_http_logs=cfg.output.write_http_logs,
            write_reproduce_scripts=cfg.output.write_reproduce_scripts,
        )
        run = CompareRunResult(
            allowed_arn=allowed_arn,
            denied_arn=denied_arn,
            mode=RunMode(mode).value,
            identity_arn=identity.arn,
            output_path=output.path,
        )

        legs = (("allowed", allowed_arn, allowed_region), ("denied", denied_arn, denied_region))
        for action in actions:
            comparison = ComparisonResult(action=action.name)
            for leg, arn, leg_region in legs:
                try:
                    exchange = await sender.send(
                        endpoint_for_region(leg_region), action.build_params(arn), leg_region, credentials
                    )
                except TransportError as e:
                    logger.warning(f"[Compare] {action.name} {leg} failed: {e.message}")
                    comparison.error = f"{leg}: {e.message}"
                    break
                output.record(f"{action.name}-{leg}", exchange, leg_region)
                setattr(comparison, leg, ResponseOutcome.from_response(exchange.response))

            run.comparisons.append(comparison)
            if verbose:
                echo(
                    f"{action.name:<30} allowed:{comparison.allowed.status if comparison.allowed else 'ERR'} "
                    f"denied:{comparison.denied.status if comparison.denied else 'ERR'} "
                    f"[{'MATCH' if comparison.match else 'DIFF'}]"
                )

    output.write_summary(run.to_dict())
    echo()
    echo(format_compare_result(run))
    echo()
    echo(f"Output: {output.path}")
    return run
