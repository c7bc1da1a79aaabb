"""
authprobe/engine/session_errors.py

Session-errors mode: assume a role with a deny-all session policy, send each
action to each topic, and read the AccessDenied wording to tell which policy
layer refused. A refusal attributed to the session policy means the topic's
resource policy would have allowed the call.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, TextIO

from authprobe.actions import RunMode, get_actions_by_mode
from authprobe.actions.models import Action
from authprobe.base.arn import endpoint_for_region, parse_arn, parse_sns_topic_arn
from authprobe.base.config import ProbeConfig
from authprobe.credentials.models import AwsCredentials
from authprobe.credentials.sts import (
    DENY_ALL_POLICY,
    StsClientFactory,
    assume_role_with_policy,
    verify_credentials,
)
from authprobe.errors import ConfigurationError, CredentialsError, ErrorCode, TransportError
from authprobe.net.parser import parse_error_details
from authprobe.net.sender import RequestSender
from authprobe.net.transport import Transport
from authprobe.reporting.directory import OutputDirectory
from authprobe.reporting.summary import (
    format_session_errors_summary,
    format_session_header,
    format_session_row,
    format_topic_session_summary,
)
from authprobe.safemode.classifier import PolicyClassification, classify_from_error_message
from .common import (
    Console,
    CredentialsProvider,
    default_credentials_provider,
    default_sts_factory,
    make_sender,
    open_transport,
    resolve_config,
)
from .models import SessionActionResult, SessionErrorsResult, TopicSessionResult

logger = logging.getLogger(__name__)


async def _test_topic(
    topic_arn: str,
    actions: Sequence[Action],
    credentials: AwsCredentials,
    sender: RequestSender,
    output: OutputDirectory,
    echo: Console,
) -> TopicSessionResult:
    region = parse_sns_topic_arn(topic_arn).region
    endpoint = endpoint_for_region(region)
    topic_name = topic_arn.split(":")[-1] or "topic"
    result = TopicSessionResult(topic_arn=topic_arn)

    echo(f"Testing: {topic_arn}")
    echo()
    echo(format_session_header())

    for action in actions:
        try:
            exchange = await sender.send(endpoint, action.build_params(topic_arn), region, credentials)
        except TransportError as e:
            logger.warning(f"[SessionErrors] {action.name} on {topic_name} failed: {e.message}")
            entry = SessionActionResult(
                action=action.name,
                status=0,
                classification=PolicyClassification.UNKNOWN,
                reason=f"transport failure ({e.message})",
            )
        else:
            output.record(f"{action.name}-{topic_name}", exchange, region)
            message = parse_error_details(exchange.response.body).message or ""
            classified = classify_from_error_message(message)
            entry = SessionActionResult(
                action=action.name,
                status=exchange.response.status,
                classification=classified.classification,
                reason=classified.reason,
                error_message=message or None,
            )

        result.actions.append(entry)
        echo(format_session_row(entry))

    echo()
    echo(format_topic_session_summary(result))
    echo()
    return result


async def run_session_errors(
    role_arn: str,
    topic_arns: Sequence[str],
    *,
    mode: RunMode = RunMode.ALL,
    config: Optional[ProbeConfig] = None,
    transport: Optional[Transport] = None,
    credentials_provider: Optional[CredentialsProvider] = None,
    sts_client_factory: Optional[StsClientFactory] = None,
    stream: Optional[TextIO] = None,
    session_name: Optional[str] = None,
) -> SessionErrorsResult:
    """
    Raises:
        ConfigurationError: role or topics missing.
        ArnParseError: a supplied ARN is malformed.
        CredentialsError: no credentials, verification or AssumeRole failed.
    """
    if not role_arn or not topic_arns:
        raise ConfigurationError(
            ErrorCode.CONFIG_MISSING_REQUIRED,
            "Session errors mode requires a role ARN and at least one topic ARN: "
            "--session-errors <role-arn> <topic-arn...>",
        )

    cfg = resolve_config(config)
    echo = Console(stream)
    role = parse_arn(role_arn)
    for topic_arn in topic_arns:
        parse_sns_topic_arn(topic_arn)
    sts_region = role.region or cfg.aws.sts_region
    actions = get_actions_by_mode(mode)

    base_credentials = (credentials_provider or default_credentials_provider(cfg))()
    if base_credentials is None:
        raise CredentialsError(ErrorCode.CREDENTIALS_MISSING, "Session errors mode requires AWS credentials")

    async with open_transport(transport, cfg) as t:
        sender = make_sender(t, cfg)
        sts_factory = sts_client_factory or default_sts_factory(cfg)
        identity = await verify_credentials(base_credentials, sts_region, sts_factory)
        echo(f"Credentials verified: {identity.arn}")
        echo()
        echo("Assuming role with deny-all session policy...")

        assumed = await assume_role_with_policy(
            base_credentials,
            sts_region,
            role_arn,
            session_name=session_name,
            session_policy=DENY_ALL_POLICY,
            client_factory=sts_factory,
        )
        echo(f"Assumed role: {assumed.assumed_role_arn}")
        echo()
        echo("Session Errors Mode (deny-all session policy)")
        echo()
        echo(f"Role:     {role_arn}")
        echo(f"Session:  {assumed.session_name}")
        echo("Policy:   Deny:*:*")
        echo()

        output = OutputDirectory.create(
            cfg.output.base_dir,
            topic_arns[0],
            suffix="session-errors",
            write_http_logs=cfg.output.write_http_logs,
            write_reproduce_scripts=cfg.output.write_reproduce_scripts,
        )
        result = SessionErrorsResult(
            role_arn=role_arn,
            assumed_role_arn=assumed.assumed_role_arn,
            session_name=assumed.session_name,
            mode=RunMode(mode).value,
            output_path=output.path,
        )

        for topic_arn in topic_arns:
            result.topics.append(await _test_topic(topic_arn, actions, assumed.credentials, sender, output, echo))

    output.write_summary(result.to_dict())
    echo(format_session_errors_summary(result))
    echo()
    echo(f"Output: {output.path}")
    return result
