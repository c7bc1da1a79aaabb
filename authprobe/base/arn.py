"""
authprobe/base/arn.py

Purpose:
    ARN parsing and the identifiers derived from it: service endpoint for a
    region, run directory names, and the guaranteed-nonexistent topic ARN
    used as the third leg of a probe triple.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from authprobe.errors import ArnParseError, ErrorCode

# Prefix of every generated nonexistent topic name
NONEXISTENT_PREFIX = "nonexistent-"


@dataclass(frozen=True)
class ParsedArn:
    partition: str
    service: str
    region: str
    account_id: str
    resource: str

    @property
    def resource_name(self) -> str:
        """Last path/colon segment of the resource (topic name for SNS)."""
        return self.resource.split(":")[-1].split("/")[-1]


def parse_arn(arn: str) -> ParsedArn:
    """
    Split an ARN into its components.

    Raises:
        ArnParseError: if the ARN is empty, lacks the arn: prefix, or has
            fewer than six colon-separated parts.
    """
    if not arn:
        raise ArnParseError("ARN cannot be empty", code=ErrorCode.ARN_EMPTY)

    parts = arn.split(":")
    if len(parts) < 6:
        raise ArnParseError(
            f"Invalid ARN format: expected at least 6 colon-separated parts, got {len(parts)}",
            details={"arn": arn},
        )

    prefix, partition, service, region, account_id = parts[:5]

    if prefix != "arn":
        raise ArnParseError(f"Invalid ARN: must start with 'arn:', got '{prefix}:'", details={"arn": arn})
    if not partition:
        raise ArnParseError("Invalid ARN: partition cannot be empty", code=ErrorCode.ARN_MISSING_COMPONENT)
    if not service:
        raise ArnParseError("Invalid ARN: service cannot be empty", code=ErrorCode.ARN_MISSING_COMPONENT)

    return ParsedArn(
        partition=partition,
        service=service,
        region=region,
        account_id=account_id,
        resource=":".join(parts[5:]),
    )


def parse_sns_topic_arn(arn: str) -> ParsedArn:
    """Parse an ARN and require it to name an SNS topic with region and account."""
    parsed = parse_arn(arn)

    if parsed.service != "sns":
        raise ArnParseError(
            f"Invalid SNS ARN: service must be 'sns', got '{parsed.service}'",
            code=ErrorCode.ARN_WRONG_SERVICE,
        )
    if not parsed.region:
        raise ArnParseError("Invalid SNS topic ARN: region cannot be empty", code=ErrorCode.ARN_MISSING_COMPONENT)
    if not parsed.account_id:
        raise ArnParseError("Invalid SNS topic ARN: account ID cannot be empty", code=ErrorCode.ARN_MISSING_COMPONENT)
    if not parsed.resource:
        raise ArnParseError("Invalid SNS topic ARN: topic name cannot be empty", code=ErrorCode.ARN_MISSING_COMPONENT)

    return parsed


def region_from_arn(arn: str) -> str:
    return parse_sns_topic_arn(arn).region


def endpoint_for_region(region: str, service: str = "sns") -> str:
    if region.startswith("cn-"):
        return f"https://{service}.{region}.amazonaws.com.cn"
    return f"https://{service}.{region}.amazonaws.com"


def generate_nonexistent_arn(
    allowed_arn: str,
    suffix_factory: Optional[Callable[[], str]] = None,
) -> str:
    """
    Derive a topic ARN that cannot exist.

    Same partition, region and account as the allowed topic; the topic name
    is replaced with a freshly generated UUID so no authorization grant can
    possibly apply to it.
    """
    parsed = parse_sns_topic_arn(allowed_arn)
    suffix = (suffix_factory or (lambda: str(uuid.uuid4())))()
    return f"arn:{parsed.partition}:sns:{parsed.region}:{parsed.account_id}:{NONEXISTENT_PREFIX}{suffix}"


def output_dir_name(topic_arn: str, now: Optional[datetime] = None) -> str:
    """Run directory name: <UTC timestamp>-<topic name>."""
    ts = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    topic_name = topic_arn.split(":")[-1] or "unknown"
    return f"{ts}-{topic_name}"
