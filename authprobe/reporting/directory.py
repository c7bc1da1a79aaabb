"""
authprobe/reporting/directory.py

Purpose:
    Everything a run leaves on disk, under one timestamped directory:

        <base>/<timestamp>-<topic>[-<suffix>]/
            <action>-<leg>.http           raw request + response transcripts
            reproduce/<action>-<leg>.sh   curl / awscurl replay scripts
            summary.json

    The security token header is redacted in every transcript.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlsplit

from authprobe.actions.catalog import ACTION_TO_CLI
from authprobe.base.arn import output_dir_name
from authprobe.net.models import HttpExchange, HttpRequest, TransportResponse

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
SECRET_HEADERS = frozenset({"x-amz-security-token"})


# ---------------------------------------------------------------------------
# Transcript formatting
# ---------------------------------------------------------------------------

def format_http_request(request: HttpRequest) -> str:
    url = urlsplit(request.url)
    lines = [f"{request.method} {url.path or '/'} HTTP/1.1", f"Host: {url.netloc}"]
    for key, value in request.headers.items():
        if key.lower() == "host":
            continue
        lines.append(f"{key}: {REDACTED if key.lower() in SECRET_HEADERS else value}")
    lines.append("")
    if request.body:
        lines.append(request.body)
    return "\r\n".join(lines)


def format_http_response(response: TransportResponse) -> str:
    lines = [f"HTTP/1.1 {response.status} {response.reason}".rstrip()]
    lines.extend(f"{k}: {v}" for k, v in response.headers.items())
    lines.append("")
    lines.append(response.body)
    return "\r\n".join(lines)


def format_exchange(exchange: HttpExchange) -> str:
    return f"{format_http_request(exchange.request)}\r\n\r\n---\r\n\r\n{format_http_response(exchange.response)}"


# ---------------------------------------------------------------------------
# Reproduce scripts
# ---------------------------------------------------------------------------

def _quote(value: str) -> str:
    """Single-quote for POSIX shells."""
    return "'" + value.replace("'", "'\"'\"'") + "'"


def aws_cli_command(params: Mapping[str, str], region: str) -> Optional[str]:
    """
    Closest AWS CLI equivalent. Mutated requests often will not pass the
    CLI's own validation; the command is informational.
    """
    action = params.get("Action")
    cli_cmd = ACTION_TO_CLI.get(action or "")
    target = params.get("TopicArn") or params.get("ResourceArn")
    if not cli_cmd or not target:
        return None

    arn_flag = "--resource-arn" if "ResourceArn" in params else "--topic-arn"
    parts = [f"aws sns {cli_cmd}", f"--region {region}", f"{arn_flag} {_quote(target)}"]

    if action == "SetTopicAttributes" and params.get("AttributeName"):
        parts.append(f"--attribute-name {_quote(params['AttributeName'])}")
        if params.get("AttributeValue"):
            parts.append(f"--attribute-value {_quote(params['AttributeValue'])}")
    elif action == "Publish" and params.get("Message"):
        parts.append(f"--message {_quote(params['Message'])}")
    elif action == "Subscribe" and params.get("Protocol") and params.get("Endpoint"):
        parts.append(f"--protocol {_quote(params['Protocol'])}")
        parts.append(f"--endpoint {_quote(params['Endpoint'])}")
    elif action == "AddPermission" and params.get("Label"):
        parts.append(f"--label {_quote(params['Label'])}")
        action_name = next((v for k, v in params.items() if k.startswith("ActionName.member.")), None)
        principal = next((v for k, v in params.items() if k.startswith("AWSAccountId.member.")), None)
        if action_name:
            parts.append(f"--action-name {_quote(action_name)}")
        if principal:
            parts.append(f"--aws-account-id {_quote(principal)}")
    elif action == "RemovePermission" and params.get("Label"):
        parts.append(f"--label {_quote(params['Label'])}")

    return " \\\n  ".join(parts)


def reproduce_script(request: HttpRequest, region: str, service: str = "sns") -> str:
    """curl for unsigned requests, awscurl for signed ones."""
    body = request.body or ""
    params = dict(parse_qsl(body, keep_blank_values=True))
    cli = aws_cli_command(params, region)
    cli_section = ""
    if cli:
        commented = "\n".join(f"# {line}" for line in cli.splitlines())
        cli_section = f"\n# AWS CLI (may not work for mutated params):\n{commented}\n"

    if not request.signed:
        return (
            "#!/bin/bash\n"
            "# Unsigned request\n"
            f"curl -s -X POST {_quote(request.url)} \\\n"
            "  -H 'Content-Type: application/x-www-form-urlencoded' \\\n"
            f"  -d {_quote(body)}\n"
            f"{cli_section}"
        )

    return (
        "#!/bin/bash\n"
        "# Signed request (requires: pip install awscurl)\n"
        f"awscurl --service {service} --region {region} -X POST \\\n"
        "  -H 'Content-Type: application/x-www-form-urlencoded' \\\n"
        f"  -d {_quote(body)} \\\n"
        f"  {_quote(request.url)}\n"
        f"{cli_section}"
    )


# ---------------------------------------------------------------------------
# Output directory
# ---------------------------------------------------------------------------

class OutputDirectory:
    """One run's output directory."""

    def __init__(self, path: Path, write_http_logs: bool = True, write_reproduce_scripts: bool = True):
        self.path = Path(path)
        self.write_http_logs = write_http_logs
        self.write_reproduce_scripts = write_reproduce_scripts

    @classmethod
    def create(
        cls,
        base_dir: Path,
        topic_arn: str,
        suffix: Optional[str] = None,
        write_http_logs: bool = True,
        write_reproduce_scripts: bool = True,
    ) -> "OutputDirectory":
        name = output_dir_name(topic_arn)
        if suffix:
            name = f"{name}-{suffix}"
        path = Path(base_dir) / name
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"[Output] Writing run artifacts to {path}")
        return cls(path, write_http_logs, write_reproduce_scripts)

    def record(self, name: str, exchange: HttpExchange, region: str) -> None:
        """Transcript and replay script for one exchange, as enabled."""
        if self.write_http_logs:
            self.write_http_log(name, exchange)
        if self.write_reproduce_scripts:
            self.write_reproduce_script(name, exchange.request, region)

    def write_http_log(self, name: str, exchange: HttpExchange) -> Path:
        target = self.path / f"{name}.http"
        target.write_text(format_exchange(exchange), encoding="utf-8")
        return target

    def write_reproduce_script(self, name: str, request: HttpRequest, region: str) -> Path:
        reproduce_dir = self.path / "reproduce"
        reproduce_dir.mkdir(parents=True, exist_ok=True)
        target = reproduce_dir / f"{name}.sh"
        target.write_text(reproduce_script(request, region), encoding="utf-8")
        target.chmod(0o755)
        return target

    def write_summary(self, summary: Dict[str, Any]) -> Path:
        target = self.path / "summary.json"
        target.write_text(json.dumps(summary, indent=2, default=str), encoding="utf-8")
        return target


class DirectorySink:
    """ProbeSink that records every exchange of a request-mutations run."""

    def __init__(self, output: OutputDirectory):
        self.output = output

    def on_action_start(self, action):
        pass

    def on_exchange(self, action_name, label, target, exchange):
        if label == "baseline":
            name = f"{action_name}-{target.role.value}"
        else:
            name = f"{action_name}-{label}-{target.role.value}"
        self.output.record(name, exchange, target.region)

    def on_mutation_result(self, action, result):
        pass

    def on_action_complete(self, result):
        pass
