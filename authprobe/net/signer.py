"""
authprobe/net/signer.py

Purpose:
    Builds Query-API requests and signs them with AWS Signature Version 4.

    Signatures are time-scoped: callers sign immediately before sending and
    never cache a signed request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping
from urllib.parse import urlencode

from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from .models import HttpRequest

if TYPE_CHECKING:
    from authprobe.credentials.models import AwsCredentials

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class SigningContext:
    service: str
    region: str
    credentials: "AwsCredentials"


def build_unsigned_request(endpoint: str, params: Mapping[str, str], user_agent: str) -> HttpRequest:
    """POST the parameters form-encoded to the service endpoint."""
    return HttpRequest(
        method="POST",
        url=endpoint,
        headers={
            "Content-Type": FORM_CONTENT_TYPE,
            "User-Agent": user_agent,
        },
        body=urlencode(list(params.items())),
    )


def sign_request(request: HttpRequest, context: SigningContext) -> HttpRequest:
    creds = context.credentials
    aws_request = AWSRequest(
        method=request.method,
        url=request.url,
        data=request.body or "",
        headers=dict(request.headers),
    )
    SigV4Auth(
        Credentials(creds.access_key_id, creds.secret_access_key, creds.session_token),
        context.service,
        context.region,
    ).add_auth(aws_request)

    return HttpRequest(
        method=request.method,
        url=request.url,
        headers={k: str(v) for k, v in aws_request.headers.items()},
        body=request.body,
    )
