"""
authprobe/credentials/sts.py

STS calls through a boto3 client:
- GetCallerIdentity to verify credentials before a run
- AssumeRole with an inline session policy (session-errors mode)

boto3 clients block, so each call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from authprobe.base.config import NetConfig
from authprobe.errors import CredentialsError, ErrorCode
from .models import AssumedRole, AwsCredentials, CallerIdentity

logger = logging.getLogger(__name__)

DENY_ALL_POLICY = json.dumps(
    {
        "Version": "2012-10-17",
        "Statement": [{"Effect": "Deny", "Action": "*", "Resource": "*"}],
    }
)

# ClientError codes STS uses for credentials that are no longer valid
EXPIRED_TOKEN_CODES = frozenset({"ExpiredToken", "ExpiredTokenException", "TokenRefreshRequired", "RequestExpired"})

# (credentials, region) -> boto3 STS client
StsClientFactory = Callable[[AwsCredentials, str], Any]


def make_sts_client(credentials: AwsCredentials, region: str, net: Optional[NetConfig] = None) -> Any:
    """Build an STS client bound to exactly these credentials, bounded by the net settings."""
    net = net or NetConfig()
    session = boto3.Session(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        aws_session_token=credentials.session_token,
    )
    return session.client(
        "sts",
        region_name=region,
        verify=net.verify_tls,
        config=Config(
            connect_timeout=net.request_timeout,
            read_timeout=net.request_timeout,
            retries={"max_attempts": net.max_retries, "mode": "standard"},
            user_agent_extra=net.user_agent,
        ),
    )


def _client_error_parts(e: ClientError) -> tuple:
    error = e.response.get("Error", {})
    return error.get("Code", "Unknown"), error.get("Message", str(e))


async def verify_credentials(
    credentials: AwsCredentials,
    region: str,
    client_factory: Optional[StsClientFactory] = None,
) -> CallerIdentity:
    """
    Confirm the credentials work and return who they belong to.

    Raises:
        CredentialsError: CREDENTIALS_EXPIRED for expired tokens,
            CREDENTIALS_VERIFICATION_FAILED for anything else.
    """
    client = (client_factory or make_sts_client)(credentials, region)
    try:
        response = await asyncio.to_thread(client.get_caller_identity)
    except ClientError as e:
        error_code, error_message = _client_error_parts(e)
        if error_code in EXPIRED_TOKEN_CODES:
            raise CredentialsError(
                ErrorCode.CREDENTIALS_EXPIRED,
                "AWS credentials have expired. Please refresh your credentials and try again.",
                details={"sts_code": error_code, "sts_message": error_message},
            ) from e
        raise CredentialsError(
            ErrorCode.CREDENTIALS_VERIFICATION_FAILED,
            f"Credential verification failed: {error_message}",
            details={"sts_code": error_code},
        ) from e
    except BotoCoreError as e:
        raise CredentialsError(
            ErrorCode.CREDENTIALS_VERIFICATION_FAILED, f"Credential verification failed: {e}"
        ) from e

    account = response.get("Account")
    arn = response.get("Arn")
    user_id = response.get("UserId")
    if not (account and arn and user_id):
        raise CredentialsError(ErrorCode.CREDENTIALS_VERIFICATION_FAILED, "Incomplete caller identity response")

    logger.info(f"[Credentials] Verified identity {arn}")
    return CallerIdentity(account=account, arn=arn, user_id=user_id)


async def assume_role_with_policy(
    credentials: AwsCredentials,
    region: str,
    role_arn: str,
    session_name: Optional[str] = None,
    session_policy: Optional[str] = None,
    client_factory: Optional[StsClientFactory] = None,
) -> AssumedRole:
    """
    AssumeRole, optionally narrowed by an inline session policy.

    Raises:
        CredentialsError: CREDENTIALS_ASSUME_ROLE_FAILED on any failure.
    """
    session_name = session_name or f"authprobe-{int(time.time() * 1000)}"
    kwargs = {"RoleArn": role_arn, "RoleSessionName": session_name}
    if session_policy:
        kwargs["Policy"] = session_policy

    client = (client_factory or make_sts_client)(credentials, region)
    try:
        response = await asyncio.to_thread(client.assume_role, **kwargs)
    except ClientError as e:
        error_code, error_message = _client_error_parts(e)
        raise CredentialsError(
            ErrorCode.CREDENTIALS_ASSUME_ROLE_FAILED,
            f"Failed to assume role: {error_message}",
            details={"role_arn": role_arn, "sts_code": error_code},
        ) from e
    except BotoCoreError as e:
        raise CredentialsError(
            ErrorCode.CREDENTIALS_ASSUME_ROLE_FAILED,
            f"Failed to assume role: {e}",
            details={"role_arn": role_arn},
        ) from e

    issued = response.get("Credentials", {})
    access_key = issued.get("AccessKeyId")
    secret_key = issued.get("SecretAccessKey")
    token = issued.get("SessionToken")
    if not (access_key and secret_key and token):
        raise CredentialsError(ErrorCode.CREDENTIALS_ASSUME_ROLE_FAILED, "AssumeRole returned no credentials")

    assumed_arn = response.get("AssumedRoleUser", {}).get("Arn", "")
    logger.info(f"[Credentials] Assumed role {assumed_arn or role_arn} (session {session_name})")
    return AssumedRole(
        credentials=AwsCredentials(access_key, secret_key, token),
        assumed_role_arn=assumed_arn,
        session_name=session_name,
    )
