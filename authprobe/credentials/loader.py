"""
authprobe/credentials/loader.py

Loads credentials through the standard AWS credential chain (environment,
shared config/credentials files, SSO, instance metadata) via boto3.
"""

from __future__ import annotations

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ProfileNotFound

from authprobe.errors import CredentialsError, ErrorCode
from .models import AwsCredentials

logger = logging.getLogger(__name__)


def load_credentials(profile: Optional[str] = None) -> Optional[AwsCredentials]:
    """
    Resolve credentials from the default chain (or a named profile).

    Returns:
        AwsCredentials, or None when the chain yields nothing.

    Raises:
        CredentialsError: if a named profile does not exist or the chain
            itself fails.
    """
    try:
        session = boto3.Session(profile_name=profile)
        resolved = session.get_credentials()
    except ProfileNotFound as e:
        raise CredentialsError(
            ErrorCode.CREDENTIALS_MISSING,
            f"AWS profile '{profile}' not found. Check ~/.aws/config and ~/.aws/credentials",
            details={"profile": profile},
        ) from e
    except BotoCoreError as e:
        raise CredentialsError(ErrorCode.CREDENTIALS_MISSING, f"Failed to resolve AWS credentials: {e}") from e

    if resolved is None:
        logger.info("[Credentials] No AWS credentials found in the default chain")
        return None

    frozen = resolved.get_frozen_credentials()
    if not frozen.access_key or not frozen.secret_key:
        return None

    logger.debug(f"[Credentials] Loaded credentials via {getattr(resolved, 'method', 'unknown')}")
    return AwsCredentials(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token or None,
    )
