"""
authprobe/credentials/models.py

Credential records. Kept free of network imports so the signer can refer to
them without an import cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None

    def __repr__(self) -> str:
        # Never render the secret or token
        return f"AwsCredentials(access_key_id={self.access_key_id!r}, session={'yes' if self.session_token else 'no'})"


@dataclass(frozen=True)
class CallerIdentity:
    account: str
    arn: str
    user_id: str


@dataclass(frozen=True)
class AssumedRole:
    credentials: AwsCredentials
    assumed_role_arn: str
    session_name: str
