"""Credential loading, verification, and role assumption."""
#
# KEY MODULES:
# - models.py: AwsCredentials / CallerIdentity / AssumedRole records
# - loader.py: boto3 default credential chain
# - sts.py: GetCallerIdentity and AssumeRole through a boto3 STS client
#
from .models import AssumedRole, AwsCredentials, CallerIdentity
from .loader import load_credentials
from .sts import DENY_ALL_POLICY, StsClientFactory, assume_role_with_policy, make_sts_client, verify_credentials

__all__ = [
    "AssumedRole",
    "AwsCredentials",
    "CallerIdentity",
    "load_credentials",
    "DENY_ALL_POLICY",
    "StsClientFactory",
    "assume_role_with_policy",
    "make_sts_client",
    "verify_credentials",
]
