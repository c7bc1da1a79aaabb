"""Pytest configuration for authprobe."""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl

import boto3
import httpx
import pytest
from botocore.stub import ANY, Stubber

from authprobe.base.config import OutputConfig, ProbeConfig, set_config
from authprobe.credentials.models import AwsCredentials
from authprobe.net.transport import HttpTransport

ALLOWED_ARN = "arn:aws:sns:us-east-1:123456789012:allowed-topic"
DENIED_ARN = "arn:aws:sns:us-east-1:123456789012:denied-topic"
ROLE_ARN = "arn:aws:iam::123456789012:role/prober"
CALLER_ARN = "arn:aws:iam::123456789012:user/tester"
ASSUMED_KEY_ID = "ASIAASSUMEDEXAMPLE"
ASSUMED_TOKEN = "assumed-session-token"


def error_xml(code: str, message: str = "", type_: str = "Sender") -> str:
    return (
        '<ErrorResponse xmlns="http://sns.amazonaws.com/doc/2010-03-31/">'
        f"<Error><Type>{type_}</Type><Code>{code}</Code><Message>{message}</Message></Error>"
        "<RequestId>req-error-1</RequestId></ErrorResponse>"
    )


def success_xml(action: str) -> str:
    return (
        f"<{action}Response><{action}Result/>"
        f"<ResponseMetadata><RequestId>req-ok-1</RequestId></ResponseMetadata></{action}Response>"
    )


class StubbedSts:
    """
    A real boto3 STS client with botocore's Stubber in front of it.

    Queue responses with add_identity / add_assume_role / add_error, then hand
    `factory` to the code under test; every client it builds is this one.
    """

    def __init__(self):
        self.client = boto3.client(
            "sts",
            region_name="us-east-1",
            aws_access_key_id="AKIDSTUB",
            aws_secret_access_key="stub-secret",
        )
        self.stubber = Stubber(self.client)
        self.calls: List[Tuple[AwsCredentials, str]] = []

    def factory(self, credentials: AwsCredentials, region: str):
        self.calls.append((credentials, region))
        return self.client

    def add_identity(self, arn: str = CALLER_ARN) -> None:
        self.stubber.add_response(
            "get_caller_identity",
            {"UserId": "AIDATESTUSER", "Account": "123456789012", "Arn": arn},
            {},
        )

    def add_assume_role(self, expected_params: Optional[Dict[str, object]] = None, session_name: str = "audit") -> None:
        if expected_params is None:
            expected_params = {"RoleArn": ROLE_ARN, "RoleSessionName": ANY, "Policy": ANY}
        self.stubber.add_response(
            "assume_role",
            {
                "Credentials": {
                    "AccessKeyId": ASSUMED_KEY_ID,
                    "SecretAccessKey": "assumed-secret",
                    "SessionToken": ASSUMED_TOKEN,
                    "Expiration": datetime(2030, 1, 1, tzinfo=timezone.utc),
                },
                "AssumedRoleUser": {
                    "AssumedRoleId": f"AROATESTROLE:{session_name}",
                    "Arn": f"arn:aws:sts::123456789012:assumed-role/prober/{session_name}",
                },
            },
            expected_params,
        )

    def add_error(self, operation: str, code: str, message: str, status: int = 403) -> None:
        self.stubber.add_client_error(
            operation, service_error_code=code, service_message=message, http_status_code=status
        )


class FakeAws:
    """
    Minimal SNS behind httpx.MockTransport.

    SNS checks Action first (for everyone), then authorizes: only the allowed
    topic passes; a nonexistent-* topic is 404; anything else is 403. On the
    allowed topic, an empty or oversized parameter value is a 400.
    """

    def __init__(self, allowed_arn: str = ALLOWED_ARN):
        self.allowed_arn = allowed_arn
        self.requests: List[Tuple[httpx.Request, Dict[str, str]]] = []
        self.fail_when: Optional[Callable[[Dict[str, str]], bool]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))
        self.requests.append((request, params))

        if self.fail_when is not None and self.fail_when(params):
            raise httpx.ConnectError("connection refused", request=request)

        return self._sns(request, params)

    @property
    def sns_requests(self) -> List[Dict[str, str]]:
        return [p for r, p in self.requests if r.url.host.startswith("sns.")]

    def _sns(self, request: httpx.Request, params: Dict[str, str]) -> httpx.Response:
        action = params.get("Action")
        if not action:
            return httpx.Response(400, text=error_xml("MissingAction", "Action is missing"))

        target = params.get("TopicArn") or params.get("ResourceArn") or ""

        if request.headers.get("x-amz-security-token") == ASSUMED_TOKEN:
            return httpx.Response(403, text=error_xml("AuthorizationError", self._session_message(action, target)))

        if target == self.allowed_arn:
            if any(v == "" or len(v) > 150 for k, v in params.items() if k != "DataProtectionPolicy"):
                return httpx.Response(400, text=error_xml("InvalidParameter", "Invalid parameter"))
            return httpx.Response(200, text=success_xml(action))
        if ":nonexistent-" in target:
            return httpx.Response(404, text=error_xml("NotFound", "Topic does not exist"))
        return httpx.Response(403, text=error_xml("AuthorizationError", f"not authorized to perform: SNS:{action}"))

    @staticmethod
    def _session_message(action: str, target: str) -> str:
        prefix = f"User is not authorized to perform: SNS:{action} on resource: {target} because"
        if "public" in target:
            return f"{prefix} no session policy allows the SNS:{action} action"
        if "deny" in target:
            return f"{prefix} of an explicit deny in a resource-based policy"
        if "private" in target:
            return f"{prefix} no resource-based policy allows the SNS:{action} action"
        return "Access denied"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_config():
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def credentials() -> AwsCredentials:
    return AwsCredentials("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")


@pytest.fixture
def session_credentials() -> AwsCredentials:
    return AwsCredentials("ASIAEXAMPLE", "secret", "FwoGZXIvYXdzEXAMPLETOKEN")


@pytest.fixture
def config(tmp_path) -> ProbeConfig:
    return ProbeConfig(output=OutputConfig(base_dir=tmp_path / "output"))


@pytest.fixture
def fake_aws() -> FakeAws:
    return FakeAws()


@pytest.fixture
async def transport(fake_aws):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_aws))
    try:
        yield HttpTransport(client=client)
    finally:
        await client.aclose()


@pytest.fixture
def sts():
    stubbed = StubbedSts()
    with stubbed.stubber:
        yield stubbed
