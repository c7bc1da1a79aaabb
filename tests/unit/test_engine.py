"""
End-to-end run modes against the in-memory SNS fake and a stubbed STS client.
"""
import io
import json

import pytest

from authprobe.actions import RunMode
from authprobe.credentials import DENY_ALL_POLICY
from authprobe.engine import run_compare, run_probe, run_request_mutations, run_session_errors
from authprobe.errors import ArnParseError, ConfigurationError, CredentialsError, ErrorCode
from authprobe.safemode import PolicyClassification
from tests.conftest import ALLOWED_ARN, CALLER_ARN, DENIED_ARN, ROLE_ARN

PUBLIC_ARN = "arn:aws:sns:us-east-1:123456789012:public-topic"
PRIVATE_ARN = "arn:aws:sns:us-east-1:123456789012:private-topic"
READ_ACTIONS = ["GetTopicAttributes", "GetDataProtectionPolicy", "ListSubscriptionsByTopic", "ListTagsForResource"]


def _run_dir(config):
    (path,) = list(config.output.base_dir.iterdir())
    return path


def _summary(config):
    return json.loads((_run_dir(config) / "summary.json").read_text())


class RecordingProvider:
    """Credentials provider that notes every time it is asked."""

    def __init__(self, credentials=None):
        self.credentials = credentials
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.credentials


class TestProbeMode:
    @pytest.mark.anyio
    async def test_unsigned_then_signed(self, config, transport, fake_aws, credentials, sts):
        sts.add_identity()
        stream = io.StringIO()
        run = await run_probe(
            ALLOWED_ARN,
            mode=RunMode.READ,
            config=config,
            transport=transport,
            credentials_provider=lambda: credentials,
            sts_client_factory=sts.factory,
            stream=stream,
        )

        assert [a.action for a in run.actions] == READ_ACTIONS
        assert all(a.signed_attempted for a in run.actions)
        assert run.identity_arn == CALLER_ARN

        sns = [r for r, _ in fake_aws.requests if r.url.host.startswith("sns.")]
        assert len(sns) == 8
        assert "authorization" not in sns[0].headers
        assert "authorization" in sns[1].headers

        run_dir = _run_dir(config)
        assert (run_dir / "GetTopicAttributes-unsigned.http").exists()
        assert (run_dir / "reproduce" / "GetTopicAttributes-signed.sh").exists()

        summary = _summary(config)
        assert summary["topicArn"] == ALLOWED_ARN
        assert summary["credentialsAvailable"] is True
        assert summary["results"]["GetTopicAttributes"]["signed"]["status"] == 200
        assert summary["summary"]["total"] == 4
        assert "Credentials verified" in stream.getvalue()

    @pytest.mark.anyio
    async def test_without_credentials(self, config, transport, fake_aws):
        stream = io.StringIO()
        run = await run_probe(
            DENIED_ARN,
            mode=RunMode.READ,
            config=config,
            transport=transport,
            credentials_provider=lambda: None,
            stream=stream,
        )

        assert not run.credentials_available
        assert not any(a.signed_attempted for a in run.actions)
        assert len(fake_aws.requests) == 4
        assert "N/A" in stream.getvalue()
        assert "signed" not in _summary(config)["results"]["GetTopicAttributes"]

    @pytest.mark.anyio
    async def test_failed_verification_falls_back_to_unsigned(self, config, transport, fake_aws, credentials, sts):
        sts.add_error("get_caller_identity", "InvalidClientTokenId", "The security token is invalid")
        stream = io.StringIO()

        run = await run_probe(
            ALLOWED_ARN,
            mode=RunMode.READ,
            config=config,
            transport=transport,
            credentials_provider=lambda: credentials,
            sts_client_factory=sts.factory,
            stream=stream,
        )

        assert not run.credentials_available
        assert "Continuing with unsigned requests only..." in stream.getvalue()
        assert len(fake_aws.sns_requests) == 4

    @pytest.mark.anyio
    async def test_malformed_arn(self, config, transport, fake_aws):
        with pytest.raises(ArnParseError):
            await run_probe("arn:aws:s3:::bucket", config=config, transport=transport, credentials_provider=lambda: None)
        assert fake_aws.requests == []

    @pytest.mark.anyio
    async def test_region_override_still_checks_arn(self, config, transport, fake_aws):
        provider = RecordingProvider()

        with pytest.raises(ArnParseError):
            await run_probe(
                "arn:aws:s3:::bucket", region="us-east-1", config=config, transport=transport, credentials_provider=provider
            )
        assert provider.calls == 0
        assert fake_aws.requests == []


class TestCompareMode:
    @pytest.mark.anyio
    async def test_compare(self, config, transport, fake_aws, credentials, sts):
        sts.add_identity()
        stream = io.StringIO()
        run = await run_compare(
            ALLOWED_ARN,
            DENIED_ARN,
            mode=RunMode.READ,
            verbose=True,
            config=config,
            transport=transport,
            credentials_provider=lambda: credentials,
            sts_client_factory=sts.factory,
            stream=stream,
        )

        assert [c.action for c in run.comparisons] == READ_ACTIONS
        assert all(c.allowed.status == 200 and c.denied.status == 403 for c in run.comparisons)
        assert run.totals() == {"total": 4, "matching": 0, "different": 4}
        assert _run_dir(config).name.endswith("-allowed-topic-compare")
        assert (_run_dir(config) / "ListTagsForResource-denied.http").exists()
        assert "[DIFF]" in stream.getvalue()
        assert _summary(config)["comparisons"][0]["deniedError"] == "AuthorizationError"

    @pytest.mark.anyio
    async def test_requires_credentials(self, config, transport, fake_aws):
        with pytest.raises(CredentialsError) as exc_info:
            await run_compare(
                ALLOWED_ARN, DENIED_ARN, config=config, transport=transport, credentials_provider=lambda: None
            )
        assert exc_info.value.code == ErrorCode.CREDENTIALS_MISSING
        assert fake_aws.requests == []

    @pytest.mark.anyio
    async def test_malformed_arn_checked_before_credentials(self, config, transport, fake_aws, credentials):
        provider = RecordingProvider(credentials)

        with pytest.raises(ArnParseError):
            await run_compare(
                "arn:aws:sqs:us-east-1:123456789012:queue",
                DENIED_ARN,
                region="us-east-1",
                config=config,
                transport=transport,
                credentials_provider=provider,
            )
        assert provider.calls == 0
        assert fake_aws.requests == []

    @pytest.mark.anyio
    async def test_requires_both_topics(self, config, transport):
        with pytest.raises(ConfigurationError):
            await run_compare(ALLOWED_ARN, "", config=config, transport=transport)


class TestRequestMutationsMode:
    @pytest.mark.anyio
    async def test_safe_run(self, config, transport, fake_aws, credentials, sts):
        sts.add_identity()
        stream = io.StringIO()
        run = await run_request_mutations(
            ALLOWED_ARN,
            DENIED_ARN,
            mode=RunMode.SAFE,
            config=config,
            transport=transport,
            credentials_provider=lambda: credentials,
            sts_client_factory=sts.factory,
            stream=stream,
            suffix_factory=lambda: "fixed",
        )

        names = [a.action.name for a in run.actions]
        # the grant is immediately followed by its revocation
        assert names[names.index("AddPermission") + 1] == "RemovePermission"
        assert "DeleteTopic" not in names

        useful = {(a.action.name, m.mutation.name) for a in run.actions for m in a.useful_mutations}
        assert ("UntagResource", "nonexistent-tag-key") in useful
        assert ("RemovePermission", "invalid-label") in useful
        assert ("Publish", "empty-message") in useful

        run_dir = _run_dir(config)
        assert run_dir.name.endswith("-allowed-topic-request-mutations")
        assert (run_dir / "Publish-allowed.http").exists()
        assert (run_dir / "Publish-empty-message-nonexistent.http").exists()

        summary = _summary(config)
        assert summary["targets"]["nonexistent"].endswith(":nonexistent-fixed")
        assert summary["summary"]["usefulMutations"] == len(useful)
        assert "Request Mutations Mode" in stream.getvalue()
        assert "Useful mutations:" in stream.getvalue()

    @pytest.mark.anyio
    async def test_incomplete_triple_sends_nothing(self, config, transport, fake_aws, credentials):
        with pytest.raises(ConfigurationError) as exc_info:
            await run_request_mutations(
                ALLOWED_ARN, None, config=config, transport=transport, credentials_provider=lambda: credentials
            )
        assert exc_info.value.code == ErrorCode.CONFIG_INCOMPLETE_TRIPLE
        assert fake_aws.requests == []

    @pytest.mark.anyio
    async def test_malformed_arn_checked_before_credentials(self, config, transport, fake_aws, credentials):
        provider = RecordingProvider(credentials)

        with pytest.raises(ArnParseError):
            await run_request_mutations(
                ALLOWED_ARN,
                "arn:aws:sns:us-east-1:123456789012",
                config=config,
                transport=transport,
                credentials_provider=provider,
            )
        assert provider.calls == 0
        assert fake_aws.requests == []

    @pytest.mark.anyio
    async def test_region_override_still_checks_allowed_arn(self, config, transport, credentials):
        provider = RecordingProvider(credentials)

        with pytest.raises(ArnParseError):
            await run_request_mutations(
                "arn:aws:sqs:us-east-1:123456789012:queue",
                DENIED_ARN,
                region="eu-west-1",
                config=config,
                transport=transport,
                credentials_provider=provider,
            )
        assert provider.calls == 0

    @pytest.mark.anyio
    async def test_missing_credentials_sends_nothing(self, config, transport, fake_aws):
        with pytest.raises(ConfigurationError):
            await run_request_mutations(
                ALLOWED_ARN, DENIED_ARN, config=config, transport=transport, credentials_provider=lambda: None
            )
        assert fake_aws.requests == []


class TestSessionErrorsMode:
    @pytest.mark.anyio
    async def test_classifies_each_topic(self, config, transport, fake_aws, credentials, sts):
        sts.add_identity()
        sts.add_assume_role({"RoleArn": ROLE_ARN, "RoleSessionName": "audit", "Policy": DENY_ALL_POLICY})
        stream = io.StringIO()
        result = await run_session_errors(
            ROLE_ARN,
            [PUBLIC_ARN, PRIVATE_ARN],
            mode=RunMode.READ,
            config=config,
            transport=transport,
            credentials_provider=lambda: credentials,
            sts_client_factory=sts.factory,
            stream=stream,
            session_name="audit",
        )

        public, private = result.topics
        assert {a.classification for a in public.actions} == {PolicyClassification.PUBLIC}
        assert {a.classification for a in private.actions} == {PolicyClassification.PRIVATE_NO_POLICY}
        assert result.totals()["publicActions"] == 4
        assert result.totals()["privateActions"] == 4
        assert result.session_name == "audit"

        assert result.assumed_role_arn.endswith("assumed-role/prober/audit")
        sts.stubber.assert_no_pending_responses()

        run_dir = _run_dir(config)
        assert (run_dir / "GetTopicAttributes-public-topic.http").exists()
        assert (run_dir / "GetTopicAttributes-private-topic.http").exists()
        assert "PUBLIC (would be allowed): 4" in stream.getvalue()
        assert _summary(config)["summary"]["totalTopics"] == 2

    @pytest.mark.anyio
    async def test_transport_failure_is_unknown(self, config, transport, fake_aws, credentials, sts):
        sts.add_identity()
        sts.add_assume_role()
        fake_aws.fail_when = lambda p: p.get("Action") == "ListTagsForResource"
        result = await run_session_errors(
            ROLE_ARN,
            [PUBLIC_ARN],
            mode=RunMode.READ,
            config=config,
            transport=transport,
            credentials_provider=lambda: credentials,
            sts_client_factory=sts.factory,
            stream=io.StringIO(),
        )

        failed = [a for a in result.topics[0].actions if a.action == "ListTagsForResource"][0]
        assert failed.status == 0
        assert failed.classification == PolicyClassification.UNKNOWN

    @pytest.mark.anyio
    async def test_assume_role_failure(self, config, transport, fake_aws, credentials, sts):
        sts.add_identity()
        sts.add_error("assume_role", "AccessDenied", "not authorized to perform: sts:AssumeRole")

        with pytest.raises(CredentialsError) as exc_info:
            await run_session_errors(
                ROLE_ARN,
                [PUBLIC_ARN],
                config=config,
                transport=transport,
                credentials_provider=lambda: credentials,
                sts_client_factory=sts.factory,
                stream=io.StringIO(),
            )
        assert exc_info.value.code == ErrorCode.CREDENTIALS_ASSUME_ROLE_FAILED
        assert fake_aws.sns_requests == []

    @pytest.mark.anyio
    async def test_requires_topics(self, config, transport):
        with pytest.raises(ConfigurationError):
            await run_session_errors(ROLE_ARN, [], config=config, transport=transport)
