"""
Differential prober tests against the in-memory SNS fake.
"""
import pytest

from authprobe.actions import get_action, get_actions_by_mode, order_actions
from authprobe.credentials.models import AwsCredentials
from authprobe.errors import ArnParseError, ConfigurationError, ErrorCode
from authprobe.executor import (
    DifferentialProber,
    ResponseOutcome,
    TargetRole,
    VerdictCategory,
    build_probe_triple,
    validate_triple_arns,
)
from authprobe.net.models import TransportResponse
from authprobe.mutations.strategies import get_mutation
from tests.conftest import ALLOWED_ARN, DENIED_ARN

NONEXISTENT_ARN = "arn:aws:sns:us-east-1:123456789012:nonexistent-fixed"


class RecordingSink:
    def __init__(self):
        self.events = []
        self.exchanges = []

    def on_action_start(self, action):
        self.events.append(("start", action.name))

    def on_exchange(self, action_name, label, target, exchange):
        self.exchanges.append((action_name, label, target.role, exchange))

    def on_mutation_result(self, action, result):
        self.events.append(("mutation", action.name, result.mutation.name))

    def on_action_complete(self, result):
        self.events.append(("complete", result.action.name))


@pytest.fixture
def triple(credentials):
    return build_probe_triple(ALLOWED_ARN, DENIED_ARN, credentials, suffix_factory=lambda: "fixed")


def _by_name(result):
    return {m.mutation.name: m for m in result.mutations}


class TestProbeTriple:
    def test_nonexistent_leg_is_derived(self, triple):
        assert triple.nonexistent.arn == NONEXISTENT_ARN
        assert triple.nonexistent.credentials == triple.allowed.credentials
        assert [t.role for t in triple] == [TargetRole.ALLOWED, TargetRole.DENIED, TargetRole.NONEXISTENT]

    def test_region_override_skips_denied(self, credentials):
        denied = "arn:aws:sns:eu-west-1:123456789012:denied-topic"
        triple = build_probe_triple(ALLOWED_ARN, denied, credentials, region_override="us-west-2")
        assert triple.allowed.region == "us-west-2"
        assert triple.nonexistent.region == "us-west-2"
        assert triple.denied.region == "eu-west-1"
        assert triple.denied.endpoint == "https://sns.eu-west-1.amazonaws.com"

    @pytest.mark.parametrize(
        "allowed, denied, creds",
        [(None, DENIED_ARN, True), (ALLOWED_ARN, None, True), (ALLOWED_ARN, DENIED_ARN, False)],
    )
    def test_incomplete_triple(self, credentials, allowed, denied, creds):
        with pytest.raises(ConfigurationError) as exc_info:
            build_probe_triple(allowed, denied, credentials if creds else None)
        assert exc_info.value.code == ErrorCode.CONFIG_INCOMPLETE_TRIPLE

    def test_arns_checked_without_credentials(self):
        validate_triple_arns(ALLOWED_ARN, DENIED_ARN)
        with pytest.raises(ArnParseError):
            validate_triple_arns(ALLOWED_ARN, "arn:aws:sns:us-east-1:123456789012")

    def test_region_override_does_not_skip_arn_check(self, credentials):
        with pytest.raises(ArnParseError):
            build_probe_triple(
                "arn:aws:sqs:us-east-1:123456789012:q", DENIED_ARN, credentials, region_override="us-east-1"
            )


class TestResponseOutcome:
    def test_success_body_has_no_error_code(self):
        body = (
            "<ListTagsForResourceResponse><ListTagsForResourceResult><Tags><member>"
            "<Key>Code</Key><Value>x</Value></member></Tags></ListTagsForResourceResult>"
            "<ResponseMetadata><RequestId>req-ok-1</RequestId></ResponseMetadata>"
            "<Code>Echoed</Code><Message>not an error</Message></ListTagsForResourceResponse>"
        )
        outcome = ResponseOutcome.from_response(TransportResponse(status=200, headers={}, body=body, duration_ms=1.0))

        assert outcome.success
        assert outcome.error_code is None
        assert outcome.error_details.message is None
        assert outcome.request_id == "req-ok-1"
        assert outcome.to_dict() == {"status": 200, "requestId": "req-ok-1"}

    def test_error_body_is_parsed(self):
        body = "<ErrorResponse><Error><Code>AuthorizationError</Code><Message>denied</Message></Error></ErrorResponse>"
        outcome = ResponseOutcome.from_response(TransportResponse(status=403, headers={}, body=body, duration_ms=1.0))

        assert outcome.error_code == "AuthorizationError"
        assert outcome.error_details.message == "denied"


class TestProbeAction:
    @pytest.mark.anyio
    async def test_baseline_leg_order(self, triple, transport, fake_aws):
        sink = RecordingSink()
        prober = DifferentialProber(triple, transport, sink=sink, mutations=[])

        result = await prober.probe_action(get_action("GetTopicAttributes"))

        assert [role for _, _, role, _ in sink.exchanges] == [
            TargetRole.ALLOWED, TargetRole.DENIED, TargetRole.NONEXISTENT,
        ]
        assert [p["TopicArn"] for p in fake_aws.sns_requests] == [ALLOWED_ARN, DENIED_ARN, NONEXISTENT_ARN]
        assert result.baseline.allowed.status == 200
        assert result.baseline.denied.status == 403
        assert result.baseline.denied.error_code == "AuthorizationError"
        assert result.baseline.nonexistent.status == 404
        assert result.mutations == []

    @pytest.mark.anyio
    async def test_unchanged_mutation_sends_nothing(self, triple, transport, fake_aws):
        prober = DifferentialProber(triple, transport, mutations=[get_mutation("empty-label")])

        result = await prober.probe_action(get_action("Publish"))

        assert result.mutations == []
        assert len(fake_aws.sns_requests) == 3

    @pytest.mark.anyio
    async def test_untag_resource_verdicts(self, triple, transport, fake_aws):
        sink = RecordingSink()
        prober = DifferentialProber(triple, transport, sink=sink)

        result = await prober.probe_action(get_action("UntagResource"))
        verdicts = _by_name(result)

        assert set(verdicts) == {
            "remove-action", "remove-version", "nonexistent-tag-key", "remove-tag-keys",
            "empty-tag-keys", "long-tag-keys", "zero-index-tag-key",
        }
        assert verdicts["nonexistent-tag-key"].verdict.category == VerdictCategory.NOOP_PROBE
        assert verdicts["empty-tag-keys"].verdict.category == VerdictCategory.SAFE_PROBE
        assert verdicts["long-tag-keys"].verdict.category == VerdictCategory.SAFE_PROBE
        assert verdicts["remove-action"].verdict.category == VerdictCategory.PRE_AUTH
        assert verdicts["remove-version"].verdict.category == VerdictCategory.OTHER
        assert {m.mutation.name for m in result.useful_mutations} == {
            "nonexistent-tag-key", "empty-tag-keys", "long-tag-keys",
        }
        # baseline + 7 mutations, three legs each
        assert len(fake_aws.sns_requests) == 24
        assert sink.events[0] == ("start", "UntagResource")
        assert sink.events[-1] == ("complete", "UntagResource")

    @pytest.mark.anyio
    async def test_resource_arn_never_mutated(self, triple, transport, fake_aws):
        prober = DifferentialProber(triple, transport)
        await prober.probe_action(get_action("TagResource"))

        targets = {p.get("ResourceArn") for p in fake_aws.sns_requests}
        assert targets == {ALLOWED_ARN, DENIED_ARN, NONEXISTENT_ARN}

    @pytest.mark.anyio
    async def test_transport_failure_is_inconclusive(self, triple, transport, fake_aws):
        fake_aws.fail_when = lambda p: p.get("TagKeys.member.1") == "" and p.get("ResourceArn") == DENIED_ARN
        prober = DifferentialProber(triple, transport)

        result = await prober.probe_action(get_action("UntagResource"))
        verdicts = _by_name(result)

        failed = verdicts["empty-tag-keys"]
        assert failed.verdict.category == VerdictCategory.INCONCLUSIVE
        assert failed.verdict.reason.startswith("inconclusive: transport failure")
        assert failed.error
        assert failed.outcomes.allowed.status == 400
        assert failed.outcomes.denied is None
        assert failed.outcomes.nonexistent is None
        # the run moved on
        assert verdicts["long-tag-keys"].verdict.category == VerdictCategory.SAFE_PROBE

    @pytest.mark.anyio
    async def test_baseline_transport_failure(self, triple, transport, fake_aws):
        fake_aws.fail_when = lambda p: p.get("TopicArn") == NONEXISTENT_ARN and "Message" in p
        prober = DifferentialProber(triple, transport, mutations=[])

        result = await prober.probe_action(get_action("Publish"))

        assert result.baseline_error
        assert not result.baseline.complete
        assert result.baseline.denied.status == 403

    @pytest.mark.anyio
    async def test_each_leg_signed_with_its_own_credentials(self, credentials, transport, fake_aws):
        denied_creds = AwsCredentials("AKIDDENIED", "other-secret")
        triple = build_probe_triple(ALLOWED_ARN, DENIED_ARN, credentials, denied_credentials=denied_creds)
        prober = DifferentialProber(triple, transport, mutations=[])

        await prober.probe_action(get_action("GetTopicAttributes"))

        auth = {p["TopicArn"]: r.headers["authorization"] for r, p in fake_aws.requests}
        assert "Credential=AKIDDENIED/" in auth[DENIED_ARN]
        assert "Credential=AKIDEXAMPLE/" in auth[ALLOWED_ARN]


class TestRun:
    @pytest.mark.anyio
    @pytest.mark.parametrize("concurrency", [1, 4])
    async def test_results_in_run_order(self, triple, transport, concurrency):
        sink = RecordingSink()
        actions = get_actions_by_mode("all")
        prober = DifferentialProber(triple, transport, sink=sink, mutations=[], concurrency=concurrency)

        results = await prober.run(actions)

        assert [r.action.name for r in results] == [a.name for a in order_actions(actions)]
        assert results[-1].action.name == "DeleteTopic"

        starts = [e[1] for e in sink.events if e[0] == "start"]
        completes = [e[1] for e in sink.events if e[0] == "complete"]
        assert starts[-1] == "DeleteTopic"
        assert len(completes) == len(actions)
        # DeleteTopic only starts once everything else has finished
        delete_start = sink.events.index(("start", "DeleteTopic"))
        assert all(sink.events.index(("complete", name)) < delete_start for name in completes if name != "DeleteTopic")
        # the grant completes before its revocation starts
        assert sink.events.index(("complete", "AddPermission")) < sink.events.index(("start", "RemovePermission"))

    @pytest.mark.anyio
    async def test_from_config(self, triple, transport, config):
        prober = DifferentialProber.from_config(triple, transport, config)
        assert prober.sender.timeout == config.net.request_timeout
        assert prober.concurrency == config.run.max_concurrent_actions
        assert prober.absent_codes_match is False
