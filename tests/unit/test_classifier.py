"""
Unit tests for the usefulness classifier decision list.
"""
import pytest

from authprobe.executor.classifier import (
    SAFE_PROBE_MUTATIONS,
    classify_mutation,
    codes_match,
    transport_failure_verdict,
)
from authprobe.executor.models import ResponseOutcome, VerdictCategory


def outcome(status, code=None):
    return ResponseOutcome(status=status, error_code=code)


AUTH = "AuthorizationError"


def test_safe_list():
    assert SAFE_PROBE_MUTATIONS == {
        ("UntagResource", "nonexistent-tag-key"),
        ("RemovePermission", "invalid-label"),
    }


class TestRules:
    def test_noop_probe(self):
        verdict = classify_mutation(
            outcome(200), outcome(403, AUTH), outcome(403, AUTH),
            action_name="UntagResource", mutation_name="nonexistent-tag-key",
        )
        assert verdict.useful is True
        assert verdict.category == VerdictCategory.NOOP_PROBE
        assert verdict.category.value == "no-op probe"

    def test_noop_probe_requires_safe_list(self):
        verdict = classify_mutation(
            outcome(200), outcome(403, AUTH), outcome(404, "NotFound"),
            action_name="TagResource", mutation_name="nonexistent-tag",
        )
        assert verdict.useful is False
        assert "not recognized as side-effect-free" in verdict.reason

    def test_noop_probe_requires_denied_403(self):
        verdict = classify_mutation(
            outcome(200), outcome(200), outcome(404, "NotFound"),
            action_name="RemovePermission", mutation_name="invalid-label",
        )
        assert verdict.useful is False

    @pytest.mark.parametrize(
        "denied,nonexistent",
        [
            (outcome(403, AUTH), outcome(403, AUTH)),
            (outcome(400, "InvalidParameter"), outcome(404, "NotFound")),
            (outcome(200), outcome(200)),
        ],
    )
    def test_allowed_403_is_never_useful(self, denied, nonexistent):
        verdict = classify_mutation(outcome(403, AUTH), denied, nonexistent)
        assert verdict.useful is False
        assert verdict.reason == "auth failed on allowed target"

    def test_allowed_403_on_safe_listed_pair(self):
        verdict = classify_mutation(
            outcome(403, AUTH), outcome(403, AUTH), outcome(403, AUTH),
            action_name="UntagResource", mutation_name="nonexistent-tag-key",
        )
        assert verdict.useful is False

    def test_pre_auth_identical_failure(self):
        verdict = classify_mutation(
            outcome(400, "ValidationError"), outcome(400, "ValidationError"), outcome(400, "ValidationError"),
        )
        assert verdict.useful is False
        assert verdict.category == VerdictCategory.PRE_AUTH
        assert "pre-auth" in verdict.reason

    def test_unexpected_denied_status(self):
        verdict = classify_mutation(
            outcome(400, "InvalidParameter"), outcome(404, "NotFound"), outcome(404, "NotFound"),
        )
        assert verdict.useful is False
        assert verdict.category == VerdictCategory.OTHER
        assert "unexpected denied-target status 404" in verdict.reason

    def test_nonexistent_reproduces_allowed(self):
        verdict = classify_mutation(
            outcome(400, "InvalidParameter"), outcome(403, AUTH), outcome(400, "InvalidParameter"),
        )
        assert verdict.useful is False
        assert verdict.category == VerdictCategory.PRE_AUTH
        assert "no possible authorization" in verdict.reason

    def test_safe_probe(self):
        verdict = classify_mutation(
            outcome(400, "InvalidParameter"), outcome(403, AUTH), outcome(403, AUTH),
        )
        assert verdict.useful is True
        assert verdict.category == VerdictCategory.SAFE_PROBE
        assert "auth passed" in verdict.reason

    def test_safe_probe_with_nonexistent_404(self):
        verdict = classify_mutation(
            outcome(400, "InvalidParameter"), outcome(403, AUTH), outcome(404, "NotFound"),
        )
        assert verdict.useful is True

    def test_uncontrolled_success(self):
        verdict = classify_mutation(outcome(200), outcome(403, AUTH), outcome(403, AUTH))
        assert verdict.useful is False
        assert verdict.reason == "200 but mutation not recognized as side-effect-free"

    def test_inconclusive_carries_all_statuses(self):
        verdict = classify_mutation(outcome(500, "InternalError"), outcome(403, AUTH), outcome(400, "InvalidParameter"))
        assert verdict.useful is False
        assert verdict.category == VerdictCategory.INCONCLUSIVE
        assert "allowed=500" in verdict.reason
        assert "denied=403" in verdict.reason
        assert "nonexistent=400" in verdict.reason


class TestAbsentCodes:
    def test_codes_match(self):
        assert codes_match("A", "A")
        assert not codes_match("A", "B")
        assert not codes_match(None, "A")
        assert not codes_match(None, None)
        assert codes_match(None, None, absent_codes_match=True)
        assert not codes_match(None, "A", absent_codes_match=True)

    def test_absent_codes_do_not_make_pre_auth_by_default(self):
        verdict = classify_mutation(outcome(400), outcome(400), outcome(400))
        assert verdict.category == VerdictCategory.OTHER
        assert "unexpected denied-target status" in verdict.reason

    def test_absent_codes_match_when_enabled(self):
        verdict = classify_mutation(outcome(400), outcome(400), outcome(400), absent_codes_match=True)
        assert verdict.category == VerdictCategory.PRE_AUTH

    def test_rule_four_with_absent_codes(self):
        default = classify_mutation(outcome(404), outcome(403), outcome(404))
        assert default.category == VerdictCategory.SAFE_PROBE
        enabled = classify_mutation(outcome(404), outcome(403), outcome(404), absent_codes_match=True)
        assert enabled.category == VerdictCategory.PRE_AUTH


def test_classifier_is_deterministic():
    triple = (outcome(400, "InvalidParameter"), outcome(403, AUTH), outcome(404, "NotFound"))
    verdicts = {classify_mutation(*triple, action_name="Publish", mutation_name="empty-message") for _ in range(5)}
    assert len(verdicts) == 1


def test_transport_failure_verdict():
    verdict = transport_failure_verdict("Request timed out after 10.0s")
    assert verdict.useful is False
    assert verdict.category == VerdictCategory.INCONCLUSIVE
    assert "timed out" in verdict.reason
