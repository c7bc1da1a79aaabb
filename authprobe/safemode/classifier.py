"""
authprobe/safemode/classifier.py

Classifies the AccessDenied message a deny-all session gets back.

With a session policy of Deny *:*, every request is refused, but the wording
of the refusal says which policy layer made the call:

- "... because no session policy allows ..." / "identity-based policy":
  the resource policy would have allowed it -> the topic is public to this
  principal
- "explicit deny in a resource-based policy": the topic denies explicitly
- "no resource-based policy allows": the topic grants nothing
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PolicyClassification(str, Enum):
    PUBLIC = "public"
    PRIVATE_DENY = "private-deny"
    PRIVATE_NO_POLICY = "private-no-policy"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def private(self) -> bool:
        return self in (PolicyClassification.PRIVATE_DENY, PolicyClassification.PRIVATE_NO_POLICY)


_LABELS = {
    PolicyClassification.PUBLIC: "PUBLIC",
    PolicyClassification.PRIVATE_DENY: "PRIVATE",
    PolicyClassification.PRIVATE_NO_POLICY: "PRIVATE",
    PolicyClassification.UNKNOWN: "UNKNOWN",
}


@dataclass(frozen=True)
class ClassificationResult:
    classification: PolicyClassification
    reason: str


def classify_from_error_message(error_message: str) -> ClassificationResult:
    # Order matters: a public verdict wins over any resource-policy phrase
    if "identity-based policy" in error_message or "session policy" in error_message:
        return ClassificationResult(PolicyClassification.PUBLIC, "session/identity policy")

    if "explicit deny in a resource-based policy" in error_message:
        return ClassificationResult(PolicyClassification.PRIVATE_DENY, "resource policy deny")

    if "no resource-based policy allows" in error_message:
        return ClassificationResult(PolicyClassification.PRIVATE_NO_POLICY, "no resource policy")

    return ClassificationResult(PolicyClassification.UNKNOWN, "unrecognized error format")
