"""
authprobe/engine/models.py

Purpose:
    Result records for the run modes other than request-mutations (which
    uses executor.models.RunResult). Each serialises to the summary.json
    layout of its mode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from authprobe.executor.models import ResponseOutcome
from authprobe.safemode.classifier import PolicyClassification


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _leg(outcome: Optional[ResponseOutcome], error: Optional[str] = None) -> Dict[str, Any]:
    if outcome is None:
        return {"status": 0, "success": False, "error": error or "request failed"}
    data: Dict[str, Any] = {"status": outcome.status, "success": outcome.success}
    if not outcome.success and outcome.error_code:
        data["error"] = outcome.error_code
    if outcome.request_id:
        data["requestId"] = outcome.request_id
    return data


# ---------------------------------------------------------------------------
# Probe mode
# ---------------------------------------------------------------------------

@dataclass
class ProbeActionResult:
    action: str
    unsigned: Optional[ResponseOutcome] = None
    signed: Optional[ResponseOutcome] = None
    unsigned_error: Optional[str] = None
    signed_error: Optional[str] = None
    signed_attempted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"unsigned": _leg(self.unsigned, self.unsigned_error)}
        if self.signed_attempted:
            data["signed"] = _leg(self.signed, self.signed_error)
        return data


@dataclass
class ProbeRunResult:
    topic_arn: str
    region: str
    mode: str
    credentials_available: bool
    actions: List[ProbeActionResult] = field(default_factory=list)
    identity_arn: Optional[str] = None
    output_path: Optional[Path] = None
    timestamp: datetime = field(default_factory=_now)

    def totals(self) -> Dict[str, Any]:
        signed = [a for a in self.actions if a.signed_attempted]
        unsigned_ok = sum(1 for a in self.actions if a.unsigned and a.unsigned.success)
        signed_ok = sum(1 for a in signed if a.signed and a.signed.success)
        return {
            "total": len(self.actions),
            "unsigned": {"success": unsigned_ok, "failed": len(self.actions) - unsigned_ok},
            "signed": {"success": signed_ok, "failed": len(signed) - signed_ok},
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topicArn": self.topic_arn,
            "region": self.region,
            "timestamp": self.timestamp.isoformat(),
            "mode": self.mode,
            "credentialsAvailable": self.credentials_available,
            "identity": self.identity_arn,
            "results": {a.action: a.to_dict() for a in self.actions},
            "summary": self.totals(),
        }


# ---------------------------------------------------------------------------
# Compare mode
# ---------------------------------------------------------------------------

@dataclass
class ComparisonResult:
    action: str
    allowed: Optional[ResponseOutcome] = None
    denied: Optional[ResponseOutcome] = None
    error: Optional[str] = None

    @property
    def match(self) -> bool:
        if self.allowed is None or self.denied is None:
            return False
        return self.allowed.status == self.denied.status

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "action": self.action,
            "match": self.match,
            "allowedStatus": self.allowed.status if self.allowed else None,
            "deniedStatus": self.denied.status if self.denied else None,
        }
        if self.allowed and not self.allowed.success and self.allowed.error_code:
            data["allowedError"] = self.allowed.error_code
        if self.denied and not self.denied.success and self.denied.error_code:
            data["deniedError"] = self.denied.error_code
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class CompareRunResult:
    allowed_arn: str
    denied_arn: str
    mode: str
    comparisons: List[ComparisonResult] = field(default_factory=list)
    identity_arn: Optional[str] = None
    output_path: Optional[Path] = None
    timestamp: datetime = field(default_factory=_now)

    def totals(self) -> Dict[str, int]:
        matching = sum(1 for c in self.comparisons if c.match)
        return {"total": len(self.comparisons), "matching": matching, "different": len(self.comparisons) - matching}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowedTopicArn": self.allowed_arn,
            "deniedTopicArn": self.denied_arn,
            "timestamp": self.timestamp.isoformat(),
            "mode": self.mode,
            "identity": self.identity_arn,
            "comparisons": [c.to_dict() for c in self.comparisons],
            "summary": self.totals(),
        }


# ---------------------------------------------------------------------------
# Session-errors mode
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionActionResult:
    action: str
    status: int
    classification: PolicyClassification
    reason: str
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "action": self.action,
            "status": self.status,
            "classification": self.classification.value,
            "reason": self.reason,
        }
        if self.error_message:
            data["errorMessage"] = self.error_message
        return data


@dataclass
class TopicSessionResult:
    topic_arn: str
    actions: List[SessionActionResult] = field(default_factory=list)

    def count(self, classification: PolicyClassification) -> int:
        return sum(1 for a in self.actions if a.classification == classification)

    def totals(self) -> Dict[str, int]:
        return {
            "total": len(self.actions),
            "public": self.count(PolicyClassification.PUBLIC),
            "privateDeny": self.count(PolicyClassification.PRIVATE_DENY),
            "privateNoPolicy": self.count(PolicyClassification.PRIVATE_NO_POLICY),
            "unknown": self.count(PolicyClassification.UNKNOWN),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"topicArn": self.topic_arn, "actions": [a.to_dict() for a in self.actions], "summary": self.totals()}


@dataclass
class SessionErrorsResult:
    role_arn: str
    assumed_role_arn: str
    session_name: str
    mode: str
    topics: List[TopicSessionResult] = field(default_factory=list)
    output_path: Optional[Path] = None
    timestamp: datetime = field(default_factory=_now)

    def totals(self) -> Dict[str, int]:
        all_actions = [a for t in self.topics for a in t.actions]
        return {
            "totalTopics": len(self.topics),
            "totalActions": len(all_actions),
            "publicActions": sum(1 for a in all_actions if a.classification == PolicyClassification.PUBLIC),
            "privateActions": sum(1 for a in all_actions if a.classification.private),
            "unknownActions": sum(1 for a in all_actions if a.classification == PolicyClassification.UNKNOWN),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roleArn": self.role_arn,
            "assumedRoleArn": self.assumed_role_arn,
            "sessionName": self.session_name,
            "topicArns": [t.topic_arn for t in self.topics],
            "timestamp": self.timestamp.isoformat(),
            "mode": self.mode,
            "results": [t.to_dict() for t in self.topics],
            "summary": self.totals(),
        }
