"""
authprobe/executor/models.py

Purpose:
    Data structures for the Differential Prober.

Semantics:
    - ProbeTarget: one leg of the triple, bound to its own ARN, region,
      endpoint and credentials.
    - ProbeTriple: Allowed / Denied / Nonexistent. Built once per run; an
      incomplete triple is a configuration error raised before any request.
    - ResponseOutcome: what one leg observed (status + extracted error code +
      raw body). Immutable.
    - MutationVerdict: the classifier's decision for one (action, mutation).
    - MutationProbeResult / ActionProbeResult / RunResult: the records handed
      to reporting sinks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from authprobe.actions.models import Action
from authprobe.base.arn import endpoint_for_region, generate_nonexistent_arn, parse_sns_topic_arn
from authprobe.credentials.models import AwsCredentials
from authprobe.errors import ConfigurationError, ErrorCode
from authprobe.mutations.models import Mutation
from authprobe.net.models import TransportResponse
from authprobe.net.parser import ErrorDetails, is_success_status, parse_error_code, parse_error_details, parse_request_id


class TargetRole(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    NONEXISTENT = "nonexistent"


class VerdictCategory(str, Enum):
    NOOP_PROBE = "no-op probe"      # 200 on allowed, 403 on denied, known side-effect-free
    SAFE_PROBE = "safe probe"       # auth passed on allowed, then validation failed
    PRE_AUTH = "pre-auth"           # validation ran before authorization
    INCONCLUSIVE = "inconclusive"   # needs manual review (or a leg failed to complete)
    OTHER = "other"


# ---------------------------------------------------------------------------
# Probe triple
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeTarget:
    role: TargetRole
    arn: str
    region: str
    endpoint: str
    credentials: AwsCredentials


@dataclass(frozen=True)
class ProbeTriple:
    allowed: ProbeTarget
    denied: ProbeTarget
    nonexistent: ProbeTarget

    def __iter__(self) -> Iterator[ProbeTarget]:
        # Fixed leg order used for every request sequence
        return iter((self.allowed, self.denied, self.nonexistent))

    def to_dict(self) -> Dict[str, str]:
        return {t.role.value: t.arn for t in self}


def _target(role: TargetRole, arn: str, credentials: AwsCredentials, region_override: Optional[str]) -> ProbeTarget:
    region = region_override or parse_sns_topic_arn(arn).region
    return ProbeTarget(
        role=role,
        arn=arn,
        region=region,
        endpoint=endpoint_for_region(region),
        credentials=credentials,
    )


def validate_triple_arns(allowed_arn: Optional[str], denied_arn: Optional[str]) -> None:
    """
    Check both topic ARNs are present and well formed, needing no credentials.

    Raises:
        ConfigurationError: a target is missing.
        ArnParseError: a supplied ARN is malformed.
    """
    missing = [name for name, value in (("allowed", allowed_arn), ("denied", denied_arn)) if not value]
    if missing:
        raise ConfigurationError(
            ErrorCode.CONFIG_INCOMPLETE_TRIPLE,
            f"Probe triple is incomplete: missing {' and '.join(missing)} topic ARN",
            details={"missing": missing},
        )
    parse_sns_topic_arn(allowed_arn)
    parse_sns_topic_arn(denied_arn)


def build_probe_triple(
    allowed_arn: Optional[str],
    denied_arn: Optional[str],
    credentials: Optional[AwsCredentials],
    region_override: Optional[str] = None,
    suffix_factory: Optional[Callable[[], str]] = None,
    denied_credentials: Optional[AwsCredentials] = None,
) -> ProbeTriple:
    """
    Build the triple for a request-mutations run.

    The nonexistent target is derived from the allowed ARN (same partition,
    region and account, fresh unique topic name) and shares the allowed
    target's credentials.
    region_override applies to the allowed and nonexistent targets; the
    denied target always uses the region in its own ARN.

    Raises:
        ConfigurationError: a target or the credentials are missing.
        ArnParseError: a supplied ARN is malformed.
    """
    validate_triple_arns(allowed_arn, denied_arn)
    if credentials is None:
        raise ConfigurationError(
            ErrorCode.CONFIG_INCOMPLETE_TRIPLE,
            "Request mutations mode requires AWS credentials for every target",
        )

    nonexistent_arn = generate_nonexistent_arn(allowed_arn, suffix_factory)
    return ProbeTriple(
        allowed=_target(TargetRole.ALLOWED, allowed_arn, credentials, region_override),
        denied=_target(TargetRole.DENIED, denied_arn, denied_credentials or credentials, None),
        nonexistent=_target(TargetRole.NONEXISTENT, nonexistent_arn, credentials, region_override),
    )


# ---------------------------------------------------------------------------
# Outcomes and verdicts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResponseOutcome:
    status: int
    error_code: Optional[str] = None
    error_details: ErrorDetails = field(default_factory=ErrorDetails)
    body: str = ""
    request_id: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return is_success_status(self.status)

    @classmethod
    def from_response(cls, response: TransportResponse) -> "ResponseOutcome":
        # A 2xx body carries a result, not an error, even when it echoes <Code> elements
        if is_success_status(response.status):
            return cls(
                status=response.status,
                body=response.body,
                request_id=parse_request_id(response.body),
                duration_ms=response.duration_ms,
            )
        return cls(
            status=response.status,
            error_code=parse_error_code(response.body),
            error_details=parse_error_details(response.body),
            body=response.body,
            request_id=parse_request_id(response.body),
            duration_ms=response.duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status}
        if self.error_code:
            data["errorCode"] = self.error_code
        if self.error_details.message:
            data["errorMessage"] = self.error_details.message
        if self.request_id:
            data["requestId"] = self.request_id
        return data


@dataclass(frozen=True)
class OutcomeTriple:
    """Outcomes of one request sequence; a leg is None if it never completed."""
    allowed: Optional[ResponseOutcome] = None
    denied: Optional[ResponseOutcome] = None
    nonexistent: Optional[ResponseOutcome] = None

    @property
    def complete(self) -> bool:
        return None not in (self.allowed, self.denied, self.nonexistent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            role.value: outcome.to_dict()
            for role, outcome in (
                (TargetRole.ALLOWED, self.allowed),
                (TargetRole.DENIED, self.denied),
                (TargetRole.NONEXISTENT, self.nonexistent),
            )
            if outcome is not None
        }


@dataclass(frozen=True)
class MutationVerdict:
    useful: bool
    category: VerdictCategory
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"useful": self.useful, "category": self.category.value, "reason": self.reason}


@dataclass(frozen=True)
class MutationProbeResult:
    mutation: Mutation
    outcomes: OutcomeTriple
    verdict: MutationVerdict
    error: Optional[str] = None

    @property
    def useful(self) -> bool:
        return self.verdict.useful

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "mutation": self.mutation.name,
            "description": self.mutation.description,
            "kind": self.mutation.kind.value,
            **self.outcomes.to_dict(),
            **self.verdict.to_dict(),
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ActionProbeResult:
    action: Action
    baseline: OutcomeTriple
    mutations: List[MutationProbeResult] = field(default_factory=list)
    baseline_error: Optional[str] = None

    @property
    def useful_mutations(self) -> List[MutationProbeResult]:
        return [m for m in self.mutations if m.useful]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "action": self.action.name,
            "baseline": self.baseline.to_dict(),
            "mutations": [m.to_dict() for m in self.mutations],
        }
        if self.baseline_error:
            data["baselineError"] = self.baseline_error
        return data


@dataclass
class RunResult:
    mode: str
    triple: ProbeTriple
    actions: List[ActionProbeResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    identity_arn: Optional[str] = None

    @property
    def all_mutations(self) -> List[MutationProbeResult]:
        return [m for a in self.actions for m in a.mutations]

    @property
    def useful_mutations(self) -> List[MutationProbeResult]:
        return [m for m in self.all_mutations if m.useful]

    def category_counts(self) -> Dict[str, int]:
        counts = {c.value: 0 for c in VerdictCategory}
        for m in self.all_mutations:
            counts[m.verdict.category.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        useful = [
            {"action": a.action.name, "mutation": m.mutation.name, "category": m.verdict.category.value}
            for a in self.actions
            for m in a.useful_mutations
        ]
        return {
            "mode": self.mode,
            "timestamp": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "identity": self.identity_arn,
            "targets": self.triple.to_dict(),
            "summary": {
                "actionsTested": len(self.actions),
                "mutationsTested": len(self.all_mutations),
                "usefulMutations": len(useful),
                "categories": self.category_counts(),
            },
            "usefulMutations": useful,
            "results": [a.to_dict() for a in self.actions],
        }
