"""The probing core: probe triple, outcome/verdict records, classifier, prober."""
#
# KEY MODULES:
# - models.py: ProbeTriple, ResponseOutcome, MutationVerdict, result records
# - classifier.py: ordered decision list mapping an outcome triple to a verdict
# - prober.py: baseline + mutation request sequences against the triple
#
from .models import (
    ActionProbeResult,
    MutationProbeResult,
    MutationVerdict,
    OutcomeTriple,
    ProbeTarget,
    ProbeTriple,
    ResponseOutcome,
    RunResult,
    TargetRole,
    VerdictCategory,
    build_probe_triple,
    validate_triple_arns,
)
from .classifier import SAFE_PROBE_MUTATIONS, classify_mutation, codes_match, transport_failure_verdict
from .prober import DifferentialProber

__all__ = [
    "ActionProbeResult",
    "MutationProbeResult",
    "MutationVerdict",
    "OutcomeTriple",
    "ProbeTarget",
    "ProbeTriple",
    "ResponseOutcome",
    "RunResult",
    "TargetRole",
    "VerdictCategory",
    "build_probe_triple",
    "validate_triple_arns",
    "SAFE_PROBE_MUTATIONS",
    "classify_mutation",
    "codes_match",
    "transport_failure_verdict",
    "DifferentialProber",
]
