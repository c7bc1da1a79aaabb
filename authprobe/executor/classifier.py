"""
authprobe/executor/classifier.py

Purpose:
    The Usefulness Classifier. Maps the response triple of one
    (action, mutation) pair to a verdict.

Semantics:
    An ordered decision list; the first matching rule wins. Conditions
    overlap (a 200 can coincide with a no-op match), so the order is part of
    the contract:

    1. no-op probe        safe-listed pair, allowed 200, denied 403
    2. auth failed        allowed 403
    3. denied not 403     same code on both targets -> pre-auth, else other
    4. nonexistent match  nonexistent reproduces allowed -> pre-auth
    5. safe probe         nonexistent 403/404, allowed 4xx other than 403
    6. uncontrolled 200   allowed 200 for a pair not on the safe list
    7. inconclusive       everything else, with all three statuses

    Pure and deterministic: no I/O, no state.
"""

from __future__ import annotations

from typing import FrozenSet, Optional, Tuple

from .models import MutationVerdict, ResponseOutcome, VerdictCategory

# (action, mutation) pairs whose 200 response is known to change nothing:
# - untagging a key that does not exist
# - removing a permission label that does not exist
SAFE_PROBE_MUTATIONS: FrozenSet[Tuple[str, str]] = frozenset({
    ("UntagResource", "nonexistent-tag-key"),
    ("RemovePermission", "invalid-label"),
})

NONEXISTENT_STATUSES = (403, 404)


def is_safe_probe(action_name: Optional[str], mutation_name: Optional[str]) -> bool:
    return (action_name, mutation_name) in SAFE_PROBE_MUTATIONS


def codes_match(a: Optional[str], b: Optional[str], absent_codes_match: bool = False) -> bool:
    """
    Error-code equality. Two absent codes only match when absent_codes_match
    is set; an absent code never matches a present one.
    """
    if a is None or b is None:
        return absent_codes_match and a is None and b is None
    return a == b


def _is_client_error(status: int) -> bool:
    return 400 <= status < 500


def classify_mutation(
    allowed: ResponseOutcome,
    denied: ResponseOutcome,
    nonexistent: ResponseOutcome,
    action_name: Optional[str] = None,
    mutation_name: Optional[str] = None,
    absent_codes_match: bool = False,
) -> MutationVerdict:
    """Decide whether a mutation reveals authorization-before-validation."""

    # 1. No-op probe
    if is_safe_probe(action_name, mutation_name) and allowed.status == 200 and denied.status == 403:
        return MutationVerdict(
            useful=True,
            category=VerdictCategory.NOOP_PROBE,
            reason=f"no-op probe: {action_name}/{mutation_name} succeeded on the allowed target "
                   f"with no side effect, denied target returned 403",
        )

    # 2. Authorization failed where it should pass
    if allowed.status == 403:
        return MutationVerdict(False, VerdictCategory.OTHER, "auth failed on allowed target")

    # 3. Denied target did not fail authorization
    if denied.status != 403:
        if codes_match(denied.error_code, allowed.error_code, absent_codes_match):
            return MutationVerdict(
                False,
                VerdictCategory.PRE_AUTH,
                f"pre-auth validation: identical failure on both targets ({allowed.error_code or 'no error code'})",
            )
        return MutationVerdict(False, VerdictCategory.OTHER, f"unexpected denied-target status {denied.status}")

    # 4. A target nobody can be authorized for reproduces the allowed response
    if nonexistent.status == allowed.status and codes_match(
        nonexistent.error_code, allowed.error_code, absent_codes_match
    ):
        return MutationVerdict(
            False,
            VerdictCategory.PRE_AUTH,
            "pre-auth validation: a target with no possible authorization reproduces the allowed error",
        )

    # 5. Safe probe
    if (
        nonexistent.status in NONEXISTENT_STATUSES
        and _is_client_error(allowed.status)
        and allowed.status != 403
    ):
        return MutationVerdict(
            useful=True,
            category=VerdictCategory.SAFE_PROBE,
            reason=f"safe probe: auth passed then validation failed ({allowed.error_code or allowed.status})",
        )

    # 6. Success without a known-safe mutation
    if allowed.status == 200:
        return MutationVerdict(False, VerdictCategory.OTHER, "200 but mutation not recognized as side-effect-free")

    # 7.
    return MutationVerdict(
        False,
        VerdictCategory.INCONCLUSIVE,
        f"inconclusive: allowed={allowed.status} denied={denied.status} nonexistent={nonexistent.status}",
    )


def transport_failure_verdict(message: str) -> MutationVerdict:
    """Verdict for a pair whose request sequence did not complete."""
    return MutationVerdict(False, VerdictCategory.INCONCLUSIVE, f"inconclusive: transport failure ({message})")
