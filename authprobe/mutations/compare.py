"""
authprobe/mutations/compare.py

Mutation-Change Detector: decides whether a mutation actually changed a
request. The prober skips pairs that did not, so an action never spends a
round-trip on a mutation whose parameter it does not carry.
"""

from __future__ import annotations

from typing import Mapping


def did_mutation_change_params(original: Mapping[str, str], mutated: Mapping[str, str]) -> bool:
    """
    True if the key sets differ (order ignored) or any shared key's value differs.
    """
    if set(original) != set(mutated):
        return True
    return any(original[key] != mutated[key] for key in original)
