"""
authprobe/mutations/models.py

Purpose:
    The Mutation record and the invariant every mutation must honour.

Semantics:
    - Mutation: identifier + description + category + a pure transform
      (params, target_id) -> params'. When the parameter a mutation targets
      is absent, the transform returns its input unchanged.
    - apply() never hands the caller's dict to the transform and rejects any
      output that rewrites a resource-identifying parameter: each leg of a
      probe triple must keep hitting its own target.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from authprobe.actions.models import ParamMap, ResourceParameter
from authprobe.errors import ErrorCode, MutationInvariantError

Transform = Callable[[ParamMap, str], ParamMap]

RESOURCE_KEYS = tuple(p.value for p in ResourceParameter)


class MutationKind(str, Enum):
    STRUCTURAL = "structural"       # drop a required (meta-)parameter
    VALUE_DOMAIN = "value-domain"   # invalid enum / name / empty value
    BOUNDARY = "boundary"           # oversized strings beyond documented limits
    ENCODING = "encoding"           # malformed structured-document payloads
    INDEXING = "indexing"           # non-canonical collection indices
    NOOP_SAFE = "no-op-safe"        # value proven not to mutate state


@dataclass(frozen=True)
class Mutation:
    name: str
    description: str
    kind: MutationKind
    transform: Transform

    def apply(self, params: ParamMap, target_id: str) -> ParamMap:
        """
        Run the transform on a copy of params.

        Raises:
            MutationInvariantError: if a resource-identifying parameter was
                added, removed, or changed.
        """
        mutated = self.transform(dict(params), target_id)
        for key in RESOURCE_KEYS:
            if params.get(key) != mutated.get(key):
                raise MutationInvariantError(
                    ErrorCode.MUTATION_ALTERED_RESOURCE,
                    f"Mutation '{self.name}' altered resource parameter {key}",
                    details={"mutation": self.name, "parameter": key},
                )
        return mutated

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description, "kind": self.kind.value}
