"""
authprobe/actions/models.py

Purpose:
    Data structures for the Action Catalog.

Semantics:
    - Action: one SNS API operation. A plain record pairing the operation
      name with a pure parameter builder; variants differ only in how they
      build parameters, so there is no class hierarchy.
    - ParamMap: the form-encoded Query API parameters of one request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

SNS_API_VERSION = "2010-03-31"

ParamMap = Dict[str, str]
ParamBuilder = Callable[[str], ParamMap]


class ActionCategory(str, Enum):
    READ = "read"
    WRITE = "write"


class ResourceParameter(str, Enum):
    """Name of the parameter that carries the target resource identifier."""
    TOPIC_ARN = "TopicArn"
    RESOURCE_ARN = "ResourceArn"


class RunMode(str, Enum):
    READ = "read"    # Get*/List* only
    SAFE = "safe"    # Actions flagged safe
    ALL = "all"      # Every topic-scoped action, destructive last


def default_params(name: str, parameter: ResourceParameter, target_id: str) -> ParamMap:
    """Minimal request: operation, target, API version."""
    return {
        "Action": name,
        parameter.value: target_id,
        "Version": SNS_API_VERSION,
    }


@dataclass(frozen=True)
class Action:
    name: str
    category: ActionCategory
    safe: bool
    parameter: ResourceParameter = ResourceParameter.TOPIC_ARN
    builder: Optional[ParamBuilder] = None

    # Destructive actions run after everything else in an "all" run
    destructive: bool = False

    # Name of the action that revokes whatever this one grants; the two are
    # scheduled back to back
    revoked_by: Optional[str] = None

    def build_params(self, target_id: str) -> ParamMap:
        """
        Baseline parameters for this action against target_id.

        Always returns a fresh dict containing Action, Version and the
        resource parameter.
        """
        if self.builder is None:
            return default_params(self.name, self.parameter, target_id)
        return dict(self.builder(target_id))

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "category": self.category.value,
            "safe": self.safe,
            "parameterName": self.parameter.value,
            "destructive": self.destructive,
        }
