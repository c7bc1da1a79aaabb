"""The Action Catalog: SNS operations, their baseline parameters, and run order."""
#
# KEY MODULES:
# - models.py: Action record, categories, resource parameter names
# - catalog.py: The static list of SNS actions and their builders
# - schedule.py: Grant/revoke pairing and destructive-last ordering
#
from typing import List, Union

from authprobe.errors import ConfigurationError, ErrorCode
from .catalog import ACTION_TO_CLI, ALL_ACTIONS
from .models import (
    SNS_API_VERSION,
    Action,
    ActionCategory,
    ParamMap,
    ResourceParameter,
    RunMode,
)
from .schedule import ScheduleUnit, build_schedule, order_actions


def get_read_actions() -> List[Action]:
    return [a for a in ALL_ACTIONS if a.category == ActionCategory.READ]


def get_safe_actions() -> List[Action]:
    return [a for a in ALL_ACTIONS if a.safe]


def get_all_actions() -> List[Action]:
    return list(ALL_ACTIONS)


def get_actions_by_mode(mode: Union[RunMode, str]) -> List[Action]:
    """Select actions for a run mode, already in constraint-respecting order."""
    try:
        mode = RunMode(mode)
    except ValueError as e:
        raise ConfigurationError(ErrorCode.CONFIG_INVALID, f"Unknown run mode: {mode!r}") from e

    if mode == RunMode.READ:
        selected = get_read_actions()
    elif mode == RunMode.SAFE:
        selected = get_safe_actions()
    else:
        selected = get_all_actions()

    # A selected grant always brings its revocation along
    names = {a.name for a in selected}
    revokers = {a.revoked_by for a in selected if a.revoked_by and a.revoked_by not in names}
    if revokers:
        selected = [a for a in ALL_ACTIONS if a.name in names or a.name in revokers]
    return order_actions(selected)


def get_action(name: str) -> Action:
    for action in ALL_ACTIONS:
        if action.name == name:
            return action
    raise KeyError(name)


__all__ = [
    "SNS_API_VERSION",
    "ACTION_TO_CLI",
    "ALL_ACTIONS",
    "Action",
    "ActionCategory",
    "ParamMap",
    "ResourceParameter",
    "RunMode",
    "ScheduleUnit",
    "build_schedule",
    "order_actions",
    "get_read_actions",
    "get_safe_actions",
    "get_all_actions",
    "get_actions_by_mode",
    "get_action",
]
