"""
authprobe/actions/schedule.py

Purpose:
    Turns a selection of actions into scheduling units that honour the
    catalog's ordering constraints:

    1. A granting action and its revocation run back to back (grant, then
       revoke) inside one unit, so a run never leaves residual access.
    2. Destructive units run after every other unit.

    Units are independent of each other and may be probed concurrently;
    actions inside a unit always run sequentially.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .models import Action


@dataclass(frozen=True)
class ScheduleUnit:
    actions: Tuple[Action, ...]

    @property
    def destructive(self) -> bool:
        return any(a.destructive for a in self.actions)

    @property
    def names(self) -> List[str]:
        return [a.name for a in self.actions]


def build_schedule(actions: Sequence[Action]) -> List[ScheduleUnit]:
    """
    Group actions into units and move destructive units to the end.

    Relative catalog order is otherwise preserved. A revocation whose grant
    is not part of the selection stays a unit of its own.
    """
    by_name = {a.name: a for a in actions}
    consumed = set()
    units: List[ScheduleUnit] = []

    for action in actions:
        if action.name in consumed:
            continue
        members = [action]
        consumed.add(action.name)

        revoker = by_name.get(action.revoked_by) if action.revoked_by else None
        if revoker is not None and revoker.name not in consumed:
            members.append(revoker)
            consumed.add(revoker.name)

        units.append(ScheduleUnit(tuple(members)))

    regular = [u for u in units if not u.destructive]
    destructive = [u for u in units if u.destructive]
    return regular + destructive


def flatten(units: Iterable[ScheduleUnit]) -> List[Action]:
    return [a for unit in units for a in unit.actions]


def order_actions(actions: Sequence[Action]) -> List[Action]:
    """Sequential run order satisfying every scheduling constraint."""
    return flatten(build_schedule(actions))
