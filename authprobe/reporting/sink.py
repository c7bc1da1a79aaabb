"""
authprobe/reporting/sink.py

Purpose:
    The seam between the prober and everything that persists or displays
    its results. The prober calls a ProbeSink; it never prints.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Iterable, List, Optional, Protocol, TextIO, runtime_checkable

if TYPE_CHECKING:
    from authprobe.actions.models import Action
    from authprobe.executor.models import ActionProbeResult, MutationProbeResult, ProbeTarget
    from authprobe.net.models import HttpExchange


@runtime_checkable
class ProbeSink(Protocol):
    """
    Receives prober events in request order.
    Implementations might include:
    - ConsoleSink (terminal progress)
    - DirectorySink (.http transcripts, reproduce scripts)
    - A recording sink in tests
    """

    def on_action_start(self, action: "Action") -> None:
        ...

    def on_exchange(self, action_name: str, label: str, target: "ProbeTarget", exchange: "HttpExchange") -> None:
        ...

    def on_mutation_result(self, action: "Action", result: "MutationProbeResult") -> None:
        ...

    def on_action_complete(self, result: "ActionProbeResult") -> None:
        ...


class NullSink:
    def on_action_start(self, action):
        pass

    def on_exchange(self, action_name, label, target, exchange):
        pass

    def on_mutation_result(self, action, result):
        pass

    def on_action_complete(self, result):
        pass


class CompositeSink:
    """Fans every event out to each child sink, in order."""

    def __init__(self, sinks: Iterable[ProbeSink]):
        self.sinks: List[ProbeSink] = list(sinks)

    def on_action_start(self, action):
        for sink in self.sinks:
            sink.on_action_start(action)

    def on_exchange(self, action_name, label, target, exchange):
        for sink in self.sinks:
            sink.on_exchange(action_name, label, target, exchange)

    def on_mutation_result(self, action, result):
        for sink in self.sinks:
            sink.on_mutation_result(action, result)

    def on_action_complete(self, result):
        for sink in self.sinks:
            sink.on_action_complete(result)


class ConsoleSink:
    """
    Terminal progress for a request-mutations run.
    Useful mutations are always shown; verbose shows every tested mutation.
    """

    def __init__(self, stream: Optional[TextIO] = None, verbose: bool = False):
        self.stream = stream or sys.stdout
        self.verbose = verbose

    def _write(self, line: str = "") -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def on_action_start(self, action):
        self._write(f"Testing {action.name}...")

    def on_exchange(self, action_name, label, target, exchange):
        if self.verbose and label == "baseline":
            self._write(f"  baseline {target.role.value:<12} {exchange.response.status}")

    def on_mutation_result(self, action, result):
        if not (self.verbose or result.useful):
            return
        o = result.outcomes
        statuses = "/".join(str(x.status) if x else "-" for x in (o.allowed, o.denied, o.nonexistent))
        marker = "+" if result.useful else " "
        self._write(f"  {marker} {result.mutation.name:<32} {statuses:<12} {result.verdict.reason}")

    def on_action_complete(self, result):
        useful = len(result.useful_mutations)
        self._write(f"  {len(result.mutations)} mutations tested, {useful} useful")
        self._write()
