"""
authprobe/executor/prober.py

Purpose:
    The Differential Prober. For each action:

    1. Sends the unmutated baseline to allowed, denied and nonexistent (in
       that order) to record reference behaviour.
    2. For every mutation that actually changes the allowed baseline, applies
       it to each target's own baseline, signs each request with that
       target's credentials/region and sends the three sequentially.
    3. Hands the outcome triple to the classifier.

Standards:
    - Sign immediately before sending (RequestSender). A retry is a new
      signature.
    - A transport failure (including the per-request deadline) aborts only
      the current request sequence; that mutation is marked inconclusive.
    - No console output. Progress and evidence go to the injected sink.
    - Independent scheduling units may run concurrently; results are
      returned in run order regardless of completion order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from authprobe.actions.models import Action, ParamMap
from authprobe.actions.schedule import ScheduleUnit, build_schedule, order_actions
from authprobe.base.config import ProbeConfig
from authprobe.errors import TransportError
from authprobe.mutations.compare import did_mutation_change_params
from authprobe.mutations.models import Mutation
from authprobe.mutations.strategies import get_mutations_for_action
from authprobe.net.sender import RequestSender, Signer
from authprobe.net.signer import sign_request
from authprobe.net.transport import Transport
from authprobe.reporting.sink import NullSink, ProbeSink
from .classifier import classify_mutation, transport_failure_verdict
from .models import (
    ActionProbeResult,
    MutationProbeResult,
    OutcomeTriple,
    ProbeTriple,
    ResponseOutcome,
    TargetRole,
)

logger = logging.getLogger(__name__)

BASELINE_LABEL = "baseline"


class DifferentialProber:
    def __init__(
        self,
        triple: ProbeTriple,
        transport: Transport,
        *,
        signer: Signer = sign_request,
        sink: Optional[ProbeSink] = None,
        mutations: Optional[Sequence[Mutation]] = None,
        user_agent: str = "authprobe/0.1.0",
        timeout: float = 10.0,
        max_retries: int = 2,
        concurrency: int = 1,
        absent_codes_match: bool = False,
        retry_base_delay: float = 0.5,
        retry_max_delay: float = 5.0,
    ):
        self.triple = triple
        self.sink: ProbeSink = sink or NullSink()
        self.mutations = list(mutations) if mutations is not None else None
        self.concurrency = max(1, concurrency)
        self.absent_codes_match = absent_codes_match
        self.sender = RequestSender(
            transport,
            signer=signer,
            user_agent=user_agent,
            timeout=timeout,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            retry_max_delay=retry_max_delay,
        )

    @classmethod
    def from_config(
        cls,
        triple: ProbeTriple,
        transport: Transport,
        config: ProbeConfig,
        sink: Optional[ProbeSink] = None,
    ) -> "DifferentialProber":
        return cls(
            triple,
            transport,
            sink=sink,
            user_agent=config.net.user_agent,
            timeout=config.net.request_timeout,
            max_retries=config.net.max_retries,
            concurrency=config.run.max_concurrent_actions,
            absent_codes_match=config.run.absent_codes_match,
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, actions: Sequence[Action]) -> List[ActionProbeResult]:
        """
        Probe every action. Destructive units start only after all other
        units have finished.
        """
        units = build_schedule(actions)
        position = {a.name: i for i, a in enumerate(order_actions(actions))}
        results: List[ActionProbeResult] = []
        lock = asyncio.Lock()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_unit(unit: ScheduleUnit) -> None:
            async with semaphore:
                # Inside a unit: strictly sequential (grant, then revoke)
                for action in unit.actions:
                    result = await self.probe_action(action)
                    async with lock:
                        results.append(result)

        regular = [u for u in units if not u.destructive]
        destructive = [u for u in units if u.destructive]

        logger.info(
            f"[Prober] {len(actions)} actions in {len(units)} units "
            f"(concurrency={self.concurrency}, destructive={len(destructive)})"
        )

        await asyncio.gather(*(run_unit(u) for u in regular))
        for unit in destructive:
            await run_unit(unit)

        results.sort(key=lambda r: position[r.action.name])
        return results

    async def probe_action(self, action: Action) -> ActionProbeResult:
        self.sink.on_action_start(action)
        logger.info(f"[Prober] Testing {action.name}")

        baselines: Dict[TargetRole, ParamMap] = {t.role: action.build_params(t.arn) for t in self.triple}
        baseline, baseline_error = await self._run_sequence(action, BASELINE_LABEL, baselines)
        result = ActionProbeResult(action=action, baseline=baseline, baseline_error=baseline_error)

        allowed_baseline = baselines[TargetRole.ALLOWED]
        for mutation in self._mutations_for(action):
            probe = mutation.apply(allowed_baseline, self.triple.allowed.arn)
            if not did_mutation_change_params(allowed_baseline, probe):
                continue

            mutated = {t.role: mutation.apply(baselines[t.role], t.arn) for t in self.triple}
            outcomes, error = await self._run_sequence(action, mutation.name, mutated)

            if error is not None:
                verdict = transport_failure_verdict(error)
            else:
                verdict = classify_mutation(
                    outcomes.allowed,
                    outcomes.denied,
                    outcomes.nonexistent,
                    action_name=action.name,
                    mutation_name=mutation.name,
                    absent_codes_match=self.absent_codes_match,
                )

            mutation_result = MutationProbeResult(mutation=mutation, outcomes=outcomes, verdict=verdict, error=error)
            result.mutations.append(mutation_result)
            self.sink.on_mutation_result(action, mutation_result)
            logger.debug(f"[Prober] {action.name}/{mutation.name}: {verdict.category.value} ({verdict.reason})")

        logger.info(
            f"[Prober] {action.name}: {len(result.mutations)} mutations, "
            f"{len(result.useful_mutations)} useful"
        )
        self.sink.on_action_complete(result)
        return result

    def _mutations_for(self, action: Action) -> List[Mutation]:
        if self.mutations is not None:
            return self.mutations
        return get_mutations_for_action(action.name)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def _run_sequence(
        self,
        action: Action,
        label: str,
        params_by_role: Dict[TargetRole, ParamMap],
    ) -> Tuple[OutcomeTriple, Optional[str]]:
        """Send the three legs in fixed order; stop at the first transport failure."""
        outcomes: Dict[str, ResponseOutcome] = {}
        for target in self.triple:
            try:
                exchange = await self.sender.send(
                    target.endpoint, params_by_role[target.role], target.region, target.credentials
                )
            except TransportError as e:
                logger.warning(f"[Prober] {action.name}/{label} {target.role.value} leg failed: {e.message}")
                return OutcomeTriple(**outcomes), e.message

            self.sink.on_exchange(action.name, label, target, exchange)
            outcomes[target.role.value] = ResponseOutcome.from_response(exchange.response)

        return OutcomeTriple(**outcomes), None

