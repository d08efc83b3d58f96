"""Ordered request guards.

Each stage is a plain callable that looks at a :class:`GuardContext` and returns
:class:`Accept` or :class:`Reject`. :class:`GuardPipeline` runs the stages in
order and stops at the first rejection. Stages never touch the request object,
which keeps them easy to test in isolation.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Sequence, Union

from student_registry.guards.origin_gate import OriginGate
from student_registry.guards.throttle import RequestThrottle
from student_registry.utils.errors import OriginRejectedError, RateLimitError


@dataclass(frozen=True)
class GuardContext:
    method: str
    path: str
    origin: Optional[str]
    client_key: str
    now: Optional[float] = None


@dataclass(frozen=True)
class Accept:
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Reject:
    error: Union[OriginRejectedError, RateLimitError]
    headers: Dict[str, str] = field(default_factory=dict)


GuardOutcome = Union[Accept, Reject]
GuardStage = Callable[[GuardContext], GuardOutcome]


def origin_stage(gate: OriginGate) -> GuardStage:
    def check_origin(context: GuardContext) -> GuardOutcome:
        if gate.is_allowed(context.origin):
            return Accept()
        return Reject(OriginRejectedError())

    return check_origin


def throttle_stage(
    throttle: RequestThrottle, exempt_paths: Iterable[str] = ()
) -> GuardStage:
    exempt: FrozenSet[str] = frozenset(exempt_paths)

    def check_throttle(context: GuardContext) -> GuardOutcome:
        # CORS preflights and health probes are not counted
        if context.method == "OPTIONS" or context.path in exempt:
            return Accept()

        decision = throttle.admit(context.client_key, context.now)
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }
        if decision.allowed:
            return Accept(headers)
        retry_after = max(1, math.ceil(decision.retry_after))
        return Reject(RateLimitError(retry_after=retry_after), headers)

    return check_throttle


class GuardPipeline:
    def __init__(self, stages: Sequence[GuardStage]):
        self.stages = list(stages)

    def evaluate(self, context: GuardContext) -> GuardOutcome:
        headers: Dict[str, str] = {}
        for stage in self.stages:
            outcome = stage(context)
            headers.update(outcome.headers)
            if isinstance(outcome, Reject):
                return Reject(outcome.error, headers)
        return Accept(headers)


def build_guard_pipeline(
    gate: OriginGate,
    throttle: RequestThrottle,
    throttle_exempt_paths: Iterable[str] = (),
) -> GuardPipeline:
    """Origin check first, then the throttle: rejected origins never use up quota."""
    return GuardPipeline(
        [origin_stage(gate), throttle_stage(throttle, throttle_exempt_paths)]
    )
