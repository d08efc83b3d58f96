from .origin_gate import OriginGate
from .throttle import RequestThrottle, ThrottleDecision
from .pipeline import (
    Accept,
    GuardContext,
    GuardPipeline,
    Reject,
    build_guard_pipeline,
    origin_stage,
    throttle_stage,
)

__all__ = [
    "Accept",
    "GuardContext",
    "GuardPipeline",
    "OriginGate",
    "Reject",
    "RequestThrottle",
    "ThrottleDecision",
    "build_guard_pipeline",
    "origin_stage",
    "throttle_stage",
]
