"""Migration lanes -- SDK-specific migration intelligence.

All built-in lanes are registered on import.  The :class:`LaneRegistry`
is the single entry point for the orchestrator to discover and use
lanes.
"""

from .base import (
    CallShape,
    GateDefinition,
    GateResult,
    MigrationLane,
    SourcePackage,
    TransformRule,
    confidence_tier,
)
from .registry import LaneRegistry

# ── Register built-in lanes ──────────────────────────────────────────

from .statsig_to_launchdarkly import StatsigToLaunchDarklyLane

LaneRegistry.register(StatsigToLaunchDarklyLane())

DEFAULT_LANE_ID = "statsig_to_launchdarkly"

__all__ = [
    "CallShape",
    "DEFAULT_LANE_ID",
    "GateDefinition",
    "GateResult",
    "LaneRegistry",
    "MigrationLane",
    "SourcePackage",
    "StatsigToLaunchDarklyLane",
    "TransformRule",
    "confidence_tier",
]
