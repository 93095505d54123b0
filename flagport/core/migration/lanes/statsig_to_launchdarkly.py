"""Statsig → LaunchDarkly migration lane.

Owns the pattern catalog for the Statsig JavaScript and React SDKs, the
packages that bring them into scope, and the quality gates every pass
must satisfy before a single file is written.
"""

import logging
from collections import Counter
from typing import Any, Dict, List

from ...config.config_loader import get_config_value
from ...exceptions import CatalogLoadError
from ..models import FindingKind, SdkVariant, TargetType
from .base import (
    CallShape,
    GateCategory,
    GateDefinition,
    GateResult,
    MigrationLane,
    SourcePackage,
    TransformRule,
)

logger = logging.getLogger(__name__)

# ── Target SDK surface ───────────────────────────────────────────────

LD_JS_PACKAGE = "launchdarkly-js-client-sdk"
LD_REACT_PACKAGE = "launchdarkly-react-client-sdk"
LD_OBSERVABILITY_PACKAGE = "@launchdarkly/observability"
LD_SESSION_REPLAY_PACKAGE = "@launchdarkly/session-replay"

# Import line emitted for each target symbol a rewrite may need
TARGET_IMPORTS: Dict[str, tuple] = {
    # symbol: (package, import style)
    "LDClient": (LD_JS_PACKAGE, "namespace"),
    "LDProvider": (LD_REACT_PACKAGE, "named"),
    "useFlags": (LD_REACT_PACKAGE, "named"),
    "useLDClient": (LD_REACT_PACKAGE, "named"),
    "Observability": (LD_OBSERVABILITY_PACKAGE, "default"),
    "SessionReplay": (LD_SESSION_REPLAY_PACKAGE, "default"),
}

# Session replay options with a LaunchDarkly counterpart handled explicitly
SESSION_REPLAY_LOST_FEATURES = ("maxSessionDurationMs", "recordConsoleErrors")

# User/context fields the transformer knows about
PASSTHROUGH_USER_FIELDS = (
    "email",
    "country",
    "locale",
    "appVersion",
    "systemName",
    "systemVersion",
    "browserName",
    "browserVersion",
)
DROPPED_USER_FIELDS = ("ip", "userAgent")
RESERVED_CONTEXT_FIELDS = ("kind", "key", "_meta")

_BASE_PACKAGES = (
    SourcePackage("statsig-js", SdkVariant.JAVASCRIPT, singleton=True),
    SourcePackage("@statsig/js-client", SdkVariant.JAVASCRIPT),
    SourcePackage("@statsig/react-bindings", SdkVariant.REACT),
    SourcePackage("statsig-react", SdkVariant.REACT),
    SourcePackage("@statsig/session-replay", None, role="session_replay"),
    SourcePackage("@statsig/web-analytics", None, role="auto_capture"),
)

_GATES = [
    GateDefinition(
        name="experiment_safety",
        description="No patch touches a finding blocked by an experiment",
        blocking=True,
        category=GateCategory.SAFETY,
    ),
    GateDefinition(
        name="disjoint_patches",
        description="Accepted patches within a file never overlap",
        blocking=True,
        category=GateCategory.CONSISTENCY,
    ),
    GateDefinition(
        name="report_balance",
        description="Every finding is reported exactly once and counts add up",
        blocking=True,
        category=GateCategory.PARITY,
    ),
]


def _rules() -> List[TransformRule]:
    R = TransformRule
    M, H, F, C, J, S, I = (
        CallShape.METHOD, CallShape.HOOK, CallShape.FUNCTION,
        CallShape.CONSTRUCTOR, CallShape.JSX, CallShape.SINGLETON, CallShape.IMPORT,
    )
    K, T = FindingKind, TargetType
    rules = [
        # Imports of any known source package
        R("source_import", I, (), K.IMPORT, T.PACKAGE, "import", 1.0, name_arg=None),
        # Feature gates
        R("check_gate", M, ("checkGate",), K.GATE_CHECK, T.GATE, "bool_variation", 0.95, fallback_arg=1),
        R("get_feature_gate", M, ("getFeatureGate", "getFeatureGateWithDetails"), K.GATE_CHECK, T.GATE,
          "bool_variation", 0.95, detail=True),
        R("gate_value_hook", H, ("useGateValue",), K.GATE_CHECK, T.GATE, "bool_hook", 0.95, fallback_arg=1),
        R("feature_gate_hook", H, ("useFeatureGate", "useGate"), K.GATE_CHECK, T.GATE,
          "bool_hook_object", 0.95),
        # Dynamic configs
        R("get_config", M, ("getConfig", "getDynamicConfig"), K.CONFIG_FETCH, T.CONFIG, "json_variation", 0.9),
        R("config_hook", H, ("useConfig", "useDynamicConfig"), K.CONFIG_FETCH, T.CONFIG, "json_hook", 0.95),
        # Experiments and layers (never rewritten)
        R("get_experiment", M, ("getExperiment", "getExperimentWithDetails"), K.EXPERIMENT_FETCH,
          T.EXPERIMENT, "experiment", 0.95),
        R("experiment_hook", H, ("useExperiment",), K.EXPERIMENT_FETCH, T.EXPERIMENT, "experiment", 0.95),
        R("get_layer", M, ("getLayer",), K.LAYER_FETCH, T.LAYER, "experiment", 0.95),
        R("layer_hook", H, ("useLayer",), K.LAYER_FETCH, T.LAYER, "experiment", 0.95),
        # Client construction
        R("client_constructor", C, ("StatsigClient",), K.PROVIDER_INIT, T.CLIENT, "client_initialize",
          0.95, name_arg=None),
        R("singleton_initialize", S, ("initialize",), K.PROVIDER_INIT, T.CLIENT, "singleton_initialize",
          0.95, name_arg=None),
        R("provider_element", J, ("StatsigProvider", "StatsigSynchronousProvider"), K.PROVIDER_INIT,
          T.CLIENT, "provider_element", 0.95, name_arg=None),
        # Client/user hooks
        R("client_hook", H, ("useStatsigClient",), K.HOOK_USAGE, T.CLIENT, "client_hook", 0.95, name_arg=None),
        R("user_hook", H, ("useStatsigUser",), K.HOOK_USAGE, T.CLIENT, "user_hook", 0.95, name_arg=None),
        # Events
        R("log_event", M, ("logEvent",), K.EVENT_LOG, T.EVENT, "track", 0.85),
        # Manual exposures
        R("gate_exposure", M, ("manuallyLogGateExposure",), K.MANUAL_EXPOSURE, T.GATE, "gate_exposure", 0.95),
        R("config_exposure", M, ("manuallyLogConfigExposure",), K.MANUAL_EXPOSURE, T.CONFIG,
          "config_exposure", 0.95),
        R("experiment_exposure", M, ("manuallyLogExperimentExposure",), K.MANUAL_EXPOSURE, T.EXPERIMENT,
          "experiment", 0.95),
        R("layer_exposure", M, ("manuallyLogLayerParameterExposure",), K.MANUAL_EXPOSURE, T.LAYER,
          "experiment", 0.95),
        # Local overrides
        R("override_gate", M, ("overrideGate",), K.OVERRIDE, T.GATE, "override", 0.95),
        R("override_config", M, ("overrideConfig",), K.OVERRIDE, T.CONFIG, "override", 0.95),
        R("override_experiment", M, ("overrideExperiment",), K.OVERRIDE, T.EXPERIMENT, "experiment", 0.95),
        R("override_layer", M, ("overrideLayer",), K.OVERRIDE, T.LAYER, "experiment", 0.95),
        # Client lifecycle
        R("initialize_async", M, ("initializeAsync",), K.CLIENT_LIFECYCLE, T.CLIENT,
          "wait_for_initialization", 0.85, name_arg=None),
        R("shutdown", M, ("shutdown",), K.CLIENT_LIFECYCLE, T.CLIENT, "close", 0.8, name_arg=None),
        R("flush", M, ("flush",), K.CLIENT_LIFECYCLE, T.CLIENT, "flush", 0.8, name_arg=None),
        R("update_user", M, ("updateUserAsync", "updateUserSync"), K.CLIENT_LIFECYCLE, T.CLIENT,
          "identify", 0.9, name_arg=None),
        # Observability add-ons
        R("session_replay_start", F, ("runStatsigSessionReplay",), K.PLUGIN_INIT, T.OBSERVABILITY,
          "plugin_start", 0.95, name_arg=None),
        R("auto_capture_start", F, ("runStatsigAutoCapture",), K.PLUGIN_INIT, T.OBSERVABILITY,
          "plugin_start", 0.95, name_arg=None),
    ]
    for rule in rules:
        if rule.shape is M and CLIENT_RECEIVER_METHODS.intersection(rule.api_names):
            rule.client_receiver = True
    return rules


# Method names common enough outside Statsig that the receiver must look
# like a Statsig client for a match to count as standard confidence
CLIENT_RECEIVER_METHODS = frozenset({
    "getConfig",
    "getDynamicConfig",
    "logEvent",
    "shutdown",
    "flush",
    "initializeAsync",
    "updateUserAsync",
    "updateUserSync",
})

# Plugin classes constructed inside Statsig provider/client options
PLUGIN_CLASSES = {
    "StatsigSessionReplayPlugin": "session_replay",
    "StatsigAutoCapturePlugin": "auto_capture",
}
PLUGIN_FUNCTIONS = {
    "runStatsigSessionReplay": "session_replay",
    "runStatsigAutoCapture": "auto_capture",
}


class StatsigToLaunchDarklyLane(MigrationLane):
    """Statsig JavaScript/React SDKs → LaunchDarkly client-side SDKs."""

    @property
    def lane_id(self) -> str:
        return "statsig_to_launchdarkly"

    @property
    def display_name(self) -> str:
        return "Statsig JS/React -> LaunchDarkly"

    @property
    def target_frameworks(self) -> List[str]:
        return [LD_JS_PACKAGE, LD_REACT_PACKAGE, LD_OBSERVABILITY_PACKAGE, LD_SESSION_REPLAY_PACKAGE]

    @property
    def version(self) -> str:
        return "1.0.0"

    def get_transform_rules(self) -> List[TransformRule]:
        return _rules()

    def get_plugin_roles(self) -> Dict[str, str]:
        return {**PLUGIN_CLASSES, **PLUGIN_FUNCTIONS}

    def get_source_packages(self) -> List[SourcePackage]:
        """Built-in Statsig packages plus ``catalog.extra_packages`` from config.

        Raises:
            CatalogLoadError: An extra package names an unknown variant.
        """
        packages = list(_BASE_PACKAGES)
        extra = get_config_value("flagport", "catalog", "extra_packages", default={})
        if not isinstance(extra, dict):
            raise CatalogLoadError("catalog.extra_packages must be a mapping of package name to variant")
        known = {p.name for p in packages}
        for name, variant in extra.items():
            try:
                sdk_variant = SdkVariant(str(variant).lower())
            except ValueError:
                raise CatalogLoadError(
                    f"catalog.extra_packages: '{name}' maps to unknown variant '{variant}' "
                    f"(expected one of {[v.value for v in SdkVariant]})"
                ) from None
            if name in known:
                logger.warning("catalog.extra_packages: '%s' is already a known package", name)
                continue
            packages.append(SourcePackage(str(name), sdk_variant))
        return packages

    # ── Quality Gates ────────────────────────────────────────────

    def get_gates(self) -> List[GateDefinition]:
        return list(_GATES)

    def run_gate(self, gate_name: str, context: Dict[str, Any]) -> GateResult:
        gate = next((g for g in _GATES if g.name == gate_name), None)
        if gate is None:
            return GateResult(gate_name=gate_name, passed=False, details={"error": "unknown gate"})

        if gate_name == "experiment_safety":
            details = self._check_experiment_safety(context)
        elif gate_name == "disjoint_patches":
            details = self._check_disjoint(context)
        else:
            details = self._check_report_balance(context)

        return GateResult(
            gate_name=gate_name,
            passed=not details,
            details=details,
            blocking=gate.blocking,
        )

    @staticmethod
    def _check_experiment_safety(context: Dict[str, Any]) -> Dict[str, Any]:
        violations = []
        accepted = context.get("accepted_patches", {})
        for finding in context.get("findings", []):
            if not finding.blocked:
                continue
            for patch in accepted.get(finding.location.file_path, ()):
                if patch.location.overlaps(finding.location):
                    violations.append(finding.location.describe())
        return {"patched_blocked_findings": violations} if violations else {}

    @staticmethod
    def _check_disjoint(context: Dict[str, Any]) -> Dict[str, Any]:
        overlaps = []
        for file_path, patches in context.get("accepted_patches", {}).items():
            ordered = sorted(patches, key=lambda p: (p.location.start_byte, p.location.end_byte))
            for a, b in zip(ordered, ordered[1:]):
                if a.location.overlaps(b.location):
                    overlaps.append(f"{a.location.describe()} / {b.location.describe()}")
        return {"overlapping_patches": overlaps} if overlaps else {}

    @staticmethod
    def _check_report_balance(context: Dict[str, Any]) -> Dict[str, Any]:
        report = context.get("report")
        if report is None:
            return {"error": "no report"}
        details: Dict[str, Any] = {}
        counted = report.migrated_count + report.blocked_count + report.failed_count
        if counted != report.total:
            details["total"] = report.total
            details["counted"] = counted
        keys = Counter(
            o.finding.key
            for o in (*report.migrated, *report.blocked, *report.failed)
            if hasattr(o, "finding")
        )
        duplicates = [f"{k[0]} {k[1]} @ {k[2].describe()}" for k, n in keys.items() if n > 1]
        if duplicates:
            details["duplicates"] = duplicates
        missing = [f.location.describe() for f in context.get("findings", []) if f.key not in keys]
        if missing:
            details["unreported"] = missing
        return details
