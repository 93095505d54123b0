"""Data contracts for the migration pipeline.

All structured types passed between scanner, classifier, rewrite engine
and report builder. Kept as dataclasses (not ORM models) for transport
between phases and threads.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class FindingKind(Enum):
    """Classification of a recognized source call site or import."""
    IMPORT = "Import"
    GATE_CHECK = "GateCheck"
    CONFIG_FETCH = "ConfigFetch"
    EXPERIMENT_FETCH = "ExperimentFetch"
    LAYER_FETCH = "LayerFetch"
    PROVIDER_INIT = "ProviderInit"
    HOOK_USAGE = "HookUsage"
    EVENT_LOG = "EventLog"
    MANUAL_EXPOSURE = "ManualExposure"
    OVERRIDE = "Override"
    CLIENT_LIFECYCLE = "ClientLifecycle"
    PLUGIN_INIT = "PluginInit"


class SdkVariant(Enum):
    """Source SDK flavour, inferred from import provenance."""
    JAVASCRIPT = "javascript"
    REACT = "react"
    TYPESCRIPT = "typescript"


class TargetType(Enum):
    """What kind of source entity a call site refers to."""
    GATE = "gate"
    CONFIG = "config"
    EXPERIMENT = "experiment"
    LAYER = "layer"
    EVENT = "event"
    CLIENT = "client"
    OBSERVABILITY = "observability"
    PACKAGE = "package"


class ItemStatus(Enum):
    MIGRATED = "migrated"
    BLOCKED = "blocked"
    FAILED = "failed"


# Experiment-type targets are never migrated automatically
EXPERIMENT_TARGETS: FrozenSet[TargetType] = frozenset({TargetType.EXPERIMENT, TargetType.LAYER})

# Kinds whose name the classifier checks against experiment bindings
FLAG_KINDS: FrozenSet[FindingKind] = frozenset({
    FindingKind.GATE_CHECK,
    FindingKind.CONFIG_FETCH,
    FindingKind.MANUAL_EXPOSURE,
    FindingKind.OVERRIDE,
})


@dataclass(frozen=True, order=True)
class Location:
    """A half-open byte range in one file, with 1-based line numbers."""
    file_path: str
    start_byte: int
    end_byte: int
    start_line: int = 0
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0

    def overlaps(self, other: "Location") -> bool:
        if self.file_path != other.file_path:
            return False
        if self.start_byte == self.end_byte or other.start_byte == other.end_byte:
            # Insertion points only collide when they sit strictly inside a range
            point, span = (self, other) if self.start_byte == self.end_byte else (other, self)
            return span.start_byte < point.start_byte < span.end_byte
        return self.start_byte < other.end_byte and other.start_byte < self.end_byte

    def contains(self, other: "Location") -> bool:
        return (
            self.file_path == other.file_path
            and self.start_byte <= other.start_byte
            and other.end_byte <= self.end_byte
        )

    def describe(self) -> str:
        return f"{self.file_path}:{self.start_line}:{self.start_column + 1}"


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()
"""Marks a ``.get(key)`` call written without a default argument."""


@dataclass
class ConfigAccessor:
    """A ``value.get(key, default)`` call resolved to a config/experiment fetch."""
    location: Location
    key: Optional[str]  # None when the key is not a string literal
    default: Any = MISSING  # Python literal value, RawExpression, or MISSING
    default_text: Optional[str] = None
    receiver: str = ""
    chained: bool = False  # Called directly on the fetch, e.g. getConfig("x").get(...)


@dataclass
class Finding:
    """One recognized occurrence in source.

    ``blocked``/``block_reasons``/``ambiguity`` are written only by the
    experiment classifier; every other field is fixed at scan time.
    """
    kind: FindingKind
    source_name: str
    location: Location
    sdk_variant: SdkVariant
    target_type: TargetType
    rule_name: str = ""
    method: str = ""  # Matched API name, e.g. "checkGate" or "useGateValue"
    receiver: Optional[str] = None  # Receiver text for method calls
    fallback_literal: Optional[str] = None  # Default value expression text, if any
    fallback_value: Any = MISSING
    dynamic_name: bool = False
    confidence: float = 1.0
    confidence_note: Optional[str] = None
    accessors: List[ConfigAccessor] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    blocked: bool = False
    block_reasons: Tuple[str, ...] = ()
    ambiguity: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, Location]:
        return (self.kind.value, self.source_name, self.location)

    @property
    def block_reason(self) -> Optional[str]:
        return ", ".join(self.block_reasons) if self.blocked else None

    @property
    def low_confidence(self) -> bool:
        from .lanes.base import confidence_tier
        return confidence_tier(self.confidence) == "low"

    @property
    def parameters(self) -> List[str]:
        """Parameter names read through ``.get()`` on this fetch's result."""
        seen: List[str] = []
        for accessor in self.accessors:
            if accessor.key is not None and accessor.key not in seen:
                seen.append(accessor.key)
        return seen


@dataclass
class ExperimentBinding:
    """Groups an experiment (or layer) name with the flags it entangles."""
    name: str
    target_type: TargetType
    sites: List[Location] = field(default_factory=list)
    related_names: List[str] = field(default_factory=list)  # From @related-flags pragmas
    parameters: List[str] = field(default_factory=list)
    blocked_names: List[str] = field(default_factory=list)

    @property
    def has_pragma(self) -> bool:
        return bool(self.related_names)


@dataclass(frozen=True)
class RewritePatch:
    """Replace ``original_text`` at ``location`` with ``replacement_text``."""
    location: Location
    original_text: str
    replacement_text: str


@dataclass
class RewriteResult:
    """Successful rewrite of one finding; all patches apply together."""
    patches: Tuple[RewritePatch, ...]
    target_name: Optional[str] = None
    fallback: Any = None
    warnings: List[str] = field(default_factory=list)
    required_symbols: FrozenSet[str] = frozenset()


@dataclass
class MigrationWarning:
    message: str
    file_path: Optional[str] = None
    line: Optional[int] = None
    source_name: Optional[str] = None


@dataclass
class FindingOutcome:
    """Where a finding ended up after rewriting."""
    finding: Finding
    status: ItemStatus
    result: Optional[RewriteResult] = None
    error_type: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class FileFailure:
    """A whole file that could not be processed."""
    file_path: str
    error_type: str
    reason: str


@dataclass
class MigrationReport:
    """Terminal artifact of one orchestrator pass.

    Every finding appears in exactly one of ``migrated``, ``blocked`` and
    ``failed``; file-level failures are failed items too.
    """
    total: int
    migrated: List[FindingOutcome] = field(default_factory=list)
    blocked: List[FindingOutcome] = field(default_factory=list)
    failed: List[Any] = field(default_factory=list)  # FindingOutcome | FileFailure
    bindings: List[ExperimentBinding] = field(default_factory=list)
    warnings: List[MigrationWarning] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)

    @property
    def migrated_count(self) -> int:
        return len(self.migrated)

    @property
    def blocked_count(self) -> int:
        return len(self.blocked)

    @property
    def failed_count(self) -> int:
        return len(self.failed)
