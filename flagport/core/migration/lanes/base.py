"""Migration lane base class and supporting dataclasses.

A migration lane encapsulates one SDK-to-SDK migration path: the table
of source call shapes it recognizes (the pattern catalog), the packages
that establish provenance, and the quality gates that must pass before
any file is written. Core stays orchestration -- lanes own the domain
knowledge for a specific migration path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..models import FindingKind, SdkVariant, TargetType


# ── Call Shapes ──────────────────────────────────────────────────────


class CallShape(str, Enum):
    """Syntactic shapes a transform rule can match."""

    METHOD = "method"
    """``receiver.api(...)``"""

    HOOK = "hook"
    """``api(...)`` where ``api`` was imported from a React source package."""

    FUNCTION = "function"
    """``api(...)`` where ``api`` was imported from any source package."""

    CONSTRUCTOR = "constructor"
    """``new Api(...)``"""

    JSX = "jsx"
    """``<Api ...>`` element."""

    SINGLETON = "singleton"
    """``binding.api(...)`` where ``binding`` is a default/namespace import."""

    IMPORT = "import"
    """An ``import`` declaration or ``require()`` of a source package."""


# ── Gate Categories ──────────────────────────────────────────────────


class GateCategory(str, Enum):
    """Categories for quality gates."""

    SAFETY = "safety"
    """Experiment safety: nothing entangled with an experiment is touched."""

    CONSISTENCY = "consistency"
    """Patch set is well-formed (disjoint, matches the scanned source)."""

    PARITY = "parity"
    """Report accounts for every finding exactly once."""


# ── Dataclasses ──────────────────────────────────────────────────────


@dataclass
class TransformRule:
    """A catalog row mapping a source call shape to a finding kind and target."""

    name: str
    """Rule identifier, e.g. ``"check_gate"``."""

    shape: CallShape
    """Which syntactic shape :attr:`api_names` are matched against."""

    api_names: Tuple[str, ...]
    """Method, hook, constructor or element names, e.g. ``("checkGate",)``."""

    kind: FindingKind
    """Finding kind produced on a match."""

    target_type: TargetType
    """What the call's name argument refers to."""

    target_template: str
    """Template key the rewrite engine dispatches on,
    e.g. ``"bool_variation"``."""

    confidence: float
    """How confident a match is (0.0--1.0) when provenance is clear."""

    name_arg: Optional[int] = 0
    """Index of the argument holding the flag/event name, if any."""

    fallback_arg: Optional[int] = None
    """Index of the argument holding a default value, if any."""

    detail: bool = False
    """The source call returns an evaluation-details object."""

    client_receiver: bool = False
    """Method name is common outside the source SDK; the receiver must look
    like a source client for a standard-confidence match."""


@dataclass(frozen=True)
class SourcePackage:
    """A package whose imports establish SDK provenance."""

    name: str
    variant: Optional[SdkVariant]
    """SDK variant, or ``None`` for observability add-ons."""

    role: str = "sdk"
    """``"sdk"``, ``"session_replay"`` or ``"auto_capture"``."""

    singleton: bool = False
    """Default export is a ready-made client (legacy ``statsig-js``)."""


@dataclass
class GateDefinition:
    """Definition of a quality gate that validates migration output."""

    name: str
    """Gate identifier, e.g. ``"experiment_safety"``."""

    description: str
    """Human-readable explanation."""

    blocking: bool = True
    """When ``True`` nothing is written on failure."""

    category: GateCategory = GateCategory.SAFETY
    """Gate category for taxonomy and reporting."""


@dataclass
class GateResult:
    """Result of running a quality gate."""

    gate_name: str
    passed: bool
    details: Dict[str, Any] = field(default_factory=dict)
    blocking: bool = True


# ── Abstract Base Class ──────────────────────────────────────────────


class MigrationLane(ABC):
    """Abstract base for migration lanes.

    Each lane owns what is unique to a specific migration path:

    * **Pattern catalog** -- source call shapes to finding kinds.
    * **Provenance** -- which packages bring an SDK into scope.
    * **Quality gates** -- validate a pass before anything is written.

    Parsing, scanning and rewriting mechanics are *not* part of lanes --
    they are core citizens that read the lane's tables.
    """

    # ── Identity ─────────────────────────────────────────────────

    @property
    @abstractmethod
    def lane_id(self) -> str:
        """Unique identifier, e.g. ``"statsig_to_launchdarkly"``."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name."""
        ...

    @property
    @abstractmethod
    def target_frameworks(self) -> List[str]:
        """Target package names this lane generates code for."""
        ...

    @property
    @abstractmethod
    def version(self) -> str:
        """Semantic version of this lane, e.g. ``"1.0.0"``.

        Bump when transform rules or gate logic change.
        """
        ...

    @property
    def source_frameworks(self) -> List[str]:
        """Package names this lane migrates FROM."""
        return [p.name for p in self.get_source_packages()]

    # ── Pattern Catalog ──────────────────────────────────────────

    @abstractmethod
    def get_transform_rules(self) -> List[TransformRule]:
        """Return every catalog row this lane recognizes."""
        ...

    @abstractmethod
    def get_source_packages(self) -> List[SourcePackage]:
        """Return the packages that establish source-SDK provenance."""
        ...

    def get_plugin_roles(self) -> Dict[str, str]:
        """Map plugin class/start-function names to an observability role."""
        return {}

    # ── Quality Gates ────────────────────────────────────────────

    @abstractmethod
    def get_gates(self) -> List[GateDefinition]:
        """Return all quality gate definitions this lane provides."""
        ...

    @abstractmethod
    def run_gate(self, gate_name: str, context: Dict[str, Any]) -> GateResult:
        """Run a specific quality gate.

        Args:
            gate_name: Name of the gate to run.
            context: Pass state: ``findings``, ``accepted_patches``
                (file path -> patches) and ``report``.

        Returns:
            :class:`GateResult` with pass/fail and details.
        """
        ...


# ── Confidence Model ─────────────────────────────────────────────────

CONFIDENCE_HIGH = 0.90
"""Matches at or above this score are flagged as high-confidence."""

CONFIDENCE_STANDARD = 0.75
"""Matches between STANDARD and HIGH are ordinary matches."""

CONFIDENCE_LOW = 0.5
"""Score assigned to a match whose SDK provenance is uncertain."""


def confidence_tier(score: float) -> str:
    """Map a confidence score to a human-readable tier label.

    Returns:
        ``"high"`` (>= 0.90), ``"standard"`` (>= 0.75), or ``"low"``.
    """
    if score >= CONFIDENCE_HIGH:
        return "high"
    if score >= CONFIDENCE_STANDARD:
        return "standard"
    return "low"
