"""migration-summary artifact schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..ast_parser.literals import to_json_value
from .models import (
    FileFailure,
    FindingKind,
    FindingOutcome,
    MigrationReport,
    SdkVariant,
    TargetType,
)
from .naming import to_target_name


class Summary(BaseModel):
    """Item counts; the last three always sum to ``total_items``."""
    total_items: int = Field(0, description="Findings plus file-level failures")
    successfully_migrated: int = Field(0, description="Items rewritten")
    blocked_by_experiments: int = Field(0, description="Items left untouched because of an experiment")
    failed: int = Field(0, description="Items needing manual migration")


class MigratedItem(BaseModel):
    """One rewritten finding."""
    kind: str = Field(..., description="Finding kind, e.g. GateCheck")
    source_name: str = Field(..., description="Name used in the Statsig call")
    target_name: Optional[str] = Field(None, description="Name used in the LaunchDarkly call")
    target_names: Dict[str, str] = Field(default_factory=dict, description="Target name per SDK variant")
    type: str = Field(..., description="gate, config, event, client, ...")
    fallback: Any = Field(None, description="Fallback value passed to the evaluation")
    file: str = Field(..., description="Project-relative path")
    line: int = Field(..., description="1-based line of the call site")
    low_confidence: bool = Field(False, description="Match was rewritten despite low confidence")


class BlockedItem(BaseModel):
    """A finding suppressed by experiment entanglement."""
    kind: str
    source_name: str
    type: str
    file: str
    line: int
    block_reason: str = Field(..., description="Experiment name(s) the item is entangled with")


class FailedItem(BaseModel):
    """A finding or file that must be migrated by hand."""
    kind: str = Field(..., description="Finding kind, or File for file-level failures")
    source_name: Optional[str] = None
    type: Optional[str] = None
    file: str
    line: Optional[int] = None
    error_type: Optional[str] = Field(None, description="Exception class that stopped the rewrite")
    reason: Optional[str] = None
    low_confidence: bool = False


class MigratedSection(BaseModel):
    feature_gates: List[MigratedItem] = Field(default_factory=list)
    dynamic_configs: List[MigratedItem] = Field(default_factory=list)
    other: List[MigratedItem] = Field(default_factory=list, description="Imports, events, init and hooks")


class NotMigratedSection(BaseModel):
    experiments: List[BlockedItem] = Field(default_factory=list)
    blocked_gates: List[BlockedItem] = Field(default_factory=list)
    failed_items: List[FailedItem] = Field(default_factory=list)


class ExperimentBindingEntry(BaseModel):
    name: str
    type: str
    related_flags: List[str] = Field(default_factory=list, description="Names from @related-flags pragmas")
    parameters: List[str] = Field(default_factory=list)
    blocked_names: List[str] = Field(default_factory=list)
    sites: List[str] = Field(default_factory=list)


class WarningEntry(BaseModel):
    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    source_name: Optional[str] = None


class MigrationSummary(BaseModel):
    """Top-level ``migration-summary.json`` document."""
    summary: Summary
    migrated: MigratedSection = Field(default_factory=MigratedSection)
    not_migrated: NotMigratedSection = Field(default_factory=NotMigratedSection)
    experiment_bindings: List[ExperimentBindingEntry] = Field(default_factory=list)
    warnings: List[WarningEntry] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2) + "\n"


_GATE_KINDS = (FindingKind.GATE_CHECK,)
_CONFIG_KINDS = (FindingKind.CONFIG_FETCH,)


def _target_names(outcome: FindingOutcome) -> Dict[str, str]:
    finding = outcome.finding
    if finding.target_type not in (TargetType.GATE, TargetType.CONFIG) or finding.dynamic_name:
        return {}
    return {v.value: to_target_name(finding.source_name, v) for v in SdkVariant}


def _migrated_item(outcome: FindingOutcome) -> MigratedItem:
    finding = outcome.finding
    result = outcome.result
    return MigratedItem(
        kind=finding.kind.value,
        source_name=finding.source_name,
        target_name=result.target_name if result else None,
        target_names=_target_names(outcome),
        type=finding.target_type.value,
        fallback=to_json_value(result.fallback) if result else None,
        file=finding.location.file_path,
        line=finding.location.start_line,
        low_confidence=finding.low_confidence,
    )


def _blocked_item(outcome: FindingOutcome) -> BlockedItem:
    finding = outcome.finding
    return BlockedItem(
        kind=finding.kind.value,
        source_name=finding.source_name,
        type=finding.target_type.value,
        file=finding.location.file_path,
        line=finding.location.start_line,
        block_reason=outcome.reason or finding.block_reason or "",
    )


def _failed_item(item) -> FailedItem:
    if isinstance(item, FileFailure):
        return FailedItem(kind="File", file=item.file_path, error_type=item.error_type, reason=item.reason)
    finding = item.finding
    return FailedItem(
        kind=finding.kind.value,
        source_name=finding.source_name,
        type=finding.target_type.value,
        file=finding.location.file_path,
        line=finding.location.start_line,
        error_type=item.error_type,
        reason=item.reason,
        low_confidence=finding.low_confidence,
    )


def to_summary(report: MigrationReport) -> MigrationSummary:
    """Serialize a report into the artifact schema."""
    migrated = MigratedSection()
    for outcome in report.migrated:
        item = _migrated_item(outcome)
        if outcome.finding.kind in _GATE_KINDS:
            migrated.feature_gates.append(item)
        elif outcome.finding.kind in _CONFIG_KINDS:
            migrated.dynamic_configs.append(item)
        else:
            migrated.other.append(item)

    not_migrated = NotMigratedSection(failed_items=[_failed_item(i) for i in report.failed])
    for outcome in report.blocked:
        item = _blocked_item(outcome)
        if outcome.finding.kind in (FindingKind.EXPERIMENT_FETCH, FindingKind.LAYER_FETCH):
            not_migrated.experiments.append(item)
        else:
            not_migrated.blocked_gates.append(item)

    return MigrationSummary(
        summary=Summary(
            total_items=report.total,
            successfully_migrated=report.migrated_count,
            blocked_by_experiments=report.blocked_count,
            failed=report.failed_count,
        ),
        migrated=migrated,
        not_migrated=not_migrated,
        experiment_bindings=[
            ExperimentBindingEntry(
                name=b.name,
                type=b.target_type.value,
                related_flags=list(b.related_names),
                parameters=list(b.parameters),
                blocked_names=list(b.blocked_names),
                sites=[s.describe() for s in b.sites],
            )
            for b in report.bindings
        ],
        warnings=[
            WarningEntry(message=w.message, file=w.file_path, line=w.line, source_name=w.source_name)
            for w in report.warnings
        ],
        next_steps=list(report.next_steps),
    )
