# flagport migration pipeline - Statsig JS/React SDK usage to LaunchDarkly
# Scan (per file, parallel) -> Classify (project-wide) -> Rewrite -> Report

from .catalog import PatternCatalog
from .classifier import ExperimentClassifier
from .context_transformer import transform as transform_context
from .engine import MigrationOrchestrator, MigrationResult, PassState
from .models import (
    ExperimentBinding,
    Finding,
    FindingKind,
    MigrationReport,
    RewritePatch,
    SdkVariant,
)
from .naming import to_target_name
from .report import build as build_report
from .rewriter import RewriteEngine
from .scanner import Scanner
from .schemas import MigrationSummary, to_summary
from .settings import MigrationSettings

__all__ = [
    "MigrationOrchestrator",
    "MigrationResult",
    "MigrationSettings",
    "PassState",
    "PatternCatalog",
    "Scanner",
    "ExperimentClassifier",
    "RewriteEngine",
    "transform_context",
    "to_target_name",
    "build_report",
    "to_summary",
    "MigrationSummary",
    "MigrationReport",
    "ExperimentBinding",
    "Finding",
    "FindingKind",
    "RewritePatch",
    "SdkVariant",
]
