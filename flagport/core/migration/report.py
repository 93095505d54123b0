"""Report builder.

Single-threaded reduction of per-file rewrite outcomes into a
:class:`MigrationReport`. Every finding lands in exactly one of the
migrated / blocked / failed lists; file-level failures are failed items
of their own. Ordering follows the input order (file path, then source
order), so the same project always produces the same report.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from .models import (
    EXPERIMENT_TARGETS,
    ExperimentBinding,
    FileFailure,
    FindingKind,
    FindingOutcome,
    ItemStatus,
    MigrationReport,
    MigrationWarning,
)

logger = logging.getLogger(__name__)

LD_INSTALL_COMMAND = "npm install launchdarkly-js-client-sdk launchdarkly-react-client-sdk"


def build(
    outcomes: Iterable[FindingOutcome],
    file_failures: Sequence[FileFailure] = (),
    bindings: Sequence[ExperimentBinding] = (),
    warnings: Sequence[MigrationWarning] = (),
    placeholder_client_id: Optional[str] = None,
) -> MigrationReport:
    """Aggregate outcomes into a report.

    Args:
        outcomes: Finding outcomes in discovery order.
        file_failures: Files that could not be read, scanned or written.
        bindings: Experiment bindings from the classifier.
        warnings: Classifier and rewrite warnings, in discovery order.
        placeholder_client_id: Credential placeholder inserted by rewrites.
    """
    migrated: List[FindingOutcome] = []
    blocked: List[FindingOutcome] = []
    failed: List = []
    for outcome in outcomes:
        if outcome.status is ItemStatus.MIGRATED:
            migrated.append(outcome)
        elif outcome.status is ItemStatus.BLOCKED:
            blocked.append(outcome)
        else:
            failed.append(outcome)
    failed.extend(file_failures)

    report = MigrationReport(
        total=len(migrated) + len(blocked) + len(failed),
        migrated=migrated,
        blocked=blocked,
        failed=failed,
        bindings=list(bindings),
        warnings=_dedupe(warnings),
    )
    report.next_steps = next_steps(report, placeholder_client_id)
    logger.info(
        "Report: %d items, %d migrated, %d blocked, %d failed, %d warnings",
        report.total, report.migrated_count, report.blocked_count, report.failed_count, len(report.warnings),
    )
    return report


def _dedupe(warnings: Sequence[MigrationWarning]) -> List[MigrationWarning]:
    seen = set()
    result = []
    for w in warnings:
        key = (w.message, w.file_path, w.line, w.source_name)
        if key not in seen:
            seen.add(key)
            result.append(w)
    return result


def next_steps(report: MigrationReport, placeholder_client_id: Optional[str] = None) -> List[str]:
    """Manual follow-ups implied by the report's contents."""
    steps: List[str] = []
    migrated_kinds = {o.finding.kind for o in report.migrated}

    if migrated_kinds:
        steps.append(f"Install the LaunchDarkly SDKs: {LD_INSTALL_COMMAND}")
    if FindingKind.PROVIDER_INIT in migrated_kinds and placeholder_client_id:
        steps.append(
            f"Replace the placeholder client-side ID \"{placeholder_client_id}\" with your "
            f"LaunchDarkly environment's client-side ID"
        )

    flags = sorted({
        o.result.target_name
        for o in report.migrated
        if o.finding.kind in (FindingKind.GATE_CHECK, FindingKind.CONFIG_FETCH, FindingKind.HOOK_USAGE)
        and o.result is not None and o.result.target_name
    })
    if flags:
        steps.append(
            f"Create {len(flags)} LaunchDarkly flag(s) with client-side availability enabled: {', '.join(flags)}"
        )

    experiments = [b.name for b in report.bindings]
    if experiments or report.blocked:
        names = ", ".join(experiments) if experiments else "see not_migrated.blocked_gates"
        steps.append(
            f"Keep the Statsig SDK installed for blocked experiment usage ({names}); "
            f"migrate those experiments manually once they conclude"
        )

    if report.failed:
        steps.append(f"Resolve {len(report.failed)} failed item(s) listed under not_migrated.failed_items")
    if any(
        o.finding.target_type in EXPERIMENT_TARGETS
        for o in report.failed if isinstance(o, FindingOutcome)
    ):
        steps.append("Recreate experiments in LaunchDarkly Experimentation before removing Statsig")
    if report.warnings:
        steps.append(f"Review {len(report.warnings)} warning(s), in particular dropped fallbacks and options")
    if not migrated_kinds and not report.blocked and not report.failed:
        steps.append("No Statsig usage found; nothing to migrate")
    return steps
