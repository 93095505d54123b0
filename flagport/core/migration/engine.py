"""Migration orchestrator.

Drives one pass over a project:

    Idle → Scanning → Classifying → Rewriting → Reporting → Done

with ``Failed`` reachable from any state on a fatal error (catalog load,
quality gate, artifact write) and ``Cancelled`` when :meth:`cancel` was
called during the pass.

Scanning is per-file parallel: an asyncio loop bounded by a Semaphore
hands parse+scan to a thread pool, each file under its own timeout.
Classification waits for every scan (bindings are project-global).
Rewrites only read the classifier's verdicts. Quality gates run before
anything is written; each file is then written atomically or not at all.
"""

import asyncio
import hashlib
import logging
import os
import tempfile
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from ..ast_parser import ParsedFile, iter_source_files, parse_file
from ..exceptions import (
    CatalogLoadError,
    FileScanError,
    FlagportError,
    GateFailedError,
    OutputWriteError,
    SourceReadError,
)
from . import report as report_builder
from .catalog import PatternCatalog
from .classifier import ExperimentClassifier
from .errors import PatchConflictError
from .lanes import DEFAULT_LANE_ID, LaneRegistry, MigrationLane
from .models import (
    FileFailure,
    FindingOutcome,
    ItemStatus,
    MigrationReport,
    MigrationWarning,
)
from .patches import PatchSet, apply_patches
from .rewriter import FileRewrite, RewriteEngine
from .scanner import FileScan, Scanner
from .schemas import MigrationSummary, to_summary
from .settings import MigrationSettings

logger = logging.getLogger(__name__)


class PassState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    CLASSIFYING = "classifying"
    REWRITING = "rewriting"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({PassState.DONE, PassState.FAILED, PassState.CANCELLED})


@dataclass
class MigrationResult:
    """Outcome of one orchestrator pass."""
    state: PassState
    report: MigrationReport
    summary: MigrationSummary
    artifact_path: Optional[str] = None
    written_files: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class MigrationOrchestrator:
    """Run scan → classify → rewrite → report over a project root.

    Args:
        project_root: Directory containing the JavaScript/TypeScript sources.
        settings: Pass settings (defaults to ``MigrationSettings.from_config()``).
        lane_id: Migration lane supplying the pattern catalog.
        parser: ``(path, project_root) -> ParsedFile``; replaceable in tests.
        dry_run: Compute everything but leave source files untouched.
        output_path: Where to write the migration-summary artifact.
    """

    def __init__(
        self,
        project_root: str,
        settings: Optional[MigrationSettings] = None,
        lane_id: str = DEFAULT_LANE_ID,
        parser: Callable[[str, str], ParsedFile] = parse_file,
        dry_run: bool = False,
        output_path: Optional[str] = None,
    ):
        self.project_root = os.path.abspath(project_root)
        self.settings = settings or MigrationSettings.from_config()
        self.lane_id = lane_id
        self.parser = parser
        self.dry_run = dry_run
        self.output_path = output_path or os.path.join(self.project_root, self.settings.summary_file)
        self._state = PassState.IDLE
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self._lane: Optional[MigrationLane] = None
        self._scanner: Optional[Scanner] = None
        self._executors: List[ThreadPoolExecutor] = []

    # ── State ──────────────────────────────────────────────────────────

    @property
    def state(self) -> PassState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Request cooperative cancellation; takes effect at the next file boundary."""
        if not self._cancel.is_set():
            logger.warning("Cancellation requested; finishing in-flight files")
        self._cancel.set()

    def _transition(self, state: PassState) -> None:
        with self._state_lock:
            previous = self._state
            if previous in TERMINAL_STATES:
                raise RuntimeError(f"Pass already finished ({previous.value})")
            self._state = state
        logger.info("Migration pass: %s -> %s", previous.value, state.value)

    # ── Entry points ───────────────────────────────────────────────────

    def run(self) -> MigrationResult:
        """Run a full pass on a private event loop."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> MigrationResult:
        """Run a full pass.

        Raises:
            CatalogLoadError: The lane is unknown or its catalog is invalid.
            GateFailedError: A blocking quality gate rejected the pass.
            OutputWriteError: The artifact cannot be written.
        """
        if self._state is not PassState.IDLE:
            raise RuntimeError("An orchestrator runs exactly one pass")
        start = time.monotonic()
        try:
            self._load_catalog()
            self._preflight()

            self._transition(PassState.SCANNING)
            scans, failures, warnings = await self._scan_all()

            self._transition(PassState.CLASSIFYING)
            classifier = ExperimentClassifier(self.settings.name_similarity_min_tokens)
            all_findings = [f for scan in scans for f in scan.findings]
            bindings, classifier_warnings = classifier.classify(all_findings)
            warnings.extend(classifier_warnings)

            self._transition(PassState.REWRITING)
            rewrites = self._rewrite_all(scans, failures)
            for rewrite in rewrites:
                warnings.extend(rewrite.warnings)
            self._run_gates(all_findings, rewrites, failures, bindings, warnings)
            written = self._write_all(scans, rewrites, failures)

            self._transition(PassState.REPORTING)
            report = self._build_report(rewrites, failures, bindings, warnings)
            summary = to_summary(report)
            self._write_artifact(summary)

            final = PassState.CANCELLED if self.cancelled else PassState.DONE
            self._transition(final)
        except FlagportError as e:
            logger.error("Migration pass failed in state %s: %s", self._state.value, e)
            self._state = PassState.FAILED
            raise
        except Exception:
            logger.error("Migration pass failed in state %s", self._state.value, exc_info=True)
            self._state = PassState.FAILED
            raise

        elapsed = time.monotonic() - start
        logger.info(
            "Migration pass %s in %.2fs: %d migrated, %d blocked, %d failed, %d files written",
            final.value, elapsed, report.migrated_count, report.blocked_count, report.failed_count, len(written),
        )
        return MigrationResult(
            state=final,
            report=report,
            summary=summary,
            artifact_path=self.output_path,
            written_files=written,
            elapsed_seconds=elapsed,
        )

    # ── Setup ──────────────────────────────────────────────────────────

    def _load_catalog(self) -> None:
        self._lane = LaneRegistry.load(self.lane_id)
        try:
            catalog = PatternCatalog(self._lane)
        except CatalogLoadError:
            raise
        except Exception as e:
            raise CatalogLoadError(f"Pattern catalog for '{self.lane_id}' failed to load: {e}") from e
        self._scanner = Scanner(catalog, pragma_window_lines=self.settings.pragma_window_lines)

    def _preflight(self) -> None:
        """Fail before doing any work if the outputs cannot be written."""
        if not os.path.isdir(self.project_root):
            raise OutputWriteError(f"Project root {self.project_root} is not a directory")
        targets = [os.path.dirname(os.path.abspath(self.output_path))]
        if self.settings.staging_dir and not self.dry_run:
            targets.append(os.path.abspath(self.settings.staging_dir))
        for directory in targets:
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise OutputWriteError(f"Cannot create output directory {directory}: {e}") from e
            if not os.access(directory, os.W_OK):
                raise OutputWriteError(f"Output directory {directory} is not writable")

    # ── Scanning ───────────────────────────────────────────────────────

    async def _scan_all(self):
        paths = list(iter_source_files(self.project_root))
        logger.info("Scanning %d source files under %s", len(paths), self.project_root)
        semaphore = asyncio.Semaphore(self.settings.max_workers)
        self._executors = [self._new_executor()]
        try:
            results = await asyncio.gather(
                *(self._scan_with_semaphore(semaphore, path) for path in paths)
            )
        finally:
            # Timed-out parses may still be running; do not wait for them
            for executor in self._executors:
                executor.shutdown(wait=False)

        scans: List[FileScan] = []
        failures: List[FileFailure] = []
        warnings: List[MigrationWarning] = []
        for result in results:
            if isinstance(result, FileFailure):
                failures.append(result)
            else:
                scan, file_warnings = result
                scans.append(scan)
                warnings.extend(file_warnings)
        logger.info(
            "Scanned %d files: %d findings, %d file failures",
            len(scans), sum(len(s.findings) for s in scans), len(failures),
        )
        return scans, failures, warnings

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix="flagport-scan")

    async def _scan_with_semaphore(self, semaphore: asyncio.Semaphore, path: str):
        """Scan one file with semaphore-bounded concurrency and a timeout.

        The semaphore admits no more jobs than the current pool has
        threads, so a job starts as soon as it is submitted and its
        timeout covers only its own parse.
        """
        rel = os.path.relpath(path, self.project_root)
        async with semaphore:
            if self.cancelled:
                return FileFailure(rel, "Cancelled", "pass cancelled before this file was scanned")
            loop = asyncio.get_running_loop()
            try:
                return await asyncio.wait_for(
                    loop.run_in_executor(self._executors[-1], self._scan_file, path),
                    timeout=self.settings.file_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("Scan of %s timed out after %.1fs", rel, self.settings.file_timeout_seconds)
                # The abandoned parse keeps its thread; later files get a fresh pool
                self._executors.append(self._new_executor())
                return FileFailure(
                    rel, "TimeoutError", f"parse did not finish within {self.settings.file_timeout_seconds}s",
                )
            except (SourceReadError, FileScanError, ValueError) as e:
                logger.warning("Skipping %s: %s", rel, e)
                return FileFailure(rel, type(e).__name__, str(e))
            except Exception as e:
                logger.error("Unexpected error scanning %s", rel, exc_info=True)
                return FileFailure(rel, type(e).__name__, str(e))

    def _scan_file(self, path: str):
        """Parse and scan one file (runs in the thread pool)."""
        parsed = self.parser(path, self.project_root)
        warnings: List[MigrationWarning] = []
        if parsed.has_syntax_errors:
            if self.settings.fail_on_syntax_errors:
                first = parsed.errors[0] if parsed.errors else None
                where = f" (line {first.line})" if first else ""
                raise FileScanError(parsed.file_path, f"syntax errors{where}")
            for error in parsed.errors:
                warnings.append(MigrationWarning(
                    message=f"parse {error.severity}: {error.message}; findings near it may be incomplete",
                    file_path=parsed.file_path,
                    line=error.line,
                ))
        try:
            scan = self._scanner.scan_file(parsed)
        except FlagportError:
            raise
        except Exception as e:
            raise FileScanError(parsed.file_path, f"scan failed: {e}") from e
        logger.debug("Scanned %s: %d findings", parsed.file_path, len(scan.findings))
        return scan, warnings

    # ── Rewriting ──────────────────────────────────────────────────────

    def _rewrite_all(self, scans: List[FileScan], failures: List[FileFailure]) -> List[FileRewrite]:
        engine = RewriteEngine(self.settings)
        rewrites: List[FileRewrite] = []
        for scan in scans:
            if not scan.findings:
                continue
            file_path = scan.parsed.file_path
            if self.cancelled:
                rewrites.append(self._unrewritten(scan, "Cancelled", "pass cancelled before this file was rewritten"))
                failures.append(FileFailure(file_path, "Cancelled", "pass cancelled before rewriting"))
                continue
            try:
                rewrites.append(engine.rewrite_file(scan))
            except Exception as e:
                logger.error("Unexpected error rewriting %s", file_path, exc_info=True)
                rewrites.append(self._unrewritten(scan, type(e).__name__, f"rewrite aborted: {e}"))
        return rewrites

    @staticmethod
    def _unrewritten(scan: FileScan, error_type: str, reason: str) -> FileRewrite:
        """A rewrite record where nothing in the file was migrated."""
        outcomes = [
            FindingOutcome(f, ItemStatus.BLOCKED, reason=f.block_reason) if f.blocked
            else FindingOutcome(f, ItemStatus.FAILED, error_type=error_type, reason=reason)
            for f in scan.findings
        ]
        return FileRewrite(file_path=scan.parsed.file_path, outcomes=outcomes, patch_set=PatchSet(scan.parsed.file_path))

    def _run_gates(self, findings, rewrites: List[FileRewrite], failures, bindings, warnings) -> None:
        """Run the lane's quality gates; a blocking failure aborts before any write.

        Raises:
            GateFailedError: A blocking gate did not pass.
        """
        context = {
            "findings": findings,
            "accepted_patches": {r.file_path: r.patches for r in rewrites},
            "report": self._build_report(rewrites, failures, bindings, warnings),
        }
        for gate in self._lane.get_gates():
            result = self._lane.run_gate(gate.name, context)
            if result.passed:
                logger.info("Quality gate %s passed", gate.name)
                continue
            if result.blocking:
                raise GateFailedError(gate.name, result.details)
            logger.warning("Quality gate %s failed (non-blocking): %s", gate.name, result.details)

    # ── Writing ────────────────────────────────────────────────────────

    def _write_all(self, scans: List[FileScan], rewrites: List[FileRewrite],
                   failures: List[FileFailure]) -> List[str]:
        parsed_by_path = {s.parsed.file_path: s.parsed for s in scans}
        written: List[str] = []
        for rewrite in rewrites:
            if not len(rewrite.patch_set):
                continue
            if self.dry_run:
                continue
            if self.cancelled:
                self._demote(rewrite, failures, "Cancelled", "pass cancelled before this file was written")
                continue
            parsed = parsed_by_path[rewrite.file_path]
            try:
                written.append(self._write_file(parsed, rewrite))
            except (OSError, PatchConflictError, SourceReadError) as e:
                logger.warning("Not writing %s: %s", rewrite.file_path, e)
                self._demote(rewrite, failures, type(e).__name__, str(e))
        if self.dry_run:
            logger.info("Dry run: %d files would be written", sum(1 for r in rewrites if len(r.patch_set)))
        return written

    def _write_file(self, parsed: ParsedFile, rewrite: FileRewrite) -> str:
        """Apply one file's patches atomically. Returns the written path.

        Raises:
            SourceReadError: The file changed since it was scanned.
            PatchConflictError: A patch's original text no longer matches.
            OSError: The file cannot be written.
        """
        source_path = os.path.join(self.project_root, parsed.file_path)
        with open(source_path, "rb") as f:
            current = f.read()
        if hashlib.sha256(current).hexdigest() != parsed.digest:
            raise SourceReadError(parsed.file_path, "file changed on disk after it was scanned")
        patched = apply_patches(current, rewrite.patches)

        if self.settings.staging_dir:
            target = os.path.join(os.path.abspath(self.settings.staging_dir), parsed.file_path)
        else:
            target = source_path
        _atomic_write(target, patched)
        logger.info("Wrote %s (%d patches)", target, len(rewrite.patch_set))
        return target

    @staticmethod
    def _demote(rewrite: FileRewrite, failures: List[FileFailure], error_type: str, reason: str) -> None:
        """Mark a file's migrated items failed; nothing from it was written."""
        for i, outcome in enumerate(rewrite.outcomes):
            if outcome.status is ItemStatus.MIGRATED:
                rewrite.outcomes[i] = FindingOutcome(
                    outcome.finding, ItemStatus.FAILED, error_type=error_type,
                    reason=f"file not written: {reason}",
                )
        failures.append(FileFailure(rewrite.file_path, error_type, reason))

    # ── Reporting ──────────────────────────────────────────────────────

    def _build_report(self, rewrites, failures, bindings, warnings) -> MigrationReport:
        outcomes = [o for r in rewrites for o in r.outcomes]
        return report_builder.build(outcomes, failures, bindings, warnings,
                                    placeholder_client_id=self.settings.placeholder_client_id)

    def _write_artifact(self, summary: MigrationSummary) -> None:
        try:
            _atomic_write(self.output_path, summary.to_json().encode("utf-8"))
        except OSError as e:
            raise OutputWriteError(f"Cannot write {self.output_path}: {e}") from e
        logger.info("Wrote migration summary to %s", self.output_path)


def _atomic_write(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temp file in the same directory."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=".flagport-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        if os.path.exists(path):
            os.chmod(tmp, os.stat(path).st_mode & 0o7777)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
