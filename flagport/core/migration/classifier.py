"""Experiment classifier.

Runs once per pass, single-threaded, over every finding in the project.
Builds one :class:`ExperimentBinding` per experiment/layer name and marks
the gates and configs entangled with it as blocked. Anything that only
*might* be entangled is surfaced as an ambiguity instead of being
blocked or migrated.

Blocking rules, per gate/config name ``n`` and binding ``E``:

* ``E`` has a ``@related-flags`` pragma listing ``n`` → blocked.
* ``n == E`` (shared name) → blocked.
* ``E`` has no pragma and reads a parameter named ``n`` → blocked.
* ``E`` has a pragma not listing ``n`` but reads a parameter ``n`` → ambiguous.
* ``n`` and ``E`` share a token prefix of at least
  ``name_similarity_min_tokens`` tokens → ambiguous.
"""

import logging
import re
from typing import Dict, Iterable, List, Tuple

from .models import (
    EXPERIMENT_TARGETS,
    FLAG_KINDS,
    ExperimentBinding,
    Finding,
    FindingKind,
    MigrationWarning,
    TargetType,
)

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])")
_FETCH_KINDS = (FindingKind.EXPERIMENT_FETCH, FindingKind.LAYER_FETCH)


def name_tokens(name: str) -> List[str]:
    """Split snake/kebab/camel names into lower-case tokens."""
    return [t.lower() for t in _TOKEN_RE.findall(name)]


def token_prefix_related(a: str, b: str, min_tokens: int) -> bool:
    """One name's tokens are a prefix of the other's, and at least ``min_tokens`` long."""
    ta, tb = name_tokens(a), name_tokens(b)
    if ta == tb:
        return False
    short, long = (ta, tb) if len(ta) <= len(tb) else (tb, ta)
    return len(short) >= min_tokens and long[:len(short)] == short


class ExperimentClassifier:
    """Annotates findings in place with block status and ambiguities."""

    def __init__(self, name_similarity_min_tokens: int = 2):
        self.name_similarity_min_tokens = name_similarity_min_tokens

    def classify(self, findings: Iterable[Finding]) -> Tuple[List[ExperimentBinding], List[MigrationWarning]]:
        """Build experiment bindings and block entangled findings.

        Returns:
            (bindings in discovery order, classifier warnings)
        """
        findings = list(findings)
        warnings: List[MigrationWarning] = []
        bindings: Dict[str, ExperimentBinding] = {}

        for finding in findings:
            if finding.kind in _FETCH_KINDS or (
                finding.kind in (FindingKind.MANUAL_EXPOSURE, FindingKind.OVERRIDE)
                and finding.target_type in EXPERIMENT_TARGETS
            ):
                reason = finding.source_name if not finding.dynamic_name else f"<dynamic {finding.target_type.value}>"
                self._block(finding, [reason])

            if finding.kind in _FETCH_KINDS and not finding.dynamic_name:
                binding = bindings.get(finding.source_name)
                if binding is None:
                    binding = ExperimentBinding(name=finding.source_name, target_type=finding.target_type)
                    bindings[finding.source_name] = binding
                binding.sites.append(finding.location)
                for name in finding.metadata.get("related_flags", ()):
                    if name not in binding.related_names:
                        binding.related_names.append(name)
                for name in finding.parameters:
                    if name not in binding.parameters:
                        binding.parameters.append(name)

        flag_findings = [
            f for f in findings
            if f.kind in FLAG_KINDS
            and f.target_type in (TargetType.GATE, TargetType.CONFIG)
            and not f.dynamic_name
        ]

        for finding in flag_findings:
            reasons: List[str] = []
            doubts: List[str] = []
            for binding in bindings.values():
                verdict = self._relation(finding.source_name, binding)
                if verdict == "blocked":
                    reasons.append(binding.name)
                    if finding.source_name not in binding.blocked_names:
                        binding.blocked_names.append(finding.source_name)
                elif verdict:
                    doubts.append(verdict)
            if reasons:
                self._block(finding, reasons)
            elif doubts:
                finding.ambiguity = "; ".join(doubts)
                warnings.append(MigrationWarning(
                    message=f"'{finding.source_name}' may be part of an experiment ({finding.ambiguity}); "
                            f"left for manual review",
                    file_path=finding.location.file_path,
                    line=finding.location.start_line,
                    source_name=finding.source_name,
                ))

        known = {f.source_name for f in flag_findings}
        for binding in bindings.values():
            for name in binding.related_names:
                if name not in known:
                    site = binding.sites[0]
                    warnings.append(MigrationWarning(
                        message=f"@related-flags on '{binding.name}' names '{name}', "
                                f"which matches no gate or config",
                        file_path=site.file_path,
                        line=site.start_line,
                        source_name=name,
                    ))

        blocked = sum(1 for f in findings if f.blocked)
        logger.info(
            "Classified %d findings: %d experiment bindings, %d blocked, %d ambiguous",
            len(findings), len(bindings), blocked, sum(1 for f in findings if f.ambiguity),
        )
        return list(bindings.values()), warnings

    def _relation(self, name: str, binding: ExperimentBinding) -> str:
        """Return ``"blocked"``, an ambiguity description, or ``""``."""
        if name == binding.name:
            return "blocked"
        if binding.has_pragma:
            if name in binding.related_names:
                return "blocked"
            if name in binding.parameters:
                return f"parameter of '{binding.name}', whose @related-flags does not list it"
        elif name in binding.parameters:
            return "blocked"
        if token_prefix_related(name, binding.name, self.name_similarity_min_tokens):
            return f"name resembles {binding.target_type.value} '{binding.name}'"
        return ""

    @staticmethod
    def _block(finding: Finding, reasons: List[str]) -> None:
        merged = list(finding.block_reasons)
        for reason in reasons:
            if reason not in merged:
                merged.append(reason)
        finding.blocked = True
        finding.block_reasons = tuple(merged)
