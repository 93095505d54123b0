"""Tests for the report builder and the migration-summary schema."""

import json

import pytest

from flagport.core.migration.classifier import ExperimentClassifier
from flagport.core.migration.models import FileFailure, ItemStatus, MigrationWarning
from flagport.core.migration.report import LD_INSTALL_COMMAND, build, next_steps
from flagport.core.migration.rewriter import RewriteEngine
from flagport.core.migration.schemas import MigrationSummary, to_summary

PLACEHOLDER = "YOUR_LAUNCHDARKLY_CLIENT_SIDE_ID"

APP = """\
import { StatsigProvider } from '@statsig/react-bindings';
import { Checkout } from './Checkout';

export default function App() {
  return <StatsigProvider sdkKey="k" user={{ userID: 'u1' }}><Checkout /></StatsigProvider>;
}
"""

CHECKOUT = """\
import { useGateValue, useExperiment, useDynamicConfig } from '@statsig/react-bindings';

export function Checkout() {
  // @related-flags express_checkout
  const experiment = useExperiment('checkout_flow_test');
  const express = useGateValue('express_checkout');
  const darkMode = useGateValue('dark_mode');
  const copy = useDynamicConfig('hero_copy');
  const title = copy.get('title');
  return <div>{experiment.get('variant', 'control')}{title}</div>;
}
"""


@pytest.fixture
def pass_outputs(scan_source):
    scans = [scan_source(APP, "src/App.jsx"), scan_source(CHECKOUT, "src/Checkout.jsx")]
    bindings, warnings = ExperimentClassifier().classify([f for s in scans for f in s.findings])
    engine = RewriteEngine()
    rewrites = [engine.rewrite_file(s) for s in scans]
    outcomes = [o for r in rewrites for o in r.outcomes]
    return outcomes, bindings, warnings + [w for r in rewrites for w in r.warnings]


@pytest.fixture
def report(pass_outputs):
    outcomes, bindings, warnings = pass_outputs
    return build(
        outcomes,
        file_failures=[FileFailure("src/broken.js", "TimeoutError", "scan exceeded 10s")],
        bindings=bindings,
        warnings=warnings,
        placeholder_client_id=PLACEHOLDER,
    )


# ── Tests: report ────────────────────────────────────────────────────


class TestBuild:
    def test_counts_balance(self, report):
        assert report.total == report.migrated_count + report.blocked_count + report.failed_count
        assert report.total == 8  # 7 findings + 1 file failure
        assert report.migrated_count == 4
        assert report.blocked_count == 2
        assert report.failed_count == 2

    def test_failed_items(self, report):
        config, file_failure = report.failed
        assert config.finding.source_name == "hero_copy"
        assert config.error_type == "AmbiguousFallbackError"
        assert isinstance(file_failure, FileFailure)

    def test_source_order_kept(self, report):
        sites = [(o.finding.location.file_path, o.finding.location.start_line) for o in report.migrated]
        assert sites == [
            ("src/App.jsx", 1), ("src/App.jsx", 5), ("src/Checkout.jsx", 1), ("src/Checkout.jsx", 7),
        ]

    def test_import_kept_for_blocked_hooks(self, report):
        imports = [o for o in report.migrated if o.finding.kind.value == "Import"]
        checkout = next(o for o in imports if o.finding.location.file_path == "src/Checkout.jsx")
        assert checkout.status is ItemStatus.MIGRATED
        assert "import kept" in checkout.result.warnings[0]

    def test_warnings_deduplicated(self):
        w = MigrationWarning("same", "a.js", 1, "x")
        report = build([], warnings=[w, MigrationWarning("same", "a.js", 1, "x")])
        assert len(report.warnings) == 1


class TestNextSteps:
    def test_steps(self, report):
        steps = report.next_steps
        assert steps[0] == f"Install the LaunchDarkly SDKs: {LD_INSTALL_COMMAND}"
        assert any(PLACEHOLDER in s for s in steps)
        assert any(s.startswith("Create 1 LaunchDarkly flag(s)") and "darkMode" in s for s in steps)
        assert any("checkout_flow_test" in s and "Keep the Statsig SDK" in s for s in steps)
        assert "Resolve 2 failed item(s) listed under not_migrated.failed_items" in steps

    def test_empty_project(self):
        assert next_steps(build([])) == ["No Statsig usage found; nothing to migrate"]


# ── Tests: summary artifact ──────────────────────────────────────────


class TestSummary:
    def test_sections(self, report):
        summary = to_summary(report)
        assert summary.summary.total_items == 8
        assert summary.summary.successfully_migrated == 4
        assert summary.summary.blocked_by_experiments == 2
        assert summary.summary.failed == 2
        assert [g.target_name for g in summary.migrated.feature_gates] == ["darkMode"]
        assert summary.migrated.feature_gates[0].target_names == {
            "javascript": "dark_mode", "react": "darkMode", "typescript": "dark_mode",
        }
        assert [e.source_name for e in summary.not_migrated.experiments] == ["checkout_flow_test"]
        assert [g.source_name for g in summary.not_migrated.blocked_gates] == ["express_checkout"]
        assert summary.not_migrated.failed_items[-1].kind == "File"

    def test_binding_entry(self, report):
        binding = to_summary(report).experiment_bindings[0]
        assert binding.name == "checkout_flow_test"
        assert binding.related_flags == ["express_checkout"]
        assert binding.parameters == ["variant"]
        assert binding.sites == ["src/Checkout.jsx:5:22"]

    def test_json_is_deterministic(self, report, pass_outputs):
        first = to_summary(report).to_json()
        outcomes, bindings, warnings = pass_outputs
        again = to_summary(build(
            outcomes,
            file_failures=[FileFailure("src/broken.js", "TimeoutError", "scan exceeded 10s")],
            bindings=bindings,
            warnings=warnings,
            placeholder_client_id=PLACEHOLDER,
        )).to_json()
        assert first == again
        document = json.loads(first)
        assert set(document) == {
            "summary", "migrated", "not_migrated", "experiment_bindings", "warnings", "next_steps",
        }
        assert "timestamp" not in first

    def test_round_trip_through_schema(self, report):
        text = to_summary(report).to_json()
        assert MigrationSummary.model_validate_json(text).summary.total_items == 8
