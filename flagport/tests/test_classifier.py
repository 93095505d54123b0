"""Tests for the experiment classifier."""

import pytest

from flagport.core.migration.classifier import ExperimentClassifier, name_tokens, token_prefix_related
from flagport.core.migration.models import FindingKind

REACT_IMPORT = (
    "import { useExperiment, useGateValue, useDynamicConfig } from '@statsig/react-bindings';\n"
)


@pytest.fixture
def classify(scan_source):
    """Scan ``body`` (with the React import prepended) and classify its findings."""
    def _classify(body: str, min_tokens: int = 2):
        findings = scan_source(REACT_IMPORT + body, "src/App.jsx").findings
        bindings, warnings = ExperimentClassifier(min_tokens).classify(findings)
        return findings, bindings, warnings
    return _classify


def by_name(findings, name, kind=FindingKind.GATE_CHECK):
    return next(f for f in findings if f.source_name == name and f.kind is kind)


# ── Tests: name helpers ──────────────────────────────────────────────


class TestNameTokens:
    @pytest.mark.parametrize("name,tokens", [
        ("checkout_flow_test", ["checkout", "flow", "test"]),
        ("checkout-flow", ["checkout", "flow"]),
        ("checkoutFlowTest", ["checkout", "flow", "test"]),
        ("HTTPBanner", ["http", "banner"]),
    ])
    def test_split(self, name, tokens):
        assert name_tokens(name) == tokens

    def test_prefix_relation(self):
        assert token_prefix_related("checkout_flow", "checkout_flow_test", 2)
        assert not token_prefix_related("checkout", "checkout_flow_test", 2)
        assert not token_prefix_related("checkout_flow", "checkoutFlow", 2)  # same tokens
        assert not token_prefix_related("new_feature", "checkout_flow_test", 1)


# ── Tests: blocking rules ────────────────────────────────────────────


class TestBlocking:
    def test_pragma_blocks_listed_gate(self, classify):
        findings, bindings, warnings = classify(
            "// @related-flags express_checkout\n"
            "const exp = useExperiment('checkout_flow_test');\n"
            "const express = useGateValue('express_checkout');\n"
            "const dark = useGateValue('dark_mode');\n"
        )
        express = by_name(findings, "express_checkout")
        assert express.blocked
        assert express.block_reason == "checkout_flow_test"
        assert not by_name(findings, "dark_mode").blocked
        assert [b.name for b in bindings] == ["checkout_flow_test"]
        assert bindings[0].related_names == ["express_checkout"]
        assert bindings[0].blocked_names == ["express_checkout"]
        assert warnings == []

    def test_experiment_fetch_is_always_blocked(self, classify):
        findings, _, _ = classify("const exp = useExperiment('pricing');\n")
        fetch = by_name(findings, "pricing", FindingKind.EXPERIMENT_FETCH)
        assert fetch.blocked
        assert fetch.block_reasons == ("pricing",)

    def test_shared_name_blocks(self, classify):
        findings, _, _ = classify(
            "const exp = useExperiment('promo');\n"
            "const on = useGateValue('promo');\n"
        )
        assert by_name(findings, "promo").blocked

    def test_parameter_without_pragma_blocks(self, classify):
        findings, bindings, _ = classify(
            "const exp = useExperiment('pricing');\n"
            "const show = exp.get('show_banner', false);\n"
            "const on = useGateValue('show_banner');\n"
        )
        assert by_name(findings, "show_banner").blocked
        assert bindings[0].parameters == ["show_banner"]

    def test_every_reason_recorded(self, classify):
        findings, _, _ = classify(
            "// @related-flags shared_gate\n"
            "const a = useExperiment('exp_a');\n"
            "// @related-flags shared_gate\n"
            "const b = useExperiment('exp_b');\n"
            "const on = useGateValue('shared_gate');\n"
        )
        assert by_name(findings, "shared_gate").block_reason == "exp_a, exp_b"

    def test_dynamic_experiment_blocked_without_binding(self, classify):
        findings, bindings, _ = classify("const exp = useExperiment(expName);\n")
        fetch = findings[-1]
        assert fetch.blocked
        assert fetch.block_reasons == ("<dynamic experiment>",)
        assert bindings == []

    def test_sites_merge_across_fetches(self, classify):
        _, bindings, _ = classify(
            "const a = useExperiment('pricing');\n"
            "const b = useExperiment('pricing');\n"
        )
        assert len(bindings) == 1
        assert len(bindings[0].sites) == 2


class TestAmbiguity:
    def test_parameter_not_in_pragma(self, classify):
        findings, _, warnings = classify(
            "// @related-flags other_flag\n"
            "const exp = useExperiment('pricing');\n"
            "const show = exp.get('show_banner', false);\n"
            "const on = useGateValue('show_banner');\n"
            "const other = useGateValue('other_flag');\n"
        )
        gate = by_name(findings, "show_banner")
        assert not gate.blocked
        assert "whose @related-flags does not list it" in gate.ambiguity
        assert any(w.source_name == "show_banner" and "manual review" in w.message for w in warnings)

    def test_similar_name(self, classify):
        findings, _, warnings = classify(
            "const exp = useExperiment('checkout_flow_test');\n"
            "const on = useGateValue('checkout_flow');\n"
        )
        gate = by_name(findings, "checkout_flow")
        assert not gate.blocked
        assert gate.ambiguity == "name resembles experiment 'checkout_flow_test'"
        assert len(warnings) == 1

    def test_similarity_threshold_is_configurable(self, classify):
        findings, _, warnings = classify(
            "const exp = useExperiment('checkout_flow_test');\n"
            "const on = useGateValue('checkout_flow');\n",
            min_tokens=3,
        )
        assert by_name(findings, "checkout_flow").ambiguity is None
        assert warnings == []


class TestWarnings:
    def test_unmatched_pragma_name(self, classify):
        _, _, warnings = classify(
            "// @related-flags ghost_flag\n"
            "const exp = useExperiment('pricing');\n"
        )
        assert len(warnings) == 1
        assert "ghost_flag" in warnings[0].message
        assert warnings[0].line == 3

    def test_config_blocked_like_gate(self, classify):
        findings, _, _ = classify(
            "// @related-flags pricing_table\n"
            "const exp = useExperiment('pricing');\n"
            "const table = useDynamicConfig('pricing_table');\n"
        )
        assert by_name(findings, "pricing_table", FindingKind.CONFIG_FETCH).blocked
