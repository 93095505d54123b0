"""Tests for the pattern catalog and source scanner."""

import pytest

from flagport.core.ast_parser.literals import RawExpression
from flagport.core.migration.lanes.base import CallShape
from flagport.core.migration.models import FindingKind, SdkVariant, TargetType
from flagport.core.migration.scanner import parse_pragma


# ── Fixtures ─────────────────────────────────────────────────────────

JS_CLIENT = """\
import { StatsigClient } from '@statsig/js-client';

const client = new StatsigClient('client-key', { userID: 'u1' });

export function render() {
  if (client.checkGate('new_feature', true)) {
    show();
  }
  const config = client.getConfig('checkout_settings');
  const title = config.get('title', 'Default');
  const enabled = config.get('enabled', false);
  return { title, enabled };
}
"""

REACT_APP = """\
import { StatsigProvider, useGateValue, useExperiment } from '@statsig/react-bindings';

function Checkout() {
  // @related-flags express_checkout
  const experiment = useExperiment('checkout_flow_test');
  const express = useGateValue('express_checkout');
  const darkMode = useGateValue('dark_mode');
  return <div>{experiment.get('variant', 'control')}</div>;
}

export default function App() {
  return (
    <StatsigProvider sdkKey="client-key" user={{ userID: 'u1' }}>
      <Checkout />
    </StatsigProvider>
  );
}
"""

SINGLETON_TS = """\
import statsig from 'statsig-js';

await statsig.initialize('client-key', { userID: 'u1', email: 'a@example.com' });
const on = statsig.checkGate('new_feature');
statsig.logEvent('purchase', 9.99, { sku: 'A1' });
"""


def kinds(scan):
    return [f.kind for f in scan.findings]


# ── Tests: catalog ───────────────────────────────────────────────────


class TestCatalog:
    """Catalog rows built from the Statsig lane."""

    def test_known_packages(self, catalog):
        assert {"statsig-js", "@statsig/js-client", "@statsig/react-bindings", "statsig-react",
                "@statsig/session-replay", "@statsig/web-analytics"} <= set(catalog.packages)

    def test_rule_lookup_by_shape(self, catalog):
        assert catalog.rule_for(CallShape.METHOD, "checkGate").kind is FindingKind.GATE_CHECK
        assert catalog.rule_for(CallShape.HOOK, "useGateValue").kind is FindingKind.GATE_CHECK
        assert catalog.rule_for(CallShape.JSX, "StatsigProvider").kind is FindingKind.PROVIDER_INIT
        assert catalog.rule_for(CallShape.METHOD, "useGateValue") is None

    def test_import_rule_present(self, catalog):
        assert catalog.import_rule is not None
        assert catalog.import_rule.kind is FindingKind.IMPORT


# ── Tests: canonical call shapes ─────────────────────────────────────


class TestJavaScriptClient:
    """``new StatsigClient`` plus gate and config usage."""

    def test_findings_in_source_order(self, scan_source):
        scan = scan_source(JS_CLIENT)
        assert kinds(scan) == [
            FindingKind.IMPORT,
            FindingKind.PROVIDER_INIT,
            FindingKind.GATE_CHECK,
            FindingKind.CONFIG_FETCH,
        ]
        assert all(f.sdk_variant is SdkVariant.JAVASCRIPT for f in scan.findings)

    def test_gate_fallback_captured(self, scan_source):
        gate = scan_source(JS_CLIENT).findings[2]
        assert gate.source_name == "new_feature"
        assert gate.fallback_literal == "true"
        assert gate.fallback_value is True
        assert gate.receiver == "client"
        assert gate.location.start_line == 6
        assert gate.metadata["quote"] == "'"

    def test_config_accessors_attached(self, scan_source):
        config = scan_source(JS_CLIENT).findings[3]
        assert config.source_name == "checkout_settings"
        assert [(a.key, a.default) for a in config.accessors] == [("title", "Default"), ("enabled", False)]
        assert not any(a.chained for a in config.accessors)
        assert not config.low_confidence

    def test_client_constructor_user(self, scan_source):
        init = scan_source(JS_CLIENT).findings[1]
        assert init.metadata["user"] == {"userID": "u1"}
        assert "client" in scan_source(JS_CLIENT).index.client_names

    def test_chained_accessor(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "const client = new StatsigClient('k', { userID: 'u' });\n"
            "const title = client.getConfig('banner').get('title', 'Hi');\n"
        )
        config = scan.findings[-1]
        assert len(config.accessors) == 1
        assert config.accessors[0].chained

    def test_accessor_binds_to_innermost_declaration(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "const client = new StatsigClient('k', { userID: 'u' });\n"
            "const cfg = client.getConfig('outer');\n"
            "function f() {\n"
            "  const cfg = client.getConfig('inner');\n"
            "  return cfg.get('size', 1);\n"
            "}\n"
            "cfg.get('color', 'red');\n"
        )
        outer, inner = [f for f in scan.findings if f.kind is FindingKind.CONFIG_FETCH]
        assert [a.key for a in outer.accessors] == ["color"]
        assert [a.key for a in inner.accessors] == ["size"]

    def test_dynamic_gate_name(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "const client = new StatsigClient('k', { userID: 'u' });\n"
            "client.checkGate(gateName);\n"
        )
        gate = scan.findings[-1]
        assert gate.dynamic_name
        assert gate.source_name == "gateName"


class TestReactBindings:
    """Hooks and the provider element."""

    def test_findings(self, scan_source):
        scan = scan_source(REACT_APP, "src/App.jsx")
        assert kinds(scan) == [
            FindingKind.IMPORT,
            FindingKind.EXPERIMENT_FETCH,
            FindingKind.GATE_CHECK,
            FindingKind.GATE_CHECK,
            FindingKind.PROVIDER_INIT,
        ]
        assert all(f.sdk_variant is SdkVariant.REACT for f in scan.findings)

    def test_related_flags_pragma(self, scan_source):
        experiment = scan_source(REACT_APP, "src/App.jsx").findings[1]
        assert experiment.source_name == "checkout_flow_test"
        assert experiment.target_type is TargetType.EXPERIMENT
        assert experiment.metadata["related_flags"] == ["express_checkout"]
        assert experiment.parameters == ["variant"]

    def test_provider_metadata(self, scan_source):
        provider = scan_source(REACT_APP, "src/App.jsx").findings[-1]
        assert provider.method == "StatsigProvider"
        assert provider.metadata["user"] == {"userID": "u1"}
        assert provider.metadata["self_closing"] is False
        assert "closing_tag" in provider.metadata
        assert provider.metadata["dropped_attributes"] == []

    def test_aliased_hook(self, scan_source):
        scan = scan_source(
            "import { useGateValue as useGate2 } from '@statsig/react-bindings';\n"
            "const on = useGate2('beta');\n",
            "src/a.jsx",
        )
        gate = scan.findings[-1]
        assert gate.method == "useGateValue"
        assert gate.source_name == "beta"

    def test_same_named_hook_from_other_package_ignored(self, scan_source):
        scan = scan_source(
            "import { useGateValue } from './my-flags';\n"
            "const on = useGateValue('beta');\n",
            "src/a.jsx",
        )
        assert scan.findings == []


class TestSingleton:
    """Legacy ``statsig-js`` default-export usage."""

    def test_singleton_marks(self, scan_source):
        scan = scan_source(SINGLETON_TS, "src/boot.ts")
        assert kinds(scan) == [
            FindingKind.IMPORT,
            FindingKind.PROVIDER_INIT,
            FindingKind.GATE_CHECK,
            FindingKind.EVENT_LOG,
        ]
        assert all(f.metadata.get("singleton") for f in scan.findings[1:])
        assert scan.findings[1].metadata["template"] == "singleton_initialize"
        assert all(f.sdk_variant is SdkVariant.TYPESCRIPT for f in scan.findings)

    def test_event_metadata(self, scan_source):
        event = scan_source(SINGLETON_TS, "src/boot.ts").findings[-1]
        assert event.source_name == "purchase"
        assert event.metadata["event"] == {
            "name_text": "'purchase'",
            "value_kind": "number",
            "value_text": "9.99",
            "metadata_text": "{ sku: 'A1' }",
        }


class TestConfidence:
    """Low-confidence matches are flagged, never dropped."""

    def test_no_import_is_low_confidence(self, scan_source):
        scan = scan_source("const on = statsig.checkGate('new_feature');\n")
        assert len(scan.findings) == 1
        assert scan.findings[0].low_confidence
        assert "no Statsig import" in scan.findings[0].confidence_note

    def test_mixed_variants_default_to_javascript(self, scan_source):
        scan = scan_source(
            "import statsig from 'statsig-js';\n"
            "import { useGateValue } from '@statsig/react-bindings';\n"
            "statsig.checkGate('a');\n"
            "useGateValue('b');\n",
            "src/mixed.jsx",
        )
        calls = [f for f in scan.findings if f.kind is not FindingKind.IMPORT]
        assert len(calls) == 2
        assert all(f.sdk_variant is SdkVariant.JAVASCRIPT for f in scan.findings)
        assert all(f.low_confidence for f in calls)

    def test_mixed_variants_flag_every_finding(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "import { useGateValue } from '@statsig/react-bindings';\n"
            "const client = new StatsigClient('k', { userID: 'u1' });\n"
            "client.checkGate('a');\n",
            "src/mixed.jsx",
        )
        kinds = [f.kind for f in scan.findings]
        assert kinds.count(FindingKind.IMPORT) == 2
        assert FindingKind.PROVIDER_INIT in kinds
        assert FindingKind.GATE_CHECK in kinds
        assert all(f.low_confidence for f in scan.findings)
        imports = [f for f in scan.findings if f.kind is FindingKind.IMPORT]
        assert all("both the JavaScript and React" in f.confidence_note for f in imports)

    def test_common_method_on_unknown_receiver(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "analytics.logEvent('click');\n"
        )
        event = scan.findings[-1]
        assert event.kind is FindingKind.EVENT_LOG
        assert event.low_confidence


class TestScanSequence:
    def test_scan_is_restartable(self, scanner):
        from flagport.core.ast_parser import parse_source
        parsed = parse_source(JS_CLIENT, "src/app.js")
        first = [f.key for f in scanner.scan(parsed)]
        second = [f.key for f in scanner.scan(parsed)]
        assert first == second
        assert len(first) == 4

    def test_unmatched_file_has_no_findings(self, scan_source):
        assert scan_source("export const add = (a, b) => a + b;\n").findings == []


class TestPragma:
    @pytest.mark.parametrize("text,names", [
        ("// @related-flags express_checkout", ["express_checkout"]),
        ("// @related-flags: a, b c", ["a", "b", "c"]),
        ("/* @related-flags new-feature, new-feature */", ["new-feature"]),
        ("// nothing here", []),
    ])
    def test_parse(self, text, names):
        assert parse_pragma(text) == names

    def test_pragma_outside_window_ignored(self, scan_source):
        scan = scan_source(
            "import { useExperiment } from '@statsig/react-bindings';\n"
            "// @related-flags far_away\n"
            "\n\n\n\n"
            "const e = useExperiment('exp');\n",
            "src/a.jsx",
        )
        assert scan.findings[-1].metadata["related_flags"] == []


class TestUserResolution:
    def test_user_bound_to_identifier(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "const user = { userID: 'u1', custom: { plan: planName } };\n"
            "const client = new StatsigClient('k', user);\n"
        )
        init = scan.findings[-1]
        assert init.metadata["user_via_identifier"]
        assert init.metadata["user"] == {"userID": "u1", "custom": {"plan": RawExpression("planName")}}

    def test_user_from_call_is_unresolved(self, scan_source):
        scan = scan_source(
            "import { StatsigClient } from '@statsig/js-client';\n"
            "const client = new StatsigClient('k', getUser());\n"
        )
        assert scan.findings[-1].metadata["user"] is None
