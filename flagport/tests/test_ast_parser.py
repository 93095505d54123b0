"""Tests for the tree-sitter front end and literal conversion."""

import pytest

from flagport.core.ast_parser import detect_language, iter_source_files, parse_file, parse_source
from flagport.core.ast_parser.literals import (
    UNDEFINED,
    RawExpression,
    node_to_value,
    quote_js,
    render_js,
    string_value,
    to_json_value,
)
from flagport.core.exceptions import SourceReadError


# =========================================================================
# Sample sources
# =========================================================================

ESM_MODULE = """\
import { StatsigClient } from '@statsig/js-client';
import React from 'react';

export const client = new StatsigClient('key', { userID: 'u1' });
"""

TSX_COMPONENT = """\
import { useGateValue } from '@statsig/react-bindings';

export function Banner(): JSX.Element {
  const on = useGateValue('promo_banner') as boolean;
  return <div>{on ? 'on' : 'off'}</div>;
}
"""


def value_of(expression: str, file_path: str = "t.ts"):
    """Parse ``const x = <expression>;`` and convert the initializer."""
    parsed = parse_source(f"const x = {expression};\n", file_path)
    declarator = parsed.tree.root_node.named_children[0].named_children[0]
    return node_to_value(declarator.child_by_field_name("value"), parsed.source)


# =========================================================================
# Tests: language detection and parsing
# =========================================================================


class TestDetectLanguage:
    @pytest.mark.parametrize("path,language", [
        ("src/app.js", "javascript"),
        ("src/App.jsx", "javascript"),
        ("src/server.mjs", "javascript"),
        ("src/app.ts", "typescript"),
        ("src/App.tsx", "tsx"),
    ])
    def test_supported(self, path, language):
        assert detect_language(path) == language

    def test_declaration_files_ignored(self):
        assert detect_language("types/statsig.d.ts") is None

    def test_unsupported(self):
        assert detect_language("README.md") is None


class TestParseSource:
    def test_esm_module(self):
        parsed = parse_source(ESM_MODULE, "src/app.js")
        assert parsed.language == "javascript"
        imports = [c for c in parsed.tree.root_node.named_children if c.type == "import_statement"]
        assert len(imports) == 2
        assert not parsed.has_syntax_errors
        assert parsed.line_count == 4

    def test_source_bytes_and_digest(self):
        parsed = parse_source(ESM_MODULE, "src/app.js")
        assert parsed.source == ESM_MODULE.encode("utf-8")
        assert len(parsed.digest) == 64

    def test_tsx_parses_jsx_and_type_assertions(self):
        parsed = parse_source(TSX_COMPONENT, "src/Banner.tsx")
        assert parsed.language == "tsx"
        assert not parsed.has_syntax_errors

    def test_syntax_error_recorded_as_warning(self):
        parsed = parse_source("const = ;\n", "src/broken.js")
        assert parsed.has_syntax_errors
        assert parsed.errors[0].severity == "warning"
        assert parsed.errors[0].line == 1

    def test_unsupported_extension(self):
        with pytest.raises(ValueError):
            parse_source("x", "notes.txt")


class TestParseFile:
    def test_relative_path(self, tmp_path):
        path = tmp_path / "src" / "app.js"
        path.parent.mkdir()
        path.write_text(ESM_MODULE)
        parsed = parse_file(str(path), str(tmp_path))
        assert parsed.file_path == "src/app.js"

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "latin1.js"
        path.write_bytes(b"const s = '\xe9';\n")
        with pytest.raises(SourceReadError):
            parse_file(str(path), str(tmp_path))


class TestIterSourceFiles:
    def test_sorted_and_skips_vendored_directories(self, tmp_path):
        for rel in ["b.js", "a/z.ts", "a/y.tsx", "node_modules/pkg/index.js", ".cache/x.js",
                    "dist/bundle.js", "types.d.ts", "README.md"]:
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("")
        found = [p[len(str(tmp_path)) + 1:] for p in iter_source_files(str(tmp_path))]
        assert found == ["a/y.tsx", "a/z.ts", "b.js"]


# =========================================================================
# Tests: literal conversion
# =========================================================================


class TestNodeToValue:
    @pytest.mark.parametrize("expression,expected", [
        ("'single'", "single"),
        ('"double"', "double"),
        ("`template`", "template"),
        ("42", 42),
        ("-1.5", -1.5),
        ("0x10", 16),
        ("true", True),
        ("false", False),
        ("null", None),
        ("[1, 'a', false]", [1, "a", False]),
        ("{ title: 'Default', 'max-items': 3, nested: { on: true } }",
         {"title": "Default", "max-items": 3, "nested": {"on": True}}),
        ("('wrapped')", "wrapped"),
    ])
    def test_literals(self, expression, expected):
        assert value_of(expression) == expected

    def test_undefined(self):
        assert value_of("undefined") is UNDEFINED

    def test_typescript_wrappers_unwrapped(self):
        assert value_of("{ limit: 5 } as const") == {"limit": 5}
        assert value_of("'x' satisfies string") == "x"

    @pytest.mark.parametrize("expression", [
        "someVariable",
        "`hello ${name}`",
        "compute()",
        "{ ...defaults }",
        "[...items]",
        "10n",
    ])
    def test_non_literals_kept_verbatim(self, expression):
        value = value_of(expression)
        assert isinstance(value, RawExpression)
        assert value.text == expression

    def test_escape_sequences_decoded(self):
        assert value_of(r"'line\nbreak é'") == "line\nbreak é"


class TestRenderJs:
    def test_object_keeps_insertion_order(self):
        assert render_js({"title": "Default", "enabled": False}) == '{ title: "Default", enabled: false }'

    def test_non_identifier_keys_quoted(self):
        assert render_js({"max-items": 3}) == '{ "max-items": 3 }'

    def test_scalars(self):
        assert render_js(None) == "null"
        assert render_js(UNDEFINED) == "undefined"
        assert render_js([1, "a"]) == '[1, "a"]'
        assert render_js({}) == "{}"

    def test_raw_expression_verbatim(self):
        assert render_js({"id": RawExpression("user.id")}) == "{ id: user.id }"

    def test_quote_js_preserves_requested_quote(self):
        assert quote_js("it's", "'") == "'it\\'s'"
        assert quote_js("plain") == '"plain"'

    def test_to_json_value_marks_expressions(self):
        assert to_json_value({"a": RawExpression("x"), "b": [UNDEFINED]}) == {"a": {"$expr": "x"}, "b": [None]}


class TestStringValue:
    def test_template_with_substitution_is_not_static(self):
        parsed = parse_source("f(`a${b}`);\n", "t.js")
        call = parsed.tree.root_node.named_children[0].named_children[0]
        arg = call.child_by_field_name("arguments").named_children[0]
        assert string_value(arg, parsed.source) is None
