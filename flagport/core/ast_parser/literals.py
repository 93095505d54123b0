"""JavaScript literal values.

Converts literal syntax nodes into plain Python values and renders Python
values back into JavaScript source text. Anything that is not a static
literal survives as a RawExpression carrying its exact source text, so a
value can always be written back even when it cannot be inspected.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import tree_sitter

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

# Wrappers that do not change a literal's value
_TRANSPARENT_WRAPPERS = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
})


@dataclass(frozen=True)
class RawExpression:
    """A non-literal expression, kept verbatim."""

    text: str


class _Undefined:
    """Sentinel for the JavaScript ``undefined`` literal."""

    _instance: Optional["_Undefined"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"


UNDEFINED = _Undefined()


def node_text(node: tree_sitter.Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8")


def unwrap(node: tree_sitter.Node) -> tree_sitter.Node:
    """Strip parentheses and TypeScript-only wrappers around an expression."""
    while node.type in _TRANSPARENT_WRAPPERS and node.named_child_count:
        node = node.named_children[0]
    return node


def is_identifier_name(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name))


def string_value(node: tree_sitter.Node, source: bytes) -> Optional[str]:
    """Return the value of a string or substitution-free template string.

    Returns None for any other node type, including template strings
    that contain ``${...}`` substitutions.
    """
    node = unwrap(node)
    if node.type not in ("string", "template_string"):
        return None
    parts = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(node_text(child, source))
        elif child.type == "escape_sequence":
            parts.append(_decode_escape(node_text(child, source)))
        elif child.type == "template_substitution":
            return None
    return "".join(parts)


def quote_char(node: tree_sitter.Node, source: bytes) -> str:
    """Return the quote character a string literal was written with."""
    text = node_text(unwrap(node), source)
    return text[0] if text and text[0] in "'\"`" else '"'


def quote_js(value: str, quote: str = '"') -> str:
    """Render a Python string as a JavaScript string literal."""
    if quote == '"':
        return json.dumps(value, ensure_ascii=False)
    escaped = value.replace("\\", "\\\\").replace("\n", "\\n").replace(quote, "\\" + quote)
    if quote == "`":
        escaped = escaped.replace("${", "\\${")
    return f"{quote}{escaped}{quote}"


def node_to_value(node: tree_sitter.Node, source: bytes) -> Any:
    """Convert a literal expression node to a Python value.

    Mapping: string → str, number → int/float, true/false → bool,
    null → None, undefined → UNDEFINED, array → list, object → dict.
    Objects with spreads, methods or computed keys, and every other
    expression, become RawExpression.
    """
    node = unwrap(node)
    kind = node.type

    if kind in ("string", "template_string"):
        value = string_value(node, source)
        return value if value is not None else RawExpression(node_text(node, source))
    if kind == "number":
        return _number_value(node_text(node, source))
    if kind == "true":
        return True
    if kind == "false":
        return False
    if kind == "null":
        return None
    if kind == "undefined" or (kind == "identifier" and node_text(node, source) == "undefined"):
        return UNDEFINED
    if kind == "unary_expression":
        operator = node.child_by_field_name("operator")
        argument = node.child_by_field_name("argument")
        if operator is not None and argument is not None and unwrap(argument).type == "number":
            number = _number_value(node_text(unwrap(argument), source))
            op = node_text(operator, source)
            if isinstance(number, (int, float)) and op in ("-", "+"):
                return -number if op == "-" else number
        return RawExpression(node_text(node, source))
    if kind == "array":
        items = []
        for child in node.named_children:
            if child.type == "comment":
                continue
            if child.type == "spread_element":
                return RawExpression(node_text(node, source))
            items.append(node_to_value(child, source))
        return items
    if kind == "object":
        obj = object_to_dict(node, source)
        return obj if obj is not None else RawExpression(node_text(node, source))

    return RawExpression(node_text(node, source))


def object_to_dict(node: tree_sitter.Node, source: bytes) -> Optional[Dict[str, Any]]:
    """Convert an object literal to a dict, or None if it is not static."""
    node = unwrap(node)
    if node.type != "object":
        return None
    result: Dict[str, Any] = {}
    for child in node.named_children:
        if child.type == "comment":
            continue
        if child.type == "pair":
            key = property_key(child.child_by_field_name("key"), source)
            if key is None:
                return None
            result[key] = node_to_value(child.child_by_field_name("value"), source)
        elif child.type == "shorthand_property_identifier":
            name = node_text(child, source)
            result[name] = RawExpression(name)
        else:
            # spread_element, method_definition, ...
            return None
    return result


def property_key(node: Optional[tree_sitter.Node], source: bytes) -> Optional[str]:
    """Return the static name of an object key node, if it has one."""
    if node is None:
        return None
    if node.type in ("property_identifier", "identifier"):
        return node_text(node, source)
    if node.type in ("string", "template_string"):
        return string_value(node, source)
    if node.type == "number":
        return node_text(node, source)
    return None


def render_js(value: Any) -> str:
    """Render a Python value as JavaScript source text.

    The output is deterministic: dict insertion order is preserved and
    strings are always double-quoted.
    """
    if isinstance(value, RawExpression):
        return value.text
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"Cannot render non-finite number {value!r}")
        return repr(value)
    if isinstance(value, str):
        return quote_js(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_js(v) for v in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        parts = [f"{render_key(k)}: {render_js(v)}" for k, v in value.items()]
        return "{ " + ", ".join(parts) + " }"
    raise TypeError(f"Cannot render {type(value).__name__} as JavaScript")


def render_key(key: str) -> str:
    return key if is_identifier_name(key) else quote_js(key)


def to_json_value(value: Any) -> Any:
    """Convert a literal value to something json.dumps accepts.

    RawExpression becomes ``{"$expr": text}`` so expressions stay
    distinguishable from string values in the migration summary.
    """
    if isinstance(value, RawExpression):
        return {"$expr": value.text}
    if value is UNDEFINED:
        return None
    if isinstance(value, dict):
        return {k: to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    return value


def _number_value(text: str) -> Any:
    cleaned = text.replace("_", "")
    try:
        if cleaned.lower().startswith(("0x", "0o", "0b")):
            return int(cleaned, 0)
        if cleaned.endswith("n"):
            # BigInt literal, not representable as a plain JS number
            return RawExpression(text)
        if re.fullmatch(r"\d+", cleaned):
            return int(cleaned)
        return float(cleaned)
    except ValueError:
        return RawExpression(text)


def _decode_escape(text: str) -> str:
    body = text[1:]
    if not body:
        return ""
    if body[0] in _SIMPLE_ESCAPES and len(body) == 1:
        return _SIMPLE_ESCAPES[body[0]]
    if body[0] == "x" and len(body) == 3:
        return chr(int(body[1:], 16))
    if body[0] == "u":
        digits = body[1:].strip("{}")
        try:
            return chr(int(digits, 16))
        except ValueError:
            return text
    if body.startswith(("\n", "\r")):
        # Line continuation
        return ""
    return body
