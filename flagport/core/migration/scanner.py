"""Source scanner.

Walks one parsed file and emits :class:`Finding` records, consulting the
pattern catalog for every node. Scanning runs in two passes:

1. **Index** -- imports (with the local alias map), comments, scoped
   variable declarations, ``.get(key, default)`` accessor calls and
   references to imported names.
2. **Findings** -- a lazy pre-order walk that matches nodes against the
   catalog and resolves each match against the index.

A scanner holds no per-file state, so one instance can scan many files
from many threads.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import tree_sitter

from ..ast_parser.literals import (
    UNDEFINED,
    node_text,
    node_to_value,
    object_to_dict,
    property_key,
    quote_char,
    string_value,
    unwrap,
)
from ..ast_parser.models import ParsedFile
from .catalog import ImportTable, PatternCatalog, PatternMatch, call_arguments, make_location
from .lanes.base import CONFIDENCE_LOW, CallShape
from .models import (
    ConfigAccessor,
    Finding,
    FindingKind,
    Location,
    MISSING,
    SdkVariant,
)

logger = logging.getLogger(__name__)

PRAGMA_RE = re.compile(r"@related-flags\s*:?\s*([A-Za-z0-9_\-.,\s]+)")

_SCOPE_TYPES = frozenset({
    "program",
    "statement_block",
    "arrow_function",
    "function_declaration",
    "function_expression",
    "function",
    "generator_function_declaration",
    "method_definition",
    "class_body",
    "for_statement",
    "for_in_statement",
})

_FETCH_KINDS = frozenset({FindingKind.CONFIG_FETCH, FindingKind.EXPERIMENT_FETCH, FindingKind.LAYER_FETCH})
_ACCESSOR_METHODS = ("get", "getValue")
_REFERENCE_TYPES = ("identifier", "type_identifier", "shorthand_property_identifier")


@dataclass
class Comment:
    start_line: int
    end_line: int
    text: str


@dataclass
class Declaration:
    """``const name = value`` within a lexical scope."""
    name: str
    scope: Tuple[int, int]
    start_byte: int
    value: Optional[tree_sitter.Node]


@dataclass
class FileIndex:
    """Pass-one facts about a file, read-only once built."""
    parsed: ParsedFile
    variant: SdkVariant
    mixed_variants: bool
    imports: ImportTable
    comments: List[Comment] = field(default_factory=list)
    declarations: Dict[str, List[Declaration]] = field(default_factory=dict)
    accessors: Dict[int, List[ConfigAccessor]] = field(default_factory=dict)
    value_reads: Dict[int, List[Location]] = field(default_factory=dict)
    chained_value_reads: Dict[int, Location] = field(default_factory=dict)
    references: Dict[str, List[Location]] = field(default_factory=dict)
    client_names: Set[str] = field(default_factory=set)
    insert_at: int = 0  # Byte offset where new imports may be inserted

    def resolve(self, name: str, at: tree_sitter.Node, preceding_only: bool = True) -> Optional[Declaration]:
        """Find the declaration ``name`` refers to at node ``at``.

        Picks the innermost enclosing scope, then the most recent
        declaration before ``at``. With ``preceding_only=False`` a later
        declaration in an enclosing scope is accepted when no earlier one
        exists (e.g. a module-level user object declared after the
        component that uses it).
        """
        best: Optional[Declaration] = None
        best_key = None
        fallback: Optional[Declaration] = None
        for decl in self.declarations.get(name, ()):
            start, end = decl.scope
            if not (start <= at.start_byte and at.end_byte <= end):
                continue
            key = (start, -end, decl.start_byte)
            if decl.start_byte > at.start_byte:
                if fallback is None:
                    fallback = decl
                continue
            if best_key is None or key > best_key:
                best, best_key = decl, key
        if best is None and not preceding_only:
            return fallback
        return best


@dataclass
class FileScan:
    """Everything the later phases need about one scanned file."""
    parsed: ParsedFile
    index: FileIndex
    findings: List[Finding]


def parse_pragma(text: str) -> List[str]:
    """Return the flag names listed in a ``@related-flags`` comment."""
    names: List[str] = []
    for match in PRAGMA_RE.finditer(text):
        for name in re.split(r"[,\s]+", match.group(1)):
            name = name.strip()
            if name and name not in names:
                names.append(name)
    return names


def _scope_of(node: tree_sitter.Node) -> Tuple[int, int]:
    current = node.parent
    while current is not None:
        if current.type in _SCOPE_TYPES:
            return current.start_byte, current.end_byte
        current = current.parent
    return 0, node.end_byte


def _walk(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Pre-order traversal without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _strip_await(node: Optional[tree_sitter.Node]) -> Optional[tree_sitter.Node]:
    while node is not None:
        node = unwrap(node)
        if node.type == "await_expression" and node.named_child_count:
            node = node.named_children[0]
            continue
        return node
    return None


class Scanner:
    """Two-pass finding extractor over one parsed file at a time."""

    def __init__(self, catalog: PatternCatalog, pragma_window_lines: int = 3):
        self.catalog = catalog
        self.pragma_window_lines = pragma_window_lines

    def scan(self, parsed: ParsedFile) -> Iterator[Finding]:
        """Yield the file's findings in source order.

        Each call starts a fresh pass, so the sequence can be restarted.
        """
        index = self.index(parsed)
        return self.findings(index)

    def scan_file(self, parsed: ParsedFile) -> FileScan:
        index = self.index(parsed)
        return FileScan(parsed=parsed, index=index, findings=list(self.findings(index)))

    # ── Pass 1: index ────────────────────────────────────────────

    def index(self, parsed: ParsedFile) -> FileIndex:
        if parsed.tree is None:
            raise ValueError(f"{parsed.file_path} has no syntax tree")
        root = parsed.tree.root_node
        source = parsed.source

        imports = ImportTable()
        import_ranges = []
        insert_at = 0
        leading = True
        for child in root.named_children:
            statement = self.catalog.read_import(child, source, parsed.file_path, imports)
            if statement is not None:
                imports.add(statement)
                import_ranges.append((child.start_byte, child.end_byte))
            if child.type == "import_statement":
                insert_at = child.end_byte
            elif (
                leading
                and child.type == "expression_statement"
                and child.named_child_count
                and unwrap(child.named_children[0]).type == "string"
            ):
                insert_at = child.end_byte  # "use client" and other directives
            elif child.type != "comment":
                leading = False

        variants = imports.variants
        mixed = SdkVariant.JAVASCRIPT in variants and SdkVariant.REACT in variants
        if mixed:
            variant = SdkVariant.JAVASCRIPT
        elif SdkVariant.REACT in variants:
            variant = SdkVariant.REACT
        elif parsed.language in ("typescript", "tsx"):
            variant = SdkVariant.TYPESCRIPT
        else:
            variant = SdkVariant.JAVASCRIPT

        index = FileIndex(
            parsed=parsed,
            variant=variant,
            mixed_variants=mixed,
            imports=imports,
            insert_at=max(insert_at, max((e for _, e in import_ranges), default=0)),
        )

        accessor_calls = []
        value_members = []
        for node in _walk(root):
            kind = node.type
            if kind == "comment":
                index.comments.append(
                    Comment(node.start_point.row + 1, node.end_point.row + 1, node_text(node, source))
                )
            elif kind == "variable_declarator":
                self._index_declarator(node, source, index)
            elif kind == "call_expression":
                fn = node.child_by_field_name("function")
                if fn is not None and fn.type == "member_expression":
                    prop = fn.child_by_field_name("property")
                    if prop is not None and node_text(prop, source) in _ACCESSOR_METHODS:
                        accessor_calls.append((node, fn.child_by_field_name("object")))
            elif kind == "member_expression":
                prop = node.child_by_field_name("property")
                if prop is not None and node_text(prop, source) == "value":
                    value_members.append(node)
            elif kind in _REFERENCE_TYPES:
                name = node_text(node, source)
                if name in imports.bindings and not any(s <= node.start_byte < e for s, e in import_ranges):
                    index.references.setdefault(name, []).append(make_location(node, parsed.file_path))

        for call, obj in accessor_calls:
            self._index_accessor(call, obj, source, index)
        for member in value_members:
            self._index_value_read(member, source, index)
        return index

    def _index_declarator(self, node: tree_sitter.Node, source: bytes, index: FileIndex) -> None:
        name_node = node.child_by_field_name("name")
        value = _strip_await(node.child_by_field_name("value"))
        if name_node is None:
            return
        if name_node.type == "identifier":
            name = node_text(name_node, source)
            index.declarations.setdefault(name, []).append(
                Declaration(name=name, scope=_scope_of(node), start_byte=node.start_byte, value=value)
            )
            if value is not None and self._creates_client(value, source, index):
                index.client_names.add(name)
        elif name_node.type == "object_pattern" and value is not None:
            match = self.catalog.match(value, source, index.imports)
            if match is not None and match.rule.target_template == "client_hook":
                for child in name_node.named_children:
                    if child.type == "shorthand_property_identifier_pattern":
                        index.client_names.add(node_text(child, source))
                    elif child.type == "pair_pattern":
                        target = child.child_by_field_name("value")
                        if target is not None and target.type == "identifier":
                            index.client_names.add(node_text(target, source))

    def _creates_client(self, value: tree_sitter.Node, source: bytes, index: FileIndex) -> bool:
        match = self.catalog.match(value, source, index.imports)
        if match is not None and match.rule.shape is CallShape.CONSTRUCTOR:
            return True
        # StatsigClient.instance() returns the shared client
        if value.type == "call_expression":
            fn = value.child_by_field_name("function")
            if fn is not None and fn.type == "member_expression":
                obj = fn.child_by_field_name("object")
                if obj is not None and self.catalog.rule_for(CallShape.CONSTRUCTOR, node_text(obj, source)):
                    return True
        return False

    def _fetch_target(self, obj: Optional[tree_sitter.Node], source: bytes,
                      index: FileIndex) -> Optional[Tuple[tree_sitter.Node, bool]]:
        """Return (fetch call node, chained) that ``obj`` evaluates to, if any."""
        if obj is None:
            return None
        obj = _strip_await(obj)
        match = self.catalog.match(obj, source, index.imports) if obj.type == "call_expression" else None
        if match is not None and match.kind in _FETCH_KINDS:
            return obj, True
        if obj.type == "identifier":
            decl = index.resolve(node_text(obj, source), obj)
            if decl is not None and decl.value is not None and decl.value.type == "call_expression":
                match = self.catalog.match(decl.value, source, index.imports)
                if match is not None and match.kind in _FETCH_KINDS:
                    return decl.value, False
        return None

    def _index_accessor(self, call: tree_sitter.Node, obj: Optional[tree_sitter.Node],
                        source: bytes, index: FileIndex) -> None:
        target = self._fetch_target(obj, source, index)
        if target is None:
            return
        fetch, chained = target
        args = call_arguments(call)
        key = string_value(args[0], source) if args else None
        accessor = ConfigAccessor(
            location=make_location(call, index.parsed.file_path),
            key=key,
            receiver=node_text(obj, source),
            chained=chained,
        )
        if len(args) > 1:
            accessor.default = node_to_value(args[1], source)
            accessor.default_text = node_text(args[1], source)
        index.accessors.setdefault(fetch.start_byte, []).append(accessor)

    def _index_value_read(self, member: tree_sitter.Node, source: bytes, index: FileIndex) -> None:
        parent = member.parent
        if parent is not None and parent.type == "call_expression" and parent.child_by_field_name("function") == member:
            return
        target = self._fetch_target(member.child_by_field_name("object"), source, index)
        if target is None:
            return
        fetch, chained = target
        location = make_location(member, index.parsed.file_path)
        if chained:
            index.chained_value_reads[fetch.start_byte] = location
        else:
            index.value_reads.setdefault(fetch.start_byte, []).append(location)

    # ── Pass 2: findings ─────────────────────────────────────────

    def findings(self, index: FileIndex) -> Iterator[Finding]:
        source = index.parsed.source
        for node in _walk(index.parsed.tree.root_node):
            match = self.catalog.match(node, source, index.imports)
            if match is None:
                continue
            finding = self._build_finding(match, index)
            if finding is not None:
                yield finding

    def _build_finding(self, match: PatternMatch, index: FileIndex) -> Optional[Finding]:
        rule = match.rule
        source = index.parsed.source
        file_path = index.parsed.file_path
        node = match.node
        metadata: Dict[str, Any] = {"template": rule.target_template}

        span_end = node
        if rule.target_template == "bool_hook_object":
            parent = node.parent
            if (
                parent is not None
                and parent.type == "member_expression"
                and parent.child_by_field_name("object") == node
                and node_text(parent.child_by_field_name("property"), source) == "value"
            ):
                span_end = parent
                metadata["value_access"] = True

        if rule.name_arg is None:
            source_name = match.source_name or match.api_name
            dynamic = False
        elif match.source_name is not None:
            source_name, dynamic = match.source_name, False
        else:
            source_name, dynamic = self._dynamic_name(match, source, metadata)

        finding = Finding(
            kind=rule.kind,
            source_name=source_name,
            location=make_location(node, file_path, span_end),
            sdk_variant=index.variant,
            target_type=rule.target_type,
            rule_name=rule.name,
            method=match.api_name,
            receiver=node_text(match.receiver, source) if match.receiver is not None else None,
            dynamic_name=dynamic,
            metadata=metadata,
        )
        finding.confidence, finding.confidence_note = self._confidence(match, index)
        if match.name_node is not None and match.source_name is not None:
            metadata["quote"] = quote_char(match.name_node, source)
        if match.singleton:
            metadata["singleton"] = True
        if rule.detail:
            metadata["detail"] = True

        kind = rule.kind
        if kind is FindingKind.IMPORT:
            metadata["package"] = match.statement.package.name
            metadata["role"] = match.statement.package.role
        elif kind is FindingKind.GATE_CHECK:
            self._gate_fallback(match, finding, source)
        elif kind in _FETCH_KINDS:
            finding.accessors = list(index.accessors.get(node.start_byte, ()))
            metadata["value_reads"] = list(index.value_reads.get(node.start_byte, ()))
            if node.start_byte in index.chained_value_reads:
                metadata["chained_value_read"] = index.chained_value_reads[node.start_byte]
            if kind is not FindingKind.CONFIG_FETCH:
                metadata["related_flags"] = self._pragma_names(node, index)
        elif kind is FindingKind.PROVIDER_INIT:
            self._provider_metadata(match, index, metadata)
        elif kind is FindingKind.CLIENT_LIFECYCLE and rule.target_template == "identify":
            if match.arguments:
                self._user_metadata(match.arguments[0], index, metadata)
        elif kind is FindingKind.EVENT_LOG:
            self._event_metadata(match, finding, source)
        elif kind is FindingKind.PLUGIN_INIT:
            self._plugin_init_metadata(match, index, metadata)
        return finding

    def _dynamic_name(self, match: PatternMatch, source: bytes, metadata: Dict[str, Any]) -> Tuple[str, bool]:
        name_node = match.name_node
        if name_node is None:
            return "", True
        if match.rule.kind is FindingKind.EVENT_LOG and name_node.type == "object":
            # logEvent({ eventName, value, metadata })
            for pair in name_node.named_children:
                if pair.type == "pair" and property_key(pair.child_by_field_name("key"), source) == "eventName":
                    name = string_value(pair.child_by_field_name("value"), source)
                    if name is not None:
                        return name, False
            return node_text(name_node, source), True
        return node_text(name_node, source), True

    def _confidence(self, match: PatternMatch, index: FileIndex) -> Tuple[float, Optional[str]]:
        rule = match.rule
        if index.mixed_variants:
            return CONFIDENCE_LOW, "file imports both the JavaScript and React Statsig SDKs"
        if rule.kind is FindingKind.IMPORT:
            return rule.confidence, None
        if not match.provenance:
            return CONFIDENCE_LOW, "no Statsig import brings this call into scope"
        if rule.client_receiver and not self._looks_like_client(match, index):
            receiver = node_text(match.receiver, index.parsed.source) if match.receiver is not None else "?"
            return CONFIDENCE_LOW, f"receiver `{receiver}` is not a known Statsig client"
        return rule.confidence, None

    @staticmethod
    def _looks_like_client(match: PatternMatch, index: FileIndex) -> bool:
        if match.singleton or match.receiver is None:
            return match.singleton
        text = node_text(match.receiver, index.parsed.source)
        if text in index.client_names:
            return True
        last = text.split(".")[-1].lower()
        return "statsig" in last or "client" in last

    def _pragma_names(self, node: tree_sitter.Node, index: FileIndex) -> List[str]:
        line = node.start_point.row + 1
        names: List[str] = []
        for comment in index.comments:
            if comment.start_line > line:
                break
            if comment.end_line >= line - self.pragma_window_lines:
                for name in parse_pragma(comment.text):
                    if name not in names:
                        names.append(name)
        return names

    # ── Per-kind metadata ────────────────────────────────────────

    @staticmethod
    def _gate_fallback(match: PatternMatch, finding: Finding, source: bytes) -> None:
        index = match.rule.fallback_arg
        if index is None or index >= len(match.arguments):
            return
        arg = unwrap(match.arguments[index])
        if arg.type == "object":
            finding.metadata["dropped_options"] = node_text(arg, source)
            return
        finding.fallback_literal = node_text(arg, source)
        finding.fallback_value = node_to_value(arg, source)

    def _resolve_object(self, node: Optional[tree_sitter.Node], index: FileIndex) -> Tuple[Optional[tree_sitter.Node], bool]:
        """Follow an identifier to the object literal it is bound to."""
        if node is None:
            return None, False
        node = _strip_await(node)
        if node.type == "object":
            return node, False
        if node.type == "identifier":
            decl = index.resolve(node_text(node, index.parsed.source), node, preceding_only=False)
            if decl is not None and decl.value is not None and decl.value.type == "object":
                return decl.value, True
        return None, False

    def _user_metadata(self, user_node: tree_sitter.Node, index: FileIndex, metadata: Dict[str, Any]) -> None:
        source = index.parsed.source
        metadata["user_text"] = node_text(user_node, source)
        obj, via_identifier = self._resolve_object(user_node, index)
        metadata["user"] = object_to_dict(obj, source) if obj is not None else None
        metadata["user_via_identifier"] = via_identifier

    def _provider_metadata(self, match: PatternMatch, index: FileIndex, metadata: Dict[str, Any]) -> None:
        source = index.parsed.source
        node = match.node
        user_node = options_node = None
        dropped_attributes: List[str] = []

        if match.rule.shape is CallShape.JSX:
            attributes = self._jsx_attributes(node, source)
            user_node = attributes.pop("user", None)
            options_node = attributes.pop("options", None)
            attributes.pop("sdkKey", None)
            client_node = attributes.pop("client", None)
            if user_node is None and client_node is not None:
                # <StatsigProvider client={client}>: read user/options from the constructor
                ctor, _ = self._client_constructor(client_node, index)
                if ctor is not None:
                    args = call_arguments(ctor)
                    user_node = args[1] if len(args) > 1 else None
                    options_node = options_node or (args[2] if len(args) > 2 else None)
                    metadata["client_attribute"] = True
            dropped_attributes = list(attributes)
            metadata["self_closing"] = node.type == "jsx_self_closing_element"
            parent = node.parent
            if not metadata["self_closing"] and parent is not None:
                close = parent.child_by_field_name("close_tag")
                if close is not None:
                    metadata["closing_tag"] = make_location(close, index.parsed.file_path)
        else:
            args = match.arguments
            user_node = args[1] if len(args) > 1 else None
            options_node = args[2] if len(args) > 2 else None
            metadata["client_name"] = self._bound_name(node, source)

        if user_node is not None:
            self._user_metadata(user_node, index, metadata)
        else:
            metadata["user"] = None
        metadata["dropped_attributes"] = dropped_attributes
        plugins, dropped_options = self._options(options_node, index)
        metadata["plugins"] = plugins
        metadata["dropped_options"] = dropped_options

    @staticmethod
    def _bound_name(node: tree_sitter.Node, source: bytes) -> Optional[str]:
        """Name a constructed client is stored in, e.g. ``client`` or ``this.client``."""
        parent = node.parent
        while parent is not None and parent.type in ("await_expression", "parenthesized_expression",
                                                     "as_expression", "non_null_expression"):
            parent = parent.parent
        if parent is None:
            return None
        if parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
        elif parent.type == "assignment_expression":
            target = parent.child_by_field_name("left")
        else:
            return None
        if target is None or target.type not in ("identifier", "member_expression"):
            return None
        return node_text(target, source)

    def _client_constructor(self, node: tree_sitter.Node, index: FileIndex) -> Tuple[Optional[tree_sitter.Node], bool]:
        node = _strip_await(node)
        if node.type == "identifier":
            decl = index.resolve(node_text(node, index.parsed.source), node, preceding_only=False)
            node = decl.value if decl is not None else None
        if node is not None and node.type == "new_expression":
            match = self.catalog.match(node, index.parsed.source, index.imports)
            if match is not None and match.rule.shape is CallShape.CONSTRUCTOR:
                return node, True
        return None, False

    @staticmethod
    def _jsx_attributes(node: tree_sitter.Node, source: bytes) -> Dict[str, Optional[tree_sitter.Node]]:
        attributes: Dict[str, Optional[tree_sitter.Node]] = {}
        for child in node.named_children:
            if child.type != "jsx_attribute" or not child.named_child_count:
                continue
            name = node_text(child.named_children[0], source)
            value = child.named_children[1] if child.named_child_count > 1 else None
            if value is not None and value.type == "jsx_expression":
                value = next((c for c in value.named_children if c.type != "comment"), None)
            attributes[name] = value
        return attributes

    def _options(self, options_node: Optional[tree_sitter.Node], index: FileIndex) -> Tuple[List[Dict[str, Any]], List[str]]:
        """Split a Statsig options object into plugin entries and dropped keys."""
        source = index.parsed.source
        obj, _ = self._resolve_object(options_node, index)
        if obj is None:
            if options_node is not None:
                return [], [node_text(options_node, source)]
            return [], []
        plugins: List[Dict[str, Any]] = []
        dropped: List[str] = []
        for child in obj.named_children:
            if child.type == "comment":
                continue
            key = property_key(child.child_by_field_name("key"), source) if child.type == "pair" else None
            if key != "plugins":
                dropped.append(key or node_text(child, source))
                continue
            value = unwrap(child.child_by_field_name("value"))
            if value.type != "array":
                dropped.append("plugins")
                continue
            for element in value.named_children:
                if element.type != "comment":
                    plugins.append(self._plugin_entry(element, source))
        return plugins, dropped

    def _plugin_entry(self, element: tree_sitter.Node, source: bytes) -> Dict[str, Any]:
        element = unwrap(element)
        entry: Dict[str, Any] = {"role": None, "options": None, "text": node_text(element, source)}
        if element.type == "new_expression":
            ctor = element.child_by_field_name("constructor")
            name = node_text(ctor, source).split(".")[-1] if ctor is not None else ""
            entry["role"] = self.catalog.plugin_roles.get(name)
            entry["name"] = name
            args = call_arguments(element)
            if args:
                entry["options"] = object_to_dict(args[0], source)
                entry["options_text"] = node_text(args[0], source)
        return entry

    def _plugin_init_metadata(self, match: PatternMatch, index: FileIndex, metadata: Dict[str, Any]) -> None:
        source = index.parsed.source
        metadata["role"] = self.catalog.plugin_roles.get(match.api_name)
        args = match.arguments
        metadata["options"] = object_to_dict(args[1], source) if len(args) > 1 else None
        metadata["options_text"] = node_text(args[1], source) if len(args) > 1 else None
        parent = match.node.parent
        if parent is not None and parent.type == "await_expression":
            parent = parent.parent
        if parent is not None and parent.type == "expression_statement":
            metadata["statement"] = make_location(parent, index.parsed.file_path)

    @staticmethod
    def _event_metadata(match: PatternMatch, finding: Finding, source: bytes) -> None:
        args = match.arguments
        name_node = match.name_node
        value_node = meta_node = None
        if name_node is not None and name_node.type == "object":
            for pair in name_node.named_children:
                if pair.type != "pair":
                    continue
                key = property_key(pair.child_by_field_name("key"), source)
                if key == "value":
                    value_node = pair.child_by_field_name("value")
                elif key == "metadata":
                    meta_node = pair.child_by_field_name("value")
            name_text = None
        else:
            name_text = node_text(name_node, source) if name_node is not None else None
            value_node = args[1] if len(args) > 1 else None
            meta_node = args[2] if len(args) > 2 else None

        value = node_to_value(value_node, source) if value_node is not None else MISSING
        if value is MISSING or value is None or value is UNDEFINED:
            value_kind = "none"
        elif isinstance(value, bool):
            value_kind = "expr"
        elif isinstance(value, (int, float)):
            value_kind = "number"
        elif isinstance(value, str):
            value_kind = "string"
        else:
            value_kind = "expr"
        finding.metadata["event"] = {
            "name_text": name_text,
            "value_kind": value_kind,
            "value_text": node_text(value_node, source) if value_node is not None else None,
            "metadata_text": node_text(meta_node, source) if meta_node is not None else None,
        }
