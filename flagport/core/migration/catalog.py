"""Pattern catalog.

Turns a lane's transform rules into a node matcher. ``match`` looks at a
single syntax node and, using the file's import table for provenance,
returns a :class:`PatternMatch` or ``None``. It never raises for an
unrecognized node.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import tree_sitter

from ..ast_parser.literals import node_text, quote_char, string_value, unwrap
from .lanes.base import CallShape, MigrationLane, SourcePackage, TransformRule
from .models import FindingKind, Location, SdkVariant, TargetType

logger = logging.getLogger(__name__)

_DECLARATION_TYPES = ("lexical_declaration", "variable_declaration")


# ── Import Table ─────────────────────────────────────────────────────


@dataclass
class ImportBinding:
    """A local name brought into scope by a source-package import."""

    local: str
    imported: str  # Exported name, "default" or "*"
    package: SourcePackage
    type_only: bool = False

    @property
    def is_module_object(self) -> bool:
        return self.imported in ("default", "*")


@dataclass
class ImportStatement:
    """One ``import ... from 'pkg'`` (or ``require('pkg')``) of a source package."""

    package: SourcePackage
    location: Location
    text: str
    bindings: List[ImportBinding] = field(default_factory=list)
    style: str = "esm"  # "esm" | "cjs"
    quote: str = "'"


@dataclass
class ImportTable:
    statements: List[ImportStatement] = field(default_factory=list)
    bindings: Dict[str, ImportBinding] = field(default_factory=dict)
    foreign: Set[str] = field(default_factory=set)  # Locals imported from other packages

    def add(self, statement: ImportStatement) -> None:
        self.statements.append(statement)
        for binding in statement.bindings:
            self.bindings[binding.local] = binding

    @property
    def variants(self) -> Set[SdkVariant]:
        return {s.package.variant for s in self.statements if s.package.variant is not None}

    @property
    def roles(self) -> Set[str]:
        return {s.package.role for s in self.statements}

    @property
    def has_sdk_import(self) -> bool:
        return any(s.package.role == "sdk" for s in self.statements)

    def singleton_binding(self, local: str) -> Optional[ImportBinding]:
        binding = self.bindings.get(local)
        if binding is not None and binding.package.singleton and binding.is_module_object:
            return binding
        return None


# ── Matches ──────────────────────────────────────────────────────────


@dataclass
class PatternMatch:
    """A syntax node recognized by a catalog row."""

    rule: TransformRule
    node: tree_sitter.Node
    api_name: str
    provenance: bool  # The matched name is traceable to a source-package import
    receiver: Optional[tree_sitter.Node] = None
    singleton: bool = False
    arguments: List[tree_sitter.Node] = field(default_factory=list)
    name_node: Optional[tree_sitter.Node] = None
    source_name: Optional[str] = None  # None when the name argument is not a literal
    statement: Optional[ImportStatement] = None

    @property
    def kind(self) -> FindingKind:
        return self.rule.kind

    @property
    def target_type(self) -> TargetType:
        return self.rule.target_type


def call_arguments(node: tree_sitter.Node) -> List[tree_sitter.Node]:
    """Argument expression nodes of a call/new expression, comments excluded."""
    args = node.child_by_field_name("arguments")
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def make_location(node: tree_sitter.Node, file_path: str, end_node: Optional[tree_sitter.Node] = None) -> Location:
    end = end_node or node
    return Location(
        file_path=file_path,
        start_byte=node.start_byte,
        end_byte=end.end_byte,
        start_line=node.start_point.row + 1,
        start_column=node.start_point.column,
        end_line=end.end_point.row + 1,
        end_column=end.end_point.column,
    )


class PatternCatalog:
    """Node matcher built from one migration lane's tables."""

    def __init__(self, lane: MigrationLane):
        self.lane = lane
        self.rules: List[TransformRule] = lane.get_transform_rules()
        self.packages: Dict[str, SourcePackage] = {p.name: p for p in lane.get_source_packages()}
        self.plugin_roles: Dict[str, str] = lane.get_plugin_roles()
        self._index: Dict[tuple, TransformRule] = {}
        self.import_rule: Optional[TransformRule] = None
        for rule in self.rules:
            if rule.shape is CallShape.IMPORT:
                self.import_rule = rule
            for api in rule.api_names:
                self._index[(rule.shape, api)] = rule
        logger.debug(
            "Catalog for lane %s: %d rules, %d packages",
            lane.lane_id, len(self.rules), len(self.packages),
        )

    def rule_for(self, shape: CallShape, api: str) -> Optional[TransformRule]:
        return self._index.get((shape, api))

    # ── Imports ──────────────────────────────────────────────────

    def read_import(self, node: tree_sitter.Node, source: bytes, file_path: str,
                    table: Optional[ImportTable] = None) -> Optional[ImportStatement]:
        """Parse an import declaration or ``require`` of a known package.

        Imports of any other package have their local names recorded in
        ``table.foreign`` so that same-named hooks are not mistaken for
        Statsig ones.
        """
        if node.type == "import_statement":
            source_node = node.child_by_field_name("source")
            if source_node is None:
                return None
            package_name = string_value(source_node, source)
            statement_type_only = any(c.type == "type" for c in node.children)
            bindings = self._esm_bindings(node, source, statement_type_only)
            quote = quote_char(source_node, source)
            style = "esm"
        elif node.type in _DECLARATION_TYPES:
            required = self._required_package(node, source)
            if required is None:
                return None
            package_name, declarator, quote = required
            bindings = self._cjs_bindings(declarator, source)
            style = "cjs"
        else:
            return None

        package = self.packages.get(package_name or "")
        if package is None:
            if table is not None:
                table.foreign.update(local for local, _, _ in bindings)
            return None

        return ImportStatement(
            package=package,
            location=make_location(node, file_path),
            text=node_text(node, source),
            bindings=[ImportBinding(local, imported, package, type_only) for local, imported, type_only in bindings],
            style=style,
            quote=quote,
        )

    @staticmethod
    def _esm_bindings(node: tree_sitter.Node, source: bytes, type_only: bool) -> List[tuple]:
        bindings = []
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is None:
            return bindings
        for child in clause.named_children:
            if child.type == "identifier":
                bindings.append((node_text(child, source), "default", type_only))
            elif child.type == "namespace_import":
                ident = next((c for c in child.named_children if c.type == "identifier"), None)
                if ident is not None:
                    bindings.append((node_text(ident, source), "*", type_only))
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    if name is None:
                        continue
                    imported = string_value(name, source) or node_text(name, source)
                    local = node_text(alias, source) if alias is not None else imported
                    spec_type_only = type_only or any(c.type == "type" for c in spec.children)
                    bindings.append((local, imported, spec_type_only))
        return bindings

    @staticmethod
    def _required_package(node: tree_sitter.Node, source: bytes) -> Optional[tuple]:
        declarators = [c for c in node.named_children if c.type == "variable_declarator"]
        if len(declarators) != 1:
            return None
        value = declarators[0].child_by_field_name("value")
        if value is None:
            return None
        value = unwrap(value)
        if value.type != "call_expression":
            return None
        fn = value.child_by_field_name("function")
        if fn is None or fn.type != "identifier" or node_text(fn, source) != "require":
            return None
        args = call_arguments(value)
        if len(args) != 1:
            return None
        name = string_value(args[0], source)
        if name is None:
            return None
        return name, declarators[0], quote_char(args[0], source)

    @staticmethod
    def _cjs_bindings(declarator: tree_sitter.Node, source: bytes) -> List[tuple]:
        pattern = declarator.child_by_field_name("name")
        if pattern is None:
            return []
        if pattern.type == "identifier":
            return [(node_text(pattern, source), "*", False)]
        bindings = []
        if pattern.type == "object_pattern":
            for child in pattern.named_children:
                if child.type == "shorthand_property_identifier_pattern":
                    name = node_text(child, source)
                    bindings.append((name, name, False))
                elif child.type == "pair_pattern":
                    key = child.child_by_field_name("key")
                    value = child.child_by_field_name("value")
                    if key is not None and value is not None and value.type == "identifier":
                        bindings.append((node_text(value, source), node_text(key, source), False))
        return bindings

    # ── Call sites ───────────────────────────────────────────────

    def match(self, node: tree_sitter.Node, source: bytes, imports: ImportTable) -> Optional[PatternMatch]:
        """Match one syntax node against the catalog.

        Returns:
            PatternMatch, or None when the node is not a recognized shape.
        """
        kind = node.type
        if kind == "call_expression":
            return self._match_call(node, source, imports)
        if kind == "new_expression":
            return self._match_constructor(node, source, imports)
        if kind in ("jsx_opening_element", "jsx_self_closing_element"):
            return self._match_jsx(node, source, imports)
        if kind == "import_statement" or kind in _DECLARATION_TYPES:
            return self._match_import(node, source, imports)
        return None

    def _match_import(self, node, source, imports) -> Optional[PatternMatch]:
        if self.import_rule is None:
            return None
        statement = next(
            (s for s in imports.statements if s.location.start_byte == node.start_byte),
            None,
        )
        if statement is None:
            return None
        return PatternMatch(
            rule=self.import_rule,
            node=node,
            api_name=statement.package.name,
            provenance=True,
            source_name=statement.package.name,
            statement=statement,
        )

    def _match_call(self, node, source, imports) -> Optional[PatternMatch]:
        fn = node.child_by_field_name("function")
        if fn is None:
            return None
        fn = unwrap(fn)

        if fn.type == "member_expression":
            obj = fn.child_by_field_name("object")
            prop = fn.child_by_field_name("property")
            if obj is None or prop is None:
                return None
            api = node_text(prop, source)
            obj_name = node_text(obj, source) if obj.type == "identifier" else None

            if obj_name is not None:
                binding = imports.bindings.get(obj_name)
                if binding is not None and binding.is_module_object:
                    if binding.package.singleton:
                        rule = self.rule_for(CallShape.SINGLETON, api)
                        if rule is not None:
                            return self._build(rule, node, api, True, receiver=obj, singleton=True, source=source)
                    else:
                        # Namespace access to an imported hook or function
                        for shape in (CallShape.HOOK, CallShape.FUNCTION):
                            rule = self.rule_for(shape, api)
                            if rule is not None:
                                return self._build(rule, node, api, True, source=source)

            rule = self.rule_for(CallShape.METHOD, api)
            if rule is None:
                return None
            singleton = obj_name is not None and imports.singleton_binding(obj_name) is not None
            return self._build(
                rule, node, api, imports.has_sdk_import, receiver=obj, singleton=singleton, source=source,
            )

        if fn.type == "identifier":
            local = node_text(fn, source)
            api, provenance = self._resolve_local(local, imports)
            if api is None:
                return None
            for shape in (CallShape.HOOK, CallShape.FUNCTION):
                rule = self.rule_for(shape, api)
                if rule is not None:
                    return self._build(rule, node, api, provenance, source=source)
        return None

    def _match_constructor(self, node, source, imports) -> Optional[PatternMatch]:
        ctor = node.child_by_field_name("constructor")
        if ctor is None:
            return None
        api, provenance = self._resolve_callee(ctor, source, imports)
        if api is None:
            return None
        rule = self.rule_for(CallShape.CONSTRUCTOR, api)
        if rule is None:
            return None
        return self._build(rule, node, api, provenance, source=source)

    def _match_jsx(self, node, source, imports) -> Optional[PatternMatch]:
        name = node.child_by_field_name("name")
        if name is None:
            return None
        api, provenance = self._resolve_callee(name, source, imports)
        if api is None:
            return None
        rule = self.rule_for(CallShape.JSX, api)
        if rule is None:
            return None
        return PatternMatch(rule=rule, node=node, api_name=api, provenance=provenance)

    def _resolve_callee(self, node, source, imports) -> tuple:
        """Resolve ``Name`` or ``ns.Name`` to (imported api name, provenance)."""
        if node.type in ("identifier", "type_identifier"):
            return self._resolve_local(node_text(node, source), imports)
        if node.type in ("member_expression", "nested_identifier"):
            parts = node_text(node, source).split(".")
            if len(parts) == 2:
                binding = imports.bindings.get(parts[0])
                if binding is not None and binding.is_module_object:
                    return parts[1], True
                if parts[0] in imports.foreign:
                    return None, False
                return parts[1], False
        return None, False

    @staticmethod
    def _resolve_local(local: str, imports: ImportTable) -> tuple:
        binding = imports.bindings.get(local)
        if binding is not None:
            if binding.is_module_object:
                return None, False
            return binding.imported, True
        if local in imports.foreign:
            return None, False
        return local, False

    def _build(self, rule, node, api, provenance, receiver=None, singleton=False, source=b"") -> PatternMatch:
        args = call_arguments(node)
        match = PatternMatch(
            rule=rule,
            node=node,
            api_name=api,
            provenance=provenance,
            receiver=receiver,
            singleton=singleton,
            arguments=args,
        )
        if rule.name_arg is not None and rule.name_arg < len(args):
            name_node = unwrap(args[rule.name_arg])
            match.name_node = name_node
            match.source_name = string_value(name_node, source)
        return match
