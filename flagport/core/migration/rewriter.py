"""Rewrite engine.

Turns each unblocked finding into one or more :class:`RewritePatch`
records targeting the LaunchDarkly client-side SDKs. Rewrites are
dispatched on the catalog row's ``target_template``; every failure is a
:class:`RewriteError` subclass that becomes a failed item, never a guess.

Per file, findings are processed in three rounds:

1. call sites, in source order;
2. observability start-up calls (they depend on the client rewrite);
3. imports (they depend on which target symbols round 1 needed and on
   which Statsig usages remain).
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..ast_parser.literals import UNDEFINED, RawExpression, is_identifier_name, quote_js, render_js
from .context_transformer import transform as transform_context
from .errors import (
    AmbiguousFallbackError,
    ClientStillRequiredError,
    DynamicNameError,
    ExperimentRelationAmbiguousError,
    LowConfidenceMatchError,
    NoTargetEquivalentError,
    OverlappingPatchError,
    RewriteError,
    UnresolvableUserError,
)
from .lanes.statsig_to_launchdarkly import SESSION_REPLAY_LOST_FEATURES, TARGET_IMPORTS
from .models import (
    FLAG_KINDS,
    MISSING,
    Finding,
    FindingKind,
    FindingOutcome,
    ItemStatus,
    Location,
    MigrationWarning,
    RewritePatch,
    RewriteResult,
    SdkVariant,
    TargetType,
)
from .naming import to_target_name
from .patches import PatchSet
from .scanner import FileScan
from .settings import MigrationSettings

logger = logging.getLogger(__name__)

SINGLETON_SYMBOL = "$singleton"
"""Required symbol meaning "declare the module-level singleton client"."""

_PLUGIN_LABELS = {"session_replay": "SessionReplay", "auto_capture": "Observability"}

# Settled after call sites, against the client's own outcome
_UNGROUPED = frozenset({FindingKind.IMPORT, FindingKind.PLUGIN_INIT})

_NAMED_TARGETS = frozenset({
    TargetType.GATE, TargetType.CONFIG, TargetType.EXPERIMENT, TargetType.LAYER, TargetType.EVENT,
})


def _describe_usage(finding: Finding) -> str:
    if "self_closing" in finding.metadata:
        return f"<{finding.method}>"
    if finding.target_type in _NAMED_TARGETS and not finding.dynamic_name:
        return f"{finding.method}('{finding.source_name}')"
    return f"{finding.method}()"


@dataclass
class FileRewrite:
    """Rewrite outcome for one file."""
    file_path: str
    outcomes: List[FindingOutcome]
    patch_set: PatchSet
    warnings: List[MigrationWarning] = field(default_factory=list)

    @property
    def patches(self) -> List[RewritePatch]:
        return self.patch_set.patches


class _FileContext:
    """Per-file state shared by the rewrites of that file's findings."""

    def __init__(self, scan: FileScan):
        self.scan = scan
        self.parsed = scan.parsed
        self.index = scan.index
        self._fallbacks: Dict[str, Any] = {}

    def text(self, location: Location) -> str:
        return self.parsed.text(location.start_byte, location.end_byte)

    def patch(self, location: Location, replacement: str) -> RewritePatch:
        return RewritePatch(location=location, original_text=self.text(location), replacement_text=replacement)

    def config_fallback(self, name: str) -> Dict[str, Any]:
        """Union of every ``.get(key, default)`` on config ``name`` in this file.

        Raises:
            AmbiguousFallbackError: No accessors, a non-literal key, a
                missing/null/undefined/non-literal default, or two call
                sites that disagree on a key's default.
        """
        cached = self._fallbacks.get(name)
        if isinstance(cached, RewriteError):
            raise cached
        if cached is not None:
            return cached
        try:
            union = self._build_fallback(name)
        except AmbiguousFallbackError as e:
            self._fallbacks[name] = e
            raise
        self._fallbacks[name] = union
        return union

    def _build_fallback(self, name: str) -> Dict[str, Any]:
        accessors = [
            a
            for f in self.scan.findings
            if f.kind is FindingKind.CONFIG_FETCH and f.source_name == name and not f.dynamic_name
            for a in f.accessors
        ]
        if not accessors:
            raise AmbiguousFallbackError(
                f"config '{name}' has no .get(key, default) calls in this file; its fallback object is unknown",
                name=name,
            )
        union: Dict[str, Any] = {}
        for accessor in accessors:
            where = accessor.location.describe()
            if accessor.key is None:
                raise AmbiguousFallbackError(f"{where}: .get() key is not a string literal", name=name)
            default = accessor.default
            if default is MISSING:
                raise AmbiguousFallbackError(f"{where}: .get('{accessor.key}') has no default", name=name)
            if default is None or default is UNDEFINED:
                raise AmbiguousFallbackError(
                    f"{where}: .get('{accessor.key}') defaults to {render_js(default)}", name=name,
                )
            if _contains_expression(default):
                raise AmbiguousFallbackError(
                    f"{where}: default for '{accessor.key}' is not a literal ({accessor.default_text})", name=name,
                )
            if accessor.key in union and render_js(union[accessor.key]) != render_js(default):
                raise AmbiguousFallbackError(
                    f"{where}: '{accessor.key}' defaults to {render_js(default)} here but "
                    f"{render_js(union[accessor.key])} elsewhere",
                    name=name,
                )
            union[accessor.key] = default
        return union


def _contains_expression(value: Any) -> bool:
    if isinstance(value, RawExpression) or value is UNDEFINED:
        return True
    if isinstance(value, dict):
        return any(_contains_expression(v) for v in value.values())
    if isinstance(value, list):
        return any(_contains_expression(v) for v in value)
    return False


def _member(base: str, key: str) -> str:
    return f"{base}.{key}" if is_identifier_name(key) else f"{base}[{quote_js(key)}]"


def _with_trailing_newline(location: Location, source: bytes) -> Location:
    if source[location.end_byte:location.end_byte + 1] == b"\n":
        return dataclasses.replace(
            location, end_byte=location.end_byte + 1, end_line=location.end_line + 1, end_column=0,
        )
    return location


def compose_target_imports(symbols: Set[str], style: str = "esm", quote: str = "'",
                           singleton_identifier: str = "ldClient") -> List[str]:
    """Import lines for the LaunchDarkly symbols a file's rewrites need."""
    lines: List[str] = []
    named: Dict[str, List[str]] = {}
    for symbol, (package, kind) in TARGET_IMPORTS.items():
        if symbol not in symbols:
            continue
        pkg = quote_js(package, quote)
        if kind == "named":
            named.setdefault(package, []).append(symbol)
        elif kind == "namespace":
            lines.append(f"import * as {symbol} from {pkg};" if style == "esm"
                         else f"const {symbol} = require({pkg});")
        else:
            lines.append(f"import {symbol} from {pkg};" if style == "esm"
                         else f"const {symbol} = require({pkg}).default;")
    for package, names in named.items():
        pkg = quote_js(package, quote)
        joined = ", ".join(names)
        lines.append(f"import {{ {joined} }} from {pkg};" if style == "esm"
                     else f"const {{ {joined} }} = require({pkg});")
    if SINGLETON_SYMBOL in symbols:
        lines.append(f"let {singleton_identifier};")
    return lines


class RewriteEngine:
    """Produces patches for unblocked findings, one file at a time."""

    def __init__(self, settings: Optional[MigrationSettings] = None,
                 naming: Callable[[str, SdkVariant], str] = to_target_name):
        self.settings = settings or MigrationSettings()
        self.naming = naming
        self._templates: Dict[str, Callable[[Finding, _FileContext], RewriteResult]] = {
            "bool_variation": self._bool_variation,
            "gate_exposure": self._bool_variation,
            "bool_hook": self._bool_hook,
            "bool_hook_object": self._bool_hook,
            "json_variation": self._json_variation,
            "config_exposure": self._config_exposure,
            "json_hook": self._json_hook,
            "experiment": self._experiment,
            "override": self._override,
            "client_initialize": self._client_initialize,
            "singleton_initialize": self._singleton_initialize,
            "provider_element": self._provider_element,
            "client_hook": self._client_hook,
            "user_hook": self._user_hook,
            "track": self._track,
            "wait_for_initialization": self._lifecycle,
            "close": self._lifecycle,
            "flush": self._lifecycle,
            "identify": self._identify,
        }

    # ── Public API ───────────────────────────────────────────────

    def rewrite(self, finding: Finding, scan: FileScan) -> Optional[RewriteResult]:
        """Rewrite one call-site finding.

        Returns:
            RewriteResult, or None for a blocked finding (never patched).

        Raises:
            RewriteError: The finding cannot be rewritten safely.
        """
        return self._rewrite(finding, _FileContext(scan))

    def rewrite_file(self, scan: FileScan) -> FileRewrite:
        """Rewrite every finding in one file and decide each one's outcome.

        A Statsig client (or provider) and the usages that go through it
        migrate together. When any of them stays on Statsig, the others
        that did migrate are failed with :class:`ClientStillRequiredError`
        and the file is rewritten again without them.
        """
        held: Dict[int, str] = {}
        while True:
            rewrite = self._rewrite_pass(scan, held)
            pinned = self._clients_still_required(scan, rewrite.outcomes, held)
            if not pinned:
                break
            held.update(pinned)

        migrated = sum(1 for o in rewrite.outcomes if o.status is ItemStatus.MIGRATED)
        logger.info(
            "Rewrote %s: %d/%d findings migrated, %d patches",
            rewrite.file_path, migrated, len(rewrite.outcomes), len(rewrite.patch_set),
        )
        return rewrite

    def _rewrite_pass(self, scan: FileScan, held: Dict[int, str]) -> FileRewrite:
        ctx = _FileContext(scan)
        file_path = scan.parsed.file_path
        patch_set = PatchSet(file_path)
        outcomes: Dict[int, FindingOutcome] = {}
        warnings: List[MigrationWarning] = []
        order = {id(f): i for i, f in enumerate(scan.findings)}
        blocked_sites = [f.location for f in scan.findings if f.blocked]

        def settle(finding: Finding, produce: Callable[[], Optional[RewriteResult]]) -> None:
            if finding.blocked:
                outcomes[id(finding)] = FindingOutcome(finding, ItemStatus.BLOCKED, reason=finding.block_reason)
                return
            try:
                if id(finding) in held:
                    raise ClientStillRequiredError(held[id(finding)], name=finding.source_name)
                result = produce()
                self._guard_blocked(finding, result, blocked_sites)
                patch_set.accept(result.patches, name=finding.source_name)
            except RewriteError as e:
                logger.debug("%s %s failed: %s", finding.kind.value, finding.location.describe(), e)
                outcomes[id(finding)] = FindingOutcome(
                    finding, ItemStatus.FAILED, error_type=type(e).__name__, reason=str(e),
                )
                return
            outcomes[id(finding)] = FindingOutcome(finding, ItemStatus.MIGRATED, result=result)
            for message in result.warnings:
                warnings.append(MigrationWarning(
                    message=message,
                    file_path=file_path,
                    line=finding.location.start_line,
                    source_name=finding.source_name,
                ))

        calls = [f for f in scan.findings if f.kind not in (FindingKind.IMPORT, FindingKind.PLUGIN_INIT)]
        for finding in calls:
            settle(finding, lambda f=finding: self._rewrite(f, ctx))

        for finding in (f for f in scan.findings if f.kind is FindingKind.PLUGIN_INIT):
            settle(finding, lambda f=finding: self._plugin_start(f, ctx, outcomes.values()))

        self._rewrite_imports(ctx, patch_set, outcomes, warnings, settle)

        ordered = sorted(outcomes.values(), key=lambda o: order[id(o.finding)])
        return FileRewrite(file_path=file_path, outcomes=ordered, patch_set=patch_set, warnings=warnings)

    # ── Client groups ────────────────────────────────────────────

    @staticmethod
    def _client_groups(scan: FileScan) -> List[Tuple[Finding, List[Finding], str]]:
        """(construction, usages through it, label) for each client in the file.

        A JSX provider serves every React usage in the file. A constructed
        client serves the calls made on the name it is stored in, or every
        non-singleton method call when that name is unknown.
        """
        findings = scan.findings
        groups = []
        for init in (f for f in findings if f.kind is FindingKind.PROVIDER_INIT):
            template = init.metadata.get("template")
            if template == "provider_element":
                label = f"<{init.method}>"
                members = [
                    f for f in findings
                    if f is not init and f.kind not in _UNGROUPED
                    and (f.kind is FindingKind.PROVIDER_INIT or f.sdk_variant is SdkVariant.REACT)
                ]
            elif template == "singleton_initialize":
                label = "the Statsig singleton"
                members = [
                    f for f in findings
                    if f is not init and f.kind not in _UNGROUPED and f.metadata.get("singleton")
                ]
            else:
                name = init.metadata.get("client_name")
                label = f"Statsig client `{name}`" if name else f"the {init.method} client"
                members = [
                    f for f in findings
                    if f is not init and f.kind not in _UNGROUPED
                    and f.receiver is not None and not f.metadata.get("singleton")
                    and (name is None or f.receiver == name)
                ]
            groups.append((init, members, label))
        return groups

    def _clients_still_required(self, scan: FileScan, outcomes: List[FindingOutcome],
                                held: Dict[int, str]) -> Dict[int, str]:
        """Migrated findings whose client has to stay on Statsig."""
        status = {id(o.finding): o.status for o in outcomes}
        pinned: Dict[int, str] = {}
        for init, members, label in self._client_groups(scan):
            group = [init] + members
            staying = [f for f in group if status[id(f)] is not ItemStatus.MIGRATED]
            moving = [f for f in group if status[id(f)] is ItemStatus.MIGRATED]
            if not staying or not moving:
                continue
            causes = [f for f in staying if id(f) not in held] or staying
            reason = f"{label} stays on Statsig; still required by: " + ", ".join(
                dict.fromkeys(_describe_usage(f) for f in causes)
            )
            for finding in moving:
                pinned.setdefault(id(finding), reason)
        return pinned

    # ── Dispatch ─────────────────────────────────────────────────

    def _rewrite(self, finding: Finding, ctx: _FileContext) -> Optional[RewriteResult]:
        if finding.blocked:
            return None
        if finding.ambiguity:
            raise ExperimentRelationAmbiguousError(finding.ambiguity, name=finding.source_name)
        if finding.low_confidence and not self.settings.rewrite_low_confidence:
            raise LowConfidenceMatchError(
                f"low-confidence match: {finding.confidence_note or 'provenance unclear'}",
                name=finding.source_name,
            )
        if finding.dynamic_name and finding.kind in FLAG_KINDS:
            raise DynamicNameError(
                f"{finding.method}() name `{finding.source_name}` is not a string literal",
                name=finding.source_name,
            )
        template = finding.metadata.get("template", "")
        handler = self._templates.get(template)
        if handler is None:
            raise NoTargetEquivalentError(f"no rewrite for {finding.method}()", name=finding.source_name)
        return handler(finding, ctx)

    @staticmethod
    def _guard_blocked(finding: Finding, result: RewriteResult, blocked_sites: List[Location]) -> None:
        """A patch may never rewrite text that belongs to a blocked finding."""
        for patch in result.patches:
            for site in blocked_sites:
                if patch.location.overlaps(site):
                    raise OverlappingPatchError(
                        f"rewrite at {patch.location.describe()} would overwrite the blocked usage at "
                        f"{site.describe()}",
                        name=finding.source_name,
                    )

    def _receiver(self, finding: Finding) -> str:
        if finding.metadata.get("singleton"):
            return self.settings.singleton_client_identifier
        return finding.receiver or self.settings.singleton_client_identifier

    def _name(self, finding: Finding, variant: Optional[SdkVariant] = None) -> Tuple[str, str]:
        target = self.naming(finding.source_name, variant or finding.sdk_variant)
        return target, quote_js(target, finding.metadata.get("quote", '"'))

    # ── Gates ────────────────────────────────────────────────────

    def _bool_variation(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        target, literal = self._name(finding)
        method = "variationDetail" if finding.metadata.get("detail") else "variation"
        warnings = self._gate_warnings(finding)
        if finding.kind is FindingKind.MANUAL_EXPOSURE:
            warnings.append("manual gate exposure replaced by a flag evaluation, which records the exposure")
        replacement = f"{self._receiver(finding)}.{method}({literal}, false)"
        return RewriteResult(
            patches=(ctx.patch(finding.location, replacement),),
            target_name=target,
            fallback=False,
            warnings=warnings,
        )

    def _bool_hook(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        target, _ = self._name(finding, SdkVariant.REACT)
        expression = f"({_member('useFlags()', target)} ?? false)"
        if finding.metadata.get("template") == "bool_hook_object" and not finding.metadata.get("value_access"):
            expression = f"{{ value: {expression} }}"
        return RewriteResult(
            patches=(ctx.patch(finding.location, expression),),
            target_name=target,
            fallback=False,
            warnings=self._gate_warnings(finding),
            required_symbols=frozenset({"useFlags"}),
        )

    @staticmethod
    def _gate_warnings(finding: Finding) -> List[str]:
        warnings = []
        if finding.fallback_value is not MISSING and finding.fallback_value is not False:
            warnings.append(
                f"non-false fallback `{finding.fallback_literal}` discarded to preserve Statsig-default parity"
            )
        if "dropped_options" in finding.metadata:
            warnings.append(f"evaluation options `{finding.metadata['dropped_options']}` dropped")
        return warnings

    # ── Configs ──────────────────────────────────────────────────

    def _json_variation(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        target, literal = self._name(finding)
        fallback = ctx.config_fallback(finding.source_name)
        fetch = f"{self._receiver(finding)}.variation({literal}, {render_js(fallback)})"
        return RewriteResult(
            patches=self._config_patches(finding, fetch, ctx),
            target_name=target,
            fallback=fallback,
        )

    def _json_hook(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        target, _ = self._name(finding, SdkVariant.REACT)
        fallback = ctx.config_fallback(finding.source_name)
        fetch = f"({_member('useFlags()', target)} ?? {render_js(fallback)})"
        return RewriteResult(
            patches=self._config_patches(finding, fetch, ctx),
            target_name=target,
            fallback=fallback,
            required_symbols=frozenset({"useFlags"}),
        )

    @staticmethod
    def _config_patches(finding: Finding, fetch: str, ctx: _FileContext) -> Tuple[RewritePatch, ...]:
        """Patch the fetch plus every accessor: ``c.get('k', d)`` → ``(c.k ?? d)``."""
        patches: List[RewritePatch] = []
        chained = next((a for a in finding.accessors if a.chained), None)
        chained_value = finding.metadata.get("chained_value_read")
        if chained is not None:
            patches.append(ctx.patch(
                chained.location, f"({_member(fetch, chained.key)} ?? {render_js(chained.default)})",
            ))
        elif chained_value is not None:
            patches.append(ctx.patch(chained_value, fetch))
        else:
            patches.append(ctx.patch(finding.location, fetch))

        for accessor in finding.accessors:
            if accessor is chained:
                continue
            patches.append(ctx.patch(
                accessor.location,
                f"({_member(accessor.receiver, accessor.key)} ?? {render_js(accessor.default)})",
            ))
        for location in finding.metadata.get("value_reads", ()):
            # `config.value` is the variation result itself
            base = ctx.text(location).rsplit(".", 1)[0].rstrip().rstrip("?")
            patches.append(ctx.patch(location, base))
        return tuple(patches)

    def _config_exposure(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        target, literal = self._name(finding)
        fallback = ctx.config_fallback(finding.source_name)
        replacement = f"{self._receiver(finding)}.variation({literal}, {render_js(fallback)})"
        return RewriteResult(
            patches=(ctx.patch(finding.location, replacement),),
            target_name=target,
            fallback=fallback,
            warnings=["manual config exposure replaced by a flag evaluation, which records the exposure"],
        )

    # ── No target equivalent ─────────────────────────────────────

    @staticmethod
    def _experiment(finding: Finding, ctx: _FileContext) -> RewriteResult:
        raise NoTargetEquivalentError(
            f"{finding.method}() targets {finding.target_type.value} '{finding.source_name}'; "
            f"experiments are never migrated automatically",
            name=finding.source_name,
        )

    @staticmethod
    def _override(finding: Finding, ctx: _FileContext) -> RewriteResult:
        raise NoTargetEquivalentError(
            f"{finding.method}() has no LaunchDarkly client-side equivalent; "
            f"use flag targeting or a test data source",
            name=finding.source_name,
        )

    @staticmethod
    def _user_hook(finding: Finding, ctx: _FileContext) -> RewriteResult:
        raise NoTargetEquivalentError(
            "useStatsigUser() has no LaunchDarkly equivalent; read the context passed to LDProvider instead",
            name=finding.source_name,
        )

    # ── Client construction ──────────────────────────────────────

    def _context(self, finding: Finding) -> Tuple[str, List[str]]:
        user = finding.metadata.get("user")
        if user is None:
            raise UnresolvableUserError(
                f"user `{finding.metadata.get('user_text', '<missing>')}` is not an object literal "
                f"or an identifier bound to one in this file",
                name=finding.source_name,
            )
        result = transform_context(user)
        warnings = list(result.warnings)
        if finding.metadata.get("user_via_identifier"):
            warnings.append(
                f"context inlined from `{finding.metadata.get('user_text')}`; "
                f"check that the names it references are in scope here"
            )
        return render_js(result.context), warnings

    def _plugins(self, finding: Finding, ctx: _FileContext) -> Tuple[List[str], Set[str], List[str]]:
        """Target plugin constructions for a client/provider in this file."""
        entries = list(finding.metadata.get("plugins", ()))
        for other in ctx.scan.findings:
            if other.kind is FindingKind.PLUGIN_INIT and not other.blocked:
                entries.append({
                    "role": other.metadata.get("role"),
                    "options": other.metadata.get("options"),
                    "options_text": other.metadata.get("options_text"),
                    "text": other.method + "()",
                })

        roles = ctx.index.imports.roles
        plugins: List[str] = []
        symbols: Set[str] = set()
        warnings: List[str] = []
        seen: Set[str] = set()
        for entry in entries:
            role = entry.get("role")
            if role is None:
                warnings.append(f"plugin `{entry['text']}` dropped; no LaunchDarkly equivalent")
                continue
            if role not in roles:
                warnings.append(f"plugin `{entry['text']}` dropped; this file does not import its package")
                continue
            if role in seen:
                continue
            seen.add(role)
            if role == "session_replay":
                plugins.append(self._session_replay(entry, warnings))
                symbols.add("SessionReplay")
            else:
                plugins.append("new Observability()")
                symbols.add("Observability")
                warnings.append(
                    "Statsig auto-capture replaced by LaunchDarkly Observability; "
                    "captured event names differ"
                )
                if entry.get("options_text"):
                    warnings.append(f"auto-capture options `{entry['options_text']}` dropped")
        return plugins, symbols, warnings

    @staticmethod
    def _session_replay(entry: Dict[str, Any], warnings: List[str]) -> str:
        options = entry.get("options")
        if options is None:
            if entry.get("options_text"):
                warnings.append(f"session replay options `{entry['options_text']}` are not static and were dropped")
            return "new SessionReplay()"
        translated: Dict[str, Any] = {}
        for key, value in options.items():
            if key == "privacyMask":
                if value is True:
                    translated["privacySetting"] = "default"
                elif value is False:
                    translated["privacySetting"] = "none"
                else:
                    warnings.append("privacyMask is not a boolean literal; privacySetting left at its default")
            elif key in SESSION_REPLAY_LOST_FEATURES:
                warnings.append(f"session replay option `{key}` dropped; LaunchDarkly session replay has no equivalent")
            else:
                warnings.append(f"session replay option `{key}` dropped")
        return f"new SessionReplay({render_js(translated)})" if translated else "new SessionReplay()"

    def _init_call(self, finding: Finding, ctx: _FileContext) -> Tuple[str, str, Set[str], List[str]]:
        """Return (context js, plugins js or "", required symbols, warnings)."""
        context_js, warnings = self._context(finding)
        plugins, symbols, plugin_warnings = self._plugins(finding, ctx)
        warnings.extend(plugin_warnings)
        for option in finding.metadata.get("dropped_options", ()):
            warnings.append(f"Statsig option `{option}` dropped")
        plugins_js = f"{{ plugins: [{', '.join(plugins)}] }}" if plugins else ""
        return context_js, plugins_js, symbols, warnings

    def _client_initialize(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        context_js, plugins_js, symbols, warnings = self._init_call(finding, ctx)
        args = [quote_js(self.settings.placeholder_client_id), context_js] + ([plugins_js] if plugins_js else [])
        replacement = f"LDClient.initialize({', '.join(args)})"
        return RewriteResult(
            patches=(ctx.patch(finding.location, replacement),),
            target_name="LDClient.initialize",
            warnings=warnings,
            required_symbols=frozenset(symbols | {"LDClient"}),
        )

    def _singleton_initialize(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        context_js, plugins_js, symbols, warnings = self._init_call(finding, ctx)
        args = [quote_js(self.settings.placeholder_client_id), context_js] + ([plugins_js] if plugins_js else [])
        replacement = (
            f"({self.settings.singleton_client_identifier} = LDClient.initialize({', '.join(args)}))"
            f".waitForInitialization({self.settings.wait_for_initialization_seconds})"
        )
        return RewriteResult(
            patches=(ctx.patch(finding.location, replacement),),
            target_name="LDClient.initialize",
            warnings=warnings,
            required_symbols=frozenset(symbols | {"LDClient", SINGLETON_SYMBOL}),
        )

    def _provider_element(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        context_js, plugins_js, symbols, warnings = self._init_call(finding, ctx)
        for name in finding.metadata.get("dropped_attributes", ()):
            warnings.append(f"<{finding.method}> prop `{name}` dropped")
        if finding.metadata.get("client_attribute"):
            warnings.append("LDProvider creates its own client; the Statsig client passed as `client` is unused")
        attributes = [
            f"clientSideID={quote_js(self.settings.placeholder_client_id)}",
            f"context={{{context_js}}}",
        ]
        if plugins_js:
            attributes.append(f"options={{{plugins_js}}}")
        closer = " />" if finding.metadata.get("self_closing") else ">"
        patches = [ctx.patch(finding.location, f"<LDProvider {' '.join(attributes)}{closer}")]
        closing = finding.metadata.get("closing_tag")
        if closing is not None:
            patches.append(ctx.patch(closing, "</LDProvider>"))
        return RewriteResult(
            patches=tuple(patches),
            target_name="LDProvider",
            warnings=warnings,
            required_symbols=frozenset(symbols | {"LDProvider"}),
        )

    @staticmethod
    def _client_hook(finding: Finding, ctx: _FileContext) -> RewriteResult:
        return RewriteResult(
            patches=(ctx.patch(finding.location, "{ client: useLDClient() }"),),
            target_name="useLDClient",
            required_symbols=frozenset({"useLDClient"}),
        )

    # ── Events and lifecycle ─────────────────────────────────────

    def _track(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        event = finding.metadata.get("event", {})
        name_text = event.get("name_text") or quote_js(finding.source_name, finding.metadata.get("quote", '"'))
        value_kind = event.get("value_kind", "none")
        value_text = event.get("value_text")
        meta_text = event.get("metadata_text")
        warnings: List[str] = []

        args = [name_text]
        if value_kind == "none":
            if meta_text:
                args.append(meta_text)
        elif value_kind == "string":
            data = f"{{ value: {value_text}, ...{meta_text} }}" if meta_text else f"{{ value: {value_text} }}"
            args.append(data)
            warnings.append("string event value moved into track() data; LaunchDarkly metric values are numeric")
        else:
            args.extend([meta_text or "undefined", value_text])
            if value_kind == "expr":
                warnings.append(f"event value `{value_text}` passed as metricValue, which must be a number")
        replacement = f"{self._receiver(finding)}.track({', '.join(args)})"
        return RewriteResult(
            patches=(ctx.patch(finding.location, replacement),),
            target_name=finding.source_name,
            warnings=warnings,
        )

    def _lifecycle(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        template = finding.metadata["template"]
        if template == "wait_for_initialization":
            call = f"waitForInitialization({self.settings.wait_for_initialization_seconds})"
        else:
            call = f"{template}()"
        return RewriteResult(
            patches=(ctx.patch(finding.location, f"{self._receiver(finding)}.{call}"),),
            target_name=call.split("(")[0],
        )

    def _identify(self, finding: Finding, ctx: _FileContext) -> RewriteResult:
        context_js, warnings = self._context(finding)
        return RewriteResult(
            patches=(ctx.patch(finding.location, f"{self._receiver(finding)}.identify({context_js})"),),
            target_name="identify",
            warnings=warnings,
        )

    # ── Observability start-up ───────────────────────────────────

    def _plugin_start(self, finding: Finding, ctx: _FileContext, outcomes) -> RewriteResult:
        if finding.low_confidence and not self.settings.rewrite_low_confidence:
            raise LowConfidenceMatchError(
                f"low-confidence match: {finding.confidence_note or 'provenance unclear'}",
                name=finding.source_name,
            )
        client_migrated = any(
            o.finding.kind is FindingKind.PROVIDER_INIT and o.status is ItemStatus.MIGRATED for o in outcomes
        )
        if not client_migrated:
            raise ClientStillRequiredError(
                f"{finding.method}() attaches to a Statsig client that was not migrated in this file",
                name=finding.source_name,
            )
        statement = finding.metadata.get("statement")
        if statement is None:
            raise NoTargetEquivalentError(
                f"the result of {finding.method}() is used, so the call cannot be removed",
                name=finding.source_name,
            )
        label = _PLUGIN_LABELS.get(finding.metadata.get("role"), "observability")
        comment = f"// {finding.method}() removed: the LaunchDarkly {label} plugin is passed at initialization"
        return RewriteResult(
            patches=(ctx.patch(statement, comment),),
            target_name=label,
        )

    # ── Imports ──────────────────────────────────────────────────

    def _rewrite_imports(self, ctx: _FileContext, patch_set: PatchSet, outcomes: Dict[int, FindingOutcome],
                         warnings: List[MigrationWarning], settle) -> None:
        index = ctx.index
        source = ctx.parsed.source
        symbols: Set[str] = set()
        for outcome in outcomes.values():
            if outcome.status is ItemStatus.MIGRATED and outcome.result is not None:
                symbols |= outcome.result.required_symbols

        remaining = [o for o in outcomes.values() if o.status is not ItemStatus.MIGRATED]
        statements = {s.location.start_byte: s for s in index.imports.statements}
        first = index.imports.statements[0] if index.imports.statements else None
        lines = compose_target_imports(
            symbols,
            style=first.style if first else "esm",
            quote=first.quote if first else "'",
            singleton_identifier=self.settings.singleton_client_identifier,
        )
        placed = False

        for finding in (f for f in ctx.scan.findings if f.kind is FindingKind.IMPORT):
            statement = statements[finding.location.start_byte]
            uncovered = [
                (binding, loc)
                for binding in statement.bindings
                for loc in index.references.get(binding.local, ())
                if not patch_set.covers(loc.start_byte, loc.end_byte)
            ]

            if not remaining and not uncovered:
                text = "\n".join(lines) if lines and not placed else ""
                location = statement.location if text else _with_trailing_newline(statement.location, source)
                placed = placed or bool(text)
                settle(finding, lambda f=finding, loc=location, t=text: RewriteResult(
                    patches=(ctx.patch(loc, t),),
                    target_name=", ".join(lines) if t else None,
                ))
                continue

            for name in sorted({b.local for b, _ in uncovered if b.type_only}):
                warnings.append(MigrationWarning(
                    message=f"type `{name}` from {statement.package.name} is still referenced; "
                            f"replace it with the LaunchDarkly type (e.g. LDContext)",
                    file_path=ctx.parsed.file_path,
                    line=statement.location.start_line,
                    source_name=name,
                ))

            if lines and not placed:
                placed = True
                end = statement.location.end_byte
                insertion = dataclasses.replace(
                    statement.location, start_byte=end, start_line=statement.location.end_line,
                    start_column=statement.location.end_column,
                )
                settle(finding, lambda f=finding, loc=insertion: RewriteResult(
                    patches=(ctx.patch(loc, "\n" + "\n".join(lines)),),
                    target_name=", ".join(lines),
                    warnings=[f"{statement.package.name} import kept: unmigrated Statsig usages remain in this file"],
                ))
                continue

            self._retain_import(finding, statement, remaining, uncovered, outcomes)

        if lines and not placed:
            at = index.insert_at
            text = ("\n" + "\n".join(lines)) if at else ("\n".join(lines) + "\n")
            location = Location(ctx.parsed.file_path, at, at, 1, 0, 1, 0)
            try:
                patch_set.accept((ctx.patch(location, text),), name="imports")
            except RewriteError as e:
                warnings.append(MigrationWarning(
                    message=f"LaunchDarkly imports could not be added: {e}", file_path=ctx.parsed.file_path,
                ))

    @staticmethod
    def _retain_import(finding: Finding, statement, remaining: List[FindingOutcome], uncovered,
                       outcomes: Dict[int, FindingOutcome]) -> None:
        """Record an import kept with no patch as blocked or failed.

        The import finding itself is left as scanned; only its outcome
        says it is blocked.
        """
        blocked_sites = [o.finding.location for o in remaining if o.status is ItemStatus.BLOCKED]
        stray = [
            b.local for b, loc in uncovered
            if not any(site.contains(loc) for site in blocked_sites)
        ]
        all_blocked = remaining and all(o.status is ItemStatus.BLOCKED for o in remaining) and not stray
        if all_blocked:
            reasons: List[str] = []
            for o in remaining:
                for r in o.finding.block_reasons:
                    if r not in reasons:
                        reasons.append(r)
            outcomes[id(finding)] = FindingOutcome(finding, ItemStatus.BLOCKED, reason=", ".join(reasons))
            return
        still = sorted(set(stray)) or [o.finding.method or o.finding.kind.value for o in remaining
                                       if o.status is not ItemStatus.BLOCKED]
        error = ClientStillRequiredError(
            f"{statement.package.name} import kept; still required by: {', '.join(dict.fromkeys(still))}",
            name=finding.source_name,
        )
        outcomes[id(finding)] = FindingOutcome(
            finding, ItemStatus.FAILED, error_type=type(error).__name__, reason=str(error),
        )
