"""Statsig user → LaunchDarkly context.

``transform`` is a pure function over the literal shape of a Statsig
user object (as produced by ``literals.object_to_dict``). Rules apply in
a fixed order and the output preserves that order, so the same input
always renders to byte-identical JavaScript.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..ast_parser.literals import UNDEFINED, RawExpression
from .errors import (
    AttributeCollisionError,
    MissingRequiredFieldError,
    ReservedAttributeError,
    UnresolvableUserError,
)
from .lanes.statsig_to_launchdarkly import (
    DROPPED_USER_FIELDS,
    PASSTHROUGH_USER_FIELDS,
    RESERVED_CONTEXT_FIELDS,
)

logger = logging.getLogger(__name__)

_STRUCTURED_FIELDS = ("userID", "custom", "customIDs", "privateAttributes")
_ENVIRONMENT_FIELD = "statsigEnvironment"


@dataclass
class ContextResult:
    context: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)


def is_multi_entity(user: Dict[str, Any]) -> bool:
    """Two or more top-level entities, each an object carrying its own ``userID``."""
    entities = [v for v in user.values() if isinstance(v, dict) and "userID" in v]
    return len(entities) >= 2


def transform(user: Dict[str, Any]) -> ContextResult:
    """Map a Statsig user literal to a LaunchDarkly context literal.

    Raises:
        MissingRequiredFieldError: No ``userID``.
        ReservedAttributeError: A flattened field would land on ``kind``,
            ``key`` or ``_meta``.
        AttributeCollisionError: Two source fields flatten to one name.
        UnresolvableUserError: A nested bundle is not a static object.
    """
    if not isinstance(user, dict):
        raise UnresolvableUserError("user is not an object literal")

    if is_multi_entity(user):
        warnings: List[str] = []
        context: Dict[str, Any] = {"kind": "multi"}
        for name, entity in user.items():
            if not isinstance(entity, dict) or "userID" not in entity:
                warnings.append(f"multi-context: top-level field '{name}' is not an entity and was dropped")
                continue
            result = _transform_single(entity, kind=name)
            context[name] = result.context
            warnings.extend(f"{name}: {w}" for w in result.warnings)
        return ContextResult(context=context, warnings=warnings)

    return _transform_single(user, kind="user")


def _transform_single(user: Dict[str, Any], kind: str) -> ContextResult:
    warnings: List[str] = []
    context: Dict[str, Any] = {"kind": kind}
    origins: Dict[str, str] = {}

    def put(name: str, value: Any, origin: str) -> None:
        if name in RESERVED_CONTEXT_FIELDS:
            raise ReservedAttributeError(
                f"{origin} field '{name}' would overwrite the reserved context attribute '{name}'",
                name=name,
            )
        if name in origins:
            raise AttributeCollisionError(
                f"{origin} field '{name}' collides with {origins[name]} field '{name}'",
                name=name,
            )
        origins[name] = origin
        context[name] = value

    # 1-2. kind, key
    key = user.get("userID", UNDEFINED)
    if key is UNDEFINED or key is None:
        raise MissingRequiredFieldError("user object has no userID; LaunchDarkly contexts require a key",
                                        name="userID")
    context["key"] = key
    origins["key"] = "userID"

    # 3. custom
    for name, value in _bundle(user, "custom").items():
        put(name, value, "custom")

    # 4. customIDs
    for name, value in _bundle(user, "customIDs").items():
        put(name, value, "customIDs")
        warnings.append(
            f"customIDs.{name} flattened to a context attribute; affects bucketing differently "
            f"(LaunchDarkly has no multi-ID experiment bucketing)"
        )

    # 5. privateAttributes
    private: List[str] = []
    for name, value in _bundle(user, "privateAttributes").items():
        put(name, value, "privateAttributes")
        if name not in private:
            private.append(name)

    # 6-7. scalars, dropped fields, unknown fields
    for name, value in user.items():
        if name in _STRUCTURED_FIELDS:
            continue
        if name in PASSTHROUGH_USER_FIELDS:
            put(name, value, "user")
        elif name in DROPPED_USER_FIELDS:
            warnings.append(f"'{name}' dropped; LaunchDarkly infers it differently and it is never guessed")
        elif name == _ENVIRONMENT_FIELD:
            warnings.append(f"'{name}' dropped; LaunchDarkly environments are selected by client-side ID")
        else:
            put(name, value, "user")
            warnings.append(f"unrecognized user field '{name}' passed through as a context attribute")

    if private:
        context["_meta"] = {"privateAttributes": private}

    return ContextResult(context=context, warnings=warnings)


def _bundle(user: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = user.get(name, UNDEFINED)
    if value is UNDEFINED or value is None:
        return {}
    if isinstance(value, RawExpression) or not isinstance(value, dict):
        raise UnresolvableUserError(f"user.{name} is not an object literal and cannot be flattened", name=name)
    return value
