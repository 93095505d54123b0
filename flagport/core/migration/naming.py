"""Flag naming policy.

LaunchDarkly's React SDK exposes flags through ``useFlags()`` with keys
camelCased, so React call sites must use the camelCase form. Every other
variant keeps the Statsig name as-is.
"""

import re

from .models import SdkVariant

_SEPARATOR_RE = re.compile(r"[-_]+")


def camel_case(name: str) -> str:
    """Convert snake_case or kebab-case to camelCase.

    The first segment is kept verbatim and later segments only get their
    first letter upper-cased, so a name without separators is returned
    unchanged. That makes the conversion idempotent.
    """
    parts = [p for p in _SEPARATOR_RE.split(name) if p]
    if not parts:
        return name
    head, *rest = parts
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def to_target_name(source_name: str, sdk_variant: SdkVariant) -> str:
    """Map a Statsig gate/config name to its LaunchDarkly flag name."""
    if sdk_variant is SdkVariant.REACT:
        return camel_case(source_name)
    return source_name
