"""Per-finding rewrite failures.

A RewriteError never aborts a pass: the orchestrator records the finding
as a failed item with the exception's class name and message, so every
ambiguity reaches the report instead of being resolved by guessing.
"""

from typing import Optional

from ..exceptions import FlagportError


class RewriteError(FlagportError):
    """Base class for failures that keep one finding from being rewritten."""

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


class AmbiguousFallbackError(RewriteError):
    """A config default is missing, null/undefined, or contradicts another call site."""


class DynamicNameError(RewriteError):
    """The flag name is not a string literal."""


class LowConfidenceMatchError(RewriteError):
    """The call shape matched but its SDK provenance is uncertain."""


class NoTargetEquivalentError(RewriteError):
    """The source API has no LaunchDarkly counterpart."""


class UnresolvableUserError(RewriteError):
    """The user object passed at initialization is not statically known."""


class ExperimentRelationAmbiguousError(RewriteError):
    """The flag may be part of a running experiment; a person has to decide."""


class OverlappingPatchError(RewriteError):
    """A patch would overlap one already accepted for the same file."""


class PatchConflictError(RewriteError):
    """The file changed since it was scanned, or a patch's original text no longer matches."""


class ClientStillRequiredError(RewriteError):
    """Statsig code that cannot be migrated still depends on this construct."""


# ── Context transformation ───────────────────────────────────────────


class ContextTransformError(RewriteError):
    """A Statsig user object cannot be turned into a LaunchDarkly context."""


class MissingRequiredFieldError(ContextTransformError):
    """The user object has no ``userID``."""


class ReservedAttributeError(ContextTransformError):
    """A flattened attribute would overwrite ``kind``, ``key`` or ``_meta``."""


class AttributeCollisionError(ContextTransformError):
    """Two source fields flatten to the same context attribute."""
