"""Patch acceptance and application.

A :class:`PatchSet` accumulates the patches for one file in acceptance
order; a finding's patches are accepted together or not at all.
:func:`apply_patches` splices an accepted set into the original bytes.
"""

import logging
from typing import Iterable, List, Sequence

from .errors import OverlappingPatchError, PatchConflictError
from .models import RewritePatch

logger = logging.getLogger(__name__)


class PatchSet:
    """Non-overlapping patches for a single file."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._patches: List[RewritePatch] = []

    def __iter__(self):
        return iter(self._patches)

    def __len__(self) -> int:
        return len(self._patches)

    @property
    def patches(self) -> List[RewritePatch]:
        return list(self._patches)

    def accept(self, patches: Sequence[RewritePatch], name: str = "") -> None:
        """Accept all of ``patches`` or none of them.

        Raises:
            OverlappingPatchError: A patch overlaps an accepted patch or a
                sibling in ``patches``.
        """
        for i, patch in enumerate(patches):
            if patch.location.file_path != self.file_path:
                raise ValueError(f"patch for {patch.location.file_path} offered to {self.file_path}")
            for other in patches[i + 1:]:
                if patch.location.overlaps(other.location):
                    raise OverlappingPatchError(
                        f"patches at {patch.location.describe()} and {other.location.describe()} overlap",
                        name=name,
                    )
            for accepted in self._patches:
                if patch.location.overlaps(accepted.location):
                    raise OverlappingPatchError(
                        f"patch at {patch.location.describe()} overlaps an earlier patch at "
                        f"{accepted.location.describe()}",
                        name=name,
                    )
        self._patches.extend(patches)

    def covers(self, start_byte: int, end_byte: int) -> bool:
        """True if some accepted patch replaces the whole range."""
        return any(
            p.location.start_byte <= start_byte and end_byte <= p.location.end_byte
            and p.location.start_byte != p.location.end_byte
            for p in self._patches
        )


def apply_patches(source: bytes, patches: Iterable[RewritePatch]) -> bytes:
    """Return ``source`` with every patch spliced in.

    Patches are applied back to front so earlier offsets stay valid;
    insertions at the same offset keep their acceptance order.

    Raises:
        PatchConflictError: A patch's original text does not match the
            bytes at its location.
    """
    indexed = list(enumerate(patches))
    for _, patch in indexed:
        loc = patch.location
        actual = source[loc.start_byte:loc.end_byte]
        if actual != patch.original_text.encode("utf-8"):
            raise PatchConflictError(
                f"source at {loc.describe()} no longer matches the scanned text",
            )

    ordered = sorted(
        indexed,
        key=lambda item: (item[1].location.start_byte, item[1].location.end_byte, item[0]),
        reverse=True,
    )
    result = source
    for _, patch in ordered:
        loc = patch.location
        result = result[:loc.start_byte] + patch.replacement_text.encode("utf-8") + result[loc.end_byte:]
    return result
