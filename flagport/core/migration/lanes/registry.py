"""Migration lane registry.

Simple dict-based registry. All lanes are registered at import time
via ``lanes/__init__.py``. No plugin discovery, no entry points --
every lane ships with the package.
"""

import logging
from typing import Any, Dict, List

from ...exceptions import CatalogLoadError
from .base import MigrationLane

logger = logging.getLogger(__name__)


class LaneRegistry:
    """Registry for migration lanes.

    Class-level store so the orchestrator can call
    ``LaneRegistry.load(...)`` without holding an instance.
    """

    _lanes: Dict[str, MigrationLane] = {}

    @classmethod
    def register(cls, lane: MigrationLane) -> None:
        """Register a migration lane instance."""
        cls._lanes[lane.lane_id] = lane
        logger.info(
            "Registered migration lane: %s (%s)",
            lane.lane_id,
            lane.display_name,
        )

    @classmethod
    def load(cls, lane_id: str) -> MigrationLane:
        """Get a lane by ID and validate its catalog.

        Raises:
            CatalogLoadError: Unknown lane, or a catalog whose rows clash.
        """
        lane = cls._lanes.get(lane_id)
        if lane is None:
            raise CatalogLoadError(
                f"Unknown migration lane '{lane_id}'. Registered: {sorted(cls._lanes)}"
            )
        try:
            rules = lane.get_transform_rules()
            packages = lane.get_source_packages()
        except CatalogLoadError:
            raise
        except Exception as e:
            raise CatalogLoadError(f"Lane '{lane_id}' failed to build its catalog: {e}") from e

        if not rules:
            raise CatalogLoadError(f"Lane '{lane_id}' has an empty catalog")

        seen: Dict[tuple, str] = {}
        for rule in rules:
            for api in rule.api_names:
                slot = (rule.shape, api)
                if slot in seen:
                    raise CatalogLoadError(
                        f"Catalog rules '{seen[slot]}' and '{rule.name}' both match "
                        f"{rule.shape.value} '{api}'"
                    )
                seen[slot] = rule.name

        names = [p.name for p in packages]
        if len(names) != len(set(names)):
            raise CatalogLoadError(f"Lane '{lane_id}' declares a source package twice")

        return lane

    @classmethod
    def list_lanes(cls) -> List[Dict[str, Any]]:
        """List all registered lanes with metadata."""
        return [
            {
                "lane_id": lane.lane_id,
                "display_name": lane.display_name,
                "source_frameworks": lane.source_frameworks,
                "target_frameworks": lane.target_frameworks,
                "version": lane.version,
            }
            for lane in cls._lanes.values()
        ]
