"""
Reachability map filtering against an obstacle index.

Each reachability sphere is tested at its voxel center under one of three
policies sized from the map resolution::

    VOXEL                 any obstacle point in the same cell
    INSCRIBED_SPHERE      any obstacle point within resolution / 2
    CIRCUMSCRIBED_SPHERE  any obstacle point within resolution * sqrt(3) / 2

Spheres without a match go to the filtered map; the others go, unmodified,
to the colliding map. Both keep the input order and the input header.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from shared.messages.workspace import WorkSpaceMessage
from src.map.spatial_index import ObstacleIndex

logger = logging.getLogger(__name__)


class InvalidFilterTypeError(ValueError):
    """Unknown filter policy name."""


class FilterType(str, Enum):
    VOXEL = "voxel"
    INSCRIBED_SPHERE = "inscribed_sphere"
    CIRCUMSCRIBED_SPHERE = "circumscribed_sphere"

    @classmethod
    def default(cls) -> "FilterType":
        return cls.CIRCUMSCRIBED_SPHERE

    @classmethod
    def parse(cls, value: Optional[str]) -> "FilterType":
        """Resolve a command-line selector; None selects the default."""
        if value is None:
            return cls.default()
        key = value.strip().lower().replace("-", "_")
        try:
            return _ALIASES[key]
        except KeyError:
            raise InvalidFilterTypeError(
                f"Invalid filtering type {value!r} (expected one of: voxel, inscribe, circumscribe)"
            ) from None

    def search_radius(self, resolution: float) -> Optional[float]:
        """Radius for sphere policies, None for the voxel policy."""
        if self is FilterType.INSCRIBED_SPHERE:
            return resolution / 2.0
        if self is FilterType.CIRCUMSCRIBED_SPHERE:
            return math.sqrt(3) * resolution / 2.0
        return None

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


_ALIASES = {
    "voxel": FilterType.VOXEL,
    "inscribe": FilterType.INSCRIBED_SPHERE,
    "inscribed": FilterType.INSCRIBED_SPHERE,
    "inscribed_sphere": FilterType.INSCRIBED_SPHERE,
    "circumscribe": FilterType.CIRCUMSCRIBED_SPHERE,
    "circumscribed": FilterType.CIRCUMSCRIBED_SPHERE,
    "circumscribed_sphere": FilterType.CIRCUMSCRIBED_SPHERE,
}


@dataclass
class FilterResult:
    """Output of one filtering pass."""

    filtered: WorkSpaceMessage
    colliding: WorkSpaceMessage
    filter_type: FilterType
    elapsed_ms: float = 0.0

    @property
    def total(self) -> int:
        return len(self.filtered.spheres) + len(self.colliding.spheres)

    def summary(self) -> dict:
        return {
            "filter_type": self.filter_type.value,
            "filtered": len(self.filtered.spheres),
            "colliding": len(self.colliding.spheres),
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


def sphere_centers(reachability_map: WorkSpaceMessage) -> np.ndarray:
    """(N, 3) array of the map's sphere centers."""
    if not reachability_map.spheres:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([s.xyz() for s in reachability_map.spheres], dtype=np.float64)


def collision_counts(
    centers: np.ndarray, index: ObstacleIndex, filter_type: FilterType, resolution: float
) -> np.ndarray:
    """Obstacle matches per center under ``filter_type``."""
    radius = filter_type.search_radius(resolution)
    if radius is None:
        return index.voxel_hits(centers)
    return index.radius_hits(centers, radius)


def filter_reachability_map(
    reachability_map: WorkSpaceMessage,
    index: ObstacleIndex,
    filter_type: FilterType = FilterType.CIRCUMSCRIBED_SPHERE,
) -> FilterResult:
    """Split ``reachability_map`` into filtered and colliding maps."""
    t_start = time.monotonic()

    filtered = reachability_map.empty_like()
    colliding = reachability_map.empty_like()

    centers = sphere_centers(reachability_map)
    counts = collision_counts(centers, index, filter_type, reachability_map.resolution)
    for sphere, hits in zip(reachability_map.spheres, counts.tolist()):
        if hits == 0:
            filtered.spheres.append(sphere)
        else:
            colliding.spheres.append(sphere)

    elapsed_ms = (time.monotonic() - t_start) * 1000.0
    logger.info("Reachability Map Filtered!")
    logger.info("Number of colliding voxels: %d", len(colliding.spheres))
    logger.info("Number of spheres remaining: %d", len(filtered.spheres))
    return FilterResult(filtered, colliding, filter_type, elapsed_ms)
