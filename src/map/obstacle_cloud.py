"""Obstacle point cloud from an occupancy octree.

Every occupied leaf contributes its center and its 8 corners, so radius and
voxel queries against the cloud see the whole extent of the voxel.
Duplicates are removed by exact coordinate equality, with no tolerance.
Adjacent voxels share corners, and those corners are only kept once when
both paths yield bit-identical doubles.
"""

from __future__ import annotations

import itertools
import logging
from typing import Iterable, Iterator

import numpy as np
import pyoctomap

logger = logging.getLogger(__name__)

Point = tuple[float, float, float]
# (center, edge length) of one leaf voxel
Voxel = tuple[Point, float]

CORNER_OFFSETS = tuple(itertools.product((-1, 1), repeat=3))
LATTICE_OFFSETS = tuple(
    d for d in itertools.product((-1, 0, 1), repeat=3) if d != (0, 0, 0)
)


def occupied_voxels(tree: pyoctomap.OcTree) -> Iterator[Voxel]:
    """Occupied leaves of ``tree`` down to its maximum depth."""
    for it in tree.begin_leafs(tree.getTreeDepth()):
        if tree.isNodeOccupied(it):
            x, y, z = it.getCoordinate()
            yield (float(x), float(y), float(z)), float(it.getSize())


def voxel_sample_points(voxel: Voxel, face_samples: bool = False) -> list[Point]:
    """Center + corners of one voxel (+ edge/face midpoints if requested)."""
    (x, y, z), size = voxel
    offsets = LATTICE_OFFSETS if face_samples else CORNER_OFFSETS
    points = [(x, y, z)]
    for dx, dy, dz in offsets:
        points.append(
            (x + (dx * size / 2), y + (dy * size / 2), z + (dz * size / 2))
        )
    return points


def points_from_voxels(voxels: Iterable[Voxel], face_samples: bool = False) -> np.ndarray:
    """Deduplicated (N, 3) float64 cloud from occupied voxels.

    Rows are sorted lexicographically. No voxels gives a (0, 3) array.
    """
    points_set: set[Point] = set()
    for voxel in voxels:
        points_set.update(voxel_sample_points(voxel, face_samples))

    if not points_set:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array(sorted(points_set), dtype=np.float64)


def create_obstacles_point_cloud(
    tree: pyoctomap.OcTree, face_samples: bool = False
) -> np.ndarray:
    """Decode the obstacle point set for ``tree``."""
    cloud = points_from_voxels(occupied_voxels(tree), face_samples)
    logger.info("Number of vertices in obstacle point cloud: %d", len(cloud))
    return cloud
