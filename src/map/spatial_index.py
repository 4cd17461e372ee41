"""Spatial index over the obstacle point cloud.

Answers the two queries the reachability filter needs:

* voxel membership: obstacle points in the same grid cell as the query.
  Cells are ``floor(coord / resolution)``, aligned to the world origin,
  and stored as a hashed set of integer (ix, iy, iz) tuples.
* radius: obstacle points within a Euclidean distance, via scipy's cKDTree.

The index is immutable; build a new one for new obstacles.
"""

from __future__ import annotations

import logging
from collections import defaultdict

import numpy as np
from scipy.spatial import cKDTree

logger = logging.getLogger(__name__)


class ObstacleIndex:
    """Voxel + radius queries over a fixed (N, 3) point set."""

    def __init__(self, points: np.ndarray, resolution: float):
        if not resolution > 0.0:
            raise ValueError(f"index resolution must be positive, got {resolution!r}")

        self.resolution = float(resolution)
        self._points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        self._tree = cKDTree(self._points) if len(self._points) else None

        self._cells: dict[tuple[int, int, int], list[int]] = defaultdict(list)
        for i, cell in enumerate(self._cells_of(self._points).tolist()):
            self._cells[tuple(cell)].append(i)
        self._cells = dict(self._cells)

        logger.debug(
            "Obstacle index built: %d points in %d cells (resolution %.4f)",
            len(self._points),
            len(self._cells),
            self.resolution,
        )

    def _cells_of(self, points: np.ndarray) -> np.ndarray:
        return np.floor(points / self.resolution).astype(np.int64)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> np.ndarray:
        return self._points

    @property
    def occupied_cell_count(self) -> int:
        return len(self._cells)

    def voxel_search(self, point) -> list[int]:
        """Indices of obstacle points sharing the query point's cell."""
        cell = self._cells_of(np.asarray(point, dtype=np.float64).reshape(1, 3))[0]
        return list(self._cells.get(tuple(cell.tolist()), ()))

    def radius_search(self, point, radius: float) -> list[int]:
        """Indices of obstacle points within ``radius`` (inclusive), nearest first."""
        if self._tree is None:
            return []
        query = np.asarray(point, dtype=np.float64).reshape(3)
        idx = self._tree.query_ball_point(query, radius)
        if not idx:
            return []
        dist = np.linalg.norm(self._points[idx] - query, axis=1)
        return [idx[i] for i in np.argsort(dist, kind="stable")]

    def voxel_hits(self, points: np.ndarray) -> np.ndarray:
        """Match count per query point for the voxel query."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        cells = self._cells_of(points).tolist()
        return np.array(
            [len(self._cells.get(tuple(c), ())) for c in cells], dtype=np.int64
        )

    def radius_hits(self, points: np.ndarray, radius: float) -> np.ndarray:
        """Match count per query point for the radius query."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if self._tree is None or len(points) == 0:
            return np.zeros(len(points), dtype=np.int64)
        return np.asarray(
            self._tree.query_ball_point(points, radius, return_length=True),
            dtype=np.int64,
        )
