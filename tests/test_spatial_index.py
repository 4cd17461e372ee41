"""Tests for the obstacle spatial index."""

import numpy as np
import pytest

from src.map.spatial_index import ObstacleIndex


def _points(*rows):
    return np.array(rows, dtype=np.float64)


class TestObstacleIndex:
    def test_empty(self):
        index = ObstacleIndex(np.zeros((0, 3)), 1.0)
        assert len(index) == 0
        assert index.occupied_cell_count == 0
        assert index.voxel_search((0.0, 0.0, 0.0)) == []
        assert index.radius_search((0.0, 0.0, 0.0), 10.0) == []
        assert index.voxel_hits(_points((0, 0, 0), (1, 1, 1))).tolist() == [0, 0]
        assert index.radius_hits(_points((0, 0, 0)), 10.0).tolist() == [0]

    @pytest.mark.parametrize("resolution", [0.0, -1.0])
    def test_invalid_resolution(self, resolution):
        with pytest.raises(ValueError, match="resolution"):
            ObstacleIndex(_points((0, 0, 0)), resolution)

    def test_cells_are_origin_aligned(self):
        index = ObstacleIndex(_points((0.2, 0.2, 0.2), (0.7, 0.1, 0.1), (1.2, 0.2, 0.2)), 1.0)
        assert index.occupied_cell_count == 2
        assert sorted(index.voxel_search((0.9, 0.9, 0.9))) == [0, 1]
        assert index.voxel_search((1.5, 0.5, 0.5)) == [2]

    def test_negative_cells(self):
        index = ObstacleIndex(_points((-0.1, 0.5, 0.5)), 1.0)
        assert index.voxel_search((-0.9, 0.1, 0.9)) == [0]
        assert index.voxel_search((0.1, 0.5, 0.5)) == []

    def test_cell_lower_bound_inclusive(self):
        index = ObstacleIndex(_points((1.0, 0.0, 0.0)), 1.0)
        assert index.voxel_search((1.5, 0.5, 0.5)) == [0]
        assert index.voxel_search((0.5, 0.5, 0.5)) == []

    def test_radius_nearest_first(self):
        index = ObstacleIndex(_points((3.0, 0, 0), (1.0, 0, 0), (2.0, 0, 0), (9.0, 0, 0)), 1.0)
        assert index.radius_search((0.0, 0.0, 0.0), 3.5) == [1, 2, 0]

    def test_radius_inclusive(self):
        index = ObstacleIndex(_points((1.0, 0.0, 0.0)), 1.0)
        assert index.radius_search((0.0, 0.0, 0.0), 1.0) == [0]
        assert index.radius_search((0.0, 0.0, 0.0), 0.99) == []

    def test_hit_counts(self):
        index = ObstacleIndex(_points((0.5, 0.5, 0.5), (0.6, 0.5, 0.5), (5.5, 5.5, 5.5)), 1.0)
        queries = _points((0.1, 0.1, 0.1), (5.0, 5.0, 5.0), (3.0, 3.0, 3.0))
        assert index.voxel_hits(queries).tolist() == [2, 1, 0]
        assert index.radius_hits(queries, 0.9).tolist() == [2, 1, 0]

    def test_hits_for_no_queries(self):
        index = ObstacleIndex(_points((0.5, 0.5, 0.5)), 1.0)
        assert index.voxel_hits(np.zeros((0, 3))).tolist() == []
        assert index.radius_hits(np.zeros((0, 3)), 1.0).tolist() == []

    def test_points_shape(self):
        index = ObstacleIndex([[1, 2, 3]], 0.5)
        assert index.points.shape == (1, 3)
        assert index.points.dtype == np.float64
