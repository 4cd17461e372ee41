"""Tests for the obstacle point cloud decoder."""

import numpy as np

from src.map.obstacle_cloud import (
    create_obstacles_point_cloud,
    occupied_voxels,
    points_from_voxels,
    voxel_sample_points,
)
from src.octomap.codec import tree_from_message

UNIT_VOXEL = ((0.5, 0.5, 0.5), 1.0)


class TestVoxelSamplePoints:
    def test_center_and_corners(self):
        points = voxel_sample_points(UNIT_VOXEL)
        assert len(points) == 9
        assert points[0] == (0.5, 0.5, 0.5)
        assert set(points[1:]) == {
            (x, y, z) for x in (0.0, 1.0) for y in (0.0, 1.0) for z in (0.0, 1.0)
        }

    def test_face_samples(self):
        points = voxel_sample_points(UNIT_VOXEL, face_samples=True)
        assert len(points) == 27
        assert (0.5, 0.5, 1.0) in points
        assert (0.0, 0.5, 0.5) in points

    def test_corners_scale_with_voxel_size(self):
        points = voxel_sample_points(((2.0, 2.0, 2.0), 4.0))
        assert (0.0, 0.0, 0.0) in points
        assert (4.0, 4.0, 4.0) in points


class TestPointsFromVoxels:
    def test_single_voxel(self):
        cloud = points_from_voxels([UNIT_VOXEL])
        assert cloud.shape == (9, 3)
        assert cloud.dtype == np.float64

    def test_adjacent_voxels_share_corners(self):
        cloud = points_from_voxels([UNIT_VOXEL, ((1.5, 0.5, 0.5), 1.0)])
        # 2 centers + 12 distinct corners
        assert cloud.shape == (14, 3)

    def test_duplicate_voxel(self):
        assert points_from_voxels([UNIT_VOXEL, UNIT_VOXEL]).shape == (9, 3)

    def test_no_voxels(self):
        assert points_from_voxels([]).shape == (0, 3)

    def test_rows_sorted(self):
        cloud = points_from_voxels([((1.5, 0.5, 0.5), 1.0), UNIT_VOXEL])
        rows = [tuple(r) for r in cloud.tolist()]
        assert rows == sorted(rows)


class TestOccupiedVoxels:
    def test_free_leaves_skipped(self, make_octree):
        tree = make_octree([(0.5, 0.5, 0.5)], free=[(-0.5, 0.5, 0.5), (3.5, 0.5, 0.5)])
        assert list(occupied_voxels(tree)) == [UNIT_VOXEL]

    def test_empty_tree(self, make_octree):
        assert list(occupied_voxels(make_octree([]))) == []

    def test_pruned_leaf_has_larger_size(self, make_octree):
        # All 8 children of one parent occupied collapse into a 2 m leaf
        cells = [(x, y, z) for x in (0.5, 1.5) for y in (0.5, 1.5) for z in (0.5, 1.5)]
        voxels = list(occupied_voxels(make_octree(cells)))
        assert voxels == [((1.0, 1.0, 1.0), 2.0)]

    def test_pruned_leaf_cloud(self, make_octree):
        cells = [(x, y, z) for x in (0.5, 1.5) for y in (0.5, 1.5) for z in (0.5, 1.5)]
        cloud = create_obstacles_point_cloud(make_octree(cells))
        assert cloud.shape == (9, 3)
        assert cloud.min() == 0.0
        assert cloud.max() == 2.0


class TestCreateObstaclesPointCloud:
    def test_from_scene(self, make_scene):
        scene = make_scene([(0.5, 0.5, 0.5)], free=[(-0.5, 0.5, 0.5)])
        cloud = create_obstacles_point_cloud(tree_from_message(scene.octomap))
        assert cloud.shape == (9, 3)
        assert [0.5, 0.5, 0.5] in cloud.tolist()
        assert cloud.min() == 0.0
        assert cloud.max() == 1.0

    def test_face_samples_from_scene(self, make_scene):
        tree = tree_from_message(make_scene([(0.5, 0.5, 0.5)]).octomap)
        assert create_obstacles_point_cloud(tree, face_samples=True).shape == (27, 3)

    def test_free_space_only(self, make_scene):
        tree = tree_from_message(make_scene([], free=[(0.5, 0.5, 0.5)]).octomap)
        assert create_obstacles_point_cloud(tree).shape == (0, 3)
