"""
Shared test fixtures for the reachability filter test suite.

Provides factories for reachability maps and planning scenes so tests can
build realistic bus payloads (binary octomap streams included) without a
running message bus.
"""

import sys
from pathlib import Path

import pyoctomap
import pytest

# Ensure project root on path
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from shared.messages.geometry import Header, Pose
from shared.messages.planning_scene import (
    OctomapMessage,
    OctomapWithPose,
    PlanningSceneMessage,
    PlanningSceneWorld,
)
from shared.messages.workspace import WorkSpaceMessage, WsSphere
from src.octomap.codec import split_bt, split_ot


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_reach_map():
    """Factory: reachability map from a list of [x, y, z] sphere centers."""

    def _make(points, resolution=1.0, frame_id="base_link"):
        spheres = [
            WsSphere(
                point=[float(c) for c in p],
                ri=float(i),
                poses=[Pose(position=[float(c) for c in p])],
            )
            for i, p in enumerate(points)
        ]
        return WorkSpaceMessage(
            header=Header(seq=7, stamp=1700000000.0, frame_id=frame_id),
            resolution=resolution,
            spheres=spheres,
        )

    return _make


@pytest.fixture
def make_octree():
    """Factory: pyoctomap tree with one sensor update per point (occupied wins)."""

    def _make(occupied, resolution=1.0, free=()):
        tree = pyoctomap.OcTree(resolution)
        for p in free:
            tree.updateNode([float(c) for c in p], False)
        for p in occupied:
            tree.updateNode([float(c) for c in p], True)
        return tree

    return _make


@pytest.fixture
def make_octomap(make_octree):
    """Factory: octomap message for the voxels containing ``occupied``
    points (and ``free`` points as free space)."""

    def _make(occupied, resolution=1.0, free=(), binary=True):
        tree = make_octree(occupied, resolution, free)
        if binary:
            stream, _, _ = split_bt(tree.writeBinary())
        else:
            stream, _, _ = split_ot(tree.write())
        return OctomapMessage.from_bytes(stream, resolution, binary=binary, frame_id="world")

    return _make


@pytest.fixture
def make_scene(make_octomap):
    """Factory: planning scene wrapping :func:`make_octomap`."""

    def _make(occupied, resolution=1.0, free=()):
        octomap = make_octomap(occupied, resolution, free)
        return PlanningSceneMessage(
            name="test_scene",
            world=PlanningSceneWorld(octomap=OctomapWithPose(octomap=octomap)),
        )

    return _make
