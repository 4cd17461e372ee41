#!/usr/bin/env python3
"""
Publish filter inputs onto the message bus for manual end-to-end runs.

Sends a ``.bt`` octomap as a planning scene and/or a JSON reachability map
(``WorkSpaceMessage`` schema) to the topics the reachability filter
listens on.

Usage:
    python -m scripts.publish_inputs --scene data/table.bt --map data/reach_map.json
    python -m scripts.publish_inputs --scene data/table.bt --repeat 5 --interval 2
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from pydantic import ValidationError

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from shared.bus.publisher import SyncEventPublisher
from shared.bus.topics import Topics
from shared.messages.planning_scene import (
    OctomapMessage,
    OctomapWithPose,
    PlanningSceneMessage,
    PlanningSceneWorld,
)
from shared.messages.workspace import WorkSpaceMessage
from shared.utils.logging_config import setup_logging
from src.octomap.codec import OctreeDecodeError, split_bt

logger = logging.getLogger("publish_inputs")


def load_scene(path: Path, frame_id: str) -> PlanningSceneMessage:
    stream, resolution, _ = split_bt(path.read_bytes())
    octomap = OctomapMessage.from_bytes(stream, resolution, binary=True, frame_id=frame_id)
    return PlanningSceneMessage(
        name=path.stem,
        world=PlanningSceneWorld(octomap=OctomapWithPose(octomap=octomap)),
        timestamp=time.time(),
    )


def load_map(path: Path) -> WorkSpaceMessage:
    with open(path) as f:
        return WorkSpaceMessage.model_validate(json.load(f))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Publish reachability filter inputs")
    parser.add_argument("--scene", type=Path, help="OctoMap .bt file to publish as planning scene")
    parser.add_argument("--map", type=Path, help="Reachability map JSON file")
    parser.add_argument("--frame-id", default="world", help="Frame id for the octomap header")
    parser.add_argument("--redis-url", default=None, help="Message bus URL")
    parser.add_argument("--repeat", type=int, default=1, help="Times to publish the scene")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between scene publishes")
    args = parser.parse_args(argv)

    setup_logging()
    if args.scene is None and args.map is None:
        parser.error("nothing to publish: pass --scene and/or --map")

    try:
        scene = load_scene(args.scene, args.frame_id) if args.scene else None
        reach_map = load_map(args.map) if args.map else None
    except (OSError, OctreeDecodeError, ValidationError, json.JSONDecodeError) as e:
        logger.error("Could not load inputs: %s", e)
        return 1

    pub = SyncEventPublisher(args.redis_url)
    if not pub.connect():
        return 1

    try:
        if reach_map is not None:
            pub.publish(Topics.REACHABILITY_MAP, reach_map)
            logger.info("Published reachability map with %d spheres", len(reach_map.spheres))
        if scene is not None:
            for i in range(args.repeat):
                if i:
                    time.sleep(args.interval)
                pub.publish(Topics.PLANNING_SCENE, scene)
                logger.info("Published planning scene %r (%d/%d)", scene.name, i + 1, args.repeat)
    finally:
        pub.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
