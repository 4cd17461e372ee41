"""
Fixed-rate loop that removes obstacle-invalidated spheres from a
reachability map.

Two inputs arrive asynchronously on the message bus:

* planning scenes carrying an octomap. This is a single-slot mailbox: a new
  scene overwrites an unprocessed one.
* the reachability map. It is cached on first receipt and later copies are
  ignored.

Every cycle the loop decodes a freshly received scene into obstacle points,
and once both a map and an obstacle set exist, rebuilds the obstacle index,
filters the map and publishes the colliding and filtered maps together::

    node = ReachabilityFilterNode(FilterType.VOXEL, publisher=pub)
    subscriber.subscribe(Topics.PLANNING_SCENE, node.handle_planning_scene)
    subscriber.subscribe(Topics.REACHABILITY_MAP, node.handle_reachability_map)
    node.start()
    # ... later ...
    node.stop()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
from pydantic import ValidationError

from shared.bus.topics import Topics
from shared.messages.planning_scene import OctomapMessage, PlanningSceneMessage
from shared.messages.workspace import WorkSpaceMessage
from src.map.obstacle_cloud import create_obstacles_point_cloud
from src.map.reachability_filter import FilterResult, FilterType, filter_reachability_map
from src.map.spatial_index import ObstacleIndex
from src.octomap.codec import OctreeDecodeError, tree_from_message

logger = logging.getLogger(__name__)

DEFAULT_SPIN_RATE_HZ = 1.0


@dataclass
class FilterState:
    """Control state of the filter loop.

    ``scene_received`` is transient: set by the scene callback and cleared
    by the cycle that consumes it. ``map_received`` is sticky.
    """

    scene_received: bool = False
    map_received: bool = False
    octomap: Optional[OctomapMessage] = None
    reachability_map: Optional[WorkSpaceMessage] = None
    obstacle_points: Optional[np.ndarray] = None

    # Diagnostics
    cycle_count: int = 0
    publish_count: int = 0
    decode_failures: int = 0
    last_result: Optional[FilterResult] = None

    @property
    def obstacles_ready(self) -> bool:
        return self.obstacle_points is not None

    def release(self) -> None:
        self.scene_received = False
        self.map_received = False
        self.octomap = None
        self.reachability_map = None
        self.obstacle_points = None


class ReachabilityFilterNode:
    """Removes colliding spheres from the reachability map at a fixed rate."""

    def __init__(
        self,
        filter_type: FilterType = FilterType.CIRCUMSCRIBED_SPHERE,
        publisher: Any = None,
        rate_hz: float = DEFAULT_SPIN_RATE_HZ,
        on_map_cached: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            filter_type: Collision policy, fixed for the node's lifetime.
            publisher: Object with ``publish(topic, message) -> bool``. If
                None, results are computed but not published.
            rate_hz: Loop frequency in Hz.
            on_map_cached: Called once after the first reachability map is
                cached, e.g. to unsubscribe from the map topic.
        """
        if not rate_hz > 0.0:
            raise ValueError(f"rate_hz must be positive, got {rate_hz!r}")
        self.filter_type = filter_type
        self.publisher = publisher
        self.rate_hz = rate_hz
        self.dt = 1.0 / rate_hz
        self.on_map_cached = on_map_cached

        self.state = FilterState()
        self._lock = threading.Lock()
        self._closed = False

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Inbound (bus delivery threads)
    # ------------------------------------------------------------------

    def on_planning_scene(self, msg: PlanningSceneMessage) -> None:
        """Store the scene's octomap for the next cycle."""
        if not msg.has_octomap():
            logger.debug("Planning scene without octomap data, ignoring")
            return
        with self._lock:
            if self._closed:
                return
            self.state.octomap = msg.octomap
            self.state.scene_received = True
        logger.info("Planning scene received")

    def on_reachability_map(self, msg: WorkSpaceMessage) -> None:
        """Cache the first reachability map; later ones are ignored."""
        with self._lock:
            if self._closed or self.state.map_received:
                return
            self.state.reachability_map = msg
            self.state.map_received = True
        logger.info(
            "Reachability Map Received! Number of reachability spheres: %d",
            len(msg.spheres),
        )
        if self.on_map_cached:
            self.on_map_cached()

    def handle_planning_scene(self, topic: str, data: dict) -> None:
        """Bus handler for planning scene JSON."""
        try:
            msg = PlanningSceneMessage.model_validate(data)
        except ValidationError as e:
            logger.warning("Dropping invalid planning scene on %s: %s", topic, e)
            return
        self.on_planning_scene(msg)

    def handle_reachability_map(self, topic: str, data: dict) -> None:
        """Bus handler for reachability map JSON."""
        try:
            msg = WorkSpaceMessage.model_validate(data)
        except ValidationError as e:
            logger.warning("Dropping invalid reachability map on %s: %s", topic, e)
            return
        self.on_reachability_map(msg)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def step(self) -> Optional[FilterResult]:
        """Run one cycle. Returns the published result, if any."""
        with self._lock:
            scene_received = self.state.scene_received
            octomap = self.state.octomap
            self.state.scene_received = False
            map_received = self.state.map_received
            reachability_map = self.state.reachability_map
            self.state.cycle_count += 1

        if scene_received:
            logger.info("Received new scene")
            self._update_obstacles(octomap)
        elif not map_received:
            logger.warning("Awaiting reachability map")

        obstacle_points = self.state.obstacle_points
        if not map_received or obstacle_points is None:
            return None

        t_start = time.monotonic()
        index = ObstacleIndex(obstacle_points, reachability_map.resolution)
        result = filter_reachability_map(reachability_map, index, self.filter_type)
        result.elapsed_ms = (time.monotonic() - t_start) * 1000.0
        logger.info("Time required to process map: %.0fms", result.elapsed_ms)

        self._publish(result)
        with self._lock:
            self.state.last_result = result
        return result

    def _update_obstacles(self, octomap: OctomapMessage) -> None:
        try:
            tree = tree_from_message(octomap)
        except OctreeDecodeError as e:
            with self._lock:
                self.state.decode_failures += 1
            logger.warning("Could not decode octomap, keeping previous obstacles: %s", e)
            return
        points = create_obstacles_point_cloud(tree)
        with self._lock:
            self.state.obstacle_points = points
        logger.info("Size of obstacles cloud: %d", len(points))

    def _publish(self, result: FilterResult) -> None:
        if self.publisher is None:
            return
        if not self.publisher.publish(Topics.REACHABILITY_MAP_COLLIDING, result.colliding):
            logger.warning("Could not publish colliding map, skipping filtered map this cycle")
            return
        if not self.publisher.publish(Topics.REACHABILITY_MAP_FILTERED, result.filtered):
            logger.warning("Could not publish filtered map")
            return
        with self._lock:
            self.state.publish_count += 1

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the loop in a background thread."""
        if self._running:
            logger.warning("Reachability filter already running")
            return

        with self._lock:
            self._closed = False
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="ReachabilityFilterLoop", daemon=True
        )
        self._thread.start()
        logger.info(
            "Reachability filter started at %.2f Hz (%s)",
            self.rate_hz,
            self.filter_type.label,
        )

    def stop(self) -> None:
        """Stop at the next cycle boundary and release held state."""
        with self._lock:
            self._closed = True
        if self._running:
            self._running = False
            self._stop_event.set()
            if self._thread and self._thread.is_alive():
                self._thread.join(timeout=5.0)
            self._thread = None
            logger.info(
                "Reachability filter stopped after %d cycles", self.state.cycle_count
            )
        with self._lock:
            self.state.release()

    @property
    def is_running(self) -> bool:
        return self._running

    def status(self) -> dict:
        """Snapshot for the status endpoint."""
        with self._lock:
            s = self.state
            return {
                "filter_type": self.filter_type.value,
                "running": self._running,
                "rate_hz": self.rate_hz,
                "map_received": s.map_received,
                "obstacles_ready": s.obstacles_ready,
                "scene_pending": s.scene_received,
                "reachability_spheres": len(s.reachability_map.spheres) if s.reachability_map else 0,
                "obstacle_points": 0 if s.obstacle_points is None else len(s.obstacle_points),
                "cycles": s.cycle_count,
                "publishes": s.publish_count,
                "decode_failures": s.decode_failures,
                "last_result": s.last_result.summary() if s.last_result else None,
            }

    def _run(self) -> None:
        """Loop body, runs on the background thread."""
        next_time = time.monotonic()

        while not self._stop_event.is_set():
            try:
                self.step()
            except Exception as e:
                logger.error("Reachability filter cycle error: %s", e)

            next_time += self.dt
            sleep_time = next_time - time.monotonic()
            if sleep_time > 0:
                self._stop_event.wait(timeout=sleep_time)
            else:
                if -sleep_time > self.dt:
                    logger.warning(
                        "Reachability filter overrun: %.1fms behind",
                        -sleep_time * 1000,
                    )
                next_time = time.monotonic()
