"""Topic name constants for the message bus.

All services should use these constants rather than hardcoded strings
to ensure consistency across the system.
"""


class Topics:
    """Message bus topic names."""

    # Planning scene with the collision octomap (published by the motion planner)
    PLANNING_SCENE = "move_group.monitored_planning_scene"

    # Precomputed reachability map (published once by the map creator)
    REACHABILITY_MAP = "reachability_map"

    # Filter output (published by the reachability filter every cycle)
    REACHABILITY_MAP_FILTERED = "reachability_map.filtered"
    REACHABILITY_MAP_COLLIDING = "reachability_map.colliding"
