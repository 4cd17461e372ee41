"""Pydantic message schemas for inter-service communication."""

from shared.messages.geometry import Header, Pose
from shared.messages.health import ServiceHealthMessage
from shared.messages.planning_scene import (
    OctomapMessage,
    OctomapWithPose,
    PlanningSceneMessage,
    PlanningSceneWorld,
)
from shared.messages.workspace import WorkSpaceMessage, WsSphere
