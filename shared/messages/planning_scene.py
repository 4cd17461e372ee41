"""Pydantic models for planning scene / octomap messages."""

import base64
from typing import Optional

from pydantic import BaseModel, Field

from shared.messages.geometry import Header, Pose


class OctomapMessage(BaseModel):
    """A serialized OctoMap occupancy tree.

    ``data`` carries the tree stream base64-encoded so the message survives
    the JSON bus unchanged. An empty ``data`` means "no update".
    """

    header: Header = Field(default_factory=Header)
    binary: bool = Field(default=True, description="True for the 2-bit binary stream, False for full log-odds")
    id: str = Field(default="OcTree", description="Tree type identifier")
    resolution: float = Field(default=0.05, description="Leaf voxel edge length in meters")
    data: str = Field(default="", description="Base64-encoded tree stream")

    def payload(self) -> bytes:
        """Return the raw tree stream."""
        if not self.data:
            return b""
        return base64.b64decode(self.data, validate=True)

    @classmethod
    def from_bytes(
        cls,
        stream: bytes,
        resolution: float,
        binary: bool = True,
        frame_id: str = "",
    ) -> "OctomapMessage":
        return cls(
            header=Header(frame_id=frame_id),
            binary=binary,
            resolution=resolution,
            data=base64.b64encode(stream).decode("ascii"),
        )


class OctomapWithPose(BaseModel):
    """Octomap placed in the world by an origin pose."""

    header: Header = Field(default_factory=Header)
    origin: Pose = Field(default_factory=Pose)
    octomap: OctomapMessage = Field(default_factory=OctomapMessage)


class PlanningSceneWorld(BaseModel):
    """World part of a planning scene; only the octomap is consumed here."""

    octomap: OctomapWithPose = Field(default_factory=OctomapWithPose)


class PlanningSceneMessage(BaseModel):
    """Monitored planning scene broadcast by the motion planning stack."""

    name: str = ""
    is_diff: bool = False
    world: PlanningSceneWorld = Field(default_factory=PlanningSceneWorld)
    timestamp: Optional[float] = None

    @property
    def octomap(self) -> OctomapMessage:
        return self.world.octomap.octomap

    def has_octomap(self) -> bool:
        return bool(self.world.octomap.octomap.data)
