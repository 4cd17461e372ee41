"""Pydantic models for headers and poses shared by map messages."""

from pydantic import BaseModel, Field


class Header(BaseModel):
    """Stamp and coordinate frame attached to map payloads."""

    seq: int = Field(default=0, description="Sequence number set by the producer")
    stamp: float = Field(default=0.0, description="Unix timestamp")
    frame_id: str = Field(default="", description="Coordinate frame of the payload")


class Pose(BaseModel):
    """Position and orientation (quaternion x, y, z, w)."""

    position: list[float] = Field(default=[0.0, 0.0, 0.0], description="[x, y, z] in meters")
    orientation: list[float] = Field(default=[0.0, 0.0, 0.0, 1.0], description="[x, y, z, w]")
