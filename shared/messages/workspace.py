"""Pydantic models for reachability maps (workspace spheres)."""

from pydantic import BaseModel, Field

from shared.messages.geometry import Header, Pose


class WsSphere(BaseModel):
    """One reachability sample: a voxel center plus the poses reaching it.

    Unknown fields are kept as-is so samples pass through filtering
    unmodified.
    """

    point: list[float] = Field(
        min_length=3, max_length=3, description="[x, y, z] voxel center in meters"
    )
    ri: float = Field(default=0.0, description="Reachability index")
    poses: list[Pose] = Field(default_factory=list)

    class Config:
        extra = "allow"

    def xyz(self) -> tuple[float, float, float]:
        return (float(self.point[0]), float(self.point[1]), float(self.point[2]))


class WorkSpaceMessage(BaseModel):
    """A reachability map: header, resolution and ordered samples."""

    header: Header = Field(default_factory=Header)
    resolution: float = Field(gt=0.0, description="Voxel edge length the map was built at, in meters")
    spheres: list[WsSphere] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "header": {"seq": 0, "stamp": 1700000000.0, "frame_id": "base_link"},
                "resolution": 0.08,
                "spheres": [
                    {
                        "point": [0.4, 0.0, 0.56],
                        "ri": 42.5,
                        "poses": [{"position": [0.4, 0.0, 0.56], "orientation": [0.0, 0.0, 0.0, 1.0]}],
                    }
                ],
            }
        }

    def empty_like(self) -> "WorkSpaceMessage":
        """Same header and resolution, no samples."""
        return WorkSpaceMessage(header=self.header.model_copy(), resolution=self.resolution)
