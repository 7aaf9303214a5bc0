from enum import Enum

from pydantic import BaseModel, Field

from app.models.geometry import Point


class SystemType(str, Enum):
    water = "water"
    sewerage = "sewerage"
    storm = "storm"
    heating = "heating"
    power = "power"
    telecom = "telecom"


class TargetKind(str, Enum):
    building = "building"
    mainline = "mainline"
    pad = "pad"


class Building(BaseModel):
    id: int
    name: str | None = None
    lat: float
    lng: float
    width_m: float | None = None  # east-west extent of the derived rectangle
    height_m: float | None = None  # north-south extent of the derived rectangle
    footprint: list[Point] | None = Field(default=None, min_length=3)

    @property
    def anchor(self) -> Point:
        return Point(lat=self.lat, lng=self.lng)


class Mainline(BaseModel):
    id: int
    system_type: SystemType
    start: Point
    end: Point
    name: str | None = None


class TransformerPad(BaseModel):
    id: int
    center: Point
    size_m: float = Field(default=6.0, gt=0)
    rotation_deg: float = 0.0
    name: str | None = None


class Route(BaseModel):
    id: int | None = None
    project_id: int | None = None
    system_type: SystemType
    path: list[Point] = Field(min_length=2)
    building_id: int | None = None
    mainline_id: int | None = None
    pad_id: int | None = None
    dual_line: bool = False
    spacing_m: float = 0.0
    min_turn_angle_deg: int = 90


class ProjectSnapshot(BaseModel):
    """Read-only view of one project's entities, as handed to the kernel."""

    buildings: list[Building] = Field(default_factory=list)
    mainlines: list[Mainline] = Field(default_factory=list)
    pads: list[TransformerPad] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)
