from pydantic import BaseModel, ConfigDict


class Point(BaseModel):
    """Geographic position in degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class MeterVector(BaseModel):
    """Local (north, east) offset in meters relative to a reference latitude."""

    model_config = ConfigDict(frozen=True)

    north: float
    east: float


ZERO_VECTOR = MeterVector(north=0.0, east=0.0)
