"""Conversion between geographic degrees and a local planar metric frame.

The frame is an equirectangular approximation around one reference latitude:
a degree of latitude is a fixed 111,320 m and a degree of longitude shrinks
with ``cos(reference_lat)``. Good enough at city-block scale. Not meant for
continental distances or latitudes near the poles.
"""

import math

from app.models.geometry import MeterVector, Point

METERS_PER_DEG_LAT = 111320.0


def meters_per_deg_lng(reference_lat: float) -> float:
    """NaN for a non-finite reference latitude, so bad input propagates instead of raising."""
    if not math.isfinite(reference_lat):
        return math.nan
    return METERS_PER_DEG_LAT * math.cos(math.radians(reference_lat))


def to_meters(d_lat: float, d_lng: float, reference_lat: float) -> MeterVector:
    """Convert a (d_lat, d_lng) degree delta into a (north, east) offset."""
    return MeterVector(
        north=d_lat * METERS_PER_DEG_LAT,
        east=d_lng * meters_per_deg_lng(reference_lat),
    )


def to_degrees(vec: MeterVector, reference_lat: float) -> tuple[float, float]:
    """Inverse of :func:`to_meters`; returns ``(d_lat, d_lng)``."""
    return vec.north / METERS_PER_DEG_LAT, vec.east / meters_per_deg_lng(reference_lat)


def displacement(a: Point, b: Point, reference_lat: float) -> MeterVector:
    """Offset from ``a`` to ``b`` in meters."""
    return to_meters(b.lat - a.lat, b.lng - a.lng, reference_lat)


def translate(p: Point, vec: MeterVector, reference_lat: float) -> Point:
    d_lat, d_lng = to_degrees(vec, reference_lat)
    return Point(lat=p.lat + d_lat, lng=p.lng + d_lng)


def distance_m(a: Point, b: Point) -> float:
    """Planar distance between two points, referenced at their mean latitude."""
    v = displacement(a, b, (a.lat + b.lat) / 2)
    return math.hypot(v.north, v.east)
