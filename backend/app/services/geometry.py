import math
from typing import NamedTuple

from app.models.geometry import ZERO_VECTOR, MeterVector, Point
from app.services.metric_frame import displacement, translate

_EPS = 1e-12


class DegenerateGeometry(ValueError):
    """Zero-length vectors, coincident points or non-finite coordinates."""


class Projection(NamedTuple):
    point: Point
    distance_m: float
    tangent: MeterVector  # unit a->b, zero vector when a == b


def dot(u: MeterVector, v: MeterVector) -> float:
    return u.north * v.north + u.east * v.east


def cross(u: MeterVector, v: MeterVector) -> float:
    """z-component of u x v with east as x and north as y."""
    return u.east * v.north - u.north * v.east


def norm(v: MeterVector) -> float:
    return math.hypot(v.north, v.east)


def scale(v: MeterVector, k: float) -> MeterVector:
    return MeterVector(north=v.north * k, east=v.east * k)


def add(u: MeterVector, v: MeterVector) -> MeterVector:
    return MeterVector(north=u.north + v.north, east=u.east + v.east)


def sub(u: MeterVector, v: MeterVector) -> MeterVector:
    return MeterVector(north=u.north - v.north, east=u.east - v.east)


def normalize(v: MeterVector) -> MeterVector:
    length = norm(v)
    if not math.isfinite(length) or length < _EPS:
        return ZERO_VECTOR
    return MeterVector(north=v.north / length, east=v.east / length)


def require_unit(v: MeterVector) -> MeterVector:
    """Normalize ``v`` or raise :class:`DegenerateGeometry` if it has no direction."""
    unit = normalize(v)
    if unit == ZERO_VECTOR:
        raise DegenerateGeometry(f"Vector has no direction: {v!r}")
    return unit


def rotate90(v: MeterVector) -> MeterVector:
    """Rotate counter-clockwise by 90 degrees (east -> north)."""
    return MeterVector(north=v.east, east=-v.north)


def is_finite_point(p: Point) -> bool:
    return math.isfinite(p.lat) and math.isfinite(p.lng)


def is_finite_vector(v: MeterVector) -> bool:
    return math.isfinite(v.north) and math.isfinite(v.east)


def project_point_to_segment(p: Point, a: Point, b: Point) -> Projection:
    """Project ``p`` onto segment ``ab``, measuring in meters at the segment midpoint latitude."""
    ref_lat = (a.lat + b.lat) / 2
    ab = displacement(a, b, ref_lat)
    ap = displacement(a, p, ref_lat)

    len_sq = dot(ab, ab)
    if len_sq > _EPS:
        t = max(0.0, min(1.0, dot(ap, ab) / len_sq))
        tangent = normalize(ab)
    else:
        t = 0.0
        tangent = ZERO_VECTOR

    foot = scale(ab, t)
    return Projection(
        point=translate(a, foot, ref_lat),
        distance_m=norm(sub(ap, foot)),
        tangent=tangent,
    )


def _orientation(a: MeterVector, b: MeterVector, c: MeterVector) -> int:
    value = cross(sub(b, a), sub(c, a))
    if abs(value) < 1e-9:
        return 0
    return 1 if value > 0 else -1


def _within_box(a: MeterVector, b: MeterVector, c: MeterVector) -> bool:
    """c lies inside the axis-aligned box spanned by a and b."""
    return (
        min(a.north, b.north) - 1e-9 <= c.north <= max(a.north, b.north) + 1e-9
        and min(a.east, b.east) - 1e-9 <= c.east <= max(a.east, b.east) + 1e-9
    )


def segments_intersect(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    ref_lat = (a1.lat + a2.lat + b1.lat + b2.lat) / 4
    p1 = ZERO_VECTOR
    p2 = displacement(a1, a2, ref_lat)
    q1 = displacement(a1, b1, ref_lat)
    q2 = displacement(a1, b2, ref_lat)

    o1 = _orientation(p1, p2, q1)
    o2 = _orientation(p1, p2, q2)
    o3 = _orientation(q1, q2, p1)
    o4 = _orientation(q1, q2, p2)

    if o1 != o2 and o3 != o4 and 0 not in (o1, o2, o3, o4):
        return True

    # Collinear or touching cases
    if o1 == 0 and _within_box(p1, p2, q1):
        return True
    if o2 == 0 and _within_box(p1, p2, q2):
        return True
    if o3 == 0 and _within_box(q1, q2, p1):
        return True
    if o4 == 0 and _within_box(q1, q2, p2):
        return True
    return False


def segment_to_segment_distance(a1: Point, a2: Point, b1: Point, b2: Point) -> float:
    """Minimum distance in meters between segments ``a1a2`` and ``b1b2``.

    Crossing or touching segments are 0 apart. Otherwise the minimum is
    attained at an endpoint of one of the segments, so the four
    endpoint-to-segment distances cover it. A non-finite endpoint makes the
    segments infinitely far apart.
    """
    if not all(is_finite_point(p) for p in (a1, a2, b1, b2)):
        return math.inf
    if segments_intersect(a1, a2, b1, b2):
        return 0.0
    return min(
        project_point_to_segment(a1, b1, b2).distance_m,
        project_point_to_segment(a2, b1, b2).distance_m,
        project_point_to_segment(b1, a1, a2).distance_m,
        project_point_to_segment(b2, a1, a2).distance_m,
    )


def polygon_centroid(polygon: list[Point]) -> Point:
    """Vertex mean; close enough for convex, near-rectangular footprints."""
    if not polygon:
        raise DegenerateGeometry("Centroid of an empty polygon")
    n = len(polygon)
    return Point(
        lat=sum(p.lat for p in polygon) / n,
        lng=sum(p.lng for p in polygon) / n,
    )


def signed_area_m2(polygon: list[Point]) -> float:
    """Shoelace area in the local metric frame; positive for counter-clockwise."""
    if len(polygon) < 3:
        return 0.0
    ref_lat = sum(p.lat for p in polygon) / len(polygon)
    origin = polygon[0]
    local = [displacement(origin, p, ref_lat) for p in polygon]
    area = 0.0
    for i, u in enumerate(local):
        v = local[(i + 1) % len(local)]
        area += cross(u, v)
    return area / 2
