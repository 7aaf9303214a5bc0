"""Rectilinear path construction from an attachment to a destination.

All construction happens in meters relative to the start latitude and is
converted back to degrees at the end, so every turn is a right angle in the
local frame. Degenerate input never raises: it degrades to a plain elbow.
"""

import logging

from app.models.geometry import MeterVector, Point
from app.services.geometry import (
    DegenerateGeometry,
    add,
    dot,
    is_finite_point,
    require_unit,
    rotate90,
    scale,
)
from app.services.metric_frame import displacement, translate

logger = logging.getLogger(__name__)

DEFAULT_AVOIDANCE_MARGIN_M = 5.0


def elbow_path(start: Point, end: Point) -> list[Point]:
    """Two-segment fallback: run along the parallel, then along the meridian."""
    return [start, Point(lat=start.lat, lng=end.lng), end]


def _wall_frame(outward_normal: MeterVector, tangent: MeterVector) -> tuple[MeterVector, MeterVector]:
    """Unit tangent and the perpendicular to it that agrees with ``outward_normal``."""
    t = require_unit(tangent)
    hint = require_unit(outward_normal)
    n = rotate90(t)
    if dot(n, hint) < 0:
        n = scale(n, -1.0)
    return t, n


def _to_points(start: Point, offsets: list[MeterVector], end: Point) -> list[Point]:
    points = [start]
    for offset in offsets:
        p = translate(start, offset, start.lat)
        if not is_finite_point(p):
            raise DegenerateGeometry(f"Non-finite waypoint {p!r}")
        points.append(p)
    points.append(end)
    return points


def synthesize_path(
    start: Point,
    outward_normal: MeterVector,
    tangent: MeterVector,
    end: Point,
    standoff_m: float,
) -> list[Point]:
    """Stub out from the wall, run parallel to it, then turn into the destination.

    Returns ``[start, p1, p2, end]`` where ``start -> p1`` is the standoff
    along the wall normal, ``p1 -> p2`` follows the wall tangent and
    ``p2 -> end`` is parallel to the normal again.
    """
    try:
        if not (is_finite_point(start) and is_finite_point(end)):
            raise DegenerateGeometry("Non-finite route endpoint")
        t, n = _wall_frame(outward_normal, tangent)

        p1 = scale(n, standoff_m)
        to_end = displacement(start, end, start.lat)
        tangential = dot(to_end, t) - dot(p1, t)
        p2 = add(p1, scale(t, tangential))
        return _to_points(start, [p1, p2], end)
    except DegenerateGeometry as exc:
        logger.debug("Falling back to elbow path: %s", exc)
        return elbow_path(start, end)


def synthesize_avoiding_building(
    start: Point,
    outward_normal: MeterVector,
    tangent: MeterVector,
    end: Point,
    standoff_m: float,
    polygon: list[Point] | None,
    margin_m: float = DEFAULT_AVOIDANCE_MARGIN_M,
) -> list[Point]:
    """Detour around the source building's bounding envelope.

    Used when start and end both sit on the same building's perimeter. The
    envelope is the footprint's box in the wall's (tangent, normal) frame.
    The path stubs out past the box's outward extent, runs along the wall
    past the box side facing the destination, runs along the normal to the
    destination's level and finishes along the tangent:
    ``[start, p1, p2, p3, end]``.

    Only the source building is considered; other buildings may still be
    crossed.
    """
    if not polygon:
        return synthesize_path(start, outward_normal, tangent, end, standoff_m)

    try:
        if not (is_finite_point(start) and is_finite_point(end)):
            raise DegenerateGeometry("Non-finite route endpoint")
        t, n = _wall_frame(outward_normal, tangent)

        local = [displacement(start, v, start.lat) for v in polygon]
        along = [dot(v, t) for v in local]
        across = [dot(v, n) for v in local]
        to_end = displacement(start, end, start.lat)
        end_t, end_n = dot(to_end, t), dot(to_end, n)

        out = max(0.0, max(across)) + standoff_m
        t_min, t_max = min(along), max(along)
        side = t_max + margin_m if end_t >= (t_min + t_max) / 2 else t_min - margin_m

        p1 = scale(n, out)
        p2 = add(p1, scale(t, side))
        p3 = add(scale(t, side), scale(n, end_n))
        return _to_points(start, [p1, p2, p3], end)
    except DegenerateGeometry as exc:
        logger.debug("Building detour degenerate, using direct path: %s", exc)
        return synthesize_path(start, outward_normal, tangent, end, standoff_m)
