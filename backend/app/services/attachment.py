"""Snap a cursor onto the nearest wall, trunk line or transformer pad edge.

Every resolver returns ``None`` when nothing lies within the snap radius; the
caller then keeps the raw cursor point.
"""

import logging
import math

from app.models.geometry import MeterVector, Point
from app.models.network import Building, Mainline, SystemType, TargetKind, TransformerPad
from app.models.routing import Attachment
from app.services.geometry import (
    dot,
    is_finite_point,
    normalize,
    polygon_centroid,
    project_point_to_segment,
    rotate90,
    scale,
    signed_area_m2,
)
from app.services.metric_frame import displacement, to_degrees

logger = logging.getLogger(__name__)

DEFAULT_SNAP_RADIUS_M = 20.0
DEFAULT_BUILDING_SIZE_M = 20.0

# Distances are inclusive of the radius; this absorbs degree<->meter round-off
_SNAP_TOLERANCE_M = 1e-6
_TIE_TOLERANCE_M = 1e-3


def _within(distance: float, max_snap_m: float | None) -> bool:
    if not math.isfinite(distance):
        return False
    return max_snap_m is None or distance <= max_snap_m + _SNAP_TOLERANCE_M


def _rectangle(center: Point, width_m: float, height_m: float) -> list[Point]:
    d_lat, d_lng = to_degrees(MeterVector(north=height_m / 2, east=width_m / 2), center.lat)
    return [
        Point(lat=center.lat - d_lat, lng=center.lng - d_lng),
        Point(lat=center.lat - d_lat, lng=center.lng + d_lng),
        Point(lat=center.lat + d_lat, lng=center.lng + d_lng),
        Point(lat=center.lat + d_lat, lng=center.lng - d_lng),
    ]


def building_polygon(building: Building) -> list[Point]:
    """Explicit footprint or the rectangle derived from anchor and dimensions, counter-clockwise."""
    if building.footprint and len(building.footprint) >= 3:
        polygon = list(building.footprint)
    else:
        width = building.width_m if building.width_m and building.width_m > 0 else DEFAULT_BUILDING_SIZE_M
        height = building.height_m if building.height_m and building.height_m > 0 else DEFAULT_BUILDING_SIZE_M
        polygon = _rectangle(building.anchor, width, height)

    if signed_area_m2(polygon) < 0:
        polygon.reverse()
    return polygon


def pad_polygon(pad: TransformerPad) -> list[Point]:
    """Corners of the pad rotated counter-clockwise by ``rotation_deg`` around its center."""
    half = pad.size_m / 2
    theta = math.radians(pad.rotation_deg)
    cos_t, sin_t = math.cos(theta), math.sin(theta)

    corners: list[Point] = []
    for east, north in ((-half, -half), (half, -half), (half, half), (-half, half)):
        rotated = MeterVector(
            north=east * sin_t + north * cos_t,
            east=east * cos_t - north * sin_t,
        )
        d_lat, d_lng = to_degrees(rotated, pad.center.lat)
        corners.append(Point(lat=pad.center.lat + d_lat, lng=pad.center.lng + d_lng))
    return corners


def _outward(normal: MeterVector, centroid: Point, projection: Point) -> MeterVector:
    from_centroid = displacement(centroid, projection, projection.lat)
    return normal if dot(normal, from_centroid) >= 0 else scale(normal, -1.0)


def _polygon_edges(polygon: list[Point]):
    for i, start in enumerate(polygon):
        yield i, start, polygon[(i + 1) % len(polygon)]


def resolve_building_attachment(
    cursor: Point,
    buildings: list[Building],
    max_snap_m: float | None = DEFAULT_SNAP_RADIUS_M,
) -> Attachment | None:
    """Closest wall projection across all buildings, or None if out of range."""
    best: Attachment | None = None

    for building in buildings:
        polygon = building_polygon(building)
        centroid = polygon_centroid(polygon)

        for _, start, end in _polygon_edges(polygon):
            proj = project_point_to_segment(cursor, start, end)
            if not math.isfinite(proj.distance_m):
                continue
            if best is not None and proj.distance_m >= best.distance_m:
                continue
            best = Attachment(
                kind=TargetKind.building,
                point=proj.point,
                outward_normal=_outward(rotate90(proj.tangent), centroid, proj.point),
                tangent=proj.tangent,
                distance_m=proj.distance_m,
                building=building,
            )

    if best is None or not _within(best.distance_m, max_snap_m):
        if best is not None:
            logger.debug("Nearest wall is %.2f m away, beyond snap radius %s m", best.distance_m, max_snap_m)
        return None
    return best


def resolve_mainline_attachment(
    cursor: Point,
    mainlines: list[Mainline],
    system_type: SystemType,
    max_snap_m: float | None = DEFAULT_SNAP_RADIUS_M,
) -> Attachment | None:
    """Nearest point on a trunk line of the same system; the normal faces the cursor."""
    best: Attachment | None = None

    for mainline in mainlines:
        if mainline.system_type != system_type:
            continue
        proj = project_point_to_segment(cursor, mainline.start, mainline.end)
        if not math.isfinite(proj.distance_m):
            continue
        if best is not None and proj.distance_m >= best.distance_m:
            continue

        normal = rotate90(proj.tangent)
        to_cursor = displacement(proj.point, cursor, proj.point.lat)
        if dot(normal, to_cursor) < 0:
            normal = scale(normal, -1.0)

        best = Attachment(
            kind=TargetKind.mainline,
            point=proj.point,
            outward_normal=normal,
            tangent=proj.tangent,
            distance_m=proj.distance_m,
            mainline=mainline,
        )

    if best is None or not _within(best.distance_m, max_snap_m):
        return None
    return best


def resolve_pad_edge(
    cursor: Point,
    pad: TransformerPad,
    reference: Point | None = None,
) -> Attachment | None:
    """Nearest edge of the rotated pad.

    Edges equally close to the cursor (the cursor sits on a corner diagonal)
    are tie-broken by how well their outward normal faces ``reference``.
    A pad with a non-finite center or rotation has no edges.
    """
    if not (is_finite_point(pad.center) and math.isfinite(pad.rotation_deg)):
        return None
    polygon = pad_polygon(pad)
    facing = (
        normalize(displacement(pad.center, reference, pad.center.lat))
        if reference is not None
        else None
    )

    candidates: list[tuple[float, float, Attachment]] = []
    for _, start, end in _polygon_edges(polygon):
        proj = project_point_to_segment(cursor, start, end)
        if not math.isfinite(proj.distance_m):
            continue
        normal = _outward(rotate90(proj.tangent), pad.center, proj.point)
        alignment = dot(normal, facing) if facing is not None else 0.0
        candidates.append((
            proj.distance_m,
            alignment,
            Attachment(
                kind=TargetKind.pad,
                point=proj.point,
                outward_normal=normal,
                tangent=proj.tangent,
                distance_m=proj.distance_m,
                pad=pad,
            ),
        ))

    if not candidates:
        return None

    nearest = min(c[0] for c in candidates)
    tied = [c for c in candidates if c[0] <= nearest + _TIE_TOLERANCE_M]
    if facing is None:
        return min(tied, key=lambda c: c[0])[2]
    return max(tied, key=lambda c: c[1])[2]


def resolve_pad_attachment(
    cursor: Point,
    pads: list[TransformerPad],
    max_snap_m: float | None = DEFAULT_SNAP_RADIUS_M,
    reference: Point | None = None,
) -> Attachment | None:
    best: Attachment | None = None
    for pad in pads:
        found = resolve_pad_edge(cursor, pad, reference)
        if found is not None and (best is None or found.distance_m < best.distance_m):
            best = found

    if best is None or not _within(best.distance_m, max_snap_m):
        return None
    return best
