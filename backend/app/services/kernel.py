"""Public entry points of the routing kernel.

Pure and synchronous: every call takes its inputs and an immutable
:class:`KernelConfig` and returns fresh values. Nothing here raises on
degenerate geometry.
"""

import logging
import math

from app.models.clearance import Violation
from app.models.geometry import Point
from app.models.network import ProjectSnapshot, Route, SystemType, TargetKind
from app.models.profile import DEFAULT_KERNEL_CONFIG, KernelConfig
from app.models.routing import Attachment
from app.services import clearance
from app.services.attachment import (
    building_polygon,
    resolve_building_attachment,
    resolve_mainline_attachment,
    resolve_pad_attachment,
)
from app.services.geometry import project_point_to_segment
from app.services.offset import offset_path
from app.services.path_synth import elbow_path, synthesize_avoiding_building, synthesize_path

logger = logging.getLogger(__name__)


def resolve_attachment(
    cursor: Point,
    target_kind: TargetKind,
    system_type: SystemType,
    snapshot: ProjectSnapshot,
    config: KernelConfig = DEFAULT_KERNEL_CONFIG,
    max_snap_m: float | None = None,
    reference: Point | None = None,
) -> Attachment | None:
    radius = config.snap_radius_m if max_snap_m is None else max_snap_m
    if target_kind == TargetKind.building:
        return resolve_building_attachment(cursor, snapshot.buildings, radius)
    if target_kind == TargetKind.mainline:
        return resolve_mainline_attachment(cursor, snapshot.mainlines, system_type, radius)
    return resolve_pad_attachment(cursor, snapshot.pads, radius, reference)


def distance_to_perimeter(point: Point, polygon: list[Point]) -> float:
    if len(polygon) < 2:
        return math.inf
    return min(
        project_point_to_segment(point, a, polygon[(i + 1) % len(polygon)]).distance_m
        for i, a in enumerate(polygon)
    )


def build_route(
    start: Point,
    end: Point,
    system_type: SystemType,
    attachment: Attachment | None = None,
    config: KernelConfig = DEFAULT_KERNEL_CONFIG,
) -> list[Point]:
    """Rectilinear path from ``start`` (or the attachment point) to ``end``.

    Without an attachment the route is a plain elbow. With a building
    attachment whose building also carries ``end`` on its perimeter, the
    route detours around the building instead of cutting through it.
    """
    if attachment is None:
        return elbow_path(start, end)

    profile = config.profile(system_type)
    origin = attachment.point

    if attachment.kind == TargetKind.building and attachment.building is not None:
        polygon = building_polygon(attachment.building)
        if distance_to_perimeter(end, polygon) <= config.perimeter_tolerance_m:
            logger.debug("Destination on source building perimeter, routing around building %s",
                         attachment.building.id)
            return synthesize_avoiding_building(
                origin,
                attachment.outward_normal,
                attachment.tangent,
                end,
                profile.standoff_m,
                polygon,
                config.avoidance_margin_m,
            )

    return synthesize_path(origin, attachment.outward_normal, attachment.tangent, end, profile.standoff_m)


def offset_for_dual_line(
    path: list[Point],
    system_type: SystemType,
    config: KernelConfig = DEFAULT_KERNEL_CONFIG,
) -> tuple[list[Point], list[Point]] | None:
    profile = config.profile(system_type)
    if not profile.dual_line or profile.spacing_m <= 0:
        return None
    half = profile.spacing_m / 2
    return offset_path(path, half), offset_path(path, -half)


def check_clearance(
    candidate_path: list[Point],
    system_type: SystemType,
    existing_routes: list[Route],
    config: KernelConfig = DEFAULT_KERNEL_CONFIG,
) -> list[Violation]:
    return clearance.validate(system_type, candidate_path, existing_routes, config.clearance)
