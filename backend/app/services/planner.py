"""End-to-end route planning for one editing step.

Runs attachment, destination choice, synthesis, dual-line offsets and the
clearance check, and returns a draft :class:`Route` with the violations.
Nothing is persisted here. A caller that stores the draft must read the
project's routes and insert in one transaction. Even then, two concurrent
inserts under default isolation can both pass without a project-level lock.
That race is accepted and left to the persistence layer.
"""

import logging

from app.models.geometry import Point
from app.models.network import ProjectSnapshot, Route, SystemType, TargetKind
from app.models.profile import DEFAULT_KERNEL_CONFIG, KernelConfig
from app.models.routing import PlanRequest, RoutePlan
from app.services.attachment import resolve_pad_attachment
from app.services.clearance import matrix_from_rules
from app.services.kernel import build_route, check_clearance, offset_for_dual_line, resolve_attachment

logger = logging.getLogger(__name__)


def main_end_point(routes: list[Route], system_type: SystemType) -> Point | None:
    """Last vertex of the system's first stored route, where branches connect."""
    for route in routes:
        if route.system_type == system_type and route.path:
            return route.path[-1]
    return None


def plan_route(
    request: PlanRequest,
    snapshot: ProjectSnapshot | None = None,
    config: KernelConfig = DEFAULT_KERNEL_CONFIG,
) -> RoutePlan:
    """Plan a route for ``request``.

    Raises:
        ValueError: no destination was given and the system has no main
            route to join.
    """
    if snapshot is None:
        snapshot = request.snapshot
    if request.rules is not None:
        config = config.model_copy(update={"clearance": matrix_from_rules(request.rules)})
    profile = config.profile(request.system_type)

    kind = request.target_kind or TargetKind.building
    attachment = resolve_attachment(request.start, kind, request.system_type, snapshot, config)
    start = attachment.point if attachment is not None else request.start

    end = request.end
    message = None
    if end is None and profile.joins_main:
        end = main_end_point(snapshot.routes, request.system_type)
        if end is not None:
            message = "Branch joined to the end of the main route"
    if end is None:
        raise ValueError(f"No destination for {request.system_type.value} route")

    pad_edge = None
    if profile.targets_pad and snapshot.pads:
        pad_edge = resolve_pad_attachment(end, snapshot.pads, config.snap_radius_m, reference=start)
        if pad_edge is not None:
            end = pad_edge.point

    path = build_route(start, end, request.system_type, attachment, config)
    dual_paths = offset_for_dual_line(path, request.system_type, config)
    violations = check_clearance(path, request.system_type, snapshot.routes, config)

    logger.info(
        "Planned %s route: %d points, attached=%s, %d clearance violations",
        request.system_type.value,
        len(path),
        attachment.kind.value if attachment is not None else "none",
        len(violations),
    )

    route = Route(
        system_type=request.system_type,
        path=path,
        building_id=attachment.building.id if attachment is not None and attachment.building else None,
        mainline_id=attachment.mainline.id if attachment is not None and attachment.mainline else None,
        pad_id=pad_edge.pad.id if pad_edge is not None and pad_edge.pad else None,
        dual_line=profile.dual_line,
        spacing_m=profile.spacing_m,
        min_turn_angle_deg=profile.min_turn_angle_deg,
    )

    return RoutePlan(
        system_type=request.system_type,
        attachment=attachment,
        start=start,
        end=end,
        path=path,
        dual_paths=dual_paths,
        violations=violations,
        valid=not violations,
        route=route,
        message=message,
    )
