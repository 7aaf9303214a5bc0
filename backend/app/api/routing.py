import logging

from fastapi import APIRouter, HTTPException

from app.models.clearance import DEFAULT_CLEARANCE_RULES, ClearanceRule
from app.models.profile import SystemProfile
from app.models.routing import (
    AttachmentRequest,
    AttachmentResponse,
    ClearanceRequest,
    ClearanceResponse,
    DualLineRequest,
    DualLineResponse,
    PlanRequest,
    RoutePlan,
    RouteRequest,
    RouteResponse,
)
from app.services import kernel, planner, rules_client
from app.services.clearance import matrix_from_rules

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routing", tags=["routing"])


@router.get("/systems", response_model=list[SystemProfile])
async def list_systems():
    """Per-system routing profiles (rules service overlaid on built-in defaults)."""
    profiles = await rules_client.get_profiles()
    return list(profiles.values())


@router.get("/clearance-rules", response_model=list[ClearanceRule])
async def clearance_rules():
    """Default regulatory minimum distances between system types."""
    return list(DEFAULT_CLEARANCE_RULES)


@router.post("/attachment", response_model=AttachmentResponse)
async def attachment(body: AttachmentRequest):
    """Snap a cursor onto the nearest wall, trunk line or pad edge."""
    config = await rules_client.get_kernel_config()
    found = kernel.resolve_attachment(
        body.cursor,
        body.target_kind,
        body.system_type,
        body.snapshot,
        config,
        max_snap_m=body.max_snap_m,
        reference=body.reference,
    )
    if found is None:
        return AttachmentResponse(message=f"No {body.target_kind.value} within snap radius")
    return AttachmentResponse(attachment=found)


@router.post("/route", response_model=RouteResponse)
async def route(body: RouteRequest):
    """Build a rectilinear path, plus its dual-line pair where the system has one."""
    config = await rules_client.get_kernel_config()
    path = kernel.build_route(body.start, body.end, body.system_type, body.attachment, config)
    return RouteResponse(
        system_type=body.system_type,
        path=path,
        dual_paths=kernel.offset_for_dual_line(path, body.system_type, config),
    )


@router.post("/dual-line", response_model=DualLineResponse)
async def dual_line(body: DualLineRequest):
    config = await rules_client.get_kernel_config()
    return DualLineResponse(
        system_type=body.system_type,
        paths=kernel.offset_for_dual_line(body.path, body.system_type, config),
    )


@router.post("/clearance", response_model=ClearanceResponse)
async def clearance(body: ClearanceRequest):
    """Check a candidate path against existing routes of other systems."""
    config = await rules_client.get_kernel_config()
    if body.rules is not None:
        config = config.model_copy(update={"clearance": matrix_from_rules(body.rules)})
    violations = kernel.check_clearance(body.path, body.system_type, body.existing_routes, config)
    if violations:
        logger.info("clearance system=%s violations=%d", body.system_type.value, len(violations))
    return ClearanceResponse(valid=not violations, violations=violations)


@router.post("/plan", response_model=RoutePlan)
async def plan(body: PlanRequest):
    """Attach, synthesize, offset and check a route in one call."""
    config = await rules_client.get_kernel_config()
    try:
        return planner.plan_route(body, config=config)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
