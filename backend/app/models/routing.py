from pydantic import BaseModel, Field

from app.models.clearance import ClearanceRule, Violation
from app.models.geometry import MeterVector, Point
from app.models.network import (
    Building,
    Mainline,
    ProjectSnapshot,
    Route,
    SystemType,
    TargetKind,
    TransformerPad,
)


class Attachment(BaseModel):
    kind: TargetKind
    point: Point
    outward_normal: MeterVector
    tangent: MeterVector
    distance_m: float
    building: Building | None = None
    mainline: Mainline | None = None
    pad: TransformerPad | None = None


class AttachmentRequest(BaseModel):
    cursor: Point
    target_kind: TargetKind = TargetKind.building
    system_type: SystemType
    snapshot: ProjectSnapshot = Field(default_factory=ProjectSnapshot)
    max_snap_m: float | None = Field(default=None, ge=0)
    reference: Point | None = None


class AttachmentResponse(BaseModel):
    attachment: Attachment | None = None
    message: str | None = None


class RouteRequest(BaseModel):
    start: Point
    end: Point
    system_type: SystemType
    attachment: Attachment | None = None


class RouteResponse(BaseModel):
    system_type: SystemType
    path: list[Point]
    dual_paths: tuple[list[Point], list[Point]] | None = None


class DualLineRequest(BaseModel):
    path: list[Point] = Field(min_length=2)
    system_type: SystemType


class DualLineResponse(BaseModel):
    system_type: SystemType
    paths: tuple[list[Point], list[Point]] | None = None


class ClearanceRequest(BaseModel):
    path: list[Point] = Field(min_length=2)
    system_type: SystemType
    existing_routes: list[Route] = Field(default_factory=list)
    rules: list[ClearanceRule] | None = None  # replaces the default matrix when given


class ClearanceResponse(BaseModel):
    valid: bool
    violations: list[Violation] = Field(default_factory=list)


class PlanRequest(BaseModel):
    system_type: SystemType
    start: Point
    end: Point | None = None
    target_kind: TargetKind | None = None
    snapshot: ProjectSnapshot = Field(default_factory=ProjectSnapshot)
    rules: list[ClearanceRule] | None = None


class RoutePlan(BaseModel):
    system_type: SystemType
    attachment: Attachment | None = None
    start: Point
    end: Point
    path: list[Point]
    dual_paths: tuple[list[Point], list[Point]] | None = None
    violations: list[Violation] = Field(default_factory=list)
    valid: bool = True
    route: Route
    message: str | None = None
