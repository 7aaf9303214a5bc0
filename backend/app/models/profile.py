from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.clearance import DEFAULT_CLEARANCE_MATRIX, ClearanceMatrix
from app.models.network import SystemType

DEFAULT_STANDOFF_M = 5.0


class SystemProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    system: SystemType
    label: str
    dual_line: bool = False
    spacing_m: float = Field(default=0.0, ge=0)
    standoff_m: float = Field(default=DEFAULT_STANDOFF_M, ge=0)
    min_turn_angle_deg: int = 90
    joins_main: bool = False  # branches default to the end of the system's main route
    targets_pad: bool = False  # destinations snap onto transformer pad edges


DEFAULT_PROFILES: Mapping[SystemType, SystemProfile] = MappingProxyType({
    SystemType.water: SystemProfile(
        system=SystemType.water, label="Water supply", dual_line=True, spacing_m=1.8,
    ),
    SystemType.sewerage: SystemProfile(
        system=SystemType.sewerage, label="Domestic sewerage", standoff_m=3.0, joins_main=True,
    ),
    SystemType.storm: SystemProfile(
        system=SystemType.storm, label="Storm drainage", joins_main=True,
    ),
    SystemType.heating: SystemProfile(
        system=SystemType.heating, label="Heating", dual_line=True, spacing_m=1.0,
    ),
    SystemType.power: SystemProfile(
        system=SystemType.power, label="Power", targets_pad=True,
    ),
    SystemType.telecom: SystemProfile(
        system=SystemType.telecom, label="Telecom", targets_pad=True,
    ),
})


class KernelConfig(BaseModel):
    """Immutable settings handed to every kernel operation."""

    model_config = ConfigDict(frozen=True)

    profiles: Mapping[SystemType, SystemProfile] = Field(default_factory=lambda: DEFAULT_PROFILES)
    snap_radius_m: float = Field(default=20.0, ge=0)
    avoidance_margin_m: float = Field(default=5.0, ge=0)
    perimeter_tolerance_m: float = Field(default=1.0, ge=0)
    clearance: ClearanceMatrix = DEFAULT_CLEARANCE_MATRIX

    @field_validator("profiles")
    @classmethod
    def _read_only_profiles(cls, v: Mapping[SystemType, SystemProfile]) -> Mapping[SystemType, SystemProfile]:
        return MappingProxyType(dict(v))

    def profile(self, system: SystemType) -> SystemProfile:
        return self.profiles.get(system) or DEFAULT_PROFILES[system]


DEFAULT_KERNEL_CONFIG = KernelConfig()
