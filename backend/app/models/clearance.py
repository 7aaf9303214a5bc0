from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.network import SystemType


class ClearanceRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    system_a: SystemType
    system_b: SystemType
    min_distance_m: float = Field(ge=0)
    description: str | None = None

    @model_validator(mode="after")
    def _distinct_systems(self) -> "ClearanceRule":
        if self.system_a == self.system_b:
            raise ValueError(f"Clearance rule needs two different systems, got '{self.system_a.value}' twice")
        return self

    @property
    def pair(self) -> frozenset[SystemType]:
        return frozenset((self.system_a, self.system_b))


class ClearanceMatrix(BaseModel):
    """Symmetric table of minimum separations between system types.

    Lookups are unordered. A pair with no rule requires 0 m, i.e. it never
    produces a violation. When the same pair is listed twice the last rule
    wins.
    """

    model_config = ConfigDict(frozen=True)

    rules: tuple[ClearanceRule, ...] = ()

    def required(self, a: SystemType, b: SystemType) -> float:
        if a == b:
            return 0.0
        pair = frozenset((a, b))
        required = 0.0
        for rule in self.rules:
            if rule.pair == pair:
                required = rule.min_distance_m
        return required


class Violation(BaseModel):
    candidate_system: SystemType
    existing_system: SystemType
    distance_m: float
    required_m: float
    candidate_segment: int
    existing_segment: int
    existing_route_id: int | None = None
    message: str


# SP 42.13330.2016, table 12.6 (conservative readings of notes 1/2)
DEFAULT_CLEARANCE_RULES: tuple[ClearanceRule, ...] = (
    ClearanceRule(system_a=SystemType.water, system_b=SystemType.sewerage, min_distance_m=5.0,
                  description="Water supply to domestic sewerage"),
    ClearanceRule(system_a=SystemType.water, system_b=SystemType.storm, min_distance_m=1.5,
                  description="Water supply to drainage / storm sewer"),
    ClearanceRule(system_a=SystemType.water, system_b=SystemType.heating, min_distance_m=1.5,
                  description="Water supply to heating network channel wall"),
    ClearanceRule(system_a=SystemType.water, system_b=SystemType.power, min_distance_m=1.0,
                  description="Water supply to power cables"),
    ClearanceRule(system_a=SystemType.water, system_b=SystemType.telecom, min_distance_m=0.5,
                  description="Water supply to telecom cables"),
    ClearanceRule(system_a=SystemType.sewerage, system_b=SystemType.storm, min_distance_m=0.4,
                  description="Domestic sewerage to drainage / storm sewer"),
    ClearanceRule(system_a=SystemType.sewerage, system_b=SystemType.heating, min_distance_m=1.0,
                  description="Domestic sewerage to heating network channel wall"),
    ClearanceRule(system_a=SystemType.sewerage, system_b=SystemType.power, min_distance_m=0.5,
                  description="Domestic sewerage to power cables"),
    ClearanceRule(system_a=SystemType.sewerage, system_b=SystemType.telecom, min_distance_m=0.5,
                  description="Domestic sewerage to telecom cables"),
    ClearanceRule(system_a=SystemType.storm, system_b=SystemType.heating, min_distance_m=1.0,
                  description="Drainage / storm sewer to heating network channel wall"),
    ClearanceRule(system_a=SystemType.storm, system_b=SystemType.power, min_distance_m=0.5,
                  description="Drainage / storm sewer to power cables"),
    ClearanceRule(system_a=SystemType.storm, system_b=SystemType.telecom, min_distance_m=0.5,
                  description="Drainage / storm sewer to telecom cables"),
    ClearanceRule(system_a=SystemType.heating, system_b=SystemType.power, min_distance_m=1.0,
                  description="Heating network channel wall to power cables"),
    ClearanceRule(system_a=SystemType.heating, system_b=SystemType.telecom, min_distance_m=1.0,
                  description="Heating network channel wall to telecom cables"),
    ClearanceRule(system_a=SystemType.power, system_b=SystemType.telecom, min_distance_m=0.5,
                  description="Power cables to telecom cables"),
)

DEFAULT_CLEARANCE_MATRIX = ClearanceMatrix(rules=DEFAULT_CLEARANCE_RULES)
