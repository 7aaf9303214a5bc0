"""Advisory clearance checks between a candidate route and existing routes.

Violations are the normal output, not an error: every offending segment
pair is reported so the caller can show all problems at once and decide for
itself whether to persist.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from app.models.clearance import DEFAULT_CLEARANCE_MATRIX, ClearanceMatrix, ClearanceRule, Violation
from app.models.geometry import Point
from app.models.network import SystemType
from app.services.geometry import is_finite_point, segment_to_segment_distance

logger = logging.getLogger(__name__)


class TracedPath(Protocol):
    system_type: SystemType
    path: list[Point]


def matrix_from_rules(rules: Iterable[ClearanceRule] | None) -> ClearanceMatrix:
    if rules is None:
        return DEFAULT_CLEARANCE_MATRIX
    return ClearanceMatrix(rules=tuple(rules))


def _finite_segments(path: list[Point]) -> list[tuple[int, Point, Point]]:
    """Indexed segments of `path`, leaving out any with a non-finite endpoint."""
    return [
        (i, a, b)
        for i, (a, b) in enumerate(zip(path, path[1:]))
        if is_finite_point(a) and is_finite_point(b)
    ]


def format_violation(a: SystemType, b: SystemType, distance_m: float, required_m: float) -> str:
    return f"Distance between {a.value} and {b.value} is {distance_m:.2f} m, minimum: {required_m:.2f} m"


def validate(
    candidate_system: SystemType,
    candidate_path: list[Point],
    existing: Iterable[TracedPath],
    matrix: ClearanceMatrix = DEFAULT_CLEARANCE_MATRIX,
) -> list[Violation]:
    """Every segment pair of ``candidate_path`` and a foreign-system route that is too close."""
    violations: list[Violation] = []
    candidate_segments = _finite_segments(candidate_path)

    for route in existing:
        if route.system_type == candidate_system:
            continue
        required = matrix.required(candidate_system, route.system_type)
        if required <= 0:
            continue

        existing_segments = _finite_segments(route.path)
        for i, a1, a2 in candidate_segments:
            for j, b1, b2 in existing_segments:
                distance = segment_to_segment_distance(a1, a2, b1, b2)
                if distance < required:
                    violations.append(Violation(
                        candidate_system=candidate_system,
                        existing_system=route.system_type,
                        distance_m=distance,
                        required_m=required,
                        candidate_segment=i,
                        existing_segment=j,
                        existing_route_id=getattr(route, "id", None),
                        message=format_violation(candidate_system, route.system_type, distance, required),
                    ))

    if violations:
        logger.debug("Clearance check for %s: %d violations", candidate_system.value, len(violations))
    return violations
