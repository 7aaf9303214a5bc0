from app.models.geometry import ZERO_VECTOR, MeterVector, Point
from app.services.geometry import add, is_finite_point, normalize, rotate90, scale
from app.services.metric_frame import displacement, translate


def _segment_normal(a: Point, b: Point) -> MeterVector:
    """Left-hand unit normal of ``a -> b``; zero for a zero-length segment."""
    return rotate90(normalize(displacement(a, b, (a.lat + b.lat) / 2)))


def offset_path(path: list[Point], offset_m: float) -> list[Point]:
    """Shift every vertex sideways by ``offset_m`` meters.

    Positive offsets move to the left of the direction of travel. Interior
    vertices move along the normalized mean of the incoming and outgoing
    segment normals so the two lines stay joined at corners. A path with a
    non-finite vertex is returned unchanged.
    """
    if len(path) < 2 or offset_m == 0 or not all(is_finite_point(p) for p in path):
        return path

    normals = [_segment_normal(a, b) for a, b in zip(path, path[1:])]
    result: list[Point] = []

    for i, vertex in enumerate(path):
        if i == 0:
            normal = normals[0]
        elif i == len(path) - 1:
            normal = normals[-1]
        else:
            incoming, outgoing = normals[i - 1], normals[i]
            normal = normalize(add(incoming, outgoing))
            if normal == ZERO_VECTOR:
                # path doubles back on itself
                normal = incoming if incoming != ZERO_VECTOR else outgoing

        result.append(translate(vertex, scale(normal, offset_m), vertex.lat))

    return result
