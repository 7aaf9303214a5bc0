import math

import pytest

from app.models.geometry import MeterVector, Point
from app.models.network import Building, Mainline, SystemType, TargetKind, TransformerPad
from app.services.attachment import (
    building_polygon,
    pad_polygon,
    resolve_building_attachment,
    resolve_mainline_attachment,
    resolve_pad_attachment,
    resolve_pad_edge,
)
from app.services.geometry import signed_area_m2
from app.services.metric_frame import METERS_PER_DEG_LAT, displacement, translate

BUILDING = Building(id=1, name="School", lat=55.7560, lng=37.6175, width_m=20, height_m=10)


def _near(anchor: Point, north: float, east: float) -> Point:
    return translate(anchor, MeterVector(north=north, east=east), anchor.lat)


# --- polygons ---


def test_building_polygon_from_dimensions():
    polygon = building_polygon(BUILDING)
    assert len(polygon) == 4
    assert signed_area_m2(polygon) == pytest.approx(200.0, rel=1e-6)


def test_building_polygon_defaults_to_20m_square():
    polygon = building_polygon(Building(id=2, lat=55.7560, lng=37.6175))
    assert signed_area_m2(polygon) == pytest.approx(400.0, rel=1e-6)


def test_building_polygon_rewinds_clockwise_footprint():
    anchor = BUILDING.anchor
    clockwise = [_near(anchor, 0, 0), _near(anchor, 10, 0), _near(anchor, 10, 10), _near(anchor, 0, 10)]
    polygon = building_polygon(Building(id=3, lat=anchor.lat, lng=anchor.lng, footprint=clockwise))
    assert signed_area_m2(polygon) > 0
    assert set(polygon) == set(clockwise)


def test_pad_polygon_rotation_keeps_size():
    pad = TransformerPad(id=1, center=Point(lat=55.7570, lng=37.6190), size_m=6.0, rotation_deg=30.0)
    polygon = pad_polygon(pad)
    assert signed_area_m2(polygon) == pytest.approx(36.0, rel=1e-6)


# --- buildings ---


def test_building_attachment_snaps_to_south_wall():
    cursor = _near(BUILDING.anchor, -7, 3)
    att = resolve_building_attachment(cursor, [BUILDING])

    assert att is not None
    assert att.kind == TargetKind.building
    assert att.building.id == 1
    assert att.distance_m == pytest.approx(2.0, abs=1e-6)
    assert att.outward_normal.north == pytest.approx(-1.0)
    assert att.outward_normal.east == pytest.approx(0.0, abs=1e-9)
    assert abs(att.tangent.east) == pytest.approx(1.0)

    offset = displacement(BUILDING.anchor, att.point, BUILDING.anchor.lat)
    assert offset.north == pytest.approx(-5.0, abs=1e-6)
    assert offset.east == pytest.approx(3.0, abs=1e-6)


def test_building_attachment_picks_closest_building():
    far = Building(id=2, lat=55.7570, lng=37.6175, width_m=20, height_m=10)
    att = resolve_building_attachment(_near(BUILDING.anchor, -7, 0), [far, BUILDING])
    assert att.building.id == 1


def test_building_attachment_radius_is_inclusive():
    south = min(p.lat for p in building_polygon(BUILDING))

    on_radius = Point(lat=south - 20 / METERS_PER_DEG_LAT, lng=BUILDING.lng)
    att = resolve_building_attachment(on_radius, [BUILDING], max_snap_m=20)
    assert att is not None
    assert att.distance_m == pytest.approx(20.0, abs=1e-6)

    beyond = Point(lat=south - 20.01 / METERS_PER_DEG_LAT, lng=BUILDING.lng)
    assert resolve_building_attachment(beyond, [BUILDING], max_snap_m=20) is None


def test_building_attachment_is_idempotent():
    for cursor in (_near(BUILDING.anchor, 6, -2), _near(BUILDING.anchor, -7, 3), _near(BUILDING.anchor, 2, 13)):
        assert resolve_building_attachment(cursor, [BUILDING]) == resolve_building_attachment(cursor, [BUILDING])


def test_resnapping_attachment_point_is_stable():
    att = resolve_building_attachment(_near(BUILDING.anchor, 6, -2), [BUILDING])
    again = resolve_building_attachment(att.point, [BUILDING])
    assert again.distance_m == pytest.approx(0.0, abs=1e-6)
    assert displacement(att.point, again.point, att.point.lat).north == pytest.approx(0.0, abs=1e-6)
    assert again.outward_normal.north == pytest.approx(att.outward_normal.north)


def test_building_attachment_unbounded_radius():
    cursor = _near(BUILDING.anchor, -500, 0)
    assert resolve_building_attachment(cursor, [BUILDING], max_snap_m=None) is not None


def test_building_attachment_no_buildings():
    assert resolve_building_attachment(BUILDING.anchor, []) is None


def test_building_attachment_nan_cursor():
    assert resolve_building_attachment(Point(lat=math.nan, lng=37.6), [BUILDING]) is None


# --- mainlines ---


SEWER_MAIN = Mainline(
    id=10,
    system_type=SystemType.sewerage,
    start=Point(lat=55.7550, lng=37.6160),
    end=Point(lat=55.7550, lng=37.6200),
)


def test_mainline_normal_faces_cursor():
    above = _near(Point(lat=55.7550, lng=37.6180), 4, 0)
    below = _near(Point(lat=55.7550, lng=37.6180), -4, 0)

    att_above = resolve_mainline_attachment(above, [SEWER_MAIN], SystemType.sewerage)
    att_below = resolve_mainline_attachment(below, [SEWER_MAIN], SystemType.sewerage)

    assert att_above.kind == TargetKind.mainline
    assert att_above.mainline.id == 10
    assert att_above.distance_m == pytest.approx(4.0, abs=1e-6)
    assert att_above.outward_normal.north == pytest.approx(1.0)
    assert att_below.outward_normal.north == pytest.approx(-1.0)


def test_mainline_of_other_system_is_ignored():
    cursor = _near(Point(lat=55.7550, lng=37.6180), 4, 0)
    assert resolve_mainline_attachment(cursor, [SEWER_MAIN], SystemType.water) is None


# --- transformer pads ---


PAD = TransformerPad(id=7, center=Point(lat=55.7570, lng=37.6190), size_m=6.0)


def test_pad_edge_facing_cursor():
    cursor = _near(PAD.center, 0, 10)
    att = resolve_pad_edge(cursor, PAD)
    assert att.kind == TargetKind.pad
    assert att.pad.id == 7
    assert att.distance_m == pytest.approx(7.0, abs=1e-6)
    assert att.outward_normal.east == pytest.approx(1.0)


def test_pad_corner_tie_broken_by_reference():
    pad = PAD.model_copy(update={"rotation_deg": 45.0})
    cursor = _near(pad.center, 0, 10)

    north_east = resolve_pad_edge(cursor, pad, reference=_near(pad.center, 50, 50))
    south_east = resolve_pad_edge(cursor, pad, reference=_near(pad.center, -50, 50))

    assert north_east.outward_normal.north > 0.5
    assert south_east.outward_normal.north < -0.5
    assert north_east.distance_m == pytest.approx(south_east.distance_m, abs=1e-3)


def test_pad_attachment_out_of_range():
    cursor = _near(PAD.center, 0, 40)
    assert resolve_pad_attachment(cursor, [PAD], max_snap_m=20) is None


def test_pad_attachment_picks_nearest_pad():
    other = TransformerPad(id=8, center=_near(PAD.center, 0, 30))
    cursor = _near(PAD.center, 0, 26)
    att = resolve_pad_attachment(cursor, [PAD, other])
    assert att.pad.id == 8


def test_pad_with_non_finite_placement_is_skipped():
    broken = TransformerPad(id=9, center=Point(lat=math.inf, lng=37.6190))
    spun = TransformerPad(id=10, center=_near(PAD.center, 0, 10), rotation_deg=math.inf)
    cursor = _near(PAD.center, 0, 5)

    assert resolve_pad_edge(cursor, broken) is None
    assert resolve_pad_edge(cursor, spun) is None
    att = resolve_pad_attachment(cursor, [broken, spun, PAD])
    assert att.pad.id == 7
