"""Tests for side selection, bezier construction and collision flags."""

import pytest

from relation_canvas.geometry import Bounds
from relation_canvas.models import Connection, Person
from relation_canvas.routing import (
    arrow_direction,
    best_sides,
    connections_in_rect,
    hub_position,
    line_intersects_rect,
    route_connection,
)


def _at(pid: str, x: float, y: float) -> Person:
    return Person(id=pid, name=pid, x=x, y=y)


@pytest.mark.parametrize(
    "dx, dy, expected",
    [
        (600, 0, ("right", "left")),
        (0, 400, ("bottom", "top")),
        (-600, 0, ("left", "right")),
        (0, -400, ("top", "bottom")),
        (100, 400, ("bottom", "top")),
    ],
)
def test_best_sides_by_angle(dx, dy, expected) -> None:
    assert best_sides(_at("a", 0, 0), _at("b", dx, dy)) == expected


def test_hubs_are_side_midpoints() -> None:
    p = _at("p", 100, 200)
    assert hub_position(p, "top") == (230, 200)
    assert hub_position(p, "right") == (360, 250)
    assert hub_position(p, "bottom") == (230, 300)
    assert hub_position(p, "left") == (100, 250)


def test_curve_leaves_perpendicular_to_side() -> None:
    a, b = _at("a", 0, 0), _at("b", 600, 0)
    routed = route_connection(Connection(id="c", from_id="a", to_id="b"), a, b)
    path = routed.path
    assert path.start == (260, 50)
    assert path.end == (600, 50)
    # Hub distance 340, offset capped at 80
    assert path.cp1 == (340, 50)
    assert path.cp2 == (520, 50)


def test_short_connections_scale_control_offset() -> None:
    a, b = _at("a", 0, 0), _at("b", 360, 0)
    routed = route_connection(Connection(id="c", from_id="a", to_id="b"), a, b)
    assert routed.path.cp1[0] - routed.path.start[0] == pytest.approx(30.0)


def test_pinned_sides_win() -> None:
    a, b = _at("a", 0, 0), _at("b", 600, 0)
    conn = Connection(id="c", from_id="a", to_id="b", from_side="top", to_side="top")
    routed = route_connection(conn, a, b)
    assert (routed.from_side, routed.to_side) == ("top", "top")
    assert routed.path.cp1[1] < routed.path.start[1]


def test_straight_lines_when_not_organic() -> None:
    a, b = _at("a", 0, 0), _at("b", 600, 0)
    routed = route_connection(Connection(id="c", from_id="a", to_id="b"), a, b, organic=False)
    assert routed.path.cp1 == routed.path.start
    assert routed.path.cp2 == routed.path.end
    assert routed.path.midpoint == pytest.approx((430, 50))


def test_collision_flag_ignores_endpoints() -> None:
    a, b = _at("a", 0, 0), _at("b", 1000, 0)
    blocker = _at("blocker", 400, 0)
    conn = Connection(id="c", from_id="a", to_id="b")
    assert route_connection(conn, a, b, persons=[a, b, blocker]).has_collision
    assert not route_connection(conn, a, b, persons=[a, b]).has_collision

    parked = blocker.model_copy(update={"hidden": True})
    assert not route_connection(conn, a, b, persons=[a, b, parked]).has_collision


def test_arrowheads_point_into_the_card() -> None:
    assert arrow_direction("left") == (1.0, 0.0)
    assert arrow_direction("top") == (0.0, 1.0)


def test_line_through_rect_without_endpoints_inside() -> None:
    rect = Bounds(10, 10, 20, 20)
    assert line_intersects_rect(0, 20, 50, 20, rect)
    assert not line_intersects_rect(0, 0, 50, 0, rect)


def test_connections_in_rect_skips_hidden_endpoints() -> None:
    a, b, c = _at("a", 0, 0), _at("b", 600, 0), _at("c", 0, 600).model_copy(update={"hidden": True})
    conns = [
        Connection(id="ab", from_id="a", to_id="b"),
        Connection(id="ac", from_id="a", to_id="c"),
    ]
    rect = Bounds(300, 0, 100, 100)
    assert connections_in_rect([a, b, c], conns, rect) == ["ab"]
    assert connections_in_rect([a, b, c], conns, Bounds(0, 0, 700, 800)) == ["ab"]


def test_svg_path_export() -> None:
    a, b = _at("a", 0, 0), _at("b", 600, 0)
    routed = route_connection(Connection(id="c", from_id="a", to_id="b"), a, b)
    assert routed.path.svg_path() == "M 260 50 C 340 50, 520 50, 600 50"
    samples = routed.path.sample(4)
    assert samples[0] == routed.path.start
    assert samples[-1] == routed.path.end
