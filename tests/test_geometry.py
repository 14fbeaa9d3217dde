"""Tests for bounding boxes and derived group membership."""

from relation_canvas.geometry import (
    Bounds,
    bounds_of,
    group_contains,
    normalize_rect,
    person_at,
    persons_in_group,
    point_in_rect,
    rects_overlap,
    snap_to_grid,
)
from relation_canvas.models import NODE_HEIGHT, NODE_WIDTH, Group, Person


def test_bounds_of_covers_every_card() -> None:
    persons = [Person(id="a", name="A", x=0, y=0), Person(id="b", name="B", x=500, y=300)]
    b = bounds_of(persons)
    assert b == Bounds(0, 0, 500 + NODE_WIDTH, 300 + NODE_HEIGHT)


def test_bounds_of_empty_is_none() -> None:
    assert bounds_of([]) is None


def test_normalize_rect_from_any_corner() -> None:
    assert normalize_rect(50, 80, 10, 20) == Bounds(10, 20, 40, 60)


def test_point_in_rect_is_inclusive() -> None:
    rect = Bounds(0, 0, 10, 10)
    assert point_in_rect(10, 10, rect)
    assert not point_in_rect(10.5, 5, rect)


def test_touching_rects_do_not_overlap() -> None:
    assert not rects_overlap(Bounds(0, 0, 10, 10), Bounds(10, 0, 10, 10))
    assert rects_overlap(Bounds(0, 0, 10, 10), Bounds(9, 9, 10, 10))


def test_snap_to_grid_rounds_to_nearest() -> None:
    assert snap_to_grid(29, 20) == 20
    assert snap_to_grid(31, 20) == 40
    assert snap_to_grid(-31, 20) == -40


def test_membership_follows_card_centre() -> None:
    group = Group(id="g", x=0, y=0, width=400, height=300)
    inside = Person(id="in", name="In", x=100, y=100)
    # Card overlaps the group but its centre is outside
    straddling = Person(id="out", name="Out", x=300, y=100)
    assert group_contains(group, inside)
    assert not group_contains(group, straddling)


def test_membership_is_recomputed_after_moves() -> None:
    group = Group(id="g", x=0, y=0, width=400, height=300)
    person = Person(id="p", name="P", x=50, y=50)
    assert persons_in_group(group, [person]) == [person]

    moved = person.model_copy(update={"x": 1000})
    assert persons_in_group(group, [moved]) == []

    grown = group.model_copy(update={"width": 1400})
    assert persons_in_group(grown, [moved]) == [moved]


def test_person_at_prefers_topmost_and_skips_hidden() -> None:
    below = Person(id="below", name="Below", x=0, y=0)
    above = Person(id="above", name="Above", x=20, y=20)
    assert person_at(50, 50, [below, above]).id == "above"

    hidden = above.model_copy(update={"hidden": True})
    assert person_at(50, 50, [below, hidden]).id == "below"
    assert person_at(-10, -10, [below, above]) is None
