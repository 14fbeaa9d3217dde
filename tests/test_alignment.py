"""Tests for magnetic guides and the align/distribute helpers."""

import pytest

from relation_canvas.alignment import (
    align_left,
    align_top,
    calculate_alignment,
    distribute_horizontal,
    distribute_vertical,
)
from relation_canvas.models import Person


def _at(pid: str, x: float, y: float) -> Person:
    return Person(id=pid, name=pid, x=x, y=y)


def test_snaps_top_edges_within_threshold() -> None:
    result = calculate_alignment([_at("m", 500, 105)], [_at("s", 0, 100)])
    assert result is not None
    assert result.dy == pytest.approx(-5)
    horizontal = [g for g in result.guides if g.orientation == "horizontal"]
    assert [(g.position, g.kind) for g in horizontal] == [(100, "top")]


def test_nothing_within_reach() -> None:
    assert calculate_alignment([_at("m", 500, 300)], [_at("s", 0, 100)]) is None
    assert calculate_alignment([], [_at("s", 0, 100)]) is None


def test_axes_snap_independently() -> None:
    result = calculate_alignment([_at("m", 3, 500)], [_at("s", 0, 100)])
    assert result.dx == pytest.approx(-3)
    assert result.dy == 0
    assert [g.orientation for g in result.guides] == ["vertical"]


def test_threshold_scales_with_caller() -> None:
    moving, static = [_at("m", 500, 112)], [_at("s", 0, 100)]
    assert calculate_alignment(moving, static, threshold=8) is None
    assert calculate_alignment(moving, static, threshold=16).dy == pytest.approx(-12)


def test_align_left_and_top() -> None:
    persons = [_at("a", 40, 10), _at("b", 0, 90)]
    assert [p.x for p in align_left(persons)] == [0, 0]
    assert [p.y for p in align_top(persons)] == [10, 10]


def test_distribute_keeps_extremes_and_order() -> None:
    persons = [_at("a", 0, 0), _at("c", 0, 900), _at("b", 0, 100)]
    result = {p.id: p.y for p in distribute_vertical(persons)}
    assert result == {"a": 0, "b": 450, "c": 900}

    row = distribute_horizontal([_at("a", 0, 0), _at("b", 10, 0), _at("c", 600, 0)])
    assert [p.x for p in row] == [0, 300, 600]


def test_distribute_needs_three() -> None:
    pair = [_at("a", 0, 0), _at("b", 0, 100)]
    assert distribute_vertical(pair) == pair
