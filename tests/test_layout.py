"""Tests for the layout strategies."""

import itertools
import random

import pytest

from relation_canvas.geometry import person_bounds, rects_overlap
from relation_canvas.layout import (
    LAYER_HEIGHT,
    LayoutOptions,
    LayoutStrategy,
    compute_layout,
    hierarchical_layers,
    influence_scores,
    resolve_overlaps,
    _Body,
)
from relation_canvas.models import Connection, Person


def _overlapping_pairs(persons: list[Person]) -> list[tuple[str, str]]:
    return [
        (a.id, b.id)
        for a, b in itertools.combinations(persons, 2)
        if rects_overlap(person_bounds(a), person_bounds(b))
    ]


def _chain(count: int) -> tuple[list[Person], list[Connection]]:
    persons = [Person(id=f"p{i}", name=f"P{i}", score=1 + i % 5) for i in range(count)]
    conns = [
        Connection(id=f"c{i}", from_id=f"p{i // 3}", to_id=f"p{i}")
        for i in range(1, count)
    ]
    return persons, conns


def _tree_with_cross_links(count: int, seed: int) -> tuple[list[Person], list[Connection]]:
    """Random tree over ``count`` persons plus a handful of extra links."""
    rng = random.Random(seed)
    persons = [Person(id=f"p{i}", name=f"P{i}", score=rng.randint(1, 5)) for i in range(count)]
    pairs = [(f"p{rng.randrange(i)}", f"p{i}") for i in range(1, count)]
    seen = {frozenset(pair) for pair in pairs}
    while len(pairs) < count - 1 + count // 5:
        a, b = rng.sample(range(count), 2)
        pair = (f"p{a}", f"p{b}")
        if frozenset(pair) not in seen:
            seen.add(frozenset(pair))
            pairs.append(pair)
    conns = [Connection(id=f"c{i}", from_id=f, to_id=t) for i, (f, t) in enumerate(pairs)]
    return persons, conns


@pytest.mark.parametrize("strategy", list(LayoutStrategy))
def test_no_overlaps_on_tree(strategy, tree_persons, tree_connections) -> None:
    result = compute_layout(strategy, tree_persons, tree_connections, options=LayoutOptions(target_id="root"))
    assert [p.id for p in result] == [p.id for p in tree_persons]
    assert _overlapping_pairs(result) == []


@pytest.mark.parametrize("strategy", ["hierarchical", "influence"])
def test_banded_layouts_stay_clear_at_fifty(strategy) -> None:
    persons, conns = _chain(50)
    result = compute_layout(strategy, persons, conns, options=LayoutOptions(target_id="p0"))
    assert _overlapping_pairs(result) == []


@pytest.mark.parametrize("strategy", list(LayoutStrategy))
@pytest.mark.parametrize("count", [20, 50])
@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_no_overlaps_on_random_graphs(strategy, count, seed) -> None:
    persons, conns = _tree_with_cross_links(count, seed)
    options = LayoutOptions(seed=seed, target_id="p0")
    result = compute_layout(strategy, persons, conns, options=options)
    assert _overlapping_pairs(result) == []


def test_layout_only_changes_positions(tree_persons, tree_connections) -> None:
    before = [p.model_copy() for p in tree_persons]
    result = compute_layout("force", tree_persons, tree_connections)
    assert tree_persons == before
    for old, new in zip(tree_persons, result):
        assert new.model_dump(exclude={"x", "y"}) == old.model_dump(exclude={"x", "y"})


def test_same_seed_same_layout(tree_persons, tree_connections) -> None:
    first = compute_layout("force", tree_persons, tree_connections, options=LayoutOptions(seed=7))
    second = compute_layout("force", tree_persons, tree_connections, options=LayoutOptions(seed=7))
    assert [(p.x, p.y) for p in first] == [(p.x, p.y) for p in second]


def test_hierarchical_layers_tree(tree_persons, tree_connections) -> None:
    result = {p.id: p for p in compute_layout("hierarchical", tree_persons, tree_connections)}
    root_y = result["root"].y
    for pid in ("a", "b", "c"):
        assert result[pid].y - root_y == pytest.approx(LAYER_HEIGHT)
    for pid in ("a1", "a2", "b1", "c1"):
        assert result[pid].y - root_y == pytest.approx(2 * LAYER_HEIGHT)


def test_hierarchical_depth_bounded_by_diameter(tree_persons, tree_connections) -> None:
    layers = hierarchical_layers(tree_persons, tree_connections)
    assert layers["root"] == 0
    assert max(layers.values()) <= 4


def test_hierarchical_respects_root_option(tree_persons, tree_connections) -> None:
    layers = hierarchical_layers(tree_persons, tree_connections, root_id="a1")
    assert layers["a1"] == 0
    assert layers["a"] == 1
    assert layers["c1"] == 4


def test_disconnected_persons_share_top_band(tree_persons, tree_connections) -> None:
    loner = Person(id="loner", name="Loner")
    layers = hierarchical_layers(tree_persons + [loner], tree_connections)
    assert layers["loner"] == 0


@pytest.mark.parametrize("strategy", list(LayoutStrategy))
def test_trivial_inputs(strategy) -> None:
    assert compute_layout(strategy, [], []) == []
    single = compute_layout(strategy, [Person(id="solo", name="Solo", x=500, y=-200)], [])
    assert (single[0].x, single[0].y) == (0.0, 0.0)


def test_unknown_strategy_raises() -> None:
    with pytest.raises(ValueError, match="Unknown layout"):
        compute_layout("spiral", [], [])


def test_score_radial_keeps_anchor_at_origin(tree_persons, tree_connections) -> None:
    result = {p.id: p for p in compute_layout("score_radial", tree_persons, tree_connections)}
    assert (result["root"].x, result["root"].y) == (pytest.approx(0.0), pytest.approx(0.0))


def test_influence_puts_target_on_top(tree_persons, tree_connections) -> None:
    result = {
        p.id: p
        for p in compute_layout("influence", tree_persons, tree_connections, options=LayoutOptions(target_id="a"))
    }
    assert all(result["a"].y < p.y for pid, p in result.items() if pid != "a")


def test_influence_prefers_strong_direct_links() -> None:
    persons = [
        Person(id="target", name="T"),
        Person(id="ally", name="Ally", score=1, advocate=True, frame_color="green"),
        Person(id="skeptic", name="Skeptic", score=5, frame_color="red"),
    ]
    conns = [
        Connection(id="c1", from_id="ally", to_id="target", weight="thick"),
        Connection(id="c2", from_id="skeptic", to_id="target", weight="thin"),
    ]
    scores = influence_scores(persons, conns, "target")
    assert scores["target"] == 0.0
    assert scores["ally"] > scores["skeptic"] > 0.0


def test_resolve_overlaps_separates_coincident_cards() -> None:
    bodies = [_Body(id=f"b{i}", x=0.0, y=0.0, score=3) for i in range(4)]
    resolve_overlaps(bodies)
    persons = [Person(id=b.id, name=b.id, x=b.x, y=b.y) for b in bodies]
    assert _overlapping_pairs(persons) == []


def test_resolve_overlaps_settles_when_passes_run_out() -> None:
    bodies = [_Body(id=f"b{i}", x=(i % 3) * 5.0, y=(i // 3) * 5.0, score=3) for i in range(12)]
    assert resolve_overlaps(bodies, iterations=1) == 1
    persons = [Person(id=b.id, name=b.id, x=b.x, y=b.y) for b in bodies]
    assert _overlapping_pairs(persons) == []
