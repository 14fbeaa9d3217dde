"""Tests for adjacency, layering and path queries."""

from relation_canvas.graph import (
    bfs_layers,
    build_adjacency,
    connected_components,
    diameter,
    find_descendants,
    shortest_path,
)
from relation_canvas.models import Connection, Person


def _conn(a: str, b: str) -> Connection:
    return Connection(id=f"{a}-{b}", from_id=a, to_id=b)


def test_adjacency_ignores_self_loops_and_outsiders() -> None:
    adj = build_adjacency(["a", "b"], [_conn("a", "b"), _conn("a", "a"), _conn("a", "zed")])
    assert adj == {"a": {"b"}, "b": {"a"}}


def test_components_keep_isolated_persons() -> None:
    adj = build_adjacency(["a", "b", "c"], [_conn("a", "b")])
    components = connected_components(adj)
    assert sorted(sorted(c) for c in components) == [["a", "b"], ["c"]]


def test_tree_layers_and_diameter(tree_persons: list[Person], tree_connections: list[Connection]) -> None:
    adj = build_adjacency([p.id for p in tree_persons], tree_connections)
    layers = bfs_layers("root", adj)
    assert layers["root"] == 0
    assert {layers[n] for n in ("a", "b", "c")} == {1}
    assert {layers[n] for n in ("a1", "a2", "b1", "c1")} == {2}
    assert diameter(adj) == 4


def test_shortest_path_and_unreachable(tree_persons: list[Person], tree_connections: list[Connection]) -> None:
    adj = build_adjacency([p.id for p in tree_persons] + ["island"], tree_connections)
    assert shortest_path("a1", "b1", adj) == ["a1", "a", "root", "b", "b1"]
    assert shortest_path("a1", "island", adj) is None
    assert shortest_path("a1", "nobody", adj) is None


def test_descendants_follow_direction(tree_connections: list[Connection]) -> None:
    assert sorted(find_descendants("a", tree_connections)) == ["a1", "a2"]
    assert find_descendants("a1", tree_connections) == []


def test_descendants_exclude_start_on_cycle() -> None:
    conns = [_conn("a", "b"), _conn("b", "c"), _conn("c", "a")]
    assert find_descendants("a", conns) == ["b", "c"]
