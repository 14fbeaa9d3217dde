"""Graph queries over persons and connections.

Connections are treated as undirected for layout purposes (adjacency,
components, BFS layering).  ``find_descendants`` is the one directed
query: it follows ``from -> to`` and backs the collapse-branch action.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Optional

from .models import Connection


def build_adjacency(
    person_ids: Iterable[str],
    connections: Iterable[Connection],
) -> dict[str, set[str]]:
    """Undirected adjacency restricted to the given person ids.

    Connections with an endpoint outside ``person_ids`` are ignored, as are
    self-loops.
    """
    adj: dict[str, set[str]] = {pid: set() for pid in person_ids}
    for conn in connections:
        if conn.from_id == conn.to_id:
            continue
        if conn.from_id in adj and conn.to_id in adj:
            adj[conn.from_id].add(conn.to_id)
            adj[conn.to_id].add(conn.from_id)
    return adj


def connected_components(adj: dict[str, set[str]]) -> list[list[str]]:
    """Connected components in first-seen order of ``adj``."""
    visited: set[str] = set()
    components = []

    for start in adj:
        if start in visited:
            continue
        component = []
        stack = [start]
        while stack:
            nid = stack.pop()
            if nid in visited:
                continue
            visited.add(nid)
            component.append(nid)
            stack.extend(adj[nid] - visited)
        components.append(component)

    return components


def bfs_layers(root: str, adj: dict[str, set[str]]) -> dict[str, int]:
    """BFS depth of every node reachable from ``root``."""
    depth = {root: 0}
    queue = deque([root])
    while queue:
        nid = queue.popleft()
        for nbr in sorted(adj.get(nid, ())):
            if nbr not in depth:
                depth[nbr] = depth[nid] + 1
                queue.append(nbr)
    return depth


def eccentricity(node: str, adj: dict[str, set[str]]) -> int:
    return max(bfs_layers(node, adj).values())


def diameter(adj: dict[str, set[str]]) -> int:
    """Longest shortest path over all components (0 for an empty graph)."""
    if not adj:
        return 0
    return max(eccentricity(nid, adj) for nid in adj)


def shortest_path(
    start: str,
    goal: str,
    adj: dict[str, set[str]],
) -> Optional[list[str]]:
    """Node ids on a shortest path from ``start`` to ``goal``, inclusive."""
    if start not in adj or goal not in adj:
        return None
    prev: dict[str, Optional[str]] = {start: None}
    queue = deque([start])
    while queue:
        nid = queue.popleft()
        if nid == goal:
            break
        for nbr in sorted(adj[nid]):
            if nbr not in prev:
                prev[nbr] = nid
                queue.append(nbr)
    if goal not in prev:
        return None

    path = []
    cursor: Optional[str] = goal
    while cursor is not None:
        path.append(cursor)
        cursor = prev[cursor]
    return list(reversed(path))


def find_descendants(person_id: str, connections: Iterable[Connection]) -> list[str]:
    """Every person reachable from ``person_id`` along ``from -> to`` edges.

    ``person_id`` itself is not included, even when a cycle leads back to it.
    """
    children: dict[str, list[str]] = {}
    for conn in connections:
        children.setdefault(conn.from_id, []).append(conn.to_id)

    seen = {person_id}
    order = []
    queue = deque([person_id])
    while queue:
        nid = queue.popleft()
        for child in children.get(nid, []):
            if child not in seen:
                seen.add(child)
                order.append(child)
                queue.append(child)
    return order

