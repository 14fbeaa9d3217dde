"""
Automatic layout strategies for relation-canvas.

Every strategy takes the persons and connections (and, for the cluster
layout, the groups) and returns *copies* of the persons with only ``x`` and
``y`` changed.  Nothing else on a person is touched and the inputs are never
mutated.

Strategies
----------
  force         Damped particle simulation: inverse-square repulsion
                between every pair, springs along connections.
  hierarchical  BFS layers from a root on horizontal bands, barycenter
                ordering within a layer, neighbour relaxation along x.
  cluster       Connected components (persons sharing a group are joined)
                laid out as concentric rings around a centre person.
  score_radial  Distance from the centre grows with score; repulsion
                simulation with a radial spring instead of edge springs.
  compact       Shrinks the current arrangement and packs it tightly.
  influence     Layers by hop distance to a target person, ordered by
                computed influence on that target.

Post-processing
---------------
All strategies finish with the same two pure steps:

  1. ``resolve_overlaps``: pushes pairs of cards apart along the axis of
     least penetration until every pair is at least ``spacing`` apart
     (best effort within the iteration budget).  Banded layouts lock the
     y axis and use an exact per-row sweep instead.
  2. re-centering on the centroid (or on an anchor person).

Simulation state lives in ``_Body`` records created per call, so no state
carries over between invocations.  All randomness comes from
``random.Random(options.seed)``.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .geometry import group_contains
from .graph import bfs_layers, build_adjacency, connected_components
from .models import NODE_HEIGHT, NODE_WIDTH, Connection, Group, Person

logger = logging.getLogger(__name__)


# --- Shared constants ---

MIN_SPACING = 80
OVERLAP_ITERATIONS = 150

# Force-directed
REPULSION_STRENGTH = 80000
ATTRACTION_STRENGTH = 0.03
IDEAL_DISTANCE = 300
DAMPING = 0.85
FORCE_ITERATIONS = 150
MAX_SPEED = 50
REST_SPEED = 0.5
FORCE_OVERLAP_ITERATIONS = 60

# Hierarchical
LAYER_HEIGHT = 380
MIN_NODE_SPACING = 360
MIN_LAYER_WIDTH = 1000
HIERARCHY_RELAX_PASSES = 60
HIERARCHY_RELAX_FACTOR = 0.15

# Cluster
RING_BASE_RADIUS = 420
RING_STEP = 340
RING_BASE_CAPACITY = 6
RING_CAPACITY_GROWTH = 3
MIN_MAIN_RADIUS = 550
MAIN_RADIUS_PER_CLUSTER = 220
CLUSTER_GAP = 200
CLUSTER_RELAX_PASSES = 80
CLUSTER_RELAX_FACTOR = 0.12

# Score-radial
RADIAL_MIN_RADIUS = 420
RADIAL_EXTENT = 1200
RADIAL_SPRING = 0.08

# Compact
COMPACT_SCALE = 0.7
COMPACT_SPACING = 60
COMPACT_ITERATIONS = 250

# Influence
INFLUENCE_MAX_DEPTH = 6
INFLUENCE_DEPTH_DECAY = 0.65
INFLUENCE_VERTICAL_SPACING = 400
INFLUENCE_HORIZONTAL_SPACING = 340
INFLUENCE_MIN_ROW_WIDTH = 400
INFLUENCE_RELAX_PASSES = 200
INFLUENCE_RELAX_FACTOR = 0.08
INFLUENCE_SWAP_ROUNDS = 100
INFLUENCE_TARGET_Y = -800


class LayoutStrategy(str, Enum):
    FORCE = "force"
    HIERARCHICAL = "hierarchical"
    CLUSTER = "cluster"
    SCORE_RADIAL = "score_radial"
    COMPACT = "compact"
    INFLUENCE = "influence"


@dataclass
class LayoutOptions:
    """Options shared by all layout strategies.

    Attributes:
        seed:      Seed for initial placement and tie-breaking jitter.
        root_id:   Hierarchical root.  Falls back to the heuristic root
                   (lowest score, most connections) when unset or unknown.
        target_id: Target person for the influence layout.
        spacing:   Minimum gap between cards after overlap resolution.
    """
    seed: Optional[int] = 0
    root_id: Optional[str] = None
    target_id: Optional[str] = None
    spacing: float = MIN_SPACING


@dataclass
class _Body:
    """Per-invocation simulation state for one person."""
    id: str
    x: float
    y: float
    score: int
    vx: float = 0.0
    vy: float = 0.0


def _bodies(persons: list[Person]) -> list[_Body]:
    return [_Body(id=p.id, x=p.x, y=p.y, score=p.score) for p in persons]


def _apply(persons: list[Person], bodies: list[_Body]) -> list[Person]:
    by_id = {b.id: b for b in bodies}
    return [p.model_copy(update={"x": by_id[p.id].x, "y": by_id[p.id].y}) for p in persons]


# ---------------------------------------------------------------------------
# Shared post-processing
# ---------------------------------------------------------------------------

def resolve_overlaps(
    bodies: list[_Body],
    iterations: int = OVERLAP_ITERATIONS,
    spacing: float = MIN_SPACING,
    axes: str = "xy",
    rng: Optional[random.Random] = None,
) -> int:
    """Push overlapping cards apart in place.

    Two cards conflict when their top-left corners are closer than
    ``NODE_WIDTH + spacing`` horizontally *and* ``NODE_HEIGHT + spacing``
    vertically.  Each conflicting pair is separated symmetrically along the
    axis that needs the smaller push.  Exactly coincident cards pick a
    direction from ``rng``.

    With ``axes="x"`` the cards are treated as rows (same ``y``) and each
    row is swept left to right, which separates them exactly while keeping
    the row's mean x.

    If the pairwise passes run out with cards still touching, the leftovers
    are settled top to bottom: each card drops below whatever placed card it
    still overlaps.

    Returns:
        The number of passes that still found an overlap.
    """
    rng = rng or random.Random(0)
    if axes == "x":
        _sweep_rows(bodies, spacing)
        return 0

    min_dx = NODE_WIDTH + spacing
    min_dy = NODE_HEIGHT + spacing
    passes = 0
    for _ in range(iterations):
        moved = False
        for i in range(len(bodies)):
            a = bodies[i]
            for j in range(i + 1, len(bodies)):
                b = bodies[j]
                dx = b.x - a.x
                dy = b.y - a.y
                overlap_x = min_dx - abs(dx)
                overlap_y = min_dy - abs(dy)
                if overlap_x <= 0 or overlap_y <= 0:
                    continue
                moved = True
                if dx == 0 and dy == 0:
                    angle = rng.uniform(0, 2 * math.pi)
                    push = (min_dx + min_dy) / 4
                    a.x -= math.cos(angle) * push
                    a.y -= math.sin(angle) * push
                    b.x += math.cos(angle) * push
                    b.y += math.sin(angle) * push
                elif overlap_x < overlap_y:
                    sign = 1 if dx > 0 else -1 if dx < 0 else rng.choice((-1, 1))
                    push = overlap_x / 2 + 1
                    a.x -= push * sign
                    b.x += push * sign
                else:
                    sign = 1 if dy > 0 else -1 if dy < 0 else rng.choice((-1, 1))
                    push = overlap_y / 2 + 1
                    a.y -= push * sign
                    b.y += push * sign
        if not moved:
            break
        passes += 1
    else:
        _settle(bodies, min_dx, min_dy)
    return passes


def _settle(bodies: list[_Body], min_dx: float, min_dy: float) -> None:
    placed: list[_Body] = []
    for body in sorted(bodies, key=lambda b: (b.y, b.x)):
        while True:
            blockers = [
                p for p in placed
                if abs(body.x - p.x) < min_dx and abs(body.y - p.y) < min_dy
            ]
            if not blockers:
                break
            body.y = max(p.y for p in blockers) + min_dy
        placed.append(body)


def _sweep_rows(bodies: list[_Body], spacing: float) -> None:
    rows: dict[float, list[_Body]] = {}
    for body in bodies:
        rows.setdefault(round(body.y, 3), []).append(body)

    min_dx = NODE_WIDTH + spacing
    for row in rows.values():
        if len(row) < 2:
            continue
        before = sum(b.x for b in row) / len(row)
        row.sort(key=lambda b: b.x)
        for prev, cur in zip(row, row[1:]):
            if cur.x < prev.x + min_dx:
                cur.x = prev.x + min_dx
        shift = before - sum(b.x for b in row) / len(row)
        for b in row:
            b.x += shift


def recenter(bodies: list[_Body], anchor: Optional[str] = None) -> None:
    """Translate so the centroid (or the anchor body) sits at the origin."""
    if not bodies:
        return
    target = next((b for b in bodies if b.id == anchor), None) if anchor else None
    if target is not None:
        cx, cy = target.x, target.y
    else:
        cx = sum(b.x for b in bodies) / len(bodies)
        cy = sum(b.y for b in bodies) / len(bodies)
    for b in bodies:
        b.x -= cx
        b.y -= cy


def _trivial(persons: list[Person]) -> Optional[list[Person]]:
    """Result for 0 and 1 person inputs, None otherwise."""
    if not persons:
        return []
    if len(persons) == 1:
        return [persons[0].model_copy(update={"x": 0.0, "y": 0.0})]
    return None


def pick_root(persons: list[Person], adj: dict[str, set[str]]) -> Person:
    """Lowest score wins, most connections breaks ties."""
    return min(persons, key=lambda p: (p.score, -len(adj.get(p.id, ()))))


def _pick_center(persons: list[Person], adj: dict[str, set[str]]) -> Person:
    """Most connections wins, lowest score breaks ties."""
    return min(persons, key=lambda p: (-len(adj.get(p.id, ())), p.score))


# ---------------------------------------------------------------------------
# Force-directed
# ---------------------------------------------------------------------------

def force_layout(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    trivial = _trivial(persons)
    if trivial is not None:
        return trivial

    opts = options or LayoutOptions()
    rng = random.Random(opts.seed)
    adj = build_adjacency([p.id for p in persons], connections)
    bodies = _bodies(persons)
    index = {b.id: b for b in bodies}

    spread = IDEAL_DISTANCE * math.sqrt(len(bodies))
    for b in bodies:
        b.x = rng.uniform(-spread, spread)
        b.y = rng.uniform(-spread, spread)

    edges = [(a, b) for a in adj for b in adj[a] if a < b]

    iteration = 0
    for iteration in range(1, FORCE_ITERATIONS + 1):
        forces = {b.id: [0.0, 0.0] for b in bodies}

        for i in range(len(bodies)):
            p1 = bodies[i]
            for j in range(i + 1, len(bodies)):
                p2 = bodies[j]
                dx = p2.x - p1.x
                dy = p2.y - p1.y
                dist_sq = dx * dx + dy * dy
                if dist_sq == 0:
                    continue
                dist = math.sqrt(dist_sq)
                f = REPULSION_STRENGTH / dist_sq
                fx = dx / dist * f
                fy = dy / dist * f
                forces[p1.id][0] -= fx
                forces[p1.id][1] -= fy
                forces[p2.id][0] += fx
                forces[p2.id][1] += fy

        for a_id, b_id in edges:
            p1, p2 = index[a_id], index[b_id]
            dx = p2.x - p1.x
            dy = p2.y - p1.y
            dist = math.hypot(dx, dy)
            if dist == 0:
                continue
            f = (dist - IDEAL_DISTANCE) * ATTRACTION_STRENGTH
            fx = dx / dist * f
            fy = dy / dist * f
            forces[a_id][0] += fx
            forces[a_id][1] += fy
            forces[b_id][0] -= fx
            forces[b_id][1] -= fy

        max_speed = 0.0
        for b in bodies:
            fx, fy = forces[b.id]
            b.vx = (b.vx + fx) * DAMPING
            b.vy = (b.vy + fy) * DAMPING
            speed = math.hypot(b.vx, b.vy)
            if speed > MAX_SPEED:
                b.vx = b.vx / speed * MAX_SPEED
                b.vy = b.vy / speed * MAX_SPEED
                speed = MAX_SPEED
            b.x += b.vx
            b.y += b.vy
            max_speed = max(max_speed, speed)

        if max_speed < REST_SPEED:
            break

    logger.debug(f"Force layout: {len(bodies)} persons settled after {iteration} iterations")
    resolve_overlaps(bodies, FORCE_OVERLAP_ITERATIONS, opts.spacing, rng=rng)
    recenter(bodies)
    return _apply(persons, bodies)


# ---------------------------------------------------------------------------
# Hierarchical
# ---------------------------------------------------------------------------

def hierarchical_layers(
    persons: list[Person],
    connections: list[Connection],
    root_id: Optional[str] = None,
) -> dict[str, int]:
    """BFS layer of every person.

    The first component is layered from ``root_id`` when it names a known
    person, otherwise from the heuristic root.  Every component left
    unreached is layered from its own heuristic root, so disconnected
    persons share the top bands instead of piling up below the tree.
    """
    adj = build_adjacency([p.id for p in persons], connections)
    by_id = {p.id: p for p in persons}
    layers: dict[str, int] = {}

    root = by_id.get(root_id) if root_id else None
    if root is None:
        root = pick_root(persons, adj)
    layers.update(bfs_layers(root.id, adj))

    for component in connected_components(adj):
        if component[0] in layers:
            continue
        members = [by_id[pid] for pid in component]
        layers.update(bfs_layers(pick_root(members, adj).id, adj))
    return layers


def hierarchical_layout(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    trivial = _trivial(persons)
    if trivial is not None:
        return trivial

    opts = options or LayoutOptions()
    adj = build_adjacency([p.id for p in persons], connections)
    layers = hierarchical_layers(persons, connections, opts.root_id)
    bodies = _bodies(persons)
    index = {b.id: b for b in bodies}

    by_layer: dict[int, list[_Body]] = {}
    for b in bodies:
        by_layer.setdefault(layers[b.id], []).append(b)

    for layer in sorted(by_layer):
        row = by_layer[layer]

        def barycenter(body: _Body) -> tuple[int, float]:
            parents = [index[n].x for n in adj[body.id] if layers[n] < layer]
            if not parents:
                return (1, 0.0)
            return (0, sum(parents) / len(parents))

        row.sort(key=barycenter)
        width = max(len(row) * MIN_NODE_SPACING, MIN_LAYER_WIDTH)
        step = width / (len(row) - 1) if len(row) > 1 else 0
        for i, b in enumerate(row):
            b.x = 0.0 if len(row) == 1 else -width / 2 + i * step
            b.y = layer * LAYER_HEIGHT

    for _ in range(HIERARCHY_RELAX_PASSES):
        for layer in sorted(by_layer):
            for b in by_layer[layer]:
                nbrs = adj[b.id]
                if not nbrs:
                    continue
                avg_x = sum(index[n].x for n in nbrs) / len(nbrs)
                b.x += (avg_x - b.x) * HIERARCHY_RELAX_FACTOR

    logger.debug(f"Hierarchical layout: {len(bodies)} persons on {len(by_layer)} layers")
    resolve_overlaps(bodies, spacing=opts.spacing, axes="x")
    recenter(bodies)
    return _apply(persons, bodies)


# ---------------------------------------------------------------------------
# Cluster
# ---------------------------------------------------------------------------

def _ring_offsets(count: int) -> list[tuple[float, float]]:
    """Offsets for ``count`` persons on concentric rings around a centre."""
    offsets = []
    ring = 0
    while len(offsets) < count:
        radius = RING_BASE_RADIUS + ring * RING_STEP
        capacity = RING_BASE_CAPACITY + ring * RING_CAPACITY_GROWTH
        in_ring = min(capacity, count - len(offsets))
        for i in range(in_ring):
            angle = i / in_ring * 2 * math.pi - math.pi / 2
            offsets.append((math.cos(angle) * radius, math.sin(angle) * radius))
        ring += 1
    return offsets


def _ring_extent(count: int) -> float:
    """Radius of the outermost ring needed for ``count`` non-centre persons."""
    if count == 0:
        return 0.0
    ring = 0
    placed = 0
    while True:
        placed += RING_BASE_CAPACITY + ring * RING_CAPACITY_GROWTH
        if placed >= count:
            return RING_BASE_RADIUS + ring * RING_STEP
        ring += 1


def cluster_components(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
) -> list[list[str]]:
    """Connected components, with persons sharing a group joined together."""
    adj = build_adjacency([p.id for p in persons], connections)
    for group in groups or []:
        members = [p.id for p in persons if group_contains(group, p)]
        for a, b in zip(members, members[1:]):
            adj[a].add(b)
            adj[b].add(a)
    return connected_components(adj)


def cluster_layout(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    trivial = _trivial(persons)
    if trivial is not None:
        return trivial

    opts = options or LayoutOptions()
    adj = build_adjacency([p.id for p in persons], connections)
    by_id = {p.id: p for p in persons}
    bodies = _bodies(persons)
    index = {b.id: b for b in bodies}

    components = cluster_components(persons, connections, groups)
    components.sort(key=len, reverse=True)

    extents = [_ring_extent(len(c) - 1) + NODE_WIDTH for c in components]
    if len(components) == 1:
        centres = [(0.0, 0.0)]
    else:
        n = len(components)
        widest = max(extents)
        main_radius = max(
            MIN_MAIN_RADIUS,
            n * MAIN_RADIUS_PER_CLUSTER,
            (2 * widest + CLUSTER_GAP) / (2 * math.sin(math.pi / n)),
        )
        centres = [
            (math.cos(i / n * 2 * math.pi) * main_radius,
             math.sin(i / n * 2 * math.pi) * main_radius)
            for i in range(n)
        ]

    fixed: set[str] = set()
    for component, (cx, cy) in zip(components, centres):
        members = [by_id[pid] for pid in component]
        centre = _pick_center(members, adj)
        fixed.add(centre.id)
        index[centre.id].x, index[centre.id].y = cx, cy

        rest = sorted(
            (p for p in members if p.id != centre.id),
            key=lambda p: (-len(adj[p.id]), p.score),
        )
        for person, (ox, oy) in zip(rest, _ring_offsets(len(rest))):
            index[person.id].x = cx + ox
            index[person.id].y = cy + oy

    # Leaves stay on their ring; pulling them onto their only neighbour
    # would stack them on top of it.
    for _ in range(CLUSTER_RELAX_PASSES):
        for b in bodies:
            nbrs = adj[b.id]
            if b.id in fixed or len(nbrs) < 2:
                continue
            avg_x = sum(index[n].x for n in nbrs) / len(nbrs)
            avg_y = sum(index[n].y for n in nbrs) / len(nbrs)
            b.x += (avg_x - b.x) * CLUSTER_RELAX_FACTOR
            b.y += (avg_y - b.y) * CLUSTER_RELAX_FACTOR

    logger.debug(f"Cluster layout: {len(bodies)} persons in {len(components)} clusters")
    resolve_overlaps(bodies, OVERLAP_ITERATIONS, opts.spacing, rng=random.Random(opts.seed))
    recenter(bodies)
    return _apply(persons, bodies)


# ---------------------------------------------------------------------------
# Score-radial
# ---------------------------------------------------------------------------

def score_radius(score: int, min_score: int, max_score: int) -> float:
    """Extra distance beyond the innermost ring for a score.

    Linear in the normalised score: the lowest score present (the most
    important) maps to 0, the highest to ``RADIAL_EXTENT``.
    """
    if max_score == min_score:
        return 0.0
    return (score - min_score) / (max_score - min_score) * RADIAL_EXTENT


def score_radial_layout(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    trivial = _trivial(persons)
    if trivial is not None:
        return trivial

    opts = options or LayoutOptions()
    rng = random.Random(opts.seed)
    adj = build_adjacency([p.id for p in persons], connections)
    bodies = _bodies(persons)
    lo = min(b.score for b in bodies)
    hi = max(b.score for b in bodies)
    anchor = pick_root(persons, adj)

    # The anchor holds the centre; everyone else starts at least one ring out
    targets = {
        b.id: 0.0 if b.id == anchor.id else RADIAL_MIN_RADIUS + score_radius(b.score, lo, hi)
        for b in bodies
    }
    for i, b in enumerate(bodies):
        angle = i / len(bodies) * 2 * math.pi + rng.uniform(-0.1, 0.1)
        r = targets[b.id]
        b.x = math.cos(angle) * r
        b.y = math.sin(angle) * r

    for _ in range(FORCE_ITERATIONS):
        forces = {b.id: [0.0, 0.0] for b in bodies}
        for i in range(len(bodies)):
            p1 = bodies[i]
            for j in range(i + 1, len(bodies)):
                p2 = bodies[j]
                dx = p2.x - p1.x
                dy = p2.y - p1.y
                dist_sq = dx * dx + dy * dy
                if dist_sq == 0:
                    continue
                dist = math.sqrt(dist_sq)
                f = REPULSION_STRENGTH / dist_sq
                forces[p1.id][0] -= dx / dist * f
                forces[p1.id][1] -= dy / dist * f
                forces[p2.id][0] += dx / dist * f
                forces[p2.id][1] += dy / dist * f

        for b in bodies:
            r = math.hypot(b.x, b.y)
            if r > 0:
                pull = (targets[b.id] - r) * RADIAL_SPRING
                forces[b.id][0] += b.x / r * pull
                forces[b.id][1] += b.y / r * pull
            b.vx = (b.vx + forces[b.id][0]) * DAMPING
            b.vy = (b.vy + forces[b.id][1]) * DAMPING
            speed = math.hypot(b.vx, b.vy)
            if speed > MAX_SPEED:
                b.vx = b.vx / speed * MAX_SPEED
                b.vy = b.vy / speed * MAX_SPEED
            if b.id != anchor.id:
                b.x += b.vx
                b.y += b.vy

    resolve_overlaps(bodies, OVERLAP_ITERATIONS, opts.spacing, rng=rng)
    recenter(bodies, anchor=anchor.id)
    return _apply(persons, bodies)


# ---------------------------------------------------------------------------
# Compact
# ---------------------------------------------------------------------------

def compact_layout(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    """Shrink the current arrangement toward its centroid and repack it."""
    trivial = _trivial(persons)
    if trivial is not None:
        return trivial

    opts = options or LayoutOptions()
    bodies = _bodies(persons)
    recenter(bodies)
    for b in bodies:
        b.x *= COMPACT_SCALE
        b.y *= COMPACT_SCALE

    resolve_overlaps(bodies, COMPACT_ITERATIONS, COMPACT_SPACING, rng=random.Random(opts.seed))
    recenter(bodies)
    return _apply(persons, bodies)


# ---------------------------------------------------------------------------
# Influence
# ---------------------------------------------------------------------------

_WEIGHT_FACTORS = {"thick": 3.0, "medium": 1.8, "thin": 1.0}
_FRAME_FACTORS = {"green": 2.5, "orange": 1.3, "red": 0.25, "white": 1.0}


def _edge_influence(conn: Connection, from_id: str, to_id: str) -> float:
    weight = _WEIGHT_FACTORS.get(conn.weight, 1.0)
    if conn.direction == "forward" and conn.from_id == from_id and conn.to_id == to_id:
        weight *= 2.5
    elif conn.direction == "backward" and conn.from_id == to_id and conn.to_id == from_id:
        weight *= 2.5
    elif conn.direction == "bidirectional":
        weight *= 1.5
    return weight


def _person_influence(person: Person) -> float:
    multiplier = 3.0 if person.advocate else 1.0
    multiplier *= _FRAME_FACTORS.get(person.frame_color, 1.0)
    return multiplier * 1.5 ** (6 - person.score)


def influence_scores(
    persons: list[Person],
    connections: list[Connection],
    target_id: str,
) -> dict[str, float]:
    """How strongly each person can reach ``target_id``.

    Paths up to ``INFLUENCE_MAX_DEPTH`` hops are explored breadth first.
    Each step contributes ``edge weight * person multiplier`` of the person
    it leaves, decayed by ``0.65 ** step``.  A person's score is its best
    path.  The target scores 0, unreachable persons score 0.
    """
    by_id = {p.id: p for p in persons}
    incident: dict[str, list[Connection]] = {pid: [] for pid in by_id}
    for conn in connections:
        if conn.from_id in by_id and conn.to_id in by_id:
            incident[conn.from_id].append(conn)
            incident[conn.to_id].append(conn)

    scores: dict[str, float] = {}
    for person in persons:
        if person.id == target_id:
            scores[person.id] = 0.0
            continue

        best = 0.0
        expanded: set[str] = set()
        queue: list[tuple[str, tuple[str, ...], float]] = [(person.id, (person.id,), 0.0)]
        while queue:
            pid, path, total = queue.pop(0)
            if len(path) > INFLUENCE_MAX_DEPTH + 1:
                continue
            if pid == target_id:
                best = max(best, total)
                continue
            if pid in expanded:
                continue
            expanded.add(pid)
            step = len(path) - 1
            for conn in incident[pid]:
                nxt = conn.other_end(pid)
                if nxt in path:
                    continue
                gain = _edge_influence(conn, pid, nxt) * _person_influence(by_id[pid])
                queue.append((nxt, path + (nxt,), total + gain * INFLUENCE_DEPTH_DECAY ** step))
        scores[person.id] = best
    return scores


def influence_layout(
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    trivial = _trivial(persons)
    if trivial is not None:
        return trivial

    opts = options or LayoutOptions()
    target_id = opts.target_id
    if target_id is None or target_id not in {p.id for p in persons}:
        logger.info(f"Influence layout: target {target_id!r} not found, using force layout")
        return force_layout(persons, connections, groups, opts)

    adj = build_adjacency([p.id for p in persons], connections)
    scores = influence_scores(persons, connections, target_id)
    hops = bfs_layers(target_id, adj)
    unreachable = max(hops.values()) + 2

    bodies = _bodies(persons)
    index = {b.id: b for b in bodies}
    layers = {b.id: hops.get(b.id, unreachable) for b in bodies}

    rows: dict[int, list[_Body]] = {}
    for b in bodies:
        rows.setdefault(layers[b.id], []).append(b)

    for layer in sorted(rows):
        row = rows[layer]

        def order(body: _Body) -> tuple[int, float, float]:
            above = [index[n].x for n in adj[body.id] if layers[n] < layer]
            if not above:
                return (1, 0.0, -scores[body.id])
            return (0, sum(above) / len(above), -scores[body.id])

        row.sort(key=order)
        width = max((len(row) - 1) * INFLUENCE_HORIZONTAL_SPACING, INFLUENCE_MIN_ROW_WIDTH)
        step = width / (len(row) - 1) if len(row) > 1 else 0
        for i, b in enumerate(row):
            b.x = 0.0 if len(row) == 1 else -width / 2 + i * step
            b.y = layer * INFLUENCE_VERTICAL_SPACING

    for _ in range(INFLUENCE_RELAX_PASSES):
        for b in bodies:
            if b.id == target_id:
                continue
            near = [index[n].x for n in adj[b.id] if abs(layers[n] - layers[b.id]) == 1]
            if near:
                b.x += (sum(near) / len(near) - b.x) * INFLUENCE_RELAX_FACTOR

    for _ in range(INFLUENCE_SWAP_ROUNDS):
        if not _reduce_crossings(rows, adj, index):
            break

    resolve_overlaps(bodies, spacing=opts.spacing, axes="x")

    target = index[target_id]
    shift_y = INFLUENCE_TARGET_Y - target.y
    mean_x = sum(b.x for b in bodies) / len(bodies)
    for b in bodies:
        b.x -= mean_x
        b.y += shift_y
    return _apply(persons, bodies)


def _reduce_crossings(
    rows: dict[int, list[_Body]],
    adj: dict[str, set[str]],
    index: dict[str, _Body],
) -> bool:
    """One round of pairwise swaps within each row.  True if anything moved."""
    improved = False
    for row in rows.values():
        for i in range(len(row)):
            for j in range(i + 1, len(row)):
                p1, p2 = row[i], row[j]
                current = swapped = 0
                for n1 in adj[p1.id]:
                    for n2 in adj[p2.id]:
                        x1, x2 = index[n1].x, index[n2].x
                        if (p1.x < p2.x and x1 > x2) or (p1.x > p2.x and x1 < x2):
                            current += 1
                        if (p2.x < p1.x and x1 > x2) or (p2.x > p1.x and x1 < x2):
                            swapped += 1
                if swapped < current:
                    p1.x, p2.x = p2.x, p1.x
                    row[i], row[j] = p2, p1
                    improved = True
    return improved


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

LayoutFn = Callable[
    [list[Person], list[Connection], Optional[list[Group]], Optional[LayoutOptions]],
    list[Person],
]

LAYOUTS: dict[LayoutStrategy, LayoutFn] = {
    LayoutStrategy.FORCE: force_layout,
    LayoutStrategy.HIERARCHICAL: hierarchical_layout,
    LayoutStrategy.CLUSTER: cluster_layout,
    LayoutStrategy.SCORE_RADIAL: score_radial_layout,
    LayoutStrategy.COMPACT: compact_layout,
    LayoutStrategy.INFLUENCE: influence_layout,
}


def compute_layout(
    strategy: LayoutStrategy | str,
    persons: list[Person],
    connections: list[Connection],
    groups: Optional[list[Group]] = None,
    options: Optional[LayoutOptions] = None,
) -> list[Person]:
    """Run one layout strategy.

    Args:
        strategy: A ``LayoutStrategy`` or its string value.
        persons: Persons to arrange.  Pass only the visible ones; hidden
                 persons are positioned by their collapsed branch.
        connections: Connections; those touching persons outside the list
                     are ignored.
        groups: Used by the cluster layout to join group members.
        options: Seed, root and target selection, spacing.

    Returns:
        Copies of ``persons`` in the same order with new ``x``/``y``.

    Raises:
        ValueError: If ``strategy`` is not a known layout.
    """
    try:
        key = LayoutStrategy(strategy)
    except ValueError:
        available = ", ".join(s.value for s in LayoutStrategy)
        raise ValueError(f"Unknown layout '{strategy}'. Available: {available}") from None
    return LAYOUTS[key](persons, connections, groups, options)
