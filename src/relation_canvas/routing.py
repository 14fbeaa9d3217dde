"""
Edge routing for relation-canvas.

Each connection leaves and enters a card through the midpoint of one of
its four sides (a "hub").  Routing happens in three steps:

  1. **Side selection**: unless the connection pins its sides, the angle
     between the two card centres is bucketed into four 90° sectors and
     the facing sides are used:

         [-45°, 45°)    right  -> left
         [45°, 135°)    bottom -> top
         >=135° / <-135° left  -> right
         otherwise      top    -> bottom

     (Screen coordinates: +y points down, so 90° is "below".)

  2. **Path construction**: a cubic bezier whose control points project
     outward from each hub along its side's normal by
     ``min(80, 0.3 * distance)``.  The curve always leaves a card
     perpendicular to the side it attaches to.  With organic lines off
     the path degenerates to a straight segment.

  3. **Collision flag**: the straight hub-to-hub segment is tested against
     every other card (padded by 10px).  The flag is informational only;
     nothing is rerouted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .geometry import Bounds, person_bounds
from .models import Connection, Person, Side

MAX_CONTROL_OFFSET = 80
CONTROL_OFFSET_RATIO = 0.3
COLLISION_PADDING = 10

# Outward normal of each side (screen y grows downward)
SIDE_NORMALS: dict[str, tuple[float, float]] = {
    "top": (0.0, -1.0),
    "right": (1.0, 0.0),
    "bottom": (0.0, 1.0),
    "left": (-1.0, 0.0),
}


@dataclass
class EdgePath:
    """A cubic bezier in world space.

    A straight segment is stored with its control points on the endpoints,
    so every consumer can treat all paths the same way.
    """
    start: tuple[float, float]
    cp1: tuple[float, float]
    cp2: tuple[float, float]
    end: tuple[float, float]

    def point_at(self, t: float) -> tuple[float, float]:
        mt = 1 - t
        a = mt ** 3
        b = 3 * mt ** 2 * t
        c = 3 * mt * t ** 2
        d = t ** 3
        x = a * self.start[0] + b * self.cp1[0] + c * self.cp2[0] + d * self.end[0]
        y = a * self.start[1] + b * self.cp1[1] + c * self.cp2[1] + d * self.end[1]
        return (x, y)

    def sample(self, steps: int = 30) -> list[tuple[float, float]]:
        """``steps + 1`` evenly spaced points in parameter space."""
        return [self.point_at(i / steps) for i in range(steps + 1)]

    @property
    def midpoint(self) -> tuple[float, float]:
        return self.point_at(0.5)

    def svg_path(self) -> str:
        return (
            f"M {self.start[0]:g} {self.start[1]:g} "
            f"C {self.cp1[0]:g} {self.cp1[1]:g}, "
            f"{self.cp2[0]:g} {self.cp2[1]:g}, "
            f"{self.end[0]:g} {self.end[1]:g}"
        )


@dataclass
class RoutedPath:
    path: EdgePath
    from_side: Side
    to_side: Side
    has_collision: bool = False


# ---------------------------------------------------------------------------
# Hubs and side selection
# ---------------------------------------------------------------------------

def hub_position(person: Person, side: str) -> tuple[float, float]:
    """Midpoint of ``side`` on the person's card."""
    b = person_bounds(person)
    if side == "top":
        return (b.center_x, b.y)
    if side == "right":
        return (b.right, b.center_y)
    if side == "bottom":
        return (b.center_x, b.bottom)
    if side == "left":
        return (b.x, b.center_y)
    raise ValueError(f"Unknown side: {side}")


def best_sides(from_person: Person, to_person: Person) -> tuple[Side, Side]:
    """Pick the pair of facing sides from the angle between centres."""
    fx, fy = from_person.center()
    tx, ty = to_person.center()
    angle = math.degrees(math.atan2(ty - fy, tx - fx))

    if -45 <= angle < 45:
        return ("right", "left")
    if 45 <= angle < 135:
        return ("bottom", "top")
    if angle >= 135 or angle < -135:
        return ("left", "right")
    return ("top", "bottom")


# ---------------------------------------------------------------------------
# Path construction
# ---------------------------------------------------------------------------

def _project(point: tuple[float, float], side: str, offset: float) -> tuple[float, float]:
    nx, ny = SIDE_NORMALS[side]
    return (point[0] + nx * offset, point[1] + ny * offset)


def build_path(
    from_pos: tuple[float, float],
    to_pos: tuple[float, float],
    from_side: str,
    to_side: str,
) -> EdgePath:
    """Bezier from ``from_pos`` to ``to_pos`` leaving/entering along the sides."""
    dist = math.hypot(to_pos[0] - from_pos[0], to_pos[1] - from_pos[1])
    offset = min(MAX_CONTROL_OFFSET, dist * CONTROL_OFFSET_RATIO)
    return EdgePath(
        start=from_pos,
        cp1=_project(from_pos, from_side, offset),
        cp2=_project(to_pos, to_side, offset),
        end=to_pos,
    )


def straight_path(from_pos: tuple[float, float], to_pos: tuple[float, float]) -> EdgePath:
    return EdgePath(start=from_pos, cp1=from_pos, cp2=to_pos, end=to_pos)


def route_connection(
    connection: Connection,
    from_person: Person,
    to_person: Person,
    persons: Iterable[Person] = (),
    organic: bool = True,
) -> RoutedPath:
    """Full route for one connection.

    Pinned sides on the connection win over the heuristic.  ``persons`` is
    the set of cards checked for the collision flag; the two endpoints are
    always excluded.
    """
    auto_from, auto_to = best_sides(from_person, to_person)
    from_side = connection.from_side or auto_from
    to_side = connection.to_side or auto_to

    start = hub_position(from_person, from_side)
    end = hub_position(to_person, to_side)
    path = build_path(start, end, from_side, to_side) if organic else straight_path(start, end)

    exclude = {from_person.id, to_person.id}
    has_collision = any(
        line_intersects_person(start[0], start[1], end[0], end[1], p, exclude)
        for p in persons
        if not p.hidden
    )
    return RoutedPath(path=path, from_side=from_side, to_side=to_side, has_collision=has_collision)


def arrow_direction(side: str) -> tuple[float, float]:
    """Unit vector an arrowhead points along when it lands on ``side``.

    Arrowheads point *into* the card, so this is the inverse of the side's
    outward normal: an arrow landing on the left side points right.
    """
    nx, ny = SIDE_NORMALS[side]
    return (-nx, -ny)


# ---------------------------------------------------------------------------
# Collision tests
# ---------------------------------------------------------------------------

def _segments_intersect(
    x1: float, y1: float, x2: float, y2: float,
    x3: float, y3: float, x4: float, y4: float,
) -> bool:
    denom = (y4 - y3) * (x2 - x1) - (x4 - x3) * (y2 - y1)
    if denom == 0:
        # Parallel or collinear: treated as no crossing
        return False
    ua = ((x4 - x3) * (y1 - y3) - (y4 - y3) * (x1 - x3)) / denom
    ub = ((x2 - x1) * (y1 - y3) - (y2 - y1) * (x1 - x3)) / denom
    return 0 <= ua <= 1 and 0 <= ub <= 1


def line_intersects_rect(x1: float, y1: float, x2: float, y2: float, rect: Bounds) -> bool:
    """True when the segment has an endpoint inside ``rect`` or crosses an edge."""
    if rect.contains(x1, y1) or rect.contains(x2, y2):
        return True
    left, top, right, bottom = rect.x, rect.y, rect.right, rect.bottom
    return (
        _segments_intersect(x1, y1, x2, y2, left, top, right, top)
        or _segments_intersect(x1, y1, x2, y2, right, top, right, bottom)
        or _segments_intersect(x1, y1, x2, y2, right, bottom, left, bottom)
        or _segments_intersect(x1, y1, x2, y2, left, bottom, left, top)
    )


def line_intersects_person(
    x1: float, y1: float, x2: float, y2: float,
    person: Person,
    exclude_ids: Optional[set[str]] = None,
    padding: float = COLLISION_PADDING,
) -> bool:
    if exclude_ids and person.id in exclude_ids:
        return False
    b = person_bounds(person)
    padded = Bounds(b.x - padding, b.y - padding, b.width + 2 * padding, b.height + 2 * padding)
    return line_intersects_rect(x1, y1, x2, y2, padded)


def connections_in_rect(
    persons: list[Person],
    connections: list[Connection],
    rect: Bounds,
) -> list[str]:
    """Ids of connections whose centre-to-centre segment touches ``rect``.

    Used by marquee selection.  Connections with a missing or hidden
    endpoint are skipped.
    """
    by_id = {p.id: p for p in persons}
    hits = []
    for conn in connections:
        a = by_id.get(conn.from_id)
        b = by_id.get(conn.to_id)
        if a is None or b is None or a.hidden or b.hidden:
            continue
        ax, ay = a.center()
        bx, by = b.center()
        if line_intersects_rect(ax, ay, bx, by, rect):
            hits.append(conn.id)
    return hits
