"""Bounding-box helpers shared by layout, routing, alignment and interaction.

Everything here works in world space and treats person cards as fixed
``NODE_WIDTH`` x ``NODE_HEIGHT`` rectangles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .models import NODE_HEIGHT, NODE_WIDTH, Group, Person


@dataclass
class Bounds:
    """Axis-aligned rectangle, top-left plus size."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def contains(self, px: float, py: float) -> bool:
        return point_in_rect(px, py, self)


def person_bounds(person: Person) -> Bounds:
    return Bounds(person.x, person.y, NODE_WIDTH, NODE_HEIGHT)


def group_bounds(group: Group) -> Bounds:
    return Bounds(group.x, group.y, group.width, group.height)


def bounds_of(persons: Iterable[Person]) -> Optional[Bounds]:
    """Smallest rectangle enclosing every card, or None for no persons."""
    persons = list(persons)
    if not persons:
        return None
    min_x = min(p.x for p in persons)
    min_y = min(p.y for p in persons)
    max_x = max(p.x + NODE_WIDTH for p in persons)
    max_y = max(p.y + NODE_HEIGHT for p in persons)
    return Bounds(min_x, min_y, max_x - min_x, max_y - min_y)


def normalize_rect(x1: float, y1: float, x2: float, y2: float) -> Bounds:
    """Rectangle spanned by two arbitrary corners (e.g. a marquee drag)."""
    return Bounds(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))


def point_in_rect(px: float, py: float, rect: Bounds) -> bool:
    """Inclusive point-in-rectangle test."""
    return rect.x <= px <= rect.right and rect.y <= py <= rect.bottom


def rects_overlap(a: Bounds, b: Bounds) -> bool:
    """True when the interiors intersect.  Touching edges do not count."""
    return a.x < b.right and b.x < a.right and a.y < b.bottom and b.y < a.bottom


def snap_to_grid(value: float, grid_size: float) -> float:
    return round(value / grid_size) * grid_size


# ---------------------------------------------------------------------------
# Derived group membership
# ---------------------------------------------------------------------------

def group_contains(group: Group, person: Person) -> bool:
    """A person is in a group when its card centre lies inside the group."""
    cx, cy = person.center()
    return point_in_rect(cx, cy, group_bounds(group))


def persons_in_group(group: Group, persons: Iterable[Person]) -> list[Person]:
    """Persons currently inside ``group``.

    Membership is recomputed on every call from the rectangles as they are
    right now.  Nothing is cached, so moving either side changes the answer.
    """
    return [p for p in persons if group_contains(group, p)]


# ---------------------------------------------------------------------------
# Picking helpers (world space)
# ---------------------------------------------------------------------------

def person_at(wx: float, wy: float, persons: list[Person]) -> Optional[Person]:
    """Topmost visible card under a world point.  Later persons draw on top."""
    for person in reversed(persons):
        if person.hidden:
            continue
        if point_in_rect(wx, wy, person_bounds(person)):
            return person
    return None


def group_at(wx: float, wy: float, groups: list[Group]) -> Optional[Group]:
    for group in reversed(groups):
        if point_in_rect(wx, wy, group_bounds(group)):
            return group
    return None
