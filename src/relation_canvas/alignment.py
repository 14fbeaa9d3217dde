"""Magnetic alignment guides and the align/distribute arrange helpers.

While a selection is dragged with magnetic snap on, its combined bounding
box is compared against every static card:

    Y axis (horizontal guide lines):  top/top, bottom/bottom, centre/centre
    X axis (vertical guide lines):    left/left, right/right, centre/centre

Each axis independently keeps the closest match under the threshold.  The
result carries the correction delta to add to the drag and the guide
lines to draw.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from .geometry import Bounds, bounds_of, person_bounds
from .models import Person

SNAP_THRESHOLD = 8

GuideKind = Literal["top", "bottom", "center-y", "left", "right", "center-x"]


@dataclass(frozen=True)
class AlignmentGuide:
    """A guide line in world space.

    ``orientation`` is the direction the line runs: a ``horizontal`` guide
    sits at ``y == position``, a ``vertical`` one at ``x == position``.
    """
    position: float
    orientation: Literal["horizontal", "vertical"]
    kind: GuideKind


@dataclass
class AlignmentResult:
    dx: float = 0.0
    dy: float = 0.0
    guides: list[AlignmentGuide] = field(default_factory=list)


def _best_match(
    pairs: list[tuple[float, float, GuideKind]],
    threshold: float,
) -> Optional[tuple[float, float, GuideKind]]:
    """Closest ``(moving, static)`` pair under the threshold.

    Returns ``(delta, static_position, kind)``.  Ties keep the first match.
    """
    best = None
    best_dist = threshold
    for moving, static, kind in pairs:
        dist = abs(moving - static)
        if dist < best_dist:
            best_dist = dist
            best = (static - moving, static, kind)
    return best


def calculate_alignment(
    moving: list[Person],
    static: list[Person],
    threshold: float = SNAP_THRESHOLD,
) -> Optional[AlignmentResult]:
    """Snap correction for ``moving`` against ``static`` persons.

    Args:
        moving: The persons being dragged, at their tentative positions.
        static: Candidate targets.  Hidden persons should be filtered out
                by the caller.
        threshold: Snap distance in world units.  The controller passes
                   ``SNAP_THRESHOLD / scale`` so the feel is constant on screen.

    Returns:
        An ``AlignmentResult`` or None when nothing is within reach.
    """
    if not moving or not static:
        return None

    mb = bounds_of(moving)
    y_pairs: list[tuple[float, float, GuideKind]] = []
    x_pairs: list[tuple[float, float, GuideKind]] = []
    for person in static:
        sb = person_bounds(person)
        y_pairs.extend([
            (mb.y, sb.y, "top"),
            (mb.bottom, sb.bottom, "bottom"),
            (mb.center_y, sb.center_y, "center-y"),
        ])
        x_pairs.extend([
            (mb.x, sb.x, "left"),
            (mb.right, sb.right, "right"),
            (mb.center_x, sb.center_x, "center-x"),
        ])

    y_match = _best_match(y_pairs, threshold)
    x_match = _best_match(x_pairs, threshold)
    if y_match is None and x_match is None:
        return None

    result = AlignmentResult()
    if y_match is not None:
        result.dy = y_match[0]
        result.guides.append(AlignmentGuide(y_match[1], "horizontal", y_match[2]))
    if x_match is not None:
        result.dx = x_match[0]
        result.guides.append(AlignmentGuide(x_match[1], "vertical", x_match[2]))
    return result


# ---------------------------------------------------------------------------
# Arrange helpers (toolbar align / distribute)
# ---------------------------------------------------------------------------

def align_left(persons: list[Person]) -> list[Person]:
    """Stack the selection in a column on the leftmost x."""
    if len(persons) < 2:
        return persons
    left = min(p.x for p in persons)
    return [p.model_copy(update={"x": left}) for p in persons]


def align_top(persons: list[Person]) -> list[Person]:
    """Line the selection up in a row on the topmost y."""
    if len(persons) < 2:
        return persons
    top = min(p.y for p in persons)
    return [p.model_copy(update={"y": top}) for p in persons]


def _distribute(persons: list[Person], axis: str) -> list[Person]:
    if len(persons) < 3:
        return persons
    ordered = sorted(persons, key=lambda p: getattr(p, axis))
    first = getattr(ordered[0], axis)
    last = getattr(ordered[-1], axis)
    step = (last - first) / (len(ordered) - 1)
    rank = {p.id: i for i, p in enumerate(ordered)}
    return [p.model_copy(update={axis: first + rank[p.id] * step}) for p in persons]


def distribute_vertical(persons: list[Person]) -> list[Person]:
    """Even vertical spacing between the topmost and bottommost person."""
    return _distribute(persons, "y")


def distribute_horizontal(persons: list[Person]) -> list[Person]:
    """Even horizontal spacing between the leftmost and rightmost person."""
    return _distribute(persons, "x")


def guide_extent(guide: AlignmentGuide, persons: list[Person]) -> tuple[float, float]:
    """Span a guide line should cover so it reaches every card on it."""
    b: Optional[Bounds] = bounds_of(persons)
    if b is None:
        return (guide.position, guide.position)
    if guide.orientation == "horizontal":
        return (b.x - 40, b.right + 40)
    return (b.y - 40, b.bottom + 40)
