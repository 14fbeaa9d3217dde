"""
View transform: pan, zoom anchored at a screen point, fit-to-content.

The transform maps world to screen as ``screen = world * scale + (x, y)``.
Zooming at a screen point ``(cx, cy)`` keeps the world point under it fixed:

    x' = cx - (cx - x) * (scale' / scale)

Scale is always clamped to ``[MIN_ZOOM, MAX_ZOOM]``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .geometry import bounds_of
from .models import MAX_ZOOM, MIN_ZOOM, NODE_HEIGHT, NODE_WIDTH, ZOOM_STEP, Person, ViewTransform

FIT_PADDING = 100
FIT_MAX_SCALE = 2.0
FOCUS_SCALE = 1.0


def clamp_scale(scale: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, scale))


class CanvasTransform:
    """Mutable view transform bound to a viewport size."""

    def __init__(self, viewport_width: int = 1280, viewport_height: int = 800,
                 x: float = 0.0, y: float = 0.0, scale: float = 1.0):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.x = x
        self.y = y
        self.scale = clamp_scale(scale)

    @classmethod
    def from_view(cls, view: ViewTransform, viewport_width: int = 1280,
                  viewport_height: int = 800) -> CanvasTransform:
        return cls(viewport_width, viewport_height, view.x, view.y, view.scale)

    def to_view(self) -> ViewTransform:
        return ViewTransform(x=self.x, y=self.y, scale=self.scale)

    def set(self, x: float, y: float, scale: float) -> None:
        self.x = x
        self.y = y
        self.scale = clamp_scale(scale)

    # --- Coordinate mapping ---

    def screen_to_world(self, sx: float, sy: float) -> tuple[float, float]:
        return ((sx - self.x) / self.scale, (sy - self.y) / self.scale)

    def world_to_screen(self, wx: float, wy: float) -> tuple[float, float]:
        return (wx * self.scale + self.x, wy * self.scale + self.y)

    # --- Pan / zoom ---

    def pan(self, dx: float, dy: float) -> None:
        """Shift by raw screen pixels."""
        self.x += dx
        self.y += dy

    def zoom_at(self, new_scale: float, cx: float, cy: float) -> None:
        """Set the scale, keeping the world point under ``(cx, cy)`` fixed."""
        new_scale = clamp_scale(new_scale)
        ratio = new_scale / self.scale
        self.x = cx - (cx - self.x) * ratio
        self.y = cy - (cy - self.y) * ratio
        self.scale = new_scale

    def zoom(self, delta: float, cx: Optional[float] = None, cy: Optional[float] = None) -> None:
        """Change the scale by ``delta``, anchored at ``(cx, cy)`` when given."""
        if cx is None or cy is None:
            self.scale = clamp_scale(self.scale + delta)
            return
        self.zoom_at(self.scale + delta, cx, cy)

    def zoom_in(self) -> None:
        self.zoom(ZOOM_STEP, self.viewport_width / 2, self.viewport_height / 2)

    def zoom_out(self) -> None:
        self.zoom(-ZOOM_STEP, self.viewport_width / 2, self.viewport_height / 2)

    def set_zoom(self, scale: float) -> None:
        self.scale = clamp_scale(scale)

    def reset(self) -> None:
        self.set(0.0, 0.0, 1.0)

    # --- Fitting ---

    def zoom_to_area(self, center_x: float, center_y: float, width: float, height: float,
                     padding: float = FIT_PADDING, max_scale: float = FIT_MAX_SCALE) -> None:
        """Centre a world rectangle in the viewport and scale it to fit."""
        avail_w = max(1.0, self.viewport_width - 2 * padding)
        avail_h = max(1.0, self.viewport_height - 2 * padding)
        scale = min(avail_w / max(width, 1.0), avail_h / max(height, 1.0), max_scale)
        scale = clamp_scale(scale)
        self.x = self.viewport_width / 2 - center_x * scale
        self.y = self.viewport_height / 2 - center_y * scale
        self.scale = scale

    def zoom_to_fit(self, persons: Iterable[Person]) -> bool:
        """Fit every visible card.  False (no change) when there is nothing to fit."""
        b = bounds_of(p for p in persons if not p.hidden)
        if b is None:
            return False
        self.zoom_to_area(b.center_x, b.center_y, b.width, b.height)
        return True

    def focus(self, person: Person, scale: float = FOCUS_SCALE) -> None:
        """Centre one card at a comfortable scale."""
        scale = clamp_scale(scale)
        cx = person.x + NODE_WIDTH / 2
        cy = person.y + NODE_HEIGHT / 2
        self.x = self.viewport_width / 2 - cx * scale
        self.y = self.viewport_height / 2 - cy * scale
        self.scale = scale
