"""Canvas renderer using Pillow: a visible surface plus a hit-test surface.

Every draw produces two same-sized images sharing one world->screen
transform:

    surface      RGBA, what the user sees (grid, groups, connections,
                 cards, guides, marquee, rubber band)
    hit_surface  RGB, black except for connections, each stroked in its own
                 solid colour and wider than the visible line

``connection_at(sx, sy)`` reads one pixel of the hit surface and looks the
colour up in a map rebuilt on every draw, so picking a connection costs the
same whatever the number or shape of the curves.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Container, Optional

from PIL import Image, ImageDraw, ImageFont

from .alignment import AlignmentGuide, guide_extent
from .geometry import Bounds
from .models import (
    FRAME_COLORS,
    GROUP_COLORS,
    NODE_HEIGHT,
    NODE_WIDTH,
    Connection,
    Group,
    Person,
    ViewTransform,
    Workspace,
    WorkspaceSettings,
)
from .routing import arrow_direction, route_connection
from .themes import ThemePalette, get_theme

logger = logging.getLogger(__name__)

HIT_STROKE_WIDTH = 10
NO_HIT = (0, 0, 0)

_WEIGHT_WIDTHS = {"thin": 1, "medium": 2, "thick": 4}
_DASH_PATTERNS = {"dashed": (10, 6), "dotted": (2, 5)}


# --- Font handling ---

@lru_cache(maxsize=32)
def _load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    suffix = "-Bold" if bold else ""
    font_paths = [
        f"/usr/share/fonts/truetype/dejavu/DejaVuSans{suffix}.ttf",
        f"/usr/share/fonts/truetype/liberation/LiberationSans-{'Bold' if bold else 'Regular'}.ttf",
        f"/usr/share/fonts/truetype/freefont/FreeSans{'Bold' if bold else ''}.ttf",
        f"/usr/share/fonts/TTF/DejaVuSans{suffix}.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


# --- Color helpers ---

def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert hex color to RGB tuple. Supports both 3-char and 6-char hex."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = hex_color[0]*2 + hex_color[1]*2 + hex_color[2]*2
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    r, g, b = _hex_to_rgb(hex_color)
    return (r, g, b, alpha)


def hit_color(connection_id: str, taken: Container[tuple[int, int, int]] = ()) -> tuple[int, int, int]:
    """Hit-surface colour for a connection.

    A 24-bit blake2b digest of the id, probed linearly past colours already
    handed out this frame.  Black is never returned; it means "no hit".
    """
    digest = hashlib.blake2b(connection_id.encode("utf-8"), digest_size=3).digest()
    value = int.from_bytes(digest, "big")
    while True:
        rgb = ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)
        if rgb != NO_HIT and rgb not in taken:
            return rgb
        value = (value + 1) & 0xFFFFFF


# --- Scene ---

@dataclass
class Scene:
    """Everything one frame needs, read-only.

    ``rubber_band`` is the pending connection preview as two world points.
    ``collapsed_counts`` maps a collapse parent to the number of persons
    parked under it (drawn as a badge).
    """
    persons: list[Person] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    transform: ViewTransform = field(default_factory=ViewTransform)
    settings: WorkspaceSettings = field(default_factory=WorkspaceSettings)
    selected_person_ids: set[str] = field(default_factory=set)
    selected_group_ids: set[str] = field(default_factory=set)
    selected_connection_ids: set[str] = field(default_factory=set)
    highlighted_connection_ids: set[str] = field(default_factory=set)
    collapsed_counts: dict[str, int] = field(default_factory=dict)
    guides: list[AlignmentGuide] = field(default_factory=list)
    selection_rect: Optional[Bounds] = None
    rubber_band: Optional[tuple[tuple[float, float], tuple[float, float]]] = None

    @classmethod
    def from_workspace(cls, workspace: Workspace, transform: Optional[ViewTransform] = None) -> Scene:
        return cls(
            persons=list(workspace.persons),
            connections=list(workspace.connections),
            groups=list(workspace.groups),
            transform=transform or workspace.canvas_transform,
            settings=workspace.settings,
            collapsed_counts={b.parent_id: len(b.collapsed_ids) for b in workspace.collapsed_branches},
        )


# --- Drawing primitives ---

def _dashed_polyline(
    draw: ImageDraw.ImageDraw,
    points: list[tuple[float, float]],
    fill,
    width: int,
    pattern: tuple[float, float],
):
    """Stroke a polyline with an on/off dash pattern measured in pixels."""
    on, off = pattern
    remaining = on
    drawing = True
    for (x1, y1), (x2, y2) in zip(points, points[1:]):
        seg_len = ((x2 - x1) ** 2 + (y2 - y1) ** 2) ** 0.5
        pos = 0.0
        while pos < seg_len:
            step = min(remaining, seg_len - pos)
            if drawing:
                t0 = pos / seg_len
                t1 = (pos + step) / seg_len
                draw.line(
                    [(x1 + (x2 - x1) * t0, y1 + (y2 - y1) * t0),
                     (x1 + (x2 - x1) * t1, y1 + (y2 - y1) * t1)],
                    fill=fill, width=width,
                )
            pos += step
            remaining -= step
            if remaining <= 0:
                drawing = not drawing
                remaining = on if drawing else off


def _draw_arrowhead(
    draw: ImageDraw.ImageDraw,
    tip: tuple[float, float],
    side: str,
    color,
    size: float,
):
    """Triangle pointing into the card through ``side``."""
    ux, uy = arrow_direction(side)
    bx = tip[0] - ux * size
    by = tip[1] - uy * size
    # Perpendicular half-width
    px, py = -uy * size / 2, ux * size / 2
    draw.polygon([tip, (bx + px, by + py), (bx - px, by - py)], fill=color)


# --- Main renderer ---

class CanvasRenderer:
    """Draws a ``Scene`` to a visible surface and a hit-test surface."""

    CARD_RADIUS = 10
    CARD_PADDING = 14
    MIN_TEXT_SCALE = 0.35
    ARROW_SIZE = 9

    def __init__(self, width: int = 1280, height: int = 800, theme: str = "dark"):
        self.width = width
        self.height = height
        self.theme: ThemePalette = get_theme(theme)
        self.surface: Optional[Image.Image] = None
        self.hit_surface: Optional[Image.Image] = None
        self._hit_colors: dict[tuple[int, int, int], str] = {}

    def resize(self, width: int, height: int) -> None:
        """New viewport size.  Surfaces are dropped until the next draw."""
        self.width = width
        self.height = height
        self.surface = None
        self.hit_surface = None
        self._hit_colors = {}

    # --- Public API ---

    def render(self, scene: Scene) -> Image.Image:
        """Draw ``scene`` to both surfaces and return the visible one."""
        img = Image.new("RGBA", (self.width, self.height), _hex_to_rgba(self.theme.background))
        hit = Image.new("RGB", (self.width, self.height), NO_HIT)
        draw = ImageDraw.Draw(img, "RGBA")
        hit_draw = ImageDraw.Draw(hit)
        self._hit_colors = {}

        t = scene.transform
        if scene.settings.show_grid:
            self._draw_grid(draw, t, scene.settings)
        for group in scene.groups:
            self._draw_group(draw, group, t, group.id in scene.selected_group_ids)
        self._draw_connections(draw, hit_draw, scene)
        for person in scene.persons:
            if person.hidden:
                continue
            self._draw_person(
                draw, person, t,
                selected=person.id in scene.selected_person_ids,
                collapsed=scene.collapsed_counts.get(person.id, 0),
            )
        self._draw_overlays(draw, scene)

        self.surface = img
        self.hit_surface = hit
        logger.debug(f"Rendered {len(scene.persons)} persons, {len(self._hit_colors)} hit colours")
        return img

    def connection_at(self, sx: float, sy: float) -> Optional[str]:
        """Id of the connection under a screen point, or None."""
        if self.hit_surface is None:
            return None
        px, py = int(sx), int(sy)
        if not (0 <= px < self.width and 0 <= py < self.height):
            return None
        rgb = self.hit_surface.getpixel((px, py))
        return self._hit_colors.get(tuple(rgb[:3]))

    def to_png(self, output_path: Optional[str] = None) -> bytes:
        """PNG bytes of the last visible surface.  Optionally save to file."""
        if self.surface is None:
            raise ValueError("Nothing rendered yet")
        buf = BytesIO()
        self.surface.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()
        if output_path:
            Path(output_path).write_bytes(png_bytes)
        return png_bytes

    # --- Layers ---

    def _draw_grid(self, draw: ImageDraw.ImageDraw, t: ViewTransform, settings: WorkspaceSettings):
        step = settings.grid_size * t.scale
        if step < 4:
            return
        color = _hex_to_rgba(self.theme.grid_color, int(255 * settings.grid_opacity))
        x = t.x % step
        while x < self.width:
            draw.line([(x, 0), (x, self.height)], fill=color, width=1)
            x += step
        y = t.y % step
        while y < self.height:
            draw.line([(0, y), (self.width, y)], fill=color, width=1)
            y += step

    def _draw_group(self, draw: ImageDraw.ImageDraw, group: Group, t: ViewTransform, selected: bool):
        x1, y1 = _to_screen(t, group.x, group.y)
        x2, y2 = _to_screen(t, group.x + group.width, group.y + group.height)
        color = GROUP_COLORS.get(group.color, GROUP_COLORS["blue"])
        alpha = self.theme.group_solid_alpha if group.solid_background else self.theme.group_fill_alpha
        draw.rounded_rectangle(
            [x1, y1, x2, y2],
            radius=max(2, int(12 * t.scale)),
            fill=_hex_to_rgba(color, alpha),
            outline=self.theme.card_selected if selected else color,
            width=3 if selected else 2,
        )
        if t.scale >= self.MIN_TEXT_SCALE:
            draw.text(
                (x1 + 12 * t.scale, y1 + 8 * t.scale),
                group.get_label(),
                fill=self.theme.group_label,
                font=_load_font(max(8, int(15 * t.scale)), bold=True),
            )

    def _draw_connections(self, draw: ImageDraw.ImageDraw, hit_draw: ImageDraw.ImageDraw, scene: Scene):
        t = scene.transform
        by_id = {p.id: p for p in scene.persons}
        for conn in scene.connections:
            a = by_id.get(conn.from_id)
            b = by_id.get(conn.to_id)
            if a is None or b is None or a.hidden or b.hidden:
                continue

            routed = route_connection(conn, a, b, organic=scene.settings.organic_lines)
            points = [_to_screen(t, x, y) for x, y in routed.path.sample()]

            if conn.id in scene.highlighted_connection_ids:
                color = self.theme.path_highlight
                width = _WEIGHT_WIDTHS[conn.weight] + 2
            elif conn.id in scene.selected_connection_ids:
                color = self.theme.connection_selected
                width = _WEIGHT_WIDTHS[conn.weight] + 1
            else:
                color = self.theme.connection
                width = _WEIGHT_WIDTHS[conn.weight]

            pattern = _DASH_PATTERNS.get(conn.style)
            if pattern:
                _dashed_polyline(draw, points, color, width, pattern)
            else:
                draw.line(points, fill=color, width=width, joint="curve")

            size = self.ARROW_SIZE * max(t.scale, 0.5)
            if conn.direction in ("forward", "bidirectional"):
                _draw_arrowhead(draw, points[-1], routed.to_side, color, size)
            if conn.direction in ("backward", "bidirectional"):
                _draw_arrowhead(draw, points[0], routed.from_side, color, size)

            rgb = hit_color(conn.id, self._hit_colors)
            self._hit_colors[rgb] = conn.id
            hit_draw.line(points, fill=rgb, width=HIT_STROKE_WIDTH, joint="curve")

    def _draw_person(self, draw: ImageDraw.ImageDraw, person: Person, t: ViewTransform,
                     selected: bool, collapsed: int):
        """Draw a single person card."""
        s = t.scale
        x, y = _to_screen(t, person.x, person.y)
        w = NODE_WIDTH * s
        h = NODE_HEIGHT * s
        radius = max(2, int(self.CARD_RADIUS * s))
        frame = FRAME_COLORS.get(person.frame_color, FRAME_COLORS["white"])

        if selected:
            pad = 4
            draw.rounded_rectangle(
                [x - pad, y - pad, x + w + pad, y + h + pad],
                radius=radius + pad,
                outline=self.theme.card_selected,
                width=3,
            )
        draw.rounded_rectangle(
            [x, y, x + w, y + h],
            radius=radius,
            fill=self.theme.card_fill,
            outline=frame,
            width=max(1, round(2 * s)),
        )

        if s < self.MIN_TEXT_SCALE:
            return

        pad = self.CARD_PADDING * s
        name_font = _load_font(max(8, int(16 * s)), bold=True)
        body_font = _load_font(max(7, int(12 * s)))
        draw.text((x + pad, y + pad), person.name, fill=self.theme.card_text, font=name_font)

        line_y = y + pad + 22 * s
        for line in (person.position, person.position2, person.position3):
            if not line:
                continue
            draw.text((x + pad, line_y), line, fill=self.theme.card_muted, font=body_font)
            line_y += 16 * s

        # Score badge, top-right
        r = 11 * s
        cx, cy = x + w - pad - r, y + pad + r
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=self.theme.badge_fill, outline=frame)
        label = str(person.score)
        bbox = body_font.getbbox(label)
        draw.text(
            (cx - (bbox[2] - bbox[0]) / 2, cy - (bbox[3] - bbox[1]) / 2 - bbox[1]),
            label, fill=self.theme.card_text, font=body_font,
        )

        if person.advocate:
            draw.text((x + w - pad - 2 * r - 34 * s, y + pad), "ADV", fill=frame, font=body_font)

        if collapsed:
            badge = f"+{collapsed}"
            bbox = body_font.getbbox(badge)
            bw = bbox[2] - bbox[0] + 12
            bh = bbox[3] - bbox[1] + 6
            bx = x + w - bw - 8 * s
            by = y + h - bh - 8 * s
            draw.rounded_rectangle([bx, by, bx + bw, by + bh], radius=4, fill=self.theme.card_selected)
            draw.text((bx + 6, by + 3 - bbox[1]), badge, fill=self.theme.background, font=body_font)

    def _draw_overlays(self, draw: ImageDraw.ImageDraw, scene: Scene):
        t = scene.transform
        visible = [p for p in scene.persons if not p.hidden]

        for guide in scene.guides:
            lo, hi = guide_extent(guide, visible)
            if guide.orientation == "horizontal":
                start = _to_screen(t, lo, guide.position)
                end = _to_screen(t, hi, guide.position)
            else:
                start = _to_screen(t, guide.position, lo)
                end = _to_screen(t, guide.position, hi)
            draw.line([start, end], fill=self.theme.guide_color, width=1)

        if scene.selection_rect is not None:
            r = scene.selection_rect
            x1, y1 = _to_screen(t, r.x, r.y)
            x2, y2 = _to_screen(t, r.right, r.bottom)
            draw.rectangle(
                [x1, y1, x2, y2],
                fill=_hex_to_rgba(self.theme.marquee_color, self.theme.marquee_fill_alpha),
                outline=self.theme.marquee_color,
                width=1,
            )

        if scene.rubber_band is not None:
            (ax, ay), (bx, by) = scene.rubber_band
            points = [_to_screen(t, ax, ay), _to_screen(t, bx, by)]
            _dashed_polyline(draw, points, self.theme.connection_selected, 2, _DASH_PATTERNS["dashed"])


def _to_screen(t: ViewTransform, wx: float, wy: float) -> tuple[float, float]:
    return (wx * t.scale + t.x, wy * t.scale + t.y)
