"""
Interaction state: what the pointer is currently doing.

The state is one of:

    idle                 nothing in progress
    panning              moving the view
    dragging_person      moving the selected persons
    dragging_group       moving a group and the persons inside it
    dragging_connection  rubber band from a source person to the pointer
    resizing_group       pulling a group handle
    marquee_selecting    drawing a selection rectangle

and independently the mode (``select``, ``connect`` or ``pan``).  Holding
space switches to ``pan`` and releasing it restores the previous mode.

This module only holds state.  ``CanvasController`` decides the
transitions and performs the workspace mutations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .alignment import AlignmentGuide
from .geometry import Bounds, normalize_rect

MARQUEE_MIN_SIZE = 5
RESIZE_HANDLES = ("n", "s", "e", "w", "ne", "nw", "se", "sw")


class InteractionMode(str, Enum):
    SELECT = "select"
    CONNECT = "connect"
    PAN = "pan"


class InteractionKind(str, Enum):
    IDLE = "idle"
    PANNING = "panning"
    DRAGGING_PERSON = "dragging_person"
    DRAGGING_GROUP = "dragging_group"
    DRAGGING_CONNECTION = "dragging_connection"
    RESIZING_GROUP = "resizing_group"
    MARQUEE_SELECTING = "marquee_selecting"


@dataclass
class DragState:
    """An active drag.

    ``start_*`` is where the gesture began and ``mouse_*`` the latest
    pointer position, both in world units.  ``origins`` holds the
    positions of the persons being moved at drag start, keyed by id, and
    ``anchor`` the dragged group's top-left corner.  ``offset`` is the
    movement applied so far.
    """
    kind: InteractionKind
    target_id: Optional[str] = None
    start_x: float = 0.0
    start_y: float = 0.0
    mouse_x: float = 0.0
    mouse_y: float = 0.0
    has_moved: bool = False
    origins: dict[str, tuple[float, float]] = field(default_factory=dict)
    member_ids: list[str] = field(default_factory=list)
    anchor: Optional[tuple[float, float]] = None
    offset: tuple[float, float] = (0.0, 0.0)


@dataclass
class ResizeState:
    group_id: str
    handle: str
    start_x: float
    start_y: float
    start_width: float
    start_height: float
    start_group_x: float
    start_group_y: float


class InteractionState:
    """Pointer gesture state plus the interaction mode."""

    def __init__(self, mode: InteractionMode = InteractionMode.SELECT):
        self.mode = mode
        self.drag: Optional[DragState] = None
        self.resize: Optional[ResizeState] = None
        self.panning = False
        self.connect_from: Optional[str] = None
        self.selection_rect: Optional[Bounds] = None
        self.guides: list[AlignmentGuide] = []
        self.space_pressed = False
        self._previous_mode: Optional[InteractionMode] = None
        # Sub-grid movement carried between events when magnetic snap is off
        self.accumulator: tuple[float, float] = (0.0, 0.0)
        self.snapshot_recorded = False

    @property
    def kind(self) -> InteractionKind:
        if self.resize is not None:
            return InteractionKind.RESIZING_GROUP
        if self.drag is not None:
            return self.drag.kind
        if self.panning:
            return InteractionKind.PANNING
        return InteractionKind.IDLE

    @property
    def is_idle(self) -> bool:
        return self.kind is InteractionKind.IDLE

    # --- Mode ---

    def set_mode(self, mode: InteractionMode) -> None:
        self.mode = mode
        if mode is not InteractionMode.CONNECT:
            self.connect_from = None

    def press_space(self) -> bool:
        """Enter temporary pan mode.  False if space was already held."""
        if self.space_pressed:
            return False
        self.space_pressed = True
        self._previous_mode = self.mode
        self.mode = InteractionMode.PAN
        return True

    def release_space(self) -> bool:
        if not self.space_pressed:
            return False
        self.space_pressed = False
        self.mode = self._previous_mode or InteractionMode.SELECT
        self._previous_mode = None
        self.panning = False
        return True

    # --- Gestures ---

    def start_drag(
        self,
        kind: InteractionKind,
        target_id: Optional[str],
        wx: float,
        wy: float,
        origins: Optional[dict[str, tuple[float, float]]] = None,
        member_ids: Optional[list[str]] = None,
        anchor: Optional[tuple[float, float]] = None,
    ) -> DragState:
        self.drag = DragState(
            kind=kind,
            target_id=target_id,
            start_x=wx,
            start_y=wy,
            mouse_x=wx,
            mouse_y=wy,
            origins=dict(origins or {}),
            member_ids=list(member_ids or []),
            anchor=anchor,
        )
        self.accumulator = (0.0, 0.0)
        self.snapshot_recorded = False
        if kind is InteractionKind.MARQUEE_SELECTING:
            self.selection_rect = Bounds(wx, wy, 0.0, 0.0)
        return self.drag

    def update_pointer(self, wx: float, wy: float) -> None:
        if self.drag is None:
            return
        self.drag.mouse_x = wx
        self.drag.mouse_y = wy
        if self.drag.kind is InteractionKind.MARQUEE_SELECTING:
            rect = normalize_rect(self.drag.start_x, self.drag.start_y, wx, wy)
            self.selection_rect = rect
            if rect.width > MARQUEE_MIN_SIZE or rect.height > MARQUEE_MIN_SIZE:
                self.drag.has_moved = True

    def start_resize(self, group_id: str, handle: str, wx: float, wy: float,
                     width: float, height: float, gx: float, gy: float) -> ResizeState:
        if handle not in RESIZE_HANDLES:
            raise ValueError(f"Unknown resize handle '{handle}'. Available: {', '.join(RESIZE_HANDLES)}")
        self.resize = ResizeState(group_id, handle, wx, wy, width, height, gx, gy)
        self.snapshot_recorded = False
        return self.resize

    def end_drag(self) -> bool:
        """Finish the current drag.  Returns whether it actually moved."""
        was_dragging = self.drag is not None and self.drag.has_moved
        self.drag = None
        self.selection_rect = None
        self.guides = []
        self.accumulator = (0.0, 0.0)
        self.snapshot_recorded = False
        return was_dragging

    def end_resize(self) -> None:
        self.resize = None
        self.snapshot_recorded = False

    def reset(self) -> None:
        """Drop every gesture at once (Escape, lost pointer)."""
        self.end_drag()
        self.end_resize()
        self.panning = False
        self.connect_from = None
