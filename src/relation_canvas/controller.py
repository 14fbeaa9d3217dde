"""
Canvas controller: turns raw pointer, wheel and keyboard events into intents.

The controller owns one of each collaborator and is the only place that
wires them together:

    WorkspaceState   the graph, undo and per-frame batching
    Selection        selected ids
    CanvasTransform  pan / zoom
    InteractionState the current gesture
    CanvasRenderer   visible + hit-test surfaces
    FrameScheduler   coalesces flushes and redraws

Pointer coordinates are screen pixels relative to the canvas.  Left-press
dispatch, first hit wins:

    pan mode, middle button, alt+left  -> panning
    connect mode                       -> click source, click target
    person card                        -> drag selected persons
    connection (hit surface)           -> select connection
    group resize handle                -> resize
    group header strip                 -> drag group and its persons
    empty canvas                       -> marquee

A right press on a person starts a rubber-band connection drag.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from .alignment import (
    SNAP_THRESHOLD,
    align_left,
    align_top,
    calculate_alignment,
    distribute_horizontal,
    distribute_vertical,
)
from .frames import FrameScheduler
from .geometry import bounds_of, group_at, person_at, persons_in_group, point_in_rect, snap_to_grid
from .graph import build_adjacency, shortest_path
from .interaction import InteractionKind, InteractionMode, InteractionState
from .layout import LayoutOptions, LayoutStrategy, compute_layout
from .models import (
    MIN_GROUP_SIZE,
    ZOOM_STEP,
    Connection,
    Group,
    Workspace,
    WorkspaceSettings,
)
from .notices import LogNotifier, Notifier
from .renderer import CanvasRenderer, Scene
from .routing import connections_in_rect
from .search import SearchCriteria, search_persons
from .selection import Selection
from .transform import CanvasTransform
from .workspace import WorkspaceState

logger = logging.getLogger(__name__)

GROUP_HEADER_HEIGHT = 40
HANDLE_TOLERANCE = 8          # screen pixels
NUDGE_MULTIPLIER = 5          # shift+arrow
DUPLICATE_OFFSET = 40
GROUP_PADDING = 40
REDRAW_KEY = "redraw"

LEFT, MIDDLE, RIGHT = 0, 1, 2

LAYOUT_LABELS = {
    LayoutStrategy.FORCE: "Force-directed layout applied",
    LayoutStrategy.HIERARCHICAL: "Hierarchical tree layout applied",
    LayoutStrategy.CLUSTER: "Circular cluster layout applied",
    LayoutStrategy.SCORE_RADIAL: "Importance layout applied",
    LayoutStrategy.COMPACT: "Network tightened",
    LayoutStrategy.INFLUENCE: "Influence hierarchy applied",
}

_ARROWS = {
    "ArrowLeft": (-1, 0),
    "ArrowRight": (1, 0),
    "ArrowUp": (0, -1),
    "ArrowDown": (0, 1),
}


@dataclass
class PointerEvent:
    """A pointer event in canvas screen pixels."""
    x: float
    y: float
    button: int = LEFT
    shift: bool = False
    alt: bool = False


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class CanvasController:
    """Event dispatch and commands for one canvas."""

    def __init__(
        self,
        workspace: Optional[Workspace] = None,
        notifier: Optional[Notifier] = None,
        viewport_width: int = 1280,
        viewport_height: int = 800,
        theme: str = "dark",
    ):
        self.notifier: Notifier = notifier or LogNotifier()
        self.scheduler = FrameScheduler()
        self.state = WorkspaceState(workspace, self.notifier, self.scheduler)
        self.selection = Selection()
        self.transform = CanvasTransform.from_view(self.state.canvas_transform, viewport_width, viewport_height)
        self.interaction = InteractionState()
        self.renderer = CanvasRenderer(viewport_width, viewport_height, theme)
        self.highlighted_connection_ids: set[str] = set()
        self._last_screen: Optional[tuple[float, float]] = None
        self._hover: Optional[tuple[float, float]] = None
        self._click_narrows = False
        self.state.subscribe(self.request_redraw)

    @property
    def settings(self) -> WorkspaceSettings:
        return self.state.settings

    # -----------------------------------------------------------------------
    # Frames and drawing
    # -----------------------------------------------------------------------

    def request_redraw(self) -> None:
        self.scheduler.request_frame(self.redraw, key=REDRAW_KEY)

    def redraw(self) -> None:
        self.renderer.render(self.scene())

    def frame(self) -> int:
        """Run one frame: pending flushes first, then the redraw."""
        return self.scheduler.run_frame()

    def scene(self) -> Scene:
        """Read-only view of everything the renderer (or an exporter) needs."""
        rubber_band = None
        source_id = None
        pointer = None
        drag = self.interaction.drag
        if drag is not None and drag.kind is InteractionKind.DRAGGING_CONNECTION:
            source_id, pointer = drag.target_id, (drag.mouse_x, drag.mouse_y)
        elif self.interaction.connect_from and self._hover:
            source_id, pointer = self.interaction.connect_from, self._hover
        source = self.state.get_person(source_id) if source_id else None
        if source is not None:
            rubber_band = (source.center(), pointer)

        return Scene(
            persons=self.state.persons,
            connections=self.state.connections,
            groups=self.state.groups,
            transform=self.transform.to_view(),
            settings=self.state.settings,
            selected_person_ids=set(self.selection.person_ids),
            selected_group_ids=set(self.selection.group_ids),
            selected_connection_ids=set(self.selection.connection_ids),
            highlighted_connection_ids=set(self.highlighted_connection_ids),
            collapsed_counts={b.parent_id: len(b.collapsed_ids) for b in self.state.collapsed_branches},
            guides=list(self.interaction.guides),
            selection_rect=self.interaction.selection_rect,
            rubber_band=rubber_band,
        )

    def _view_changed(self) -> None:
        self.state.canvas_transform = self.transform.to_view()
        self.request_redraw()

    def resize_viewport(self, width: int, height: int) -> None:
        self.transform.viewport_width = width
        self.transform.viewport_height = height
        self.renderer.resize(width, height)
        self.request_redraw()

    def load(self, workspace: Workspace) -> None:
        """Replace the whole workspace (file open)."""
        self.interaction.reset()
        self.selection.clear()
        self.highlighted_connection_ids = set()
        self.state.replace_workspace(workspace)
        self.transform.set(workspace.canvas_transform.x, workspace.canvas_transform.y,
                           workspace.canvas_transform.scale)

    def apply_settings(self, settings: Optional[WorkspaceSettings] = None, **changes) -> WorkspaceSettings:
        """Take new settings from the settings collaborator.

        Either a full ``WorkspaceSettings`` or individual fields, validated.
        """
        if settings is None:
            settings = WorkspaceSettings.model_validate({**self.state.settings.model_dump(), **changes})
        self.state.settings = settings
        self.request_redraw()
        return settings

    # -----------------------------------------------------------------------
    # Pointer events
    # -----------------------------------------------------------------------

    def pointer_down(self, event: PointerEvent) -> None:
        self._last_screen = (event.x, event.y)
        wx, wy = self.transform.screen_to_world(event.x, event.y)
        visible = self.state.visible_persons

        if (
            event.button == MIDDLE
            or (event.button == LEFT and event.alt)
            or (event.button == LEFT and self.interaction.mode is InteractionMode.PAN)
        ):
            self.interaction.panning = True
            return

        if event.button == RIGHT:
            person = person_at(wx, wy, visible)
            if person is not None:
                self.interaction.start_drag(InteractionKind.DRAGGING_CONNECTION, person.id, wx, wy)
                self.notifier.info("Drag to another person to connect")
                self.request_redraw()
                return
            conn_id = self.renderer.connection_at(event.x, event.y)
            if conn_id is not None:
                self.selection.select_connection(conn_id, False)
                self.request_redraw()
            return

        if event.button != LEFT:
            return

        if self.interaction.mode is InteractionMode.CONNECT:
            self._connect_click(person_at(wx, wy, visible))
            return

        person = person_at(wx, wy, visible)
        if person is not None:
            self._press_person(person.id, wx, wy, event.shift)
            return

        conn_id = self.renderer.connection_at(event.x, event.y)
        if conn_id is not None and self.state.get_connection(conn_id) is not None:
            self.selection.select_connection(conn_id, event.shift)
            self.request_redraw()
            return

        hit = self._handle_at(wx, wy)
        if hit is not None:
            group, handle = hit
            self.interaction.start_resize(group.id, handle, wx, wy, group.width, group.height, group.x, group.y)
            if group.id not in self.selection.group_ids:
                self.selection.select_group(group.id, False)
            return

        group = self._header_at(wx, wy)
        if group is not None:
            self._press_group(group, wx, wy, event.shift)
            return

        self.interaction.start_drag(InteractionKind.MARQUEE_SELECTING, None, wx, wy)
        if not event.shift:
            self.selection.clear()
        self.request_redraw()

    def pointer_move(self, event: PointerEvent) -> None:
        last = self._last_screen or (event.x, event.y)
        self._last_screen = (event.x, event.y)
        dxs, dys = event.x - last[0], event.y - last[1]
        wx, wy = self.transform.screen_to_world(event.x, event.y)
        self._hover = (wx, wy)
        kind = self.interaction.kind

        if kind is InteractionKind.PANNING:
            self.transform.pan(dxs, dys)
            self._view_changed()
        elif kind is InteractionKind.DRAGGING_PERSON:
            self._drag_persons(wx, wy, dxs / self.transform.scale, dys / self.transform.scale)
        elif kind is InteractionKind.DRAGGING_GROUP:
            self._drag_group(wx, wy, dxs / self.transform.scale, dys / self.transform.scale)
        elif kind is InteractionKind.RESIZING_GROUP:
            self._resize_group(wx, wy)
        elif kind in (InteractionKind.DRAGGING_CONNECTION, InteractionKind.MARQUEE_SELECTING):
            self.interaction.update_pointer(wx, wy)
            if kind is InteractionKind.DRAGGING_CONNECTION:
                self.interaction.drag.has_moved = True
            self.request_redraw()
        elif self.interaction.connect_from:
            self.request_redraw()

    def pointer_up(self, event: PointerEvent) -> None:
        wx, wy = self.transform.screen_to_world(event.x, event.y)
        drag = self.interaction.drag

        if drag is not None and drag.kind is InteractionKind.DRAGGING_CONNECTION:
            target = person_at(wx, wy, self.state.visible_persons)
            if target is not None and drag.target_id and target.id != drag.target_id:
                self.connect(drag.target_id, target.id)
        elif drag is not None and drag.kind is InteractionKind.MARQUEE_SELECTING:
            rect = self.interaction.selection_rect
            if drag.has_moved and rect is not None:
                visible = self.state.visible_persons
                person_ids = [p.id for p in visible if point_in_rect(*p.center(), rect)]
                self.selection.select_persons(person_ids)
                self.selection.select_connections(connections_in_rect(visible, self.state.connections, rect))
        elif drag is not None and drag.kind is InteractionKind.DRAGGING_PERSON:
            # Plain click on a card inside a multi-selection narrows it to that card
            if not drag.has_moved and self._click_narrows:
                self.selection.select_person(drag.target_id, False)

        self.state.flush_pending()
        self.interaction.end_drag()
        self.interaction.end_resize()
        self.interaction.panning = False
        self.request_redraw()

    def window_pointer_up(self) -> None:
        """Pointer released anywhere (possibly outside the canvas)."""
        if self.interaction.is_idle:
            return
        logger.debug(f"Window pointer-up reset from {self.interaction.kind.value}")
        self.state.flush_pending()
        self.interaction.end_drag()
        self.interaction.end_resize()
        self.interaction.panning = False
        self.request_redraw()

    def wheel(self, delta_y: float, x: float, y: float) -> None:
        """Zoom one step at the pointer.  Positive ``delta_y`` zooms out."""
        delta = -ZOOM_STEP if delta_y > 0 else ZOOM_STEP
        self.transform.zoom(delta, x, y)
        self._view_changed()

    # --- Press helpers ---

    def _press_person(self, person_id: str, wx: float, wy: float, shift: bool) -> None:
        already = self.selection.is_person_selected(person_id)
        self._click_narrows = already and not shift and len(self.selection.person_ids) > 1
        if shift:
            self.selection.select_person(person_id, True)
            if already:
                self.request_redraw()
                return
        elif not already:
            self.selection.select_person(person_id, False)

        selected = set(self.selection.person_ids)
        origins = {p.id: (p.x, p.y) for p in self.state.visible_persons if p.id in selected}
        self.interaction.start_drag(InteractionKind.DRAGGING_PERSON, person_id, wx, wy, origins=origins)
        self.request_redraw()

    def _press_group(self, group: Group, wx: float, wy: float, shift: bool) -> None:
        if shift or group.id not in self.selection.group_ids:
            self.selection.select_group(group.id, shift)
        members = persons_in_group(group, self.state.visible_persons)
        self.interaction.start_drag(
            InteractionKind.DRAGGING_GROUP, group.id, wx, wy,
            origins={p.id: (p.x, p.y) for p in members},
            member_ids=[p.id for p in members],
            anchor=(group.x, group.y),
        )
        self.request_redraw()

    def _connect_click(self, person) -> None:
        if person is None:
            return
        source = self.interaction.connect_from
        if source is None or self.state.get_person(source) is None:
            self.interaction.connect_from = person.id
            self.notifier.info("Click another person to connect")
        elif source != person.id:
            self.connect(source, person.id)
            self.interaction.set_mode(InteractionMode.SELECT)
        self.request_redraw()

    def _handle_at(self, wx: float, wy: float) -> Optional[tuple[Group, str]]:
        """Group and handle name (``n``, ``se``...) under a world point."""
        tol = HANDLE_TOLERANCE / self.transform.scale
        for group in reversed(self.state.groups):
            if not (group.x - tol <= wx <= group.x + group.width + tol
                    and group.y - tol <= wy <= group.y + group.height + tol):
                continue
            handle = ""
            if abs(wy - group.y) <= tol:
                handle += "n"
            elif abs(wy - (group.y + group.height)) <= tol:
                handle += "s"
            if abs(wx - group.x) <= tol:
                handle += "w"
            elif abs(wx - (group.x + group.width)) <= tol:
                handle += "e"
            if handle:
                return group, handle
        return None

    def _header_at(self, wx: float, wy: float) -> Optional[Group]:
        group = group_at(wx, wy, self.state.groups)
        if group is not None and wy <= group.y + GROUP_HEADER_HEIGHT:
            return group
        return None

    # --- Drag helpers ---

    def _advance(self, drag, wx: float, wy: float, ddx: float, ddy: float) -> tuple[float, float]:
        """Offset the drag should now have applied.

        Magnetic snap: follow the pointer exactly.  Otherwise move in whole
        grid steps and carry the remainder to the next event.
        """
        if self.state.settings.magnetic_snap:
            return (wx - drag.start_x, wy - drag.start_y)
        grid = self.state.settings.grid_size
        ax, ay = self.interaction.accumulator
        ax += ddx
        ay += ddy
        mx = math.trunc(ax / grid) * grid
        my = math.trunc(ay / grid) * grid
        self.interaction.accumulator = (ax - mx, ay - my)
        return (drag.offset[0] + mx, drag.offset[1] + my)

    def _record_once(self, person_ids: Iterable[str] = (), group_ids: Iterable[str] = ()) -> None:
        if not self.interaction.snapshot_recorded:
            self.state.record_snapshot(person_ids, group_ids)
            self.interaction.snapshot_recorded = True

    def _drag_persons(self, wx: float, wy: float, ddx: float, ddy: float) -> None:
        drag = self.interaction.drag
        drag.mouse_x, drag.mouse_y = wx, wy
        if not drag.origins:
            return
        ox, oy = self._advance(drag, wx, wy, ddx, ddy)

        if self.state.settings.magnetic_snap:
            moving = [
                p.model_copy(update={"x": drag.origins[p.id][0] + ox, "y": drag.origins[p.id][1] + oy})
                for p in self.state.persons if p.id in drag.origins
            ]
            static = [p for p in self.state.visible_persons if p.id not in drag.origins]
            result = calculate_alignment(moving, static, SNAP_THRESHOLD / self.transform.scale)
            if result is not None:
                ox += result.dx
                oy += result.dy
                self.interaction.guides = result.guides
            else:
                self.interaction.guides = []

        if (ox, oy) == drag.offset:
            return
        self._record_once(person_ids=drag.origins)
        drag.offset = (ox, oy)
        drag.has_moved = True
        self.state.queue_positions({
            pid: (x + ox, y + oy) for pid, (x, y) in drag.origins.items()
        })
        self.request_redraw()

    def _drag_group(self, wx: float, wy: float, ddx: float, ddy: float) -> None:
        drag = self.interaction.drag
        drag.mouse_x, drag.mouse_y = wx, wy
        if self.state.get_group(drag.target_id) is None:
            self.interaction.end_drag()
            return
        ox, oy = self._advance(drag, wx, wy, ddx, ddy)
        if (ox, oy) == drag.offset:
            return
        self._record_once(person_ids=drag.member_ids, group_ids=[drag.target_id])
        drag.offset = (ox, oy)
        drag.has_moved = True
        gx, gy = drag.anchor
        self.state.queue_group_rect(drag.target_id, x=gx + ox, y=gy + oy)
        if drag.origins:
            self.state.queue_positions({
                pid: (x + ox, y + oy) for pid, (x, y) in drag.origins.items()
            })
        self.request_redraw()

    def _resize_group(self, wx: float, wy: float) -> None:
        rs = self.interaction.resize
        if self.state.get_group(rs.group_id) is None:
            self.interaction.end_resize()
            return
        dx = wx - rs.start_x
        dy = wy - rs.start_y
        if not self.state.settings.magnetic_snap:
            dx = snap_to_grid(dx, self.state.settings.grid_size)
            dy = snap_to_grid(dy, self.state.settings.grid_size)

        x, y = rs.start_group_x, rs.start_group_y
        width, height = rs.start_width, rs.start_height
        if "e" in rs.handle:
            width = max(MIN_GROUP_SIZE, rs.start_width + dx)
        if "w" in rs.handle:
            width = max(MIN_GROUP_SIZE, rs.start_width - dx)
            x = rs.start_group_x + rs.start_width - width
        if "s" in rs.handle:
            height = max(MIN_GROUP_SIZE, rs.start_height + dy)
        if "n" in rs.handle:
            height = max(MIN_GROUP_SIZE, rs.start_height - dy)
            y = rs.start_group_y + rs.start_height - height

        self._record_once(group_ids=[rs.group_id])
        self.state.queue_group_rect(rs.group_id, x=x, y=y, width=width, height=height)
        self.request_redraw()

    # -----------------------------------------------------------------------
    # Keyboard
    # -----------------------------------------------------------------------

    def key_down(self, key: str, shift: bool = False, ctrl: bool = False) -> bool:
        """Handle a key press.  Returns True when the key was used."""
        if key in (" ", "Space"):
            return self.interaction.press_space()
        if key == "Escape":
            self.cancel()
            return True
        if ctrl and key.lower() == "z":
            self.undo()
            return True
        if ctrl and key.lower() == "d":
            self.duplicate_selected()
            return True
        if ctrl and key.lower() == "g":
            self.group_selected()
            return True
        if key in ("Delete", "Backspace"):
            self.delete_selected()
            return True
        if key in _ARROWS:
            step = self.state.settings.grid_size * (NUDGE_MULTIPLIER if shift else 1)
            ux, uy = _ARROWS[key]
            return self.nudge(ux * step, uy * step) > 0
        if key.lower() == "f" and not ctrl:
            if self.selection.person_ids:
                return self.focus_person(self.selection.person_ids[0])
            return False
        if key in ("1", "2", "3", "4", "5") and not ctrl:
            return self.set_score(int(key)) > 0
        if key in ("+", "="):
            self.transform.zoom_in()
            self._view_changed()
            return True
        if key == "-":
            self.transform.zoom_out()
            self._view_changed()
            return True
        return False

    def key_up(self, key: str) -> bool:
        if key in (" ", "Space"):
            return self.interaction.release_space()
        return False

    def cancel(self) -> None:
        """Escape: drop the gesture, keeping movement already applied.

        With nothing in progress it clears the selection and leaves
        connect mode instead.
        """
        if self.interaction.is_idle and not self.interaction.connect_from:
            self.selection.clear()
            self.highlighted_connection_ids = set()
            if self.interaction.mode is InteractionMode.CONNECT:
                self.interaction.set_mode(InteractionMode.SELECT)
        self.state.flush_pending()
        self.interaction.reset()
        self.request_redraw()

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    def set_mode(self, mode: InteractionMode | str) -> None:
        self.interaction.set_mode(InteractionMode(mode))
        self.request_redraw()

    def connect(self, from_id: str, to_id: str, **fields) -> Optional[Connection]:
        """Create a connection unless the pair is already connected."""
        connection = Connection(id=_new_id("conn"), from_id=from_id, to_id=to_id, **fields)
        if not self.state.add_connection(connection):
            return None
        self.notifier.success("Connection created")
        return connection

    def arrange(
        self,
        strategy: LayoutStrategy | str,
        options: Optional[LayoutOptions] = None,
        fit: bool = True,
    ) -> int:
        """Run a layout over the visible persons as one undoable step."""
        self.state.flush_pending()
        persons = self.state.visible_persons
        if not persons:
            self.notifier.info("No persons to organize")
            return 0
        strategy = LayoutStrategy(strategy)
        positioned = compute_layout(strategy, persons, self.state.connections, self.state.groups, options)
        count = self.state.apply_positions(positioned)
        if fit:
            self.zoom_to_fit()
        logger.info(f"Applied {strategy.value} layout to {count} persons")
        self.notifier.success(LAYOUT_LABELS[strategy])
        return count

    def zoom_to_fit(self) -> bool:
        fitted = self.transform.zoom_to_fit(self.state.visible_persons)
        if fitted:
            self._view_changed()
        return fitted

    def zoom_to_area(self, center_x: float, center_y: float, width: float, height: float) -> None:
        self.transform.zoom_to_area(center_x, center_y, width, height, padding=0)
        self._view_changed()

    def focus_person(self, person_id: str) -> bool:
        """Centre a person at the current scale and select it."""
        self.state.flush_pending()
        person = self.state.get_person(person_id)
        if person is None or person.hidden:
            return False
        self.transform.focus(person, self.transform.scale)
        self.selection.select_person(person_id, False)
        self._view_changed()
        return True

    def reset_view(self) -> None:
        self.transform.reset()
        self._view_changed()

    def undo(self) -> bool:
        undone = self.state.undo()
        self._prune_selection()
        return undone

    def delete_selected(self) -> int:
        """Delete every selected person, group and connection."""
        deleted = 0
        if self.selection.person_ids:
            deleted += self.state.delete_persons(self.selection.person_ids)
            self.notifier.success("Deleted selected persons")
        if self.selection.group_ids:
            deleted += self.state.delete_groups(self.selection.group_ids)
            self.notifier.success("Deleted selected groups")
        remaining = [cid for cid in self.selection.connection_ids if self.state.get_connection(cid)]
        if remaining:
            deleted += self.state.delete_connections(remaining)
            self.notifier.success("Deleted selected connections")
        self._prune_selection()
        return deleted

    def nudge(self, dx: float, dy: float) -> int:
        """Move the selected persons by a fixed amount (one undo entry)."""
        self.state.flush_pending()
        updates = {}
        for pid in self.selection.person_ids:
            person = self.state.get_person(pid)
            if person is not None:
                updates[pid] = {"x": person.x + dx, "y": person.y + dy}
        return self.state.update_persons_in_bulk(updates) if updates else 0

    def set_score(self, score: int) -> int:
        updates = {pid: {"score": score} for pid in self.selection.person_ids}
        return self.state.update_persons_in_bulk(updates) if updates else 0

    def align_selected(self, how: str) -> int:
        """Align or distribute the selected persons.

        ``how`` is one of ``left``, ``top``, ``distribute-vertical`` or
        ``distribute-horizontal``.
        """
        helpers = {
            "left": align_left,
            "top": align_top,
            "distribute-vertical": distribute_vertical,
            "distribute-horizontal": distribute_horizontal,
        }
        if how not in helpers:
            raise ValueError(f"Unknown alignment '{how}'. Available: {', '.join(helpers)}")
        self.state.flush_pending()
        selected = set(self.selection.person_ids)
        persons = [p for p in self.state.visible_persons if p.id in selected]
        minimum = 3 if how.startswith("distribute") else 2
        if len(persons) < minimum:
            self.notifier.info(f"Select at least {minimum} persons")
            return 0
        return self.state.apply_positions(helpers[how](persons))

    def duplicate_selected(self) -> list[str]:
        self.state.flush_pending()
        copies = []
        for pid in self.selection.person_ids:
            person = self.state.get_person(pid)
            if person is None:
                continue
            copies.append(person.model_copy(update={
                "id": _new_id("person"),
                "x": person.x + DUPLICATE_OFFSET,
                "y": person.y + DUPLICATE_OFFSET,
                "hidden": False,
            }))
        if not copies:
            return []
        self.state.add_persons(copies)
        ids = [p.id for p in copies]
        self.selection.select_persons(ids)
        plural = "s" if len(ids) != 1 else ""
        self.notifier.success(f"Duplicated {len(ids)} person{plural}")
        return ids

    def group_selected(self, name: str = "New Group") -> Optional[Group]:
        """Wrap the selected persons in a new group."""
        self.state.flush_pending()
        selected = set(self.selection.person_ids)
        b = bounds_of(p for p in self.state.visible_persons if p.id in selected)
        if b is None:
            self.notifier.info("Select persons to group")
            return None
        group = Group(
            id=_new_id("group"),
            name=name,
            x=b.x - GROUP_PADDING,
            y=b.y - GROUP_PADDING - GROUP_HEADER_HEIGHT,
            width=b.width + 2 * GROUP_PADDING,
            height=b.height + 2 * GROUP_PADDING + GROUP_HEADER_HEIGHT,
        )
        self.state.add_group(group)
        self.selection.select_group(group.id, False)
        self.notifier.success("Group created")
        return group

    def collapse(self, connection_id: str, parent_id: str) -> bool:
        """Collapse everything beyond ``connection_id`` under ``parent_id``."""
        ids = self.state.branch_candidates(connection_id, parent_id)
        collapsed = self.state.collapse_branch(parent_id, ids)
        self._prune_selection()
        return collapsed

    def expand(self, parent_id: str) -> bool:
        return self.state.expand_branch(parent_id)

    def highlight_path(self, from_id: str, to_id: str) -> Optional[list[str]]:
        """Highlight the shortest path between two visible persons."""
        visible_ids = [p.id for p in self.state.visible_persons]
        path = shortest_path(from_id, to_id, build_adjacency(visible_ids, self.state.connections))
        if path is None:
            self.highlighted_connection_ids = set()
            self.notifier.info("No path found")
        else:
            self.highlighted_connection_ids = {
                self.state.find_connection(a, b).id for a, b in zip(path, path[1:])
            }
        self.request_redraw()
        return path

    def search(self, criteria: SearchCriteria | str) -> list[str]:
        """Select the visible persons matching ``criteria``."""
        ids = [p.id for p in search_persons(self.state.visible_persons, criteria)]
        self.selection.select_persons(ids)
        if not ids:
            self.notifier.info("No matching persons")
        self.request_redraw()
        return ids

    def _prune_selection(self) -> None:
        self.selection.prune(
            {p.id for p in self.state.visible_persons},
            {g.id for g in self.state.groups},
            {c.id for c in self.state.connections},
        )
        self.request_redraw()
