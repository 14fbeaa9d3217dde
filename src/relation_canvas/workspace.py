"""
Workspace state: the single source of truth for the graph.

Every mutation of persons, connections, groups and collapsed branches goes
through ``WorkspaceState``.  Entities are pydantic models that are never
mutated in place: an update swaps in a ``model_copy``, so the object that
was there before *is* the pre-image.

Undo
----
Destructive operations (deleting persons, connections, groups) and explicit
updates (edits, bulk moves, group moves, applied layouts) push one
``UndoAction`` holding full copies of every entity they touched.  ``undo()``
pops the newest action and puts those copies back: entities that still
exist are replaced by id, missing ones are re-inserted.  There is no redo.

Continuous updates
------------------
A drag produces a stream of tiny moves.  Those go through
``queue_positions`` / ``queue_translate`` / ``queue_group_rect`` which merge
into pending maps and schedule a single flush on the ``FrameScheduler``.
Flushes apply with ``skip_undo=True``; the drag records its undo entry once,
through ``record_snapshot``, on its first real movement.

Collapsed branches
------------------
``collapse_branch`` hides a set of persons under a parent and remembers the
parent's position.  ``expand_branch`` unhides them shifted by however far
the parent moved in the meantime.  Collapse and expand are view operations
and do not push undo entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from .frames import FrameScheduler
from .geometry import persons_in_group
from .graph import find_descendants
from .models import (
    CollapsedBranch,
    Connection,
    Group,
    Person,
    Point,
    ViewTransform,
    Workspace,
    WorkspaceSettings,
)
from .notices import LogNotifier, Notifier

logger = logging.getLogger(__name__)


class UndoKind(str, Enum):
    DELETE_PERSONS = "delete-persons"
    DELETE_GROUPS = "delete-groups"
    DELETE_CONNECTIONS = "delete-connections"
    UPDATE_PERSONS = "update-persons"
    UPDATE_GROUPS = "update-groups"
    UPDATE_CONNECTIONS = "update-connections"


_UNDO_MESSAGES = {
    UndoKind.DELETE_PERSONS: "Restored deleted persons",
    UndoKind.DELETE_GROUPS: "Restored deleted groups",
    UndoKind.DELETE_CONNECTIONS: "Restored deleted connections",
}


@dataclass
class UndoAction:
    """Pre-images of everything one operation touched.

    ``branches`` is the whole collapsed-branch table before the operation,
    or None when the operation left it alone.
    """
    kind: UndoKind
    persons: list[Person] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    branches: Optional[list[CollapsedBranch]] = None


def _replace_or_append(items: list, restored: Iterable) -> list:
    result = list(items)
    positions = {item.id: i for i, item in enumerate(result)}
    for item in restored:
        if item.id in positions:
            result[positions[item.id]] = item
        else:
            positions[item.id] = len(result)
            result.append(item)
    return result


class WorkspaceState:
    """Mutable workspace store with undo and per-frame batching."""

    PENDING_KEY = "workspace-flush"

    def __init__(
        self,
        workspace: Optional[Workspace] = None,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[FrameScheduler] = None,
    ):
        self.notifier: Notifier = notifier or LogNotifier()
        self.scheduler = scheduler or FrameScheduler()
        self._listeners: list[Callable[[], None]] = []
        self._load(workspace or Workspace())

    def _load(self, workspace: Workspace) -> None:
        self._persons: list[Person] = list(workspace.persons)
        self._connections: list[Connection] = list(workspace.connections)
        self._groups: list[Group] = list(workspace.groups)
        self._branches: dict[str, CollapsedBranch] = {
            b.parent_id: b for b in workspace.collapsed_branches
        }
        self.settings: WorkspaceSettings = workspace.settings
        self.canvas_transform: ViewTransform = workspace.canvas_transform
        self._undo: list[UndoAction] = []
        self._pending_positions: dict[str, tuple[float, float]] = {}
        self._pending_groups: dict[str, dict[str, float]] = {}

    # --- Read access ---

    @property
    def persons(self) -> list[Person]:
        return list(self._persons)

    @property
    def visible_persons(self) -> list[Person]:
        return [p for p in self._persons if not p.hidden]

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections)

    @property
    def groups(self) -> list[Group]:
        return list(self._groups)

    @property
    def collapsed_branches(self) -> list[CollapsedBranch]:
        return list(self._branches.values())

    @property
    def has_undo(self) -> bool:
        return bool(self._undo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    def get_person(self, person_id: str) -> Optional[Person]:
        for person in self._persons:
            if person.id == person_id:
                return person
        return None

    def get_group(self, group_id: str) -> Optional[Group]:
        for group in self._groups:
            if group.id == group_id:
                return group
        return None

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        for conn in self._connections:
            if conn.id == connection_id:
                return conn
        return None

    def find_connection(self, a: str, b: str) -> Optional[Connection]:
        """The connection between ``a`` and ``b`` in either direction."""
        for conn in self._connections:
            if conn.connects(a, b):
                return conn
        return None

    def get_branch(self, parent_id: str) -> Optional[CollapsedBranch]:
        return self._branches.get(parent_id)

    def snapshot(self) -> Workspace:
        """Plain-data copy for the persistence and export collaborators."""
        self.flush_pending()
        return Workspace(
            persons=self.persons,
            connections=self.connections,
            groups=self.groups,
            collapsed_branches=self.collapsed_branches,
            settings=self.settings,
            canvas_transform=self.canvas_transform,
        )

    def replace_workspace(self, workspace: Workspace) -> None:
        """Load a new workspace.  Clears undo history and pending updates."""
        self.scheduler.cancel(self.PENDING_KEY)
        self._load(workspace)
        self._emit()

    # --- Change listeners ---

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call ``listener`` after every change.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _push(self, action: UndoAction) -> None:
        self._undo.append(action)

    # -----------------------------------------------------------------------
    # Persons
    # -----------------------------------------------------------------------

    def add_person(self, person: Person) -> None:
        self._persons.append(person)
        self._emit()

    def add_persons(self, persons: Iterable[Person]) -> None:
        self._persons.extend(persons)
        self._emit()

    def update_person(self, person_id: str, skip_undo: bool = False, **updates) -> bool:
        """Apply field updates to one person.  False if the id is unknown."""
        self.flush_pending()
        old = self.get_person(person_id)
        if old is None:
            logger.debug(f"update_person: unknown person {person_id}")
            return False
        if not skip_undo:
            self._push(UndoAction(UndoKind.UPDATE_PERSONS, persons=[old]))
        self._persons = [p.model_copy(update=updates) if p.id == person_id else p for p in self._persons]
        self._emit()
        return True

    def replace_person(self, person: Person) -> bool:
        """Swap in an edited person (the dialog round trip)."""
        self.flush_pending()
        old = self.get_person(person.id)
        if old is None:
            logger.debug(f"replace_person: unknown person {person.id}")
            return False
        self._push(UndoAction(UndoKind.UPDATE_PERSONS, persons=[old]))
        self._persons = [person if p.id == person.id else p for p in self._persons]
        self._emit()
        return True

    def update_persons_in_bulk(
        self,
        updates: dict[str, dict],
        skip_undo: bool = False,
    ) -> int:
        """Apply per-person field updates in one step.

        Args:
            updates: ``{person_id: {field: value}}``.  Unknown ids are skipped.
            skip_undo: Don't record an undo entry (drag-time flushes).

        Returns:
            Number of persons updated.
        """
        self.flush_pending()
        touched = [p for p in self._persons if p.id in updates]
        if not touched:
            return 0
        if not skip_undo:
            self._push(UndoAction(UndoKind.UPDATE_PERSONS, persons=touched))
        self._persons = [
            p.model_copy(update=updates[p.id]) if p.id in updates else p
            for p in self._persons
        ]
        self._emit()
        return len(touched)

    def apply_positions(self, positioned: Iterable[Person]) -> int:
        """Take ``x``/``y`` from layout output as one undoable step."""
        return self.update_persons_in_bulk({p.id: {"x": p.x, "y": p.y} for p in positioned})

    def delete_person(self, person_id: str) -> bool:
        return self.delete_persons([person_id]) > 0

    def delete_persons(self, person_ids: Iterable[str]) -> int:
        """Delete persons and every connection touching them, as one undo entry.

        A deleted person that was a collapse parent releases its branch: the
        parked persons reappear where they are.  Returns the number of
        persons deleted.
        """
        self.flush_pending()
        ids = set(person_ids)
        doomed = [p for p in self._persons if p.id in ids]
        if not doomed:
            return 0
        ids = {p.id for p in doomed}
        cascade = [c for c in self._connections if c.from_id in ids or c.to_id in ids]

        released: list[Person] = []
        branches_before = None
        touched_branches = [
            b for b in self._branches.values()
            if b.parent_id in ids or ids.intersection(b.collapsed_ids)
        ]
        if touched_branches:
            branches_before = self.collapsed_branches
            for branch in touched_branches:
                if branch.parent_id in ids:
                    del self._branches[branch.parent_id]
                    orphan_ids = set(branch.collapsed_ids) - ids
                    released.extend(p for p in self._persons if p.id in orphan_ids)
                else:
                    remaining = [pid for pid in branch.collapsed_ids if pid not in ids]
                    self._branches[branch.parent_id] = branch.model_copy(
                        update={"collapsed_ids": remaining}
                    )

        self._push(UndoAction(
            UndoKind.DELETE_PERSONS,
            persons=doomed + released,
            connections=cascade,
            branches=branches_before,
        ))
        released_ids = {p.id for p in released}
        self._persons = [
            p.model_copy(update={"hidden": False}) if p.id in released_ids else p
            for p in self._persons
            if p.id not in ids
        ]
        cascade_ids = {c.id for c in cascade}
        self._connections = [c for c in self._connections if c.id not in cascade_ids]
        logger.debug(f"Deleted {len(doomed)} persons and {len(cascade)} connections")
        self._emit()
        return len(doomed)

    # -----------------------------------------------------------------------
    # Connections
    # -----------------------------------------------------------------------

    def add_connection(self, connection: Connection) -> bool:
        """Add a connection unless the pair is already connected.

        A duplicate (in either direction) is rejected with a notice.  A
        self-loop or a dangling endpoint is rejected quietly.
        """
        if connection.from_id == connection.to_id:
            logger.debug(f"add_connection: self-loop on {connection.from_id} ignored")
            return False
        if self.get_person(connection.from_id) is None or self.get_person(connection.to_id) is None:
            logger.debug(f"add_connection: dangling endpoint in {connection.id}")
            return False
        if self.find_connection(connection.from_id, connection.to_id) is not None:
            self.notifier.info("Connection already exists")
            return False
        self._connections.append(connection)
        self._emit()
        return True

    def replace_connection(self, connection: Connection) -> bool:
        old = self.get_connection(connection.id)
        if old is None:
            return False
        self._push(UndoAction(UndoKind.UPDATE_CONNECTIONS, connections=[old]))
        self._connections = [connection if c.id == connection.id else c for c in self._connections]
        self._emit()
        return True

    def delete_connection(self, connection_id: str) -> bool:
        return self.delete_connections([connection_id]) > 0

    def delete_connections(self, connection_ids: Iterable[str]) -> int:
        ids = set(connection_ids)
        doomed = [c for c in self._connections if c.id in ids]
        if not doomed:
            return 0
        self._push(UndoAction(UndoKind.DELETE_CONNECTIONS, connections=doomed))
        self._connections = [c for c in self._connections if c.id not in ids]
        self._emit()
        return len(doomed)

    # -----------------------------------------------------------------------
    # Groups
    # -----------------------------------------------------------------------

    def add_group(self, group: Group) -> None:
        self._groups.append(group)
        self._emit()

    def update_group(self, group_id: str, skip_undo: bool = False, **updates) -> bool:
        self.flush_pending()
        old = self.get_group(group_id)
        if old is None:
            logger.debug(f"update_group: unknown group {group_id}")
            return False
        if not skip_undo:
            self._push(UndoAction(UndoKind.UPDATE_GROUPS, groups=[old]))
        self._groups = [g.model_copy(update=updates) if g.id == group_id else g for g in self._groups]
        self._emit()
        return True

    def replace_group(self, group: Group) -> bool:
        self.flush_pending()
        old = self.get_group(group.id)
        if old is None:
            return False
        self._push(UndoAction(UndoKind.UPDATE_GROUPS, groups=[old]))
        self._groups = [group if g.id == group.id else g for g in self._groups]
        self._emit()
        return True

    def move_group(self, group_id: str, dx: float, dy: float, skip_undo: bool = False) -> bool:
        """Translate a group and the visible persons currently inside it.

        Membership is geometric, so the group's persons have to travel with
        it explicitly or they would silently drop out.  One undo entry covers
        the group and its persons.
        """
        self.flush_pending()
        group = self.get_group(group_id)
        if group is None:
            return False
        members = persons_in_group(group, self.visible_persons)
        if not skip_undo:
            self._push(UndoAction(UndoKind.UPDATE_GROUPS, groups=[group], persons=members))
        member_ids = {p.id for p in members}
        self._groups = [
            g.model_copy(update={"x": g.x + dx, "y": g.y + dy}) if g.id == group_id else g
            for g in self._groups
        ]
        self._persons = [
            p.model_copy(update={"x": p.x + dx, "y": p.y + dy}) if p.id in member_ids else p
            for p in self._persons
        ]
        self._emit()
        return True

    def delete_group(self, group_id: str) -> bool:
        return self.delete_groups([group_id]) > 0

    def delete_groups(self, group_ids: Iterable[str]) -> int:
        """Delete groups.  Persons inside them are left where they are."""
        self.flush_pending()
        ids = set(group_ids)
        doomed = [g for g in self._groups if g.id in ids]
        if not doomed:
            return 0
        self._push(UndoAction(UndoKind.DELETE_GROUPS, groups=doomed))
        self._groups = [g for g in self._groups if g.id not in ids]
        self._emit()
        return len(doomed)

    # -----------------------------------------------------------------------
    # Per-frame batching
    # -----------------------------------------------------------------------

    def _schedule_flush(self) -> None:
        self.scheduler.request_frame(self.flush_pending, key=self.PENDING_KEY)

    def queue_positions(self, positions: dict[str, tuple[float, float]]) -> None:
        """Set absolute positions on the next frame (last write wins)."""
        self._pending_positions.update(positions)
        self._schedule_flush()

    def queue_translate(self, person_ids: Iterable[str], dx: float, dy: float) -> None:
        """Shift persons on the next frame, stacking on anything already queued."""
        by_id = {p.id: p for p in self._persons}
        for pid in person_ids:
            if pid in self._pending_positions:
                x, y = self._pending_positions[pid]
            elif pid in by_id:
                x, y = by_id[pid].x, by_id[pid].y
            else:
                continue
            self._pending_positions[pid] = (x + dx, y + dy)
        self._schedule_flush()

    def queue_group_rect(self, group_id: str, **rect: float) -> None:
        """Queue ``x``/``y``/``width``/``height`` changes for a group."""
        self._pending_groups.setdefault(group_id, {}).update(rect)
        self._schedule_flush()

    def pending_position(self, person_id: str) -> Optional[tuple[float, float]]:
        return self._pending_positions.get(person_id)

    def flush_pending(self) -> bool:
        """Apply queued updates without undo entries.  True if anything changed.

        Every explicit mutator calls this first, so queued drag positions
        never land on top of a later edit or its undo pre-image.
        """
        if not self._pending_positions and not self._pending_groups:
            return False
        positions, self._pending_positions = self._pending_positions, {}
        rects, self._pending_groups = self._pending_groups, {}
        self.scheduler.cancel(self.PENDING_KEY)

        if positions:
            self._persons = [
                p.model_copy(update={"x": positions[p.id][0], "y": positions[p.id][1]})
                if p.id in positions else p
                for p in self._persons
            ]
        if rects:
            self._groups = [
                g.model_copy(update=rects[g.id]) if g.id in rects else g
                for g in self._groups
            ]
        self._emit()
        return True

    def record_snapshot(
        self,
        person_ids: Iterable[str] = (),
        group_ids: Iterable[str] = (),
    ) -> bool:
        """Push the current state of some persons/groups as one undo entry.

        Called once at the start of a drag so the whole gesture undoes in a
        single step.  Returns False when none of the ids exist.
        """
        self.flush_pending()
        pids = set(person_ids)
        gids = set(group_ids)
        persons = [p for p in self._persons if p.id in pids]
        groups = [g for g in self._groups if g.id in gids]
        if not persons and not groups:
            return False
        kind = UndoKind.UPDATE_GROUPS if groups else UndoKind.UPDATE_PERSONS
        self._push(UndoAction(kind, persons=persons, groups=groups))
        return True

    # -----------------------------------------------------------------------
    # Undo
    # -----------------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the newest pre-image.  Notifies and returns False when empty."""
        self.flush_pending()
        if not self._undo:
            self.notifier.info("Nothing to undo")
            return False

        action = self._undo.pop()
        self._persons = _replace_or_append(self._persons, action.persons)
        self._connections = _replace_or_append(self._connections, action.connections)
        self._groups = _replace_or_append(self._groups, action.groups)
        if action.branches is not None:
            self._branches = {b.parent_id: b for b in action.branches}

        logger.debug(f"Undo {action.kind.value}: {len(action.persons)} persons, "
                     f"{len(action.connections)} connections, {len(action.groups)} groups")
        self.notifier.success(_UNDO_MESSAGES.get(action.kind, "Restored previous state"))
        self._emit()
        return True

    # -----------------------------------------------------------------------
    # Collapsed branches
    # -----------------------------------------------------------------------

    def branch_candidates(self, connection_id: str, parent_id: str) -> list[str]:
        """Persons that collapsing ``connection_id`` under ``parent_id`` would hide.

        That is the other end of the connection plus everything reachable
        from it along ``from -> to`` edges, never the parent itself.
        """
        conn = self.get_connection(connection_id)
        if conn is None:
            return []
        child = conn.other_end(parent_id)
        if child is None:
            return []
        ids = [child] + find_descendants(child, self._connections)
        return [pid for pid in ids if pid != parent_id]

    def collapse_branch(self, parent_id: str, person_ids: Iterable[str]) -> bool:
        """Hide ``person_ids`` under ``parent_id``.

        Persons already parked in another branch are left there.  Collapsing
        more persons under a parent that already has a branch expands the old
        branch first and collapses the union.
        """
        self.flush_pending()
        parent = self.get_person(parent_id)
        if parent is None:
            logger.debug(f"collapse_branch: unknown parent {parent_id}")
            return False

        parked_elsewhere = {
            pid for b in self._branches.values() if b.parent_id != parent_id for pid in b.collapsed_ids
        }
        existing = self._branches.get(parent_id)
        wanted = list(existing.collapsed_ids) if existing else []
        known = {p.id for p in self._persons}
        for pid in person_ids:
            if pid in known and pid != parent_id and pid not in parked_elsewhere and pid not in wanted:
                wanted.append(pid)

        if not wanted:
            self.notifier.info("No persons to collapse")
            return False
        if existing:
            self.expand_branch(parent_id, notify=False)
            parent = self.get_person(parent_id)

        hide = set(wanted)
        self._persons = [
            p.model_copy(update={"hidden": True}) if p.id in hide else p for p in self._persons
        ]
        self._branches[parent_id] = CollapsedBranch(
            parent_id=parent_id,
            collapsed_ids=wanted,
            parent_position_at_collapse=Point(x=parent.x, y=parent.y),
        )
        plural = "s" if len(wanted) != 1 else ""
        self.notifier.success(f"Collapsed {len(wanted)} person{plural} under parent")
        self._emit()
        return True

    def expand_branch(self, parent_id: str, notify: bool = True) -> bool:
        """Unhide a branch, shifted by the parent's displacement since collapse."""
        self.flush_pending()
        branch = self._branches.pop(parent_id, None)
        if branch is None:
            return False

        parent = self.get_person(parent_id)
        anchor = branch.parent_position_at_collapse
        dx = parent.x - anchor.x if parent else 0.0
        dy = parent.y - anchor.y if parent else 0.0

        ids = set(branch.collapsed_ids)
        self._persons = [
            p.model_copy(update={"x": p.x + dx, "y": p.y + dy, "hidden": False}) if p.id in ids else p
            for p in self._persons
        ]
        if notify:
            count = len(branch.collapsed_ids)
            plural = "s" if count != 1 else ""
            self.notifier.success(f"Expanded {count} person{plural} from stack")
        self._emit()
        return True
