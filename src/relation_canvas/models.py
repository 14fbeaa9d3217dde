"""
Data models for relation-canvas: the workspace graph.

A workspace is a flat graph of three entity kinds that live side by side
in world space:

    Workspace
    ├── Person      : a positioned, scored card (the graph node)
    ├── Connection  : a relationship between two persons (the graph edge)
    └── Group       : a rectangular visual container

Groups do not own persons.  Membership is *derived*: a person belongs to a
group when the centre of its card lies inside the group rectangle at the
moment you ask (see ``geometry.persons_in_group``).  The optional
``Person.group_id`` is informational only and never consulted for layout
or dragging.

Coordinates
-----------
``x`` / ``y`` on persons and groups are the top-left corner in world
space.  Every person card has the same fixed size (``NODE_WIDTH`` x
``NODE_HEIGHT``), which is what the layout engine and the overlap pass
rely on.  The view transform maps world to screen:

    screen = world * scale + (x, y)

Scores
------
``score`` runs from 1 to 5 where **1 is the most important**.  Layouts that
care about importance (hierarchical root choice, score-radial, influence)
all read it this way.
"""

from __future__ import annotations

import time
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NODE_WIDTH = 260
NODE_HEIGHT = 100
GRID_SIZE = 20
MIN_ZOOM = 0.25
MAX_ZOOM = 3.0
ZOOM_STEP = 0.1
MIN_GROUP_SIZE = 100

FrameColor = Literal["red", "green", "orange", "white"]
GroupColor = Literal[
    "blue", "purple", "pink", "yellow", "teal",
    "indigo", "rose", "emerald", "amber", "cyan",
]
Side = Literal["top", "right", "bottom", "left"]
Direction = Literal["forward", "backward", "bidirectional", "none"]
Weight = Literal["thin", "medium", "thick"]
LineStyle = Literal["solid", "dashed", "dotted"]

FRAME_COLORS: dict[str, str] = {
    "red": "#FF3C64",
    "green": "#00FFB3",
    "orange": "#FF8C42",
    "white": "#FFFFFF",
}

GROUP_COLORS: dict[str, str] = {
    "blue": "#45A29E",
    "purple": "#8B5CF6",
    "pink": "#EC4899",
    "yellow": "#F59E0B",
    "teal": "#14B8A6",
    "indigo": "#6366F1",
    "rose": "#FF3C64",
    "emerald": "#00FFB3",
    "amber": "#FBBF24",
    "cyan": "#66FCF1",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Person (the graph node)
# ---------------------------------------------------------------------------

class Person(BaseModel):
    """A person card on the canvas.

    Attributes:
        id:          Globally unique identifier.
        name:        Display name (first line on the card).
        position:    Job title or role, up to three lines (``position2``,
                     ``position3`` are optional continuation lines).
        score:       Importance from 1 (most important) to 5.
        frame_color: Accent frame drawn around the card.
        x, y:        Top-left corner in world space.
        group_id:    Informational group tag; membership is geometric.
        advocate:    Marks a known supporter (used by the influence layout).
        hidden:      True while the person is parked in a collapsed branch.
        notes:       Free text.
    """
    id: str
    name: str
    position: str = ""
    position2: Optional[str] = None
    position3: Optional[str] = None
    score: int = Field(default=3, ge=1, le=5)
    frame_color: FrameColor = "white"
    x: float = 0.0
    y: float = 0.0
    group_id: Optional[str] = None
    advocate: bool = False
    hidden: bool = False
    notes: str = ""
    created_at: int = Field(default_factory=_now_ms)
    modified_at: Optional[int] = None

    def center(self) -> tuple[float, float]:
        """Centre of the card in world space."""
        return (self.x + NODE_WIDTH / 2, self.y + NODE_HEIGHT / 2)


# ---------------------------------------------------------------------------
# Connection (the graph edge)
# ---------------------------------------------------------------------------

class Connection(BaseModel):
    """A relationship between two persons.

    The pair is unordered for uniqueness purposes: the workspace keeps at
    most one connection per ``{from_id, to_id}`` pair.  ``direction`` only
    controls where arrowheads are drawn and how the influence layout
    weighs the edge.

    ``from_side`` / ``to_side`` pin the attachment sides.  When unset the
    router picks the sides facing each other.
    """
    id: str
    from_id: str
    to_id: str
    from_side: Optional[Side] = None
    to_side: Optional[Side] = None
    direction: Direction = "forward"
    weight: Weight = "medium"
    style: LineStyle = "solid"

    def connects(self, a: str, b: str) -> bool:
        """True when this connection joins ``a`` and ``b`` in either order."""
        return (self.from_id == a and self.to_id == b) or (
            self.from_id == b and self.to_id == a
        )

    def other_end(self, person_id: str) -> Optional[str]:
        if self.from_id == person_id:
            return self.to_id
        if self.to_id == person_id:
            return self.from_id
        return None


# ---------------------------------------------------------------------------
# Group (visual container)
# ---------------------------------------------------------------------------

class Group(BaseModel):
    """A rectangular container drawn behind person cards.

    Visual Appearance
    -----------------
    Outlined with its ``color`` and a translucent fill by default.  With
    ``solid_background`` set the fill is opaque, which is handy for
    printing.  The name is drawn in the header strip along the top edge;
    that strip is also the drag handle.
    """
    id: str
    name: str = ""
    color: GroupColor = "blue"
    x: float = 0.0
    y: float = 0.0
    width: float = 400.0
    height: float = 300.0
    solid_background: bool = False
    created_at: int = Field(default_factory=_now_ms)

    def get_label(self) -> str:
        return self.name if self.name else self.id


# ---------------------------------------------------------------------------
# Collapsed branches
# ---------------------------------------------------------------------------

class Point(BaseModel):
    x: float = 0.0
    y: float = 0.0


class CollapsedBranch(BaseModel):
    """A subtree parked under its parent.

    ``parent_position_at_collapse`` is the parent's top-left corner at the
    moment of collapse.  On expand every parked person is shifted by the
    parent's displacement since then, so the subtree follows its parent.
    """
    parent_id: str
    collapsed_ids: list[str] = Field(default_factory=list)
    parent_position_at_collapse: Point = Field(default_factory=Point)


# ---------------------------------------------------------------------------
# View and settings
# ---------------------------------------------------------------------------

class ViewTransform(BaseModel):
    """World-to-screen transform: ``screen = world * scale + (x, y)``."""
    x: float = 0.0
    y: float = 0.0
    scale: float = Field(default=1.0, ge=MIN_ZOOM, le=MAX_ZOOM)


class WorkspaceSettings(BaseModel):
    """User settings the interaction engine reacts to.

    Attributes:
        magnetic_snap: Smooth dragging with alignment guides.  When off,
                       drags move in whole ``grid_size`` steps.
        grid_size:     Grid spacing in world units.
        organic_lines: Draw connections as bezier curves instead of
                       straight lines.
        grid_opacity:  Opacity of the background grid (0..1).
        show_grid:     Whether the grid is drawn at all.
    """
    magnetic_snap: bool = True
    grid_size: int = Field(default=GRID_SIZE, gt=0)
    organic_lines: bool = True
    grid_opacity: float = Field(default=0.3, ge=0.0, le=1.0)
    show_grid: bool = True


# ---------------------------------------------------------------------------
# Workspace (root, what the persistence layer stores)
# ---------------------------------------------------------------------------

class Workspace(BaseModel):
    """The complete workspace as plain data.

    This is what gets handed to and received from the persistence
    collaborator.  The live, mutable store is ``workspace.WorkspaceState``;
    this model is only the serialized snapshot.
    """
    persons: list[Person] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    collapsed_branches: list[CollapsedBranch] = Field(default_factory=list)
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    canvas_transform: ViewTransform = Field(default_factory=ViewTransform)

    def get_person(self, person_id: str) -> Optional[Person]:
        for person in self.persons:
            if person.id == person_id:
                return person
        return None
