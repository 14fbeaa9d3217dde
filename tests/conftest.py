"""Pytest configuration and fixtures."""

import pytest

from relation_canvas.controller import CanvasController
from relation_canvas.models import Connection, Person, Workspace, WorkspaceSettings
from relation_canvas.workspace import WorkspaceState


class RecordingNotifier:
    """Notifier that keeps every notice for assertions."""

    def __init__(self):
        self.notices: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.notices.append(("info", message))

    def success(self, message: str) -> None:
        self.notices.append(("success", message))

    def warning(self, message: str) -> None:
        self.notices.append(("warning", message))

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.notices]


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Fresh notice recorder."""
    return RecordingNotifier()


@pytest.fixture
def tree_persons() -> list[Person]:
    """Eight persons forming a tree under ``root`` (score 1)."""
    ids = ["root", "a", "b", "c", "a1", "a2", "b1", "c1"]
    return [
        Person(id=pid, name=pid.upper(), score=1 if pid == "root" else 3, x=i * 50.0, y=i * 30.0)
        for i, pid in enumerate(ids)
    ]


@pytest.fixture
def tree_connections() -> list[Connection]:
    """Seven edges: root -> a, b, c; a -> a1, a2; b -> b1; c -> c1."""
    pairs = [
        ("root", "a"), ("root", "b"), ("root", "c"),
        ("a", "a1"), ("a", "a2"), ("b", "b1"), ("c", "c1"),
    ]
    return [Connection(id=f"e-{f}-{t}", from_id=f, to_id=t) for f, t in pairs]


@pytest.fixture
def tree_workspace(tree_persons: list[Person], tree_connections: list[Connection]) -> Workspace:
    """Tree workspace with default settings."""
    return Workspace(persons=tree_persons, connections=tree_connections)


@pytest.fixture
def pair_workspace() -> Workspace:
    """Two persons side by side joined by one connection, magnetic snap off."""
    return Workspace(
        persons=[
            Person(id="alice", name="Alice", x=100, y=100),
            Person(id="bob", name="Bob", x=600, y=100),
        ],
        connections=[Connection(id="link", from_id="alice", to_id="bob")],
        settings=WorkspaceSettings(magnetic_snap=False),
    )


@pytest.fixture
def state(tree_workspace: Workspace, notifier: RecordingNotifier) -> WorkspaceState:
    """Workspace state over the tree."""
    return WorkspaceState(tree_workspace, notifier)


@pytest.fixture
def controller(pair_workspace: Workspace, notifier: RecordingNotifier) -> CanvasController:
    """Controller over the pair workspace at identity view, already drawn once."""
    ctrl = CanvasController(pair_workspace, notifier=notifier, viewport_width=1000, viewport_height=600)
    ctrl.redraw()
    return ctrl
