"""Tests for pointer, wheel and keyboard handling on the canvas controller."""

import pytest

from relation_canvas.controller import RIGHT, CanvasController, PointerEvent
from relation_canvas.geometry import persons_in_group
from relation_canvas.interaction import InteractionKind, InteractionMode
from relation_canvas.models import Group, Person, Workspace, WorkspaceSettings


def _drag(ctrl: CanvasController, *points: tuple[float, float], button: int = 0) -> None:
    """Press at the first point, move through the rest, release at the last."""
    first, *rest = points
    ctrl.pointer_down(PointerEvent(*first, button=button))
    for x, y in rest:
        ctrl.pointer_move(PointerEvent(x, y, button=button))
    ctrl.pointer_up(PointerEvent(*points[-1], button=button))


def _xy(ctrl: CanvasController, person_id: str) -> tuple[float, float]:
    p = ctrl.state.get_person(person_id)
    return (p.x, p.y)


def _dump(ctrl: CanvasController) -> dict:
    ws = ctrl.state.snapshot()
    return {
        "persons": sorted((p.model_dump() for p in ws.persons), key=lambda d: d["id"]),
        "connections": sorted((c.model_dump() for c in ws.connections), key=lambda d: d["id"]),
        "groups": sorted((g.model_dump() for g in ws.groups), key=lambda d: d["id"]),
        "branches": sorted((b.model_dump() for b in ws.collapsed_branches), key=lambda d: d["parent_id"]),
    }


# --- Person drags ---

def test_grid_drag_moves_in_whole_steps(controller) -> None:
    _drag(controller, (150, 150), (165, 150), (181, 150), (190, 158))
    assert _xy(controller, "alice") == (140, 100)
    assert controller.selection.person_ids == ["alice"]
    assert controller.interaction.is_idle


def test_sub_grid_jitter_does_not_move(controller) -> None:
    _drag(controller, (150, 150), (155, 153), (159, 141))
    assert _xy(controller, "alice") == (100, 100)
    assert not controller.state.has_undo


def test_drag_undoes_as_one_step(controller) -> None:
    _drag(controller, (150, 150), (190, 150), (230, 190), (290, 250))
    assert _xy(controller, "alice") == (240, 200)
    assert controller.state.undo_depth == 1
    controller.undo()
    assert _xy(controller, "alice") == (100, 100)


def test_moves_batch_until_frame(controller) -> None:
    controller.pointer_down(PointerEvent(150, 150))
    controller.pointer_move(PointerEvent(190, 150))
    assert _xy(controller, "alice") == (100, 100)
    controller.frame()
    assert _xy(controller, "alice") == (140, 100)
    controller.pointer_up(PointerEvent(190, 150))


def test_magnetic_drag_snaps_to_neighbour(notifier) -> None:
    ws = Workspace(persons=[
        Person(id="alice", name="Alice", x=100, y=100),
        Person(id="bob", name="Bob", x=600, y=130),
    ])
    ctrl = CanvasController(ws, notifier=notifier, viewport_width=1000, viewport_height=600)
    assert ctrl.settings.magnetic_snap

    ctrl.pointer_down(PointerEvent(650, 180))
    ctrl.pointer_move(PointerEvent(650, 155))
    guides = ctrl.interaction.guides
    assert [(g.orientation, g.position) for g in guides] == [("horizontal", 100)]
    ctrl.pointer_up(PointerEvent(650, 155))
    assert _xy(ctrl, "bob") == (600, 100)
    assert ctrl.interaction.guides == []


def test_click_inside_multi_selection_narrows(controller) -> None:
    controller.selection.select_persons(["alice", "bob"])
    _drag(controller, (150, 150))
    assert controller.selection.person_ids == ["alice"]


def test_drag_moves_whole_selection(controller) -> None:
    controller.selection.select_persons(["alice", "bob"])
    _drag(controller, (150, 150), (150, 190))
    assert _xy(controller, "alice") == (100, 140)
    assert _xy(controller, "bob") == (600, 140)
    assert controller.selection.person_ids == ["alice", "bob"]


def test_shift_click_toggles(controller) -> None:
    controller.pointer_down(PointerEvent(150, 150))
    controller.pointer_up(PointerEvent(150, 150))
    controller.pointer_down(PointerEvent(650, 150, shift=True))
    controller.pointer_up(PointerEvent(650, 150, shift=True))
    assert controller.selection.person_ids == ["alice", "bob"]
    controller.pointer_down(PointerEvent(650, 150, shift=True))
    controller.pointer_up(PointerEvent(650, 150, shift=True))
    assert controller.selection.person_ids == ["alice"]


def test_person_wins_over_connection_under_it(controller) -> None:
    controller.pointer_down(PointerEvent(357, 150))
    assert controller.interaction.kind is InteractionKind.DRAGGING_PERSON


# --- Connections ---

def test_click_selects_connection_and_delete_undoes(controller, notifier) -> None:
    before = _dump(controller)
    controller.pointer_down(PointerEvent(480, 150))
    controller.pointer_up(PointerEvent(480, 150))
    assert controller.selection.connection_ids == ["link"]

    assert controller.key_down("Delete")
    assert controller.state.get_connection("link") is None
    assert "Deleted selected connections" in notifier.messages
    assert controller.selection.connection_ids == []

    controller.key_down("z", ctrl=True)
    assert controller.state.get_connection("link") is not None
    assert _dump(controller) == before


def test_right_drag_creates_connection(controller, notifier) -> None:
    controller.state.add_person(Person(id="carol", name="Carol", x=100, y=400))
    controller.frame()
    controller.pointer_down(PointerEvent(150, 150, button=RIGHT))
    assert controller.interaction.kind is InteractionKind.DRAGGING_CONNECTION
    controller.pointer_move(PointerEvent(150, 450, button=RIGHT))
    assert controller.scene().rubber_band == ((230.0, 150.0), (150, 450))
    controller.pointer_up(PointerEvent(150, 450, button=RIGHT))

    assert controller.state.find_connection("alice", "carol") is not None
    assert notifier.messages[:1] == ["Drag to another person to connect"]
    assert "Connection created" in notifier.messages
    assert controller.scene().rubber_band is None


def test_right_drag_to_existing_pair_is_rejected(controller, notifier) -> None:
    _drag(controller, (150, 150), (650, 150), button=RIGHT)
    assert len(controller.state.connections) == 1
    assert "Connection already exists" in notifier.messages


def test_right_drag_released_on_empty_canvas(controller) -> None:
    _drag(controller, (150, 150), (500, 500), button=RIGHT)
    assert len(controller.state.connections) == 1
    assert controller.interaction.is_idle


def test_connect_mode_two_clicks(controller, notifier) -> None:
    controller.state.add_person(Person(id="carol", name="Carol", x=100, y=400))
    controller.set_mode("connect")
    _drag(controller, (150, 150))
    assert controller.interaction.connect_from == "alice"
    assert "Click another person to connect" in notifier.messages
    _drag(controller, (150, 450))
    assert controller.state.find_connection("alice", "carol") is not None
    assert controller.interaction.mode is InteractionMode.SELECT


# --- Marquee ---

def test_marquee_selects_persons_and_connections(controller) -> None:
    controller.pointer_down(PointerEvent(50, 400))
    controller.pointer_move(PointerEvent(900, 50))
    assert controller.scene().selection_rect is not None
    controller.pointer_up(PointerEvent(900, 50))
    assert sorted(controller.selection.person_ids) == ["alice", "bob"]
    assert controller.selection.connection_ids == ["link"]
    assert controller.interaction.selection_rect is None


def test_tiny_marquee_is_a_click(controller) -> None:
    controller.selection.select_persons(["alice"])
    _drag(controller, (50, 400), (53, 402))
    assert controller.selection.is_empty


def test_marquee_needs_card_centre(controller) -> None:
    # Covers alice's left half only
    _drag(controller, (50, 50), (200, 250))
    assert controller.selection.person_ids == []


# --- Groups ---

def _with_group(ctrl: CanvasController) -> None:
    ctrl.state.add_group(Group(id="g", name="Team", x=0, y=0, width=500, height=300))
    ctrl.frame()


def test_group_header_drag_carries_members(controller) -> None:
    _with_group(controller)
    _drag(controller, (250, 20), (290, 20))
    g = controller.state.get_group("g")
    assert (g.x, g.y) == (40, 0)
    assert _xy(controller, "alice") == (140, 100)
    assert _xy(controller, "bob") == (600, 100)
    assert controller.selection.group_ids == ["g"]

    assert controller.state.undo_depth == 1
    controller.undo()
    assert controller.state.get_group("g").x == 0
    assert _xy(controller, "alice") == (100, 100)


def test_resize_from_corner_snaps(controller) -> None:
    _with_group(controller)
    _drag(controller, (500, 300), (560, 338))
    g = controller.state.get_group("g")
    assert (g.x, g.y, g.width, g.height) == (0, 0, 560, 340)


def test_resize_from_west_keeps_east_edge(controller) -> None:
    _with_group(controller)
    _drag(controller, (0, 150), (-40, 150))
    g = controller.state.get_group("g")
    assert (g.x, g.width) == (-40, 540)

    _drag(controller, (-40, 150), (480, 150))
    g = controller.state.get_group("g")
    assert (g.x, g.width) == (400, 100)
    assert g.x + g.width == 500


def test_resize_changes_membership(controller) -> None:
    _with_group(controller)
    _drag(controller, (500, 300), (1000, 300))
    members = persons_in_group(controller.state.get_group("g"), controller.state.visible_persons)
    assert {p.id for p in members} == {"alice", "bob"}


# --- View ---

def test_wheel_zooms_at_pointer(controller) -> None:
    before = controller.transform.screen_to_world(300, 200)
    controller.wheel(-1, 300, 200)
    assert controller.transform.scale == pytest.approx(1.1)
    assert controller.transform.screen_to_world(300, 200) == pytest.approx(before)
    assert controller.state.canvas_transform.scale == pytest.approx(1.1)


def test_space_pans(controller) -> None:
    assert controller.key_down(" ")
    assert controller.interaction.mode is InteractionMode.PAN
    _drag(controller, (500, 500), (520, 490))
    assert (controller.transform.x, controller.transform.y) == (20, -10)
    assert _xy(controller, "alice") == (100, 100)
    assert controller.key_up(" ")
    assert controller.interaction.mode is InteractionMode.SELECT


def test_middle_button_pans(controller) -> None:
    _drag(controller, (150, 150), (100, 100), button=1)
    assert (controller.transform.x, controller.transform.y) == (-50, -50)


# --- Escape and lost pointer ---

def test_escape_keeps_applied_movement(controller) -> None:
    controller.pointer_down(PointerEvent(150, 150))
    controller.pointer_move(PointerEvent(190, 150))
    controller.key_down("Escape")
    assert controller.interaction.is_idle
    assert _xy(controller, "alice") == (140, 100)
    assert controller.selection.person_ids == ["alice"]

    controller.key_down("Escape")
    assert controller.selection.is_empty


def test_escape_leaves_connect_mode(controller) -> None:
    controller.set_mode(InteractionMode.CONNECT)
    _drag(controller, (150, 150))
    controller.key_down("Escape")
    assert controller.interaction.connect_from is None
    controller.key_down("Escape")
    assert controller.interaction.mode is InteractionMode.SELECT


def test_window_pointer_up_resets(controller) -> None:
    controller.pointer_down(PointerEvent(150, 150))
    controller.pointer_move(PointerEvent(190, 150))
    controller.window_pointer_up()
    assert controller.interaction.is_idle
    assert _xy(controller, "alice") == (140, 100)


# --- Keyboard commands ---

def test_arrow_nudge(controller) -> None:
    controller.selection.select_persons(["alice"])
    assert controller.key_down("ArrowRight")
    assert controller.key_down("ArrowDown", shift=True)
    assert _xy(controller, "alice") == (120, 200)
    assert controller.state.undo_depth == 2


def test_nudge_starts_from_queued_position(controller) -> None:
    controller.selection.select_persons(["alice"])
    controller.state.queue_positions({"alice": (300, 100)})
    assert controller.key_down("ArrowRight")
    controller.frame()
    assert _xy(controller, "alice") == (320, 100)
    controller.undo()
    assert _xy(controller, "alice") == (300, 100)


def test_arrange_reads_queued_positions(controller) -> None:
    controller.state.queue_positions({"bob": (100, 100)})
    controller.arrange("compact", fit=False)
    controller.frame()
    assert _xy(controller, "alice") != _xy(controller, "bob")
    controller.undo()
    assert _xy(controller, "bob") == (100, 100)


def test_arrow_without_selection(controller) -> None:
    assert not controller.key_down("ArrowRight")


def test_number_keys_set_score(controller) -> None:
    controller.selection.select_persons(["alice", "bob"])
    controller.key_down("1")
    assert {p.score for p in controller.state.persons} == {1}


def test_duplicate_selected(controller, notifier) -> None:
    controller.selection.select_persons(["alice"])
    controller.key_down("d", ctrl=True)
    assert len(controller.state.persons) == 3
    (copy_id,) = controller.selection.person_ids
    copy = controller.state.get_person(copy_id)
    assert (copy.x, copy.y, copy.name) == (140, 140, "Alice")
    assert "Duplicated 1 person" in notifier.messages


def test_group_selected(controller, notifier) -> None:
    controller.selection.select_persons(["alice"])
    controller.key_down("g", ctrl=True)
    (group,) = controller.state.groups
    assert (group.x, group.y, group.width, group.height) == (60, 20, 340, 220)
    assert controller.selection.group_ids == [group.id]
    assert "Group created" in notifier.messages


def test_focus_key_centres_selection(controller) -> None:
    controller.selection.select_persons(["bob"])
    assert controller.key_down("f")
    cx, cy = controller.state.get_person("bob").center()
    assert controller.transform.world_to_screen(cx, cy) == (pytest.approx(500), pytest.approx(300))


# --- Commands ---

def test_arrange_is_one_undo_step(controller, notifier) -> None:
    assert controller.arrange("hierarchical") == 2
    assert "Hierarchical tree layout applied" in notifier.messages
    assert controller.state.undo_depth == 1
    controller.undo()
    assert _xy(controller, "alice") == (100, 100)
    assert _xy(controller, "bob") == (600, 100)


def test_arrange_empty(notifier) -> None:
    ctrl = CanvasController(notifier=notifier)
    assert ctrl.arrange("force") == 0
    assert notifier.messages == ["No persons to organize"]


def test_align_needs_enough_persons(controller, notifier) -> None:
    controller.selection.select_persons(["alice", "bob"])
    assert controller.align_selected("distribute-vertical") == 0
    assert "Select at least 3 persons" in notifier.messages
    assert controller.align_selected("top") == 2
    with pytest.raises(ValueError):
        controller.align_selected("diagonal")


def test_highlight_path(controller, notifier) -> None:
    assert controller.highlight_path("alice", "bob") == ["alice", "bob"]
    assert controller.highlighted_connection_ids == {"link"}

    controller.state.add_person(Person(id="dave", name="Dave", x=0, y=800))
    assert controller.highlight_path("alice", "dave") is None
    assert controller.highlighted_connection_ids == set()
    assert "No path found" in notifier.messages


def test_search_selects_matches(controller, notifier) -> None:
    assert controller.search("ali") == ["alice"]
    assert controller.selection.person_ids == ["alice"]
    assert controller.search("zzz") == []
    assert "No matching persons" in notifier.messages


def test_collapse_hides_connection_from_hit_test(controller) -> None:
    assert controller.collapse("link", "alice")
    controller.frame()
    assert controller.renderer.connection_at(480, 150) is None
    assert controller.scene().collapsed_counts == {"alice": 1}

    controller.expand("alice")
    controller.frame()
    assert controller.renderer.connection_at(480, 150) == "link"


def test_apply_settings_validates(controller) -> None:
    controller.apply_settings(magnetic_snap=True, grid_size=40)
    assert controller.settings.magnetic_snap
    assert controller.settings.grid_size == 40
    controller.apply_settings(WorkspaceSettings())
    assert controller.settings.grid_size == 20
