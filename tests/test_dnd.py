import pytest

from page_composer.dnd import (
    AUTO_WRAP_SETTINGS,
    CONTAINER_PLACEMENT_MESSAGE,
    SECTION_PLACEMENT_MESSAGE,
    DragAndDropInterpreter,
    IntentKind,
)
from page_composer.models.drag import (
    CanvasTarget,
    ColumnTarget,
    SectionDrag,
    SectionDropZone,
    SectionTarget,
    WidgetDrag,
    WidgetDropZone,
    WidgetTarget,
)


@pytest.fixture
def rejections():
    return []


@pytest.fixture
def interpreter(store, rejections):
    return DragAndDropInterpreter(store, notifier=rejections.append)


def template(widget_type, **content):
    return {"type": "widget-template", "widget": {"type": widget_type, "defaultContent": content}}


def test_plain_widget_on_canvas_is_wrapped_in_new_section(store, interpreter):
    result = interpreter.handle_drag_end(template("text", content="<p>Hi</p>"), {"type": "canvas"})

    assert result.applied is True
    assert result.rule == "auto-wrap"
    new_id = store.container_ids()[-1]
    container = store.find_container(new_id)
    assert container.settings == dict(AUTO_WRAP_SETTINGS)
    assert len(container.columns) == 1
    widgets = container.columns[0].widgets
    assert [w.type for w in widgets] == ["text"]
    assert widgets[0].general == {"content": "<p>Hi</p>"}


def test_container_template_over_column_is_rejected(store, interpreter, rejections):
    before = store.page_content()

    result = interpreter.handle_drag_end(template("container", columns=2), {"type": "column", "columnId": "C2", "containerId": "S1"})

    assert result.rejected is True
    assert result.applied is False
    assert result.rule == "container-placement"
    assert result.message == CONTAINER_PLACEMENT_MESSAGE
    assert rejections == [result]
    assert store.page_content() == before


def test_section_template_inside_column_is_rejected(store, interpreter, rejections):
    result = interpreter.handle_drag_end(
        template("section"),
        WidgetTarget(widget_id="w1", column_id="C1", container_id="S1", widget_index=0),
    )

    assert result.rule == "section-placement"
    assert result.message == SECTION_PLACEMENT_MESSAGE
    assert len(rejections) == 1
    assert store.container_ids() == ["S1", "S2"]


def test_section_template_after_section(store, interpreter):
    result = interpreter.handle_drag_end(template("section"), SectionTarget(container_id="S1"))

    assert result.intent.kind is IntentKind.insert_section
    ids = store.container_ids()
    assert len(ids) == 3
    assert ids[0] == "S1" and ids[2] == "S2"


def test_container_template_on_canvas_builds_equal_columns(store, interpreter):
    interpreter.handle_drag_end(template("container", columns=3, gap="10px"), CanvasTarget())

    container = store.find_container(store.container_ids()[-1])
    assert [column.width for column in container.columns] == ["33.3333%"] * 3
    assert container.settings["gap"] == "10px"
    assert container.settings["padding"] == "40px 20px"


def test_section_template_drag_on_canvas_gets_fresh_ids(store, interpreter):
    active = {
        "type": "section-template",
        "section": {
            "name": "Two Columns",
            "columns": [{"id": "C1", "width": "50%"}, {"id": "C2", "width": "50%"}],
            "settings": {"padding": "0px"},
        },
    }

    result = interpreter.handle_drag_end(active, {"type": "canvas"})

    assert result.applied is True
    container = store.find_container(store.container_ids()[-1])
    assert container.name == "Two Columns"
    assert [column.width for column in container.columns] == ["50%", "50%"]
    assert not {column.id for column in container.columns} & {"C1", "C2"}
    assert store.check_invariants() == []


def test_template_into_drop_zone_inserts_section_at_zone_index(store, interpreter):
    zone = WidgetDropZone(index=1, insert_index=0, column_id="C3", container_id="S2", position="before")

    result = interpreter.handle_drag_end(template("heading", text="Zone"), zone)

    assert result.rule == "template-into-drop-zone"
    ids = store.container_ids()
    assert ids[0] == "S1" and ids[2] == "S2"
    assert store.find_container(ids[1]).settings["padding"] == "20px"


def test_template_before_widget(store, interpreter):
    over = WidgetTarget(widget_id="w2", column_id="C1", container_id="S1", widget_index=1, drop_position="before")

    result = interpreter.handle_drag_end(template("button", text="Go"), over)

    assert result.rule == "template-into-column"
    ids = store.widget_ids("C1")
    assert len(ids) == 4
    assert ids[0] == "w1" and ids[2] == "w2"


def test_template_onto_column_appends(store, interpreter):
    interpreter.handle_drag_end(template("spacer"), ColumnTarget(column_id="C3", container_id="S2"))

    ids = store.widget_ids("C3")
    assert ids[0] == "w4"
    assert store.find_widget(ids[1]).type == "spacer"


def test_widget_onto_later_widget_in_same_column(store, interpreter):
    result = interpreter.handle_drag_end(
        WidgetDrag(widget_id="w1", column_id="C1", container_id="S1"),
        WidgetTarget(widget_id="w3", column_id="C1", container_id="S1", widget_index=2),
    )

    assert result.rule == "widget-onto-widget"
    assert store.widget_ids("C1") == ["w2", "w3", "w1"]


def test_widget_dropped_before_widget_uses_adjusted_index(store, interpreter):
    interpreter.handle_drag_end(
        WidgetDrag(widget_id="w1", column_id="C1"),
        WidgetTarget(widget_id="w3", column_id="C1", widget_index=2, drop_position="before"),
    )

    assert store.widget_ids("C1") == ["w2", "w1", "w3"]


def test_widget_onto_widget_in_other_column(store, interpreter):
    result = interpreter.handle_drag_end(
        WidgetDrag(widget_id="w4", column_id="C3", container_id="S2"),
        WidgetTarget(widget_id="w2", column_id="C1", container_id="S1", widget_index=1),
    )

    assert result.intent.kind is IntentKind.move_widget
    assert store.widget_ids("C1") == ["w1", "w4", "w2", "w3"]
    assert store.widget_ids("C3") == []


def test_widget_into_drop_zone_in_same_column(store, interpreter):
    zone = WidgetDropZone(index=0, insert_index=3, column_id="C1", container_id="S1", position="after")

    interpreter.handle_drag_end(WidgetDrag(widget_id="w1", column_id="C1"), zone)

    assert store.widget_ids("C1") == ["w2", "w3", "w1"]


def test_widget_onto_own_column_is_noop(store, interpreter):
    result = interpreter.handle_drag_end(WidgetDrag(widget_id="w1", column_id="C1"), ColumnTarget(column_id="C1"))

    assert result.intent.kind is IntentKind.noop
    assert result.applied is False


def test_widget_onto_other_column_appends(store, interpreter):
    interpreter.handle_drag_end(WidgetDrag(widget_id="w1", column_id="C1"), ColumnTarget(column_id="C3"))

    assert store.widget_ids("C3") == ["w4", "w1"]


def test_drop_on_itself_or_nowhere_is_noop(store, interpreter):
    active = WidgetDrag(widget_id="w1", column_id="C1")
    before = store.page_content()

    assert interpreter.handle_drag_end(active, None).intent.kind is IntentKind.noop
    same = WidgetTarget(widget_id="w1", column_id="C1", widget_index=0)
    assert interpreter.handle_drag_end(active, same).intent.kind is IntentKind.noop
    assert store.page_content() == before


def test_malformed_payload_is_noop(store, interpreter):
    result = interpreter.handle_drag_end({"type": "bogus"}, {"type": "canvas"})

    assert result.intent.kind is IntentKind.noop
    assert store.container_ids() == ["S1", "S2"]


def test_missing_active_payload_is_noop(store, interpreter):
    result = interpreter.handle_drag_end(None, {"type": "canvas"})

    assert result.intent.kind is IntentKind.noop
    assert result.applied is False
    assert store.container_ids() == ["S1", "S2"]


def test_malformed_drag_start_resets_drag_state(store, interpreter):
    interpreter.handle_drag_start(WidgetDrag(widget_id="w1", column_id="C1", container_id="S1"))

    state = interpreter.handle_drag_start({"type": "widget"})

    assert state.dragged_item is None
    assert state.dragged_item_type is None
    assert store.drag_state.drag_start_column is None


def test_section_reorder_through_drop_zone(store, interpreter):
    result = interpreter.handle_drag_end(SectionDrag(container_id="S1"), SectionDropZone(index=2, position="after"))

    assert result.rule == "section-reorder"
    assert store.container_ids() == ["S2", "S1"]


def test_section_drop_zone_next_to_itself_is_noop(store, interpreter):
    result = interpreter.handle_drag_end(SectionDrag(container_id="S1"), SectionDropZone(index=1, position="after"))

    assert result.intent.kind is IntentKind.noop
    assert store.container_ids() == ["S1", "S2"]


def test_section_onto_section_reorders(store, interpreter):
    result = interpreter.handle_drag_end(SectionDrag(container_id="S2"), SectionTarget(container_id="S1"))

    assert result.rule == "container-reorder"
    assert store.container_ids() == ["S2", "S1"]


def test_drag_state_lifecycle(store, interpreter):
    interpreter.handle_drag_start(WidgetDrag(widget_id="w1", column_id="C1", container_id="S1"))
    assert store.drag_state.dragged_item_type == "widget"
    assert store.drag_state.drag_start_column == "C1"

    state = interpreter.handle_drag_over(
        WidgetTarget(widget_id="w4", column_id="C3", container_id="S2", widget_index=0),
        drop_position="before",
    )
    assert state.active_drop_target == "w4"
    assert state.cross_container_mode is True

    interpreter.handle_drag_end(
        WidgetDrag(widget_id="w1", column_id="C1", container_id="S1"),
        WidgetTarget(widget_id="w4", column_id="C3", container_id="S2", widget_index=0),
    )
    assert store.drag_state.is_dragging is False
    assert store.widget_ids("C3") == ["w1", "w4"]
