import itertools

from page_composer.config import EditorConfig
from page_composer.navigation import (
    CircuitBreaker,
    NavigationDragHandler,
    OutlineProjector,
    build_outline,
    filter_outline,
    outline_ids,
)


def fake_clock(*ticks):
    values = iter(ticks)
    return lambda: next(values)


def test_outline_names_and_paths(store):
    nodes = build_outline(store.page_content())

    assert [node.name for node in nodes] == ["Section 1", "Section 2"]
    first = nodes[0]
    assert [column.name for column in first.children] == ["Column 1", "Column 2"]
    widgets = first.children[0].children
    assert [widget.name for widget in widgets] == ["Hello", "Text", "Click"]
    assert widgets[2].path == "section-0.column-0.widget-2"
    assert outline_ids(nodes) == ["S1", "C1", "w1", "w2", "w3", "C2", "S2", "C3", "w4"]


def test_filter_keeps_matching_nodes_and_ancestors(store):
    nodes = build_outline(store.page_content(), collapsed={"S1", "C1"})

    filtered = filter_outline(nodes, "BUTTON")

    assert outline_ids(filtered) == ["S1", "C1", "w3"]
    assert filtered[0].expanded is True
    assert filtered[0].children[0].expanded is True


def test_blank_filter_returns_everything(store):
    nodes = build_outline(store.page_content())

    assert filter_outline(nodes, "  ") == nodes


def test_projector_expansion_state(store):
    projector = OutlineProjector(store)

    assert projector.toggle("S1") is False
    assert projector.build()[0].expanded is False
    assert projector.toggle("S1") is True

    projector.collapse_all()
    assert not projector.is_expanded("C3")
    assert projector.is_expanded("w4")

    projector.expand_all()
    assert all(node.expanded for root in projector.build() for node in root.walk())


def test_circuit_breaker_trips_on_rapid_operations():
    breaker = CircuitBreaker(max_operations=2, cooldown=1.0, clock=fake_clock(0.0, 0.1, 0.2, 0.3, 5.0))

    assert [breaker.record() for _ in range(4)] == [True, True, True, False]
    assert breaker.tripped is True
    assert breaker.record() is True
    assert breaker.tripped is False


def test_circuit_breaker_from_config():
    breaker = CircuitBreaker.from_config(EditorConfig(nav_max_operations=3, nav_cooldown_ms=250))

    assert breaker.max_operations == 3
    assert breaker.cooldown == 0.25


def test_section_dropped_after_zone(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("S1", "after-S2") is True
    assert store.container_ids() == ["S2", "S1"]


def test_section_dropped_on_section_node(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("S2", "S1") is True
    assert store.container_ids() == ["S2", "S1"]


def test_section_before_next_section_is_noop(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("S1", "before-S2") is False
    assert store.container_ids() == ["S1", "S2"]


def test_widget_dropped_on_widget_node(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("w1", "w3") is True
    assert store.widget_ids("C1") == ["w2", "w3", "w1"]


def test_widget_dropped_before_zone(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("w1", "before-w3") is True
    assert store.widget_ids("C1") == ["w2", "w1", "w3"]


def test_widget_dropped_on_column_children_zone(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("w1", "after-C2-children") is True
    assert store.widget_ids("C2") == ["w1"]


def test_widget_dropped_on_own_column_moves_to_end(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("w1", "C1") is True
    assert store.widget_ids("C1") == ["w2", "w3", "w1"]


def test_widget_dropped_on_section_is_rejected(store):
    handler = NavigationDragHandler(store)

    assert handler.handle_drag_end("w1", "S2") is False
    assert store.widget_ids("C1") == ["w1", "w2", "w3"]


def test_tripped_breaker_blocks_and_cleans_up(store):
    breaker = CircuitBreaker(max_operations=0, cooldown=1.0, clock=lambda: next(ticks))
    ticks = itertools.count(0, 0.01)
    handler = NavigationDragHandler(store, breaker=breaker)
    store.set_drag_state(dragged_item_type="widget")

    assert handler.handle_drag_end("S1", "after-S2") is True
    handler.handle_drag_start("S1")
    handler.handle_drag_over("after-S1")

    assert handler.handle_drag_end("S2", "before-S1") is False
    assert store.container_ids() == ["S2", "S1"]
    assert handler.is_dragging is False
    assert handler.active_drop_zone is None
    assert store.drag_state.is_dragging is False
