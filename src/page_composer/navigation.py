from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable, Literal

from pydantic import BaseModel, Field

from .config import EditorConfig
from .models.content import PageContent, Widget

if TYPE_CHECKING:
    from .store import PageBuilderStore

logger = logging.getLogger(__name__)

_ZONE_PREFIXES = ("before-", "after-")
_CHILDREN_SUFFIX = "-children"


class OutlineNode(BaseModel):
    id: str
    kind: Literal["section", "column", "widget"]
    name: str
    path: str
    widget_type: str | None = None
    expanded: bool = True
    children: list["OutlineNode"] = Field(default_factory=list)

    def walk(self) -> Iterable["OutlineNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


OutlineNode.model_rebuild()


def widget_display_name(widget: Widget, index: int) -> str:
    general = widget.general
    for candidate in (general.get("text"), general.get("title")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    content = general.get("content")
    if isinstance(content, dict) and isinstance(content.get("text"), str) and content["text"].strip():
        return content["text"].strip()
    if widget.type:
        return widget.type.replace("_", " ").replace("-", " ").title()
    return f"Widget {index + 1}"


def build_outline(content: PageContent, collapsed: Iterable[str] = ()) -> list[OutlineNode]:
    """Project the page tree into labelled outline nodes in one top-down pass."""
    hidden = set(collapsed)
    sections = []
    for section_index, container in enumerate(content.containers):
        section_path = f"section-{section_index}"
        columns = []
        for column_index, column in enumerate(container.columns):
            column_path = f"{section_path}.column-{column_index}"
            widgets = [
                OutlineNode(
                    id=widget.id,
                    kind="widget",
                    name=widget_display_name(widget, widget_index),
                    path=f"{column_path}.widget-{widget_index}",
                    widget_type=widget.type,
                )
                for widget_index, widget in enumerate(column.widgets)
            ]
            columns.append(
                OutlineNode(
                    id=column.id,
                    kind="column",
                    name=f"Column {column_index + 1}",
                    path=column_path,
                    expanded=column.id not in hidden,
                    children=widgets,
                )
            )
        sections.append(
            OutlineNode(
                id=container.id,
                kind="section",
                name=container.name or f"Section {section_index + 1}",
                path=section_path,
                expanded=container.id not in hidden,
                children=columns,
            )
        )
    return sections


def filter_outline(nodes: Iterable[OutlineNode], term: str) -> list[OutlineNode]:
    """Keep nodes whose name or widget type contains ``term``, plus their ancestors."""
    needle = term.strip().lower()
    if not needle:
        return list(nodes)

    def prune(node: OutlineNode) -> OutlineNode | None:
        children = [kept for kept in (prune(child) for child in node.children) if kept is not None]
        matches = needle in node.name.lower() or bool(node.widget_type and needle in node.widget_type.lower())
        if matches or children:
            return node.model_copy(update={"children": children, "expanded": True})
        return None

    return [kept for kept in (prune(node) for node in nodes) if kept is not None]


class OutlineProjector:
    """Read-only outline view of a store, with its own expansion state."""

    def __init__(self, store: PageBuilderStore) -> None:
        self.store = store
        self._collapsed: set[str] = set()

    def build(self, search: str = "") -> list[OutlineNode]:
        nodes = build_outline(self.store.page_content(), self._collapsed)
        return filter_outline(nodes, search) if search else nodes

    def is_expanded(self, node_id: str) -> bool:
        return node_id not in self._collapsed

    def toggle(self, node_id: str) -> bool:
        if node_id in self._collapsed:
            self._collapsed.discard(node_id)
            return True
        self._collapsed.add(node_id)
        return False

    def expand_all(self) -> None:
        self._collapsed.clear()

    def collapse_all(self) -> None:
        self._collapsed = {
            node.id for root in self.build() for node in root.walk() if node.kind != "widget"
        }


class CircuitBreaker:
    """Blocks operations once too many complete within ``cooldown`` of each other."""

    def __init__(
        self,
        max_operations: int = 10,
        cooldown: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_operations = max_operations
        self.cooldown = cooldown
        self.clock = clock
        self._count = 0
        self._last: float | None = None

    @classmethod
    def from_config(cls, config: EditorConfig) -> "CircuitBreaker":
        return cls(max_operations=config.nav_max_operations, cooldown=config.nav_cooldown_ms / 1000)

    @property
    def tripped(self) -> bool:
        return self._count > self.max_operations

    def record(self) -> bool:
        """Register an operation; False means it must be blocked."""
        now = self.clock()
        if self._last is not None and now - self._last < self.cooldown:
            self._count += 1
            if self._count > self.max_operations:
                logger.warning(
                    "Too many rapid outline operations, blocking",
                    extra={"count": self._count, "max_operations": self.max_operations},
                )
                return False
        else:
            self._count = 0
        self._last = now
        return True

    def reset(self) -> None:
        self._count = 0
        self._last = None


class NavigationDragHandler:
    """Applies drags started in the outline through the store's operations.

    Drop ids are node ids, or drop zones named ``before-<id>``, ``after-<id>`` and
    ``after-<id>-children``. Drag state lives here rather than in the store so an
    outline drag never disturbs the canvas drag context.
    """

    def __init__(self, store: PageBuilderStore, *, breaker: CircuitBreaker | None = None) -> None:
        self.store = store
        self.breaker = breaker or CircuitBreaker()
        self.dragged_id: str | None = None
        self.active_drop_zone: str | None = None

    @property
    def is_dragging(self) -> bool:
        return self.dragged_id is not None

    def handle_drag_start(self, node_id: str) -> None:
        self.dragged_id = node_id
        self.active_drop_zone = None

    def handle_drag_over(self, drop_id: str | None) -> None:
        if drop_id != self.active_drop_zone:
            self.active_drop_zone = drop_id

    def handle_drag_end(self, active_id: str, over_id: str | None) -> bool:
        if not self.breaker.record():
            self._cleanup()
            self.store.reset_drag_state()
            return False
        try:
            if over_id is None or over_id == active_id:
                return False
            if self.store.container_index(active_id) != -1:
                return self._drop_section(active_id, over_id)
            if self.store.find_widget_location(active_id) is not None:
                return self._drop_widget(active_id, over_id)
            logger.warning("Outline drag source not found", extra={"node_id": active_id})
            return False
        finally:
            self._cleanup()

    def _drop_section(self, section_id: str, over_id: str) -> bool:
        position, node_id = _parse_drop_id(over_id)
        node_index = self.store.container_index(node_id)
        if node_index == -1:
            logger.debug("Section dropped outside section targets", extra={"section_id": section_id, "over_id": over_id})
            return False
        target_index = node_index + 1 if position == "after" else node_index
        source_index = self.store.container_index(section_id)
        if position is None:
            new_index = target_index
        else:
            new_index = target_index - 1 if source_index < target_index else target_index
        if new_index == source_index:
            return False
        return self.store.reorder_containers(source_index, new_index)

    def _drop_widget(self, widget_id: str, over_id: str) -> bool:
        position, node_id = _parse_drop_id(over_id)
        _, source_column, source_index = self.store.find_widget_location(widget_id)

        target = self.store.find_widget_location(node_id)
        if target is None:
            if self.store.column_container(node_id) is None:
                logger.debug("Widget drop rejected, target is not a widget or column", extra={"over_id": over_id})
                return False
            # Column node or its children zone: append at the end.
            return self._place_widget(widget_id, source_column, source_index, node_id, None, adjust=True)

        _, target_column, target_index = target
        if position is None:
            return self._place_widget(widget_id, source_column, source_index, target_column, target_index, adjust=False)
        insert_index = target_index + 1 if position == "after" else target_index
        return self._place_widget(widget_id, source_column, source_index, target_column, insert_index, adjust=True)

    def _place_widget(
        self,
        widget_id: str,
        source_column: str,
        source_index: int,
        target_column: str,
        insert_index: int | None,
        *,
        adjust: bool,
    ) -> bool:
        if source_column != target_column:
            return self.store.move_widget_between_columns(widget_id, source_column, target_column, insert_index)
        if insert_index is None:
            insert_index = len(self.store.widget_ids(target_column))
        if adjust and source_index < insert_index:
            insert_index -= 1
        if insert_index == source_index:
            return False
        return self.store.reorder_widgets(source_column, source_index, insert_index)

    def _cleanup(self) -> None:
        self.dragged_id = None
        self.active_drop_zone = None


def _parse_drop_id(drop_id: str) -> tuple[str | None, str]:
    for prefix in _ZONE_PREFIXES:
        if drop_id.startswith(prefix):
            node_id = drop_id[len(prefix):]
            if node_id.endswith(_CHILDREN_SUFFIX):
                node_id = node_id[: -len(_CHILDREN_SUFFIX)]
            return prefix[:-1], node_id
    return None, drop_id


def outline_ids(nodes: Iterable[OutlineNode]) -> list[str]:
    return [node.id for root in nodes for node in root.walk()]


__all__ = [
    "CircuitBreaker",
    "NavigationDragHandler",
    "OutlineNode",
    "OutlineProjector",
    "build_outline",
    "filter_outline",
    "outline_ids",
    "widget_display_name",
]
