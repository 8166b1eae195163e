from __future__ import annotations

import copy
import json
import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from pydantic import ValidationError

from .models.content import Column, Container, PageContent, Widget, WidgetSnapshot, new_id
from .models.drag import DragState, SectionDropZone, WidgetDropZone, WidgetTemplate

if TYPE_CHECKING:
    from .autosave import AutoSaveCoordinator

logger = logging.getLogger(__name__)

DEFAULT_SECTION_SETTINGS: Mapping[str, Any] = {
    "padding": "20px",
    "margin": "0px",
    "backgroundColor": "#ffffff",
}

DEVICE_VIEWPORTS: Mapping[str, str] = {
    "desktop": "100%",
    "tablet": "768px",
    "mobile": "375px",
}

WIDGET_RECORD_VERSION = "1.0.0"
PAGE_PAYLOAD_VERSION = "1.0"


def equal_width(count: int) -> str:
    return f"{round(100 / count, 4):g}%"


class PageBuilderStore:
    """In-memory page content tree with the editor's mutation operations.

    Containers, columns and widgets are kept in id-keyed arenas with explicit
    ordering lists and parent indices, so every lookup and ownership transfer
    is a dictionary operation. Every public mutation is atomic: it validates
    its preconditions first and either applies completely or not at all.
    """

    def __init__(
        self,
        *,
        page_id: str | int | None = None,
        content: PageContent | Mapping[str, Any] | None = None,
        widgets: Iterable[Mapping[str, Any]] | Mapping[str, Mapping[str, Any]] | None = None,
        autosave: AutoSaveCoordinator | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self.page_id = page_id
        self.autosave: AutoSaveCoordinator | None = None
        self.drag_state = DragState()
        self.device = "desktop"
        self._snapshots: dict[str, WidgetSnapshot] = {}
        self._selected_widget_id: str | None = None
        self._clear_arenas()
        self._load(content, widgets)
        self._original = self._fingerprint()
        self.is_dirty = False
        if autosave is not None:
            self.attach_autosave(autosave)

    def attach_autosave(self, autosave: AutoSaveCoordinator) -> None:
        self.autosave = autosave
        autosave.bind(self)

    # Loading and snapshots of the whole tree

    def load_page_content(
        self,
        page_id: str | int | None,
        content: PageContent | Mapping[str, Any] | None,
        widgets: Iterable[Mapping[str, Any]] | Mapping[str, Mapping[str, Any]] | None = None,
    ) -> bool:
        with self._lock:
            if not self._replace_tree(content, widgets, page_id=page_id):
                return False
            self.page_id = page_id
            self._original = self._fingerprint()
            self.is_dirty = False
            self._snapshots.clear()
            self._selected_widget_id = None
            logger.info(
                "Loaded page content",
                extra={"page_id": page_id, "containers": len(self._container_order), "widgets": len(self._widgets)},
            )
            return True

    def set_page_content(self, content: PageContent | Mapping[str, Any]) -> bool:
        with self._lock:
            if not self._replace_tree(content, None, page_id=self.page_id):
                return False
            if self._selected_widget_id not in self._widgets:
                self._selected_widget_id = None
            self._refresh_dirty()
            return True

    def page_content(self) -> PageContent:
        with self._lock:
            return self._assemble().model_copy(deep=True)

    def content_fingerprint(self) -> str:
        with self._lock:
            return self._fingerprint()

    def mark_saved(self, fingerprint: str | None = None) -> None:
        """Record ``fingerprint`` (default: the current tree) as the persisted state."""
        with self._lock:
            self._original = fingerprint if fingerprint is not None else self._fingerprint()
            self._refresh_dirty()

    def reset_changes(self) -> bool:
        with self._lock:
            if not self._replace_tree(json.loads(self._original), None, page_id=self.page_id):
                return False
            if self._selected_widget_id not in self._widgets:
                self._selected_widget_id = None
            self._refresh_dirty()
            logger.info("Discarded unsaved changes", extra={"page_id": self.page_id})
            return True

    # Containers

    def container_ids(self) -> list[str]:
        with self._lock:
            return list(self._container_order)

    def find_container(self, container_id: str) -> Container | None:
        with self._lock:
            if container_id not in self._containers:
                return None
            return self._assemble_container(container_id).model_copy(deep=True)

    def container_index(self, container_id: str) -> int:
        with self._lock:
            try:
                return self._container_order.index(container_id)
            except ValueError:
                return -1

    def add_container(self, partial: Container | Mapping[str, Any] | None = None) -> Container | None:
        return self.insert_section_at(None, partial)

    def insert_section_at(
        self,
        index: int | None,
        partial: Container | Mapping[str, Any] | None = None,
    ) -> Container | None:
        with self._lock:
            container = self._build_container(partial)
            if container is None:
                return None
            self._index_container(container, index)
            self._after_structural_change("insert_section", container_id=container.id)
            return self._assemble_container(container.id).model_copy(deep=True)

    def update_container(self, container_id: str, updates: Mapping[str, Any]) -> bool:
        with self._lock:
            shell = self._containers.get(container_id)
            if shell is None:
                logger.warning("Container not found for update", extra={"container_id": container_id})
                return False
            data = shell.model_dump(by_alias=True)
            data.update({key: value for key, value in updates.items() if key not in ("id", "columns")})
            try:
                self._containers[container_id] = Container.model_validate(data)
            except ValidationError as exc:
                logger.warning("Rejected container update", extra={"container_id": container_id, "error": str(exc)})
                return False
            self._refresh_dirty()
            return True

    def remove_container(self, container_id: str) -> bool:
        with self._lock:
            if container_id not in self._containers:
                logger.warning("Container not found for removal", extra={"container_id": container_id})
                return False
            for column_id in list(self._column_order[container_id]):
                self._drop_column(column_id)
            del self._column_order[container_id]
            del self._containers[container_id]
            self._container_order.remove(container_id)
            self._after_structural_change("remove_container", container_id=container_id)
            return True

    def reorder_containers(self, old_index: int, new_index: int) -> bool:
        with self._lock:
            if old_index == new_index:
                return False
            count = len(self._container_order)
            if not (0 <= old_index < count and 0 <= new_index < count):
                logger.warning(
                    "Container reorder out of range",
                    extra={"old_index": old_index, "new_index": new_index, "count": count},
                )
                return False
            moved = self._container_order.pop(old_index)
            self._container_order.insert(new_index, moved)
            self._after_structural_change("reorder_containers", container_id=moved)
            return True

    # Columns

    def find_column(self, column_id: str) -> Column | None:
        with self._lock:
            if column_id not in self._columns:
                return None
            return self._assemble_column(column_id).model_copy(deep=True)

    def column_container(self, column_id: str) -> str | None:
        with self._lock:
            return self._column_parent.get(column_id)

    def widget_ids(self, column_id: str) -> list[str]:
        with self._lock:
            return list(self._widget_order.get(column_id, ()))

    def add_column(self, container_id: str, *, width: str | None = None, index: int | None = None) -> Column | None:
        """Add an empty column; without an explicit width all siblings are rebalanced to equal widths."""
        with self._lock:
            if container_id not in self._containers:
                logger.warning("Container not found for new column", extra={"container_id": container_id})
                return None
            column = Column(id=new_id("column"), width=width or "100%")
            order = self._column_order[container_id]
            position = len(order) if index is None else max(0, min(index, len(order)))
            self._columns[column.id] = column
            self._column_parent[column.id] = container_id
            self._widget_order[column.id] = []
            order.insert(position, column.id)
            if width is None:
                self._rebalance(container_id)
            self._after_structural_change("add_column", container_id=container_id, column_id=column.id)
            return self._assemble_column(column.id).model_copy(deep=True)

    def remove_column(self, container_id: str, column_id: str) -> bool:
        with self._lock:
            if self._column_parent.get(column_id) != container_id:
                logger.warning(
                    "Column not found in container",
                    extra={"container_id": container_id, "column_id": column_id},
                )
                return False
            self._column_order[container_id].remove(column_id)
            self._drop_column(column_id)
            self._rebalance(container_id)
            self._after_structural_change("remove_column", container_id=container_id, column_id=column_id)
            return True

    def update_column(self, column_id: str, updates: Mapping[str, Any]) -> bool:
        with self._lock:
            shell = self._columns.get(column_id)
            if shell is None:
                logger.warning("Column not found for update", extra={"column_id": column_id})
                return False
            data = shell.model_dump(by_alias=True)
            data.update({key: value for key, value in updates.items() if key not in ("id", "widgets")})
            try:
                self._columns[column_id] = Column.model_validate(data)
            except ValidationError as exc:
                logger.warning("Rejected column update", extra={"column_id": column_id, "error": str(exc)})
                return False
            self._refresh_dirty()
            return True

    # Widgets

    def find_widget(self, widget_id: str) -> Widget | None:
        with self._lock:
            widget = self._widgets.get(widget_id)
            return widget.model_copy(deep=True) if widget is not None else None

    def find_widget_location(self, widget_id: str) -> tuple[str, str, int] | None:
        """``(container_id, column_id, index)`` of a widget, or None."""
        with self._lock:
            column_id = self._widget_parent.get(widget_id)
            if column_id is None:
                return None
            return (
                self._column_parent[column_id],
                column_id,
                self._widget_order[column_id].index(widget_id),
            )

    def add_widget_to_column(
        self,
        template: WidgetTemplate | Mapping[str, Any],
        column_id: str,
        container_id: str | None = None,
        *,
        index: int | None = None,
    ) -> Widget | None:
        with self._lock:
            if column_id not in self._columns:
                logger.warning("Target column not found", extra={"column_id": column_id, "container_id": container_id})
                return None
            if container_id is not None and self._column_parent[column_id] != container_id:
                logger.warning(
                    "Column does not belong to container",
                    extra={"column_id": column_id, "container_id": container_id},
                )
                return None
            widget = self.widget_from_template(template)
            order = self._widget_order[column_id]
            position = len(order) if index is None else max(0, min(index, len(order)))
            self._widgets[widget.id] = widget
            self._widget_parent[widget.id] = column_id
            order.insert(position, widget.id)
            self._refresh_dirty()
            logger.debug("Added widget", extra={"widget_id": widget.id, "widget_type": widget.type, "column_id": column_id})
            created = widget.model_copy(deep=True)
            if self.autosave is not None:
                self.autosave.persist_new_widget(created)
            return created

    def wrap_widget_in_section(
        self,
        template: WidgetTemplate | Mapping[str, Any],
        *,
        index: int | None = None,
        settings: Mapping[str, Any] | None = None,
    ) -> tuple[Container, Widget] | None:
        """Create a single-column section holding one new widget and insert it at ``index`` (append when None)."""
        with self._lock:
            widget = self.widget_from_template(template)
            container = Container(
                id=new_id("section"),
                columns=[Column(id=new_id("column"), width="100%", widgets=[widget])],
                settings={**DEFAULT_SECTION_SETTINGS, **(settings or {})},
            )
            self._index_container(container, index)
            self._refresh_dirty()
            logger.debug(
                "Wrapped widget in new section",
                extra={"widget_id": widget.id, "widget_type": widget.type, "container_id": container.id},
            )
            created = widget.model_copy(deep=True)
            if self.autosave is not None:
                self.autosave.persist_new_widget(created)
            return self._assemble_container(container.id).model_copy(deep=True), created

    def update_widget(self, widget_id: str, updates: Mapping[str, Any]) -> bool:
        """Shallow-merge ``updates`` into a widget. Settings edits are not auto-saved."""
        with self._lock:
            widget = self._widgets.get(widget_id)
            if widget is None:
                logger.warning("Widget not found for update", extra={"widget_id": widget_id})
                return False
            data = widget.model_dump()
            data.update({key: value for key, value in updates.items() if key != "id"})
            try:
                self._widgets[widget_id] = Widget.model_validate(data)
            except ValidationError as exc:
                logger.warning("Rejected widget update", extra={"widget_id": widget_id, "error": str(exc)})
                return False
            self._refresh_dirty()
            return True

    def remove_widget(self, widget_id: str) -> bool:
        with self._lock:
            column_id = self._widget_parent.get(widget_id)
            if column_id is None:
                logger.warning("Widget not found for removal", extra={"widget_id": widget_id})
                return False
            self._widget_order[column_id].remove(widget_id)
            self._drop_widget(widget_id)
            self._after_structural_change("remove_widget", widget_id=widget_id, column_id=column_id)
            return True

    def duplicate_widget(self, widget_id: str) -> Widget | None:
        with self._lock:
            widget = self._widgets.get(widget_id)
            if widget is None:
                logger.warning("Widget not found for duplication", extra={"widget_id": widget_id})
                return None
            column_id = self._widget_parent[widget_id]
            clone = widget.model_copy(update={"id": new_id("widget")}, deep=True)
            order = self._widget_order[column_id]
            order.insert(order.index(widget_id) + 1, clone.id)
            self._widgets[clone.id] = clone
            self._widget_parent[clone.id] = column_id
            self._refresh_dirty()
            created = clone.model_copy(deep=True)
            if self.autosave is not None:
                self.autosave.persist_new_widget(created)
            return created

    def reorder_widgets(self, column_id: str, old_index: int, new_index: int) -> bool:
        with self._lock:
            if old_index == new_index:
                return False
            order = self._widget_order.get(column_id)
            if order is None:
                logger.warning("Column not found for widget reorder", extra={"column_id": column_id})
                return False
            if not (0 <= old_index < len(order) and 0 <= new_index < len(order)):
                logger.warning(
                    "Widget reorder out of range",
                    extra={"column_id": column_id, "old_index": old_index, "new_index": new_index, "count": len(order)},
                )
                return False
            order.insert(new_index, order.pop(old_index))
            self._after_structural_change("reorder_widgets", column_id=column_id)
            return True

    def move_widget_between_columns(
        self,
        widget_id: str,
        from_column_id: str,
        to_column_id: str,
        insert_index: int | str | None = None,
    ) -> bool:
        """Transfer a widget to another column.

        A non-numeric ``insert_index`` (e.g. a container id supplied by a bare column
        drop) appends. The index is clamped to the destination's bounds.
        """
        with self._lock:
            if self._widget_parent.get(widget_id) != from_column_id:
                logger.warning(
                    "Widget not found in source column, move skipped",
                    extra={"widget_id": widget_id, "from_column_id": from_column_id},
                )
                return False
            if to_column_id not in self._columns:
                logger.warning(
                    "Destination column not found, move skipped",
                    extra={"widget_id": widget_id, "to_column_id": to_column_id},
                )
                return False
            self._widget_order[from_column_id].remove(widget_id)
            destination = self._widget_order[to_column_id]
            if isinstance(insert_index, int) and not isinstance(insert_index, bool):
                position = max(0, min(insert_index, len(destination)))
            else:
                position = len(destination)
            destination.insert(position, widget_id)
            self._widget_parent[widget_id] = to_column_id
            self._after_structural_change(
                "move_widget",
                widget_id=widget_id,
                from_column_id=from_column_id,
                to_column_id=to_column_id,
            )
            return True

    def widget_from_template(self, template: WidgetTemplate | Mapping[str, Any]) -> Widget:
        if not isinstance(template, WidgetTemplate):
            template = WidgetTemplate.model_validate(template)
        return Widget(
            id=new_id("widget"),
            type=template.type,
            general=copy.deepcopy(template.default_content),
            style=copy.deepcopy(template.default_style),
            advanced=copy.deepcopy(template.default_advanced),
        )

    # Selection and per-widget snapshots

    @property
    def selected_widget(self) -> Widget | None:
        with self._lock:
            if self._selected_widget_id is None:
                return None
            return self.find_widget(self._selected_widget_id)

    def select_widget(self, widget_id: str | None) -> None:
        with self._lock:
            if widget_id is None:
                self._selected_widget_id = None
                return
            if widget_id not in self._widgets:
                logger.warning("Cannot select unknown widget", extra={"widget_id": widget_id})
                return
            self._selected_widget_id = widget_id
            if widget_id not in self._snapshots:
                self.create_widget_snapshot(widget_id)

    def create_widget_snapshot(self, widget_id: str) -> WidgetSnapshot | None:
        with self._lock:
            widget = self._widgets.get(widget_id)
            if widget is None:
                return None
            snapshot = WidgetSnapshot(
                content=copy.deepcopy(widget.general),
                style=copy.deepcopy(widget.style),
                advanced=copy.deepcopy(widget.advanced),
            )
            self._snapshots[widget_id] = snapshot
            return snapshot.model_copy(deep=True)

    def has_snapshot(self, widget_id: str) -> bool:
        return widget_id in self._snapshots

    def revert_widget_to_snapshot(self, widget_id: str) -> bool:
        with self._lock:
            snapshot = self._snapshots.get(widget_id)
            if snapshot is None or widget_id not in self._widgets:
                return False
            return self.update_widget(
                widget_id,
                {
                    "general": copy.deepcopy(snapshot.content),
                    "style": copy.deepcopy(snapshot.style),
                    "advanced": copy.deepcopy(snapshot.advanced),
                },
            )

    def clear_widget_snapshot(self, widget_id: str) -> None:
        with self._lock:
            self._snapshots.pop(widget_id, None)

    def clear_all_widget_snapshots(self) -> None:
        with self._lock:
            self._snapshots.clear()

    # Drag state, drop zones and device preview

    def set_drag_state(self, **fields: Any) -> DragState:
        with self._lock:
            self.drag_state = self.drag_state.model_copy(update=fields)
            return self.drag_state

    def reset_drag_state(self) -> None:
        with self._lock:
            self.drag_state = DragState()

    def calculate_section_drop_zones(self) -> list[SectionDropZone]:
        with self._lock:
            zones = [SectionDropZone(index=0, position="before", container_id=self._container_order[0])] if self._container_order else []
            for index, container_id in enumerate(self._container_order):
                zones.append(SectionDropZone(index=index + 1, position="after", container_id=container_id))
            return zones

    def calculate_drop_zones(self, container_id: str, column_id: str) -> list[WidgetDropZone]:
        """One zone before the first widget of a column and one after each widget."""
        with self._lock:
            if self._column_parent.get(column_id) != container_id:
                return []
            section_index = self._container_order.index(container_id)
            order = self._widget_order[column_id]
            zones = [
                WidgetDropZone(
                    index=section_index,
                    insert_index=0,
                    column_id=column_id,
                    container_id=container_id,
                    position="before",
                )
            ]
            for position in range(len(order)):
                zones.append(
                    WidgetDropZone(
                        index=section_index,
                        insert_index=position + 1,
                        column_id=column_id,
                        container_id=container_id,
                        position="after",
                    )
                )
            return zones

    def set_device(self, device: str) -> None:
        if device not in DEVICE_VIEWPORTS:
            raise ValueError(f"Unknown device: {device}")
        self.device = device

    @property
    def viewport_width(self) -> str:
        return DEVICE_VIEWPORTS[self.device]

    # Wire payload

    def extract_widgets_from_page_content(self) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
        """Split the tree into a layout (widget stubs only) and a flat map of widget records."""
        with self._lock:
            layout_containers: list[dict[str, Any]] = []
            widgets: dict[str, dict[str, Any]] = {}
            for container_id in self._container_order:
                container = self._containers[container_id].model_dump(mode="json", by_alias=True, exclude_none=True)
                container["columns"] = []
                for column_id in self._column_order[container_id]:
                    column = self._columns[column_id].model_dump(mode="json", by_alias=True, exclude_none=True)
                    column["widgets"] = []
                    for sort_order, widget_id in enumerate(self._widget_order[column_id]):
                        widget = self._widgets[widget_id]
                        column["widgets"].append({"id": widget.id, "type": widget.type})
                        widgets[widget.id] = self._widget_record(widget, container_id, column_id, sort_order)
                    container["columns"].append(column)
                layout_containers.append(container)
            return {"containers": layout_containers}, widgets

    def build_save_payload(self, *, is_published: bool = False) -> dict[str, Any]:
        layout, widgets = self.extract_widgets_from_page_content()
        return {
            "page_id": self.page_id,
            "content": layout,
            "widgets": widgets,
            "is_published": is_published,
            "version": PAGE_PAYLOAD_VERSION,
        }

    def check_invariants(self) -> list[str]:
        """Structural problems in the tree; empty when healthy."""
        with self._lock:
            problems: list[str] = []
            if len(set(self._container_order)) != len(self._container_order):
                problems.append("duplicate container ids")
            if set(self._container_order) != set(self._containers):
                problems.append("container order out of sync with arena")
            seen_columns: set[str] = set()
            seen_widgets: set[str] = set()
            for container_id in self._container_order:
                for column_id in self._column_order.get(container_id, []):
                    if column_id in seen_columns:
                        problems.append(f"column {column_id} appears more than once")
                    seen_columns.add(column_id)
                    if self._column_parent.get(column_id) != container_id:
                        problems.append(f"column {column_id} has wrong parent")
                    for widget_id in self._widget_order.get(column_id, []):
                        if widget_id in seen_widgets:
                            problems.append(f"widget {widget_id} appears more than once")
                        seen_widgets.add(widget_id)
                        if self._widget_parent.get(widget_id) != column_id:
                            problems.append(f"widget {widget_id} has wrong parent")
            if seen_columns != set(self._columns):
                problems.append("orphaned columns")
            if seen_widgets != set(self._widgets):
                problems.append("orphaned widgets")
            return problems

    # Internals

    def _clear_arenas(self) -> None:
        self._containers: dict[str, Container] = {}
        self._columns: dict[str, Column] = {}
        self._widgets: dict[str, Widget] = {}
        self._container_order: list[str] = []
        self._column_order: dict[str, list[str]] = {}
        self._widget_order: dict[str, list[str]] = {}
        self._column_parent: dict[str, str] = {}
        self._widget_parent: dict[str, str] = {}

    def _arena_state(self) -> tuple[Any, ...]:
        return (
            self._containers,
            self._columns,
            self._widgets,
            self._container_order,
            self._column_order,
            self._widget_order,
            self._column_parent,
            self._widget_parent,
        )

    def _restore_arenas(self, state: tuple[Any, ...]) -> None:
        (
            self._containers,
            self._columns,
            self._widgets,
            self._container_order,
            self._column_order,
            self._widget_order,
            self._column_parent,
            self._widget_parent,
        ) = state

    def _replace_tree(
        self,
        content: PageContent | Mapping[str, Any] | None,
        widgets: Iterable[Mapping[str, Any]] | Mapping[str, Mapping[str, Any]] | None,
        *,
        page_id: str | int | None,
    ) -> bool:
        # _clear_arenas binds fresh dicts, so the previous ones stay intact until the load succeeds.
        previous = self._arena_state()
        self._clear_arenas()
        try:
            self._load(content, widgets)
        except ValidationError as exc:
            self._restore_arenas(previous)
            logger.warning(
                "Rejected invalid page content",
                extra={"page_id": page_id, "errors": exc.error_count()},
            )
            return False
        return True

    def _load(
        self,
        content: PageContent | Mapping[str, Any] | None,
        widgets: Iterable[Mapping[str, Any]] | Mapping[str, Mapping[str, Any]] | None,
    ) -> None:
        if content is None:
            page = PageContent()
        elif isinstance(content, PageContent):
            page = content.model_copy(deep=True)
        else:
            page = PageContent.model_validate(content)
        for container in page.containers:
            if self._collides(container):
                logger.warning("Dropping container with duplicate ids on load", extra={"container_id": container.id})
                continue
            self._index_container(container, None)
        if widgets:
            self._merge_widget_records(widgets)

    def _merge_widget_records(
        self,
        records: Iterable[Mapping[str, Any]] | Mapping[str, Mapping[str, Any]],
    ) -> None:
        items = records.values() if isinstance(records, Mapping) else records
        for record in items:
            if not isinstance(record, Mapping):
                continue
            widget_id = str(record.get("id") or record.get("widget_id") or "")
            stub = self._widgets.get(widget_id)
            if stub is None:
                continue
            settings = record.get("settings") if isinstance(record.get("settings"), Mapping) else {}
            data = stub.model_dump()
            for tab in ("general", "style", "advanced"):
                value = record.get(tab, settings.get(tab))
                if value is not None:
                    data[tab] = value
            for key in ("is_visible", "is_enabled", "version"):
                if key in record:
                    data[key] = record[key]
            data["type"] = record.get("widget_type") or record.get("type") or stub.type
            self._widgets[widget_id] = Widget.model_validate(data)

    def _build_container(self, partial: Container | Mapping[str, Any] | None) -> Container | None:
        if isinstance(partial, Container):
            data = partial.model_dump(by_alias=True)
        else:
            data = copy.deepcopy(dict(partial or {}))
        data.setdefault("id", new_id("section"))
        data["id"] = data["id"] or new_id("section")
        data.setdefault("type", "section")
        data["settings"] = {**DEFAULT_SECTION_SETTINGS, **(data.get("settings") or {})}
        columns = data.get("columns") or [{"width": "100%", "widgets": [], "settings": {}}]
        normalized = []
        for column in columns:
            column = column.model_dump(by_alias=True) if isinstance(column, Column) else dict(column)
            column["id"] = column.get("id") or new_id("column")
            widgets = []
            for widget in column.get("widgets") or []:
                widget = widget.model_dump() if isinstance(widget, Widget) else dict(widget)
                widget["id"] = widget.get("id") or new_id("widget")
                widgets.append(widget)
            column["widgets"] = widgets
            normalized.append(column)
        data["columns"] = normalized
        try:
            container = Container.model_validate(data)
        except ValidationError as exc:
            logger.warning("Rejected malformed section", extra={"error": str(exc)})
            return None
        if self._collides(container):
            logger.warning("Rejected section with ids already in the tree", extra={"container_id": container.id})
            return None
        return container

    def _collides(self, container: Container) -> bool:
        column_ids = [column.id for column in container.columns]
        widget_ids = [widget.id for column in container.columns for widget in column.widgets]
        if container.id in self._containers:
            return True
        if len(set(column_ids)) != len(column_ids) or len(set(widget_ids)) != len(widget_ids):
            return True
        return any(cid in self._columns for cid in column_ids) or any(wid in self._widgets for wid in widget_ids)

    def _index_container(self, container: Container, index: int | None) -> None:
        container = container.model_copy(deep=True)
        self._containers[container.id] = container.model_copy(update={"columns": []})
        self._column_order[container.id] = []
        for column in container.columns:
            self._columns[column.id] = column.model_copy(update={"widgets": []})
            self._column_parent[column.id] = container.id
            self._column_order[container.id].append(column.id)
            self._widget_order[column.id] = []
            for widget in column.widgets:
                self._widgets[widget.id] = widget
                self._widget_parent[widget.id] = column.id
                self._widget_order[column.id].append(widget.id)
        if index is None:
            self._container_order.append(container.id)
        else:
            self._container_order.insert(max(0, min(index, len(self._container_order))), container.id)

    def _drop_column(self, column_id: str) -> None:
        for widget_id in self._widget_order.pop(column_id, []):
            self._drop_widget(widget_id)
        self._columns.pop(column_id, None)
        self._column_parent.pop(column_id, None)

    def _drop_widget(self, widget_id: str) -> None:
        self._widgets.pop(widget_id, None)
        self._widget_parent.pop(widget_id, None)
        self._snapshots.pop(widget_id, None)
        if self._selected_widget_id == widget_id:
            self._selected_widget_id = None

    def _rebalance(self, container_id: str) -> None:
        order = self._column_order[container_id]
        if not order:
            return
        width = equal_width(len(order))
        for column_id in order:
            self._columns[column_id] = self._columns[column_id].model_copy(update={"width": width})

    def _assemble_column(self, column_id: str) -> Column:
        widgets = [self._widgets[widget_id] for widget_id in self._widget_order[column_id]]
        return self._columns[column_id].model_copy(update={"widgets": widgets})

    def _assemble_container(self, container_id: str) -> Container:
        columns = [self._assemble_column(column_id) for column_id in self._column_order[container_id]]
        return self._containers[container_id].model_copy(update={"columns": columns})

    def _assemble(self) -> PageContent:
        return PageContent(containers=[self._assemble_container(cid) for cid in self._container_order])

    def _fingerprint(self) -> str:
        return json.dumps(self._assemble().to_wire(), sort_keys=True, separators=(",", ":"))

    def _refresh_dirty(self) -> None:
        self.is_dirty = self._fingerprint() != self._original

    def _widget_record(self, widget: Widget, container_id: str, column_id: str, sort_order: int) -> dict[str, Any]:
        general = copy.deepcopy(widget.general)
        style = copy.deepcopy(widget.style)
        advanced = copy.deepcopy(widget.advanced)
        return {
            "id": widget.id,
            "type": widget.type,
            "container_id": container_id,
            "column_id": column_id,
            "sort_order": sort_order,
            "general": general,
            "style": style,
            "advanced": advanced,
            "settings": {
                "general": copy.deepcopy(general),
                "style": copy.deepcopy(style),
                "advanced": copy.deepcopy(advanced),
            },
            "is_visible": widget.is_visible,
            "is_enabled": widget.is_enabled,
            "version": WIDGET_RECORD_VERSION,
        }

    def _after_structural_change(self, operation: str, **context: Any) -> None:
        self._refresh_dirty()
        logger.debug("Structural change", extra={"operation": operation, **context})
        if self.autosave is not None:
            self.autosave.request_save()


__all__ = ["PageBuilderStore", "DEFAULT_SECTION_SETTINGS", "DEVICE_VIEWPORTS", "equal_width"]
