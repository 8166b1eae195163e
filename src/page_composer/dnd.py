from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from pydantic import ValidationError

from .models.drag import (
    CanvasTarget,
    ColumnTarget,
    ContainerDrag,
    ContainerTarget,
    DragState,
    SectionDrag,
    SectionDropZone,
    SectionTarget,
    SectionTemplateDrag,
    WidgetDrag,
    WidgetDropZone,
    WidgetTarget,
    WidgetTemplate,
    WidgetTemplateDrag,
    parse_drag_payload,
    parse_drop_target,
)
from .store import equal_width

if TYPE_CHECKING:
    from .store import PageBuilderStore

logger = logging.getLogger(__name__)

AUTO_WRAP_SETTINGS: Mapping[str, Any] = {
    "padding": "40px 20px",
    "margin": "0px",
    "backgroundColor": "transparent",
}

SECTION_PLACEMENT_MESSAGE = "Section widgets can only be placed on the main canvas or after other sections"
CONTAINER_PLACEMENT_MESSAGE = "Container widgets cannot be placed inside other containers or columns"


class IntentKind(str, Enum):
    noop = "NOOP"
    reject = "REJECT"
    reorder_containers = "REORDER_CONTAINERS"
    insert_section = "INSERT_SECTION"
    wrap_widget = "WRAP_WIDGET"
    add_widget = "ADD_WIDGET"
    reorder_widgets = "REORDER_WIDGETS"
    move_widget = "MOVE_WIDGET"


@dataclass(frozen=True)
class DropIntent:
    kind: IntentKind
    params: Mapping[str, Any] = field(default_factory=dict)
    rule: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class DropResult:
    intent: DropIntent
    applied: bool

    @property
    def rejected(self) -> bool:
        return self.intent.kind is IntentKind.reject

    @property
    def rule(self) -> str | None:
        return self.intent.rule

    @property
    def message(self) -> str | None:
        return self.intent.message


@dataclass
class DropContext:
    active: Any
    over: Any
    store: PageBuilderStore

    @property
    def template(self) -> WidgetTemplate | None:
        return self.active.widget if isinstance(self.active, WidgetTemplateDrag) else None

    @property
    def is_section_template(self) -> bool:
        return self.template is not None and self.template.is_section

    @property
    def is_container_template(self) -> bool:
        return self.template is not None and self.template.is_container

    @property
    def is_plain_template(self) -> bool:
        return self.template is not None and not (self.template.is_section or self.template.is_container)

    @property
    def is_section_drag(self) -> bool:
        return isinstance(self.active, (SectionDrag, ContainerDrag))


@dataclass
class DropRule:
    name: str
    predicate: Callable[[DropContext], bool]
    resolve: Callable[[DropContext], DropIntent]

    def evaluate(self, context: DropContext) -> DropIntent | None:
        if self.predicate(context):
            intent = self.resolve(context)
            if intent.rule is None:
                return DropIntent(kind=intent.kind, params=intent.params, rule=self.name, message=intent.message)
            return intent
        return None


def _noop(reason: str, **context: Any) -> DropIntent:
    logger.debug("Drop resolved to no-op", extra={"reason": reason, **context})
    return DropIntent(kind=IntentKind.noop, message=reason)


def _is_same_element(active: Any, over: Any) -> bool:
    if isinstance(active, WidgetDrag) and isinstance(over, WidgetTarget):
        return active.widget_id == over.widget_id
    if isinstance(active, (SectionDrag, ContainerDrag)) and isinstance(over, (SectionTarget, ContainerTarget)):
        return active.container_id == over.container_id
    return False


def _adjusted_index(source_index: int, target_index: int) -> int:
    # Moves are remove-then-insert, so a target past the source shifts down by one.
    return target_index - 1 if source_index < target_index else target_index


# Resolvers


def _resolve_section_reorder(ctx: DropContext) -> DropIntent:
    old_index = ctx.store.container_index(ctx.active.container_id)
    if old_index == -1:
        return _noop("section not found", container_id=ctx.active.container_id)
    new_index = _adjusted_index(old_index, ctx.over.index)
    if new_index == old_index:
        return _noop("section already at drop position", container_id=ctx.active.container_id)
    return DropIntent(IntentKind.reorder_containers, {"old_index": old_index, "new_index": new_index})


def _resolve_template_into_drop_zone(ctx: DropContext) -> DropIntent:
    return DropIntent(IntentKind.wrap_widget, {"template": ctx.template, "index": ctx.over.index, "settings": None})


def _resolve_section_template_after_section(ctx: DropContext) -> DropIntent:
    target_index = ctx.store.container_index(ctx.over.container_id)
    if target_index == -1:
        return _noop("target section not found", container_id=ctx.over.container_id)
    return DropIntent(IntentKind.insert_section, {"index": target_index + 1, "partial": _empty_section(ctx.template)})


def _reject_section_placement(ctx: DropContext) -> DropIntent:
    return DropIntent(IntentKind.reject, message=SECTION_PLACEMENT_MESSAGE)


def _reject_container_placement(ctx: DropContext) -> DropIntent:
    return DropIntent(IntentKind.reject, message=CONTAINER_PLACEMENT_MESSAGE)


def _resolve_auto_wrap(ctx: DropContext) -> DropIntent:
    return DropIntent(
        IntentKind.wrap_widget,
        {"template": ctx.template, "index": None, "settings": dict(AUTO_WRAP_SETTINGS)},
    )


def _resolve_template_into_column(ctx: DropContext) -> DropIntent:
    over = ctx.over
    if isinstance(over, ColumnTarget):
        return DropIntent(
            IntentKind.add_widget,
            {"template": ctx.template, "column_id": over.column_id, "container_id": over.container_id, "index": None},
        )
    location = ctx.store.find_widget_location(over.widget_id)
    if location is None:
        return _noop("target widget not found", over_widget_id=over.widget_id)
    container_id, column_id, over_index = location
    position = over.drop_position or ctx.store.drag_state.drop_position
    index = over_index if position == "before" else over_index + 1
    return DropIntent(
        IntentKind.add_widget,
        {"template": ctx.template, "column_id": column_id, "container_id": container_id, "index": index},
    )


def _resolve_widget_into_drop_zone(ctx: DropContext) -> DropIntent:
    over: WidgetDropZone = ctx.over
    location = ctx.store.find_widget_location(ctx.active.widget_id)
    if location is None or over.column_id is None:
        return _noop("widget or drop zone column not found", widget_id=ctx.active.widget_id)
    _, source_column, old_index = location
    target_index = over.insert_index if over.insert_index is not None else len(ctx.store.widget_ids(over.column_id))
    return _widget_placement(ctx.active.widget_id, source_column, old_index, over.column_id, target_index)


def _resolve_widget_onto_widget(ctx: DropContext) -> DropIntent:
    over: WidgetTarget = ctx.over
    location = ctx.store.find_widget_location(ctx.active.widget_id)
    target = ctx.store.find_widget_location(over.widget_id)
    if location is None or target is None:
        return _noop("widget not found", widget_id=ctx.active.widget_id, over_widget_id=over.widget_id)
    _, source_column, old_index = location
    _, target_column, over_index = target
    position = over.drop_position or ctx.store.drag_state.drop_position
    if position is None:
        position = "after" if source_column == target_column and old_index < over_index else "before"
    target_index = over_index + 1 if position == "after" else over_index
    return _widget_placement(ctx.active.widget_id, source_column, old_index, target_column, target_index)


def _resolve_widget_onto_column(ctx: DropContext) -> DropIntent:
    over: ColumnTarget = ctx.over
    location = ctx.store.find_widget_location(ctx.active.widget_id)
    if location is None:
        return _noop("widget not found", widget_id=ctx.active.widget_id)
    _, source_column, _ = location
    if source_column == over.column_id:
        return _noop("widget already in column", widget_id=ctx.active.widget_id)
    return DropIntent(
        IntentKind.move_widget,
        {
            "widget_id": ctx.active.widget_id,
            "from_column_id": source_column,
            "to_column_id": over.column_id,
            "insert_index": None,
        },
    )


def _resolve_container_reorder(ctx: DropContext) -> DropIntent:
    old_index = ctx.store.container_index(ctx.active.container_id)
    new_index = ctx.store.container_index(ctx.over.container_id)
    if old_index == -1 or new_index == -1 or old_index == new_index:
        return _noop(
            "container reorder skipped",
            container_id=ctx.active.container_id,
            over_container_id=ctx.over.container_id,
        )
    return DropIntent(IntentKind.reorder_containers, {"old_index": old_index, "new_index": new_index})


def _resolve_section_template_on_canvas(ctx: DropContext) -> DropIntent:
    return DropIntent(IntentKind.insert_section, {"index": None, "partial": _empty_section(ctx.template)})


def _resolve_container_template_on_canvas(ctx: DropContext) -> DropIntent:
    content = ctx.template.default_content
    try:
        count = max(1, int(content.get("columns") or 1))
    except (TypeError, ValueError):
        count = 1
    width = equal_width(count)
    partial = {
        "type": "section",
        "columns": [{"width": width, "widgets": [], "settings": {}} for _ in range(count)],
        "settings": {
            "padding": content.get("padding") or "40px 20px",
            "margin": "0px",
            "backgroundColor": content.get("backgroundColor") or "#ffffff",
            "gap": content.get("gap") or "20px",
        },
    }
    return DropIntent(IntentKind.insert_section, {"index": None, "partial": partial})


def _resolve_saved_section_on_canvas(ctx: DropContext) -> DropIntent:
    section = ctx.active.section
    columns = [column.model_dump(by_alias=True) for column in section.columns]
    for column in columns:
        column.pop("id", None)
        for widget in column["widgets"]:
            widget.pop("id", None)
    partial = {
        "type": "section",
        "columns": columns or [{"width": "100%", "widgets": [], "settings": {}}],
        "settings": dict(section.settings),
    }
    if section.name:
        partial["name"] = section.name
    return DropIntent(IntentKind.insert_section, {"index": None, "partial": partial})


def _empty_section(template: WidgetTemplate) -> dict[str, Any]:
    return {
        "type": "section",
        "columns": [{"width": "100%", "widgets": [], "settings": {}}],
        "settings": dict(AUTO_WRAP_SETTINGS),
        "widgetType": "section",
        "widgetSettings": dict(template.default_content),
    }


def _widget_placement(
    widget_id: str,
    source_column: str,
    old_index: int,
    target_column: str,
    target_index: int,
) -> DropIntent:
    if source_column == target_column:
        new_index = _adjusted_index(old_index, target_index)
        if new_index == old_index:
            return _noop("widget already at drop position", widget_id=widget_id)
        return DropIntent(
            IntentKind.reorder_widgets,
            {"column_id": source_column, "old_index": old_index, "new_index": new_index},
        )
    return DropIntent(
        IntentKind.move_widget,
        {
            "widget_id": widget_id,
            "from_column_id": source_column,
            "to_column_id": target_column,
            "insert_index": target_index,
        },
    )


DEFAULT_DROP_RULES: Sequence[DropRule] = (
    DropRule(
        name="section-reorder",
        predicate=lambda ctx: ctx.is_section_drag and isinstance(ctx.over, SectionDropZone),
        resolve=_resolve_section_reorder,
    ),
    DropRule(
        name="template-into-drop-zone",
        predicate=lambda ctx: ctx.template is not None and isinstance(ctx.over, WidgetDropZone),
        resolve=_resolve_template_into_drop_zone,
    ),
    DropRule(
        name="section-after-section",
        predicate=lambda ctx: ctx.is_section_template and isinstance(ctx.over, SectionTarget),
        resolve=_resolve_section_template_after_section,
    ),
    DropRule(
        name="section-placement",
        predicate=lambda ctx: ctx.is_section_template and not isinstance(ctx.over, (CanvasTarget, SectionTarget)),
        resolve=_reject_section_placement,
    ),
    DropRule(
        name="container-placement",
        predicate=lambda ctx: ctx.is_container_template and isinstance(ctx.over, (ColumnTarget, WidgetTarget)),
        resolve=_reject_container_placement,
    ),
    DropRule(
        name="auto-wrap",
        predicate=lambda ctx: ctx.is_plain_template and isinstance(ctx.over, CanvasTarget),
        resolve=_resolve_auto_wrap,
    ),
    DropRule(
        name="template-into-column",
        predicate=lambda ctx: ctx.is_plain_template and isinstance(ctx.over, (ColumnTarget, WidgetTarget)),
        resolve=_resolve_template_into_column,
    ),
    DropRule(
        name="section-widget-on-canvas",
        predicate=lambda ctx: ctx.is_section_template and isinstance(ctx.over, CanvasTarget),
        resolve=_resolve_section_template_on_canvas,
    ),
    DropRule(
        name="container-widget-on-canvas",
        predicate=lambda ctx: ctx.is_container_template and isinstance(ctx.over, CanvasTarget),
        resolve=_resolve_container_template_on_canvas,
    ),
    DropRule(
        name="section-template-on-canvas",
        predicate=lambda ctx: isinstance(ctx.active, SectionTemplateDrag) and isinstance(ctx.over, CanvasTarget),
        resolve=_resolve_saved_section_on_canvas,
    ),
    DropRule(
        name="widget-into-drop-zone",
        predicate=lambda ctx: isinstance(ctx.active, WidgetDrag) and isinstance(ctx.over, WidgetDropZone),
        resolve=_resolve_widget_into_drop_zone,
    ),
    DropRule(
        name="widget-onto-widget",
        predicate=lambda ctx: isinstance(ctx.active, WidgetDrag) and isinstance(ctx.over, WidgetTarget),
        resolve=_resolve_widget_onto_widget,
    ),
    DropRule(
        name="widget-onto-column",
        predicate=lambda ctx: isinstance(ctx.active, WidgetDrag) and isinstance(ctx.over, ColumnTarget),
        resolve=_resolve_widget_onto_column,
    ),
    DropRule(
        name="container-reorder",
        predicate=lambda ctx: ctx.is_section_drag and getattr(ctx.over, "container_id", None) is not None,
        resolve=_resolve_container_reorder,
    ),
)


def log_rejection(result: DropResult) -> None:
    logger.warning("Drop rejected", extra={"rule": result.rule, "reason": result.message})


class DragAndDropInterpreter:
    """Turns drag gestures into store operations.

    ``resolve`` only reads the store; every mutation happens in ``apply`` through
    the store's public operations. Rules are tried in order and the first match
    wins, so placement checks sit ahead of the rules they guard.
    """

    def __init__(
        self,
        store: PageBuilderStore,
        *,
        rules: Sequence[DropRule] = DEFAULT_DROP_RULES,
        notifier: Callable[[DropResult], None] | None = None,
    ) -> None:
        self.store = store
        self.rules = tuple(rules)
        self.notifier = notifier or log_rejection

    def handle_drag_start(self, active: Any) -> DragState:
        try:
            payload = _as_payload(active) if active is not None else None
        except ValidationError as exc:
            logger.warning("Malformed drag data, drag ignored", extra={"error": str(exc)})
            payload = None
        if payload is None:
            self.store.reset_drag_state()
            return self.store.drag_state
        start_container = getattr(payload, "container_id", None)
        start_column = getattr(payload, "column_id", None)
        return self.store.set_drag_state(
            dragged_item=payload.model_dump(),
            dragged_item_type=payload.type,
            drag_start_container=start_container,
            drag_start_column=start_column,
            active_drop_target=None,
            drop_position=None,
            cross_container_mode=False,
        )

    def handle_drag_over(self, over: Any, *, drop_position: str | None = None) -> DragState:
        try:
            target = _as_target(over) if over is not None else None
        except ValidationError as exc:
            logger.warning("Malformed drop target, ignored", extra={"error": str(exc)})
            target = None
        if target is None:
            return self.store.set_drag_state(active_drop_target=None, drop_position=None, cross_container_mode=False)
        target_id = (
            getattr(target, "widget_id", None)
            or getattr(target, "column_id", None)
            or getattr(target, "container_id", None)
            or target.type
        )
        start_container = self.store.drag_state.drag_start_container
        over_container = getattr(target, "container_id", None)
        return self.store.set_drag_state(
            active_drop_target=target_id,
            drop_position=drop_position,
            cross_container_mode=bool(start_container and over_container and start_container != over_container),
        )

    def resolve(self, active: Any, over: Any) -> DropIntent:
        if over is None:
            return _noop("dropped outside any target")
        if active is None:
            return _noop("nothing is being dragged")
        try:
            payload = _as_payload(active)
            target = _as_target(over)
        except ValidationError as exc:
            logger.warning("Malformed drag data, drop ignored", extra={"error": str(exc)})
            return DropIntent(IntentKind.noop, message="malformed drag data")
        if _is_same_element(payload, target):
            return _noop("dropped onto itself")
        context = DropContext(active=payload, over=target, store=self.store)
        for rule in self.rules:
            intent = rule.evaluate(context)
            if intent is not None:
                return intent
        return _noop("no rule matched", active_type=payload.type, over_type=target.type)

    def apply(self, intent: DropIntent) -> bool:
        params = intent.params
        kind = intent.kind
        if kind is IntentKind.reorder_containers:
            return self.store.reorder_containers(params["old_index"], params["new_index"])
        if kind is IntentKind.insert_section:
            return self.store.insert_section_at(params["index"], params["partial"]) is not None
        if kind is IntentKind.wrap_widget:
            created = self.store.wrap_widget_in_section(
                params["template"],
                index=params["index"],
                settings=params["settings"],
            )
            return created is not None
        if kind is IntentKind.add_widget:
            widget = self.store.add_widget_to_column(
                params["template"],
                params["column_id"],
                params["container_id"],
                index=params["index"],
            )
            return widget is not None
        if kind is IntentKind.reorder_widgets:
            return self.store.reorder_widgets(params["column_id"], params["old_index"], params["new_index"])
        if kind is IntentKind.move_widget:
            return self.store.move_widget_between_columns(
                params["widget_id"],
                params["from_column_id"],
                params["to_column_id"],
                params["insert_index"],
            )
        return False

    def handle_drag_end(self, active: Any, over: Any) -> DropResult:
        try:
            intent = self.resolve(active, over)
            if intent.kind is IntentKind.reject:
                result = DropResult(intent=intent, applied=False)
                self.notifier(result)
                return result
            applied = self.apply(intent)
            if applied:
                logger.info("Drop applied", extra={"rule": intent.rule, "intent": intent.kind.value})
            return DropResult(intent=intent, applied=applied)
        finally:
            self.store.reset_drag_state()


def _as_payload(active: Any) -> Any:
    if isinstance(active, Mapping):
        return parse_drag_payload(active)
    return active


def _as_target(over: Any) -> Any:
    if isinstance(over, Mapping):
        return parse_drop_target(over)
    return over


__all__ = [
    "AUTO_WRAP_SETTINGS",
    "DEFAULT_DROP_RULES",
    "DragAndDropInterpreter",
    "DropContext",
    "DropIntent",
    "DropResult",
    "DropRule",
    "IntentKind",
    "log_rejection",
]
