from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .content import Column, SettingsMap


class _DragModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class WidgetTemplate(_DragModel):
    type: str
    name: str | None = None
    icon: str | None = None
    category: str | None = None
    default_content: SettingsMap = Field(
        default_factory=dict,
        validation_alias=AliasChoices("default_content", "defaultContent", "content"),
        serialization_alias="defaultContent",
    )
    default_style: SettingsMap = Field(default_factory=dict)
    default_advanced: SettingsMap = Field(default_factory=dict)

    @property
    def is_section(self) -> bool:
        return self.type == "section"

    @property
    def is_container(self) -> bool:
        return self.type == "container"


class SectionTemplate(_DragModel):
    name: str | None = None
    columns: list[Column] = Field(default_factory=list)
    settings: SettingsMap = Field(default_factory=dict)


# Dragged items


class WidgetDrag(_DragModel):
    type: Literal["widget"] = "widget"
    widget_id: str
    column_id: str
    container_id: str | None = None
    widget_index: int | None = None


class WidgetTemplateDrag(_DragModel):
    type: Literal["widget-template"] = "widget-template"
    widget: WidgetTemplate


class SectionDrag(_DragModel):
    type: Literal["section"] = "section"
    container_id: str


class SectionTemplateDrag(_DragModel):
    type: Literal["section-template"] = "section-template"
    section: SectionTemplate = Field(default_factory=SectionTemplate)


class ContainerDrag(_DragModel):
    type: Literal["container"] = "container"
    container_id: str


DragPayload = Annotated[
    Union[WidgetDrag, WidgetTemplateDrag, SectionDrag, SectionTemplateDrag, ContainerDrag],
    Field(discriminator="type"),
]


# Drop targets


class CanvasTarget(_DragModel):
    type: Literal["canvas"] = "canvas"


class ColumnTarget(_DragModel):
    type: Literal["column"] = "column"
    column_id: str
    container_id: str | None = None


class WidgetTarget(_DragModel):
    type: Literal["widget"] = "widget"
    widget_id: str
    column_id: str
    container_id: str | None = None
    widget_index: int
    drop_position: Literal["before", "after"] | None = None


class WidgetDropZone(_DragModel):
    type: Literal["widget-drop-zone"] = "widget-drop-zone"
    index: int = 0
    insert_index: int | None = None
    column_id: str | None = None
    container_id: str | None = None
    position: str | None = None


class SectionDropZone(_DragModel):
    type: Literal["section-drop-zone"] = "section-drop-zone"
    index: int
    position: str | None = None
    container_id: str | None = None


class SectionTarget(_DragModel):
    type: Literal["section"] = "section"
    container_id: str


class ContainerTarget(_DragModel):
    type: Literal["container"] = "container"
    container_id: str


DropTarget = Annotated[
    Union[
        CanvasTarget,
        ColumnTarget,
        WidgetTarget,
        WidgetDropZone,
        SectionDropZone,
        SectionTarget,
        ContainerTarget,
    ],
    Field(discriminator="type"),
]


class DragState(BaseModel):
    dragged_item: dict[str, Any] | None = None
    dragged_item_type: str | None = None
    drag_start_container: str | None = None
    drag_start_column: str | None = None
    active_drop_target: str | None = None
    drop_position: str | None = None
    cross_container_mode: bool = False

    @property
    def is_dragging(self) -> bool:
        return self.dragged_item_type is not None


_payload_adapter: TypeAdapter[Any] = TypeAdapter(DragPayload)
_target_adapter: TypeAdapter[Any] = TypeAdapter(DropTarget)


def parse_drag_payload(data: Any) -> Any:
    """Validate a raw ``{type: ...}`` bag into one of the drag payload variants."""
    return _payload_adapter.validate_python(data)


def parse_drop_target(data: Any) -> Any:
    return _target_adapter.validate_python(data)


__all__ = [
    "WidgetTemplate",
    "SectionTemplate",
    "WidgetDrag",
    "WidgetTemplateDrag",
    "SectionDrag",
    "SectionTemplateDrag",
    "ContainerDrag",
    "DragPayload",
    "CanvasTarget",
    "ColumnTarget",
    "WidgetTarget",
    "WidgetDropZone",
    "SectionDropZone",
    "SectionTarget",
    "ContainerTarget",
    "DropTarget",
    "DragState",
    "parse_drag_payload",
    "parse_drop_target",
]
