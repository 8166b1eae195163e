from __future__ import annotations

import time
import uuid
from typing import Annotated, Any, Mapping

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field


def _coerce_settings(value: Any) -> Any:
    # The wire format serializes an empty settings object as [] in places.
    if value is None:
        return {}
    if isinstance(value, (list, tuple)):
        if not value:
            return {}
        raise ValueError("settings must be an object, not a non-empty array")
    if isinstance(value, Mapping):
        return dict(value)
    return value


SettingsMap = Annotated[dict[str, Any], BeforeValidator(_coerce_settings)]


def new_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class Widget(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: str
    general: SettingsMap = Field(default_factory=dict, validation_alias=AliasChoices("general", "content"))
    style: SettingsMap = Field(default_factory=dict)
    advanced: SettingsMap = Field(default_factory=dict)
    is_visible: bool = True
    is_enabled: bool = True
    version: str = "1.0.0"


class Column(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    width: str = "100%"
    widgets: list[Widget] = Field(default_factory=list)
    settings: SettingsMap = Field(default_factory=dict)
    responsive_settings: SettingsMap = Field(default_factory=dict, alias="responsiveSettings")


class Container(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: str = "section"
    name: str | None = None
    columns: list[Column] = Field(default_factory=list)
    settings: SettingsMap = Field(default_factory=dict)
    responsive_settings: SettingsMap = Field(default_factory=dict, alias="responsiveSettings")


class WidgetSnapshot(BaseModel):
    """Settings of a widget captured when its settings panel first opened."""

    content: SettingsMap = Field(default_factory=dict)
    style: SettingsMap = Field(default_factory=dict)
    advanced: SettingsMap = Field(default_factory=dict)


class PageContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    containers: list[Container] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = ["Widget", "Column", "Container", "PageContent", "WidgetSnapshot", "SettingsMap", "new_id"]
