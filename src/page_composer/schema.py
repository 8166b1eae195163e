from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Iterable, Mapping

from .errors import FieldConfigurationError
from .fields.base import as_definition
from .fields.registry import FieldTypeRegistry
from .fields.style import deep_merge
from .models.drag import WidgetTemplate
from .models.fields import FieldDefinition, field

logger = logging.getLogger(__name__)

TABS = ("general", "style", "advanced")
VISUAL_ONLY_KINDS = frozenset({"divider", "heading"})
MERGED_KINDS = frozenset({"background", "typography", "border_shadow"})

FieldMap = Mapping[str, FieldDefinition]


@dataclass(frozen=True)
class WidgetSchema:
    type: str
    name: str
    category: str = "basic"
    icon: str = ""
    description: str = ""
    general: FieldMap = dataclass_field(default_factory=dict)
    style: FieldMap = dataclass_field(default_factory=dict)
    advanced: FieldMap = dataclass_field(default_factory=dict)

    @property
    def is_section(self) -> bool:
        return self.type == "section"

    @property
    def is_container(self) -> bool:
        return self.type == "container"

    def tab(self, name: str) -> FieldMap:
        if name not in TABS:
            raise KeyError(f"Unknown settings tab: {name}")
        return getattr(self, name)

    def fields(self) -> Iterable[tuple[str, str, FieldDefinition]]:
        for tab in TABS:
            for name, definition in self.tab(tab).items():
                yield tab, name, definition


COMMON_ADVANCED_FIELDS: FieldMap = {
    "css_id": field("text", label="CSS ID", pattern=r"^[A-Za-z][\w-]*$", pattern_message="Invalid CSS ID"),
    "css_classes": field("text", label="CSS Classes"),
    "custom_css": field("code", label="Custom CSS", language="css"),
    "visible_desktop": field("toggle", label="Show on desktop", default=True),
    "visible_tablet": field("toggle", label="Show on tablet", default=True),
    "visible_mobile": field("toggle", label="Show on mobile", default=True),
    "z_index": field("number", label="Z-Index", min=-100, max=9999),
    "margin": field(
        "dimension",
        label="Margin",
        responsive=True,
        allow_negative=True,
        selectors={"{{WRAPPER}}": "margin: {{VALUE.TOP}}{{UNIT}} {{VALUE.RIGHT}}{{UNIT}} {{VALUE.BOTTOM}}{{UNIT}} {{VALUE.LEFT}}{{UNIT}};"},
    ),
    "padding": field(
        "dimension",
        label="Padding",
        responsive=True,
        selectors={"{{WRAPPER}}": "padding: {{VALUE.TOP}}{{UNIT}} {{VALUE.RIGHT}}{{UNIT}} {{VALUE.BOTTOM}}{{UNIT}} {{VALUE.LEFT}}{{UNIT}};"},
    ),
}


SECTION_SCHEMA = WidgetSchema(
    type="section",
    name="Section",
    category="layout",
    icon="lni-layout",
    general={
        "content_width": field(
            "select",
            label="Content Width",
            default="boxed",
            options={"boxed": "Boxed", "full_width": "Full Width"},
        ),
        "max_width": field("number", label="Max Width", default=1200, unit="px", min=0),
        "min_height": field("number", label="Min Height", default=0, unit="px", min=0),
        "columns_gap": field(
            "select",
            label="Columns Gap",
            default="default",
            options={"none": "No Gap", "narrow": "Narrow", "default": "Default", "wide": "Wide"},
        ),
        "html_tag": field(
            "select",
            label="HTML Tag",
            default="section",
            options={"section": "section", "div": "div", "header": "header", "footer": "footer"},
        ),
    },
    style={
        "background": field("background", label="Background"),
        "border_shadow": field("border_shadow", label="Border & Shadow"),
        "padding": field("dimension", label="Padding", default={"top": 20, "right": 20, "bottom": 20, "left": 20, "unit": "px"}),
        "margin": field("dimension", label="Margin", allow_negative=True),
    },
    advanced=COMMON_ADVANCED_FIELDS,
)


COLUMN_SCHEMA = WidgetSchema(
    type="column",
    name="Column",
    category="layout",
    icon="lni-columns",
    general={
        "vertical_align": field(
            "select",
            label="Vertical Align",
            default="top",
            options={"top": "Top", "center": "Middle", "bottom": "Bottom", "stretch": "Stretch"},
        ),
        "horizontal_align": field("alignment", label="Horizontal Align", default="left", alignments=["left", "center", "right"]),
        "widgets_gap": field("number", label="Widgets Gap", default=20, unit="px", min=0),
    },
    style={
        "background": field("background", label="Background"),
        "border_shadow": field("border_shadow", label="Border & Shadow"),
        "padding": field("dimension", label="Padding"),
    },
    advanced=COMMON_ADVANCED_FIELDS,
)


class WidgetSchemaRegistry:
    """Widget type → settings schema, merged with stored values for the settings panel."""

    def __init__(
        self,
        field_types: FieldTypeRegistry | None = None,
        *,
        schemas: Iterable[WidgetSchema] | None = None,
    ) -> None:
        self.field_types = field_types or FieldTypeRegistry()
        self._schemas: dict[str, WidgetSchema] = {}
        if schemas is None:
            from .catalog import DEFAULT_WIDGETS

            schemas = DEFAULT_WIDGETS.values()
        for schema in (SECTION_SCHEMA, COLUMN_SCHEMA, *schemas):
            self.register(schema)

    def register(self, schema: WidgetSchema) -> WidgetSchema:
        for tab, name, definition in schema.fields():
            if not isinstance(definition, FieldDefinition):
                raise FieldConfigurationError(f"{schema.type}.{tab}.{name} is not a FieldDefinition")
            self.field_types.check_definition(definition, path=f"{schema.type}.{tab}.{name}")
        if schema.type not in ("section", "column"):
            advanced = {**COMMON_ADVANCED_FIELDS, **dict(schema.advanced)}
            schema = WidgetSchema(
                type=schema.type,
                name=schema.name,
                category=schema.category,
                icon=schema.icon,
                description=schema.description,
                general=schema.general,
                style=schema.style,
                advanced=advanced,
            )
        self._schemas[schema.type] = schema
        logger.debug("Registered widget schema", extra={"widget_type": schema.type})
        return schema

    def get(self, widget_type: str) -> WidgetSchema | None:
        return self._schemas.get(widget_type)

    def require(self, widget_type: str) -> WidgetSchema:
        schema = self.get(widget_type)
        if schema is None:
            raise KeyError(f"Unknown widget type: {widget_type}")
        return schema

    def exists(self, widget_type: str) -> bool:
        return widget_type in self._schemas

    def types(self) -> list[str]:
        return [key for key in self._schemas if key != "column"]

    def all(self) -> list[WidgetSchema]:
        return [self._schemas[key] for key in self.types()]

    def defaults(self, widget_type: str) -> dict[str, dict[str, Any]]:
        schema = self.require(widget_type)
        return {tab: field_defaults(schema.tab(tab), self.field_types) for tab in TABS}

    def template(self, widget_type: str) -> WidgetTemplate:
        """Palette entry for a widget type; defaults become the new widget's settings."""
        schema = self.require(widget_type)
        defaults = self.defaults(widget_type)
        return WidgetTemplate(
            type=schema.type,
            name=schema.name,
            icon=schema.icon,
            category=schema.category,
            default_content=defaults["general"],
            default_style=defaults["style"],
            default_advanced=defaults["advanced"],
        )

    def populate(self, widget_type: str, tab: str, saved: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
        schema = self.require(widget_type)
        return merge_fields_with_values(schema.tab(tab), saved or {}, self.field_types)

    def validate(self, widget_type: str, settings: Mapping[str, Any]) -> dict[str, Any]:
        schema = self.require(widget_type)
        errors: dict[str, Any] = {}
        for tab in TABS:
            tab_errors = self.field_types.validate_fields(schema.tab(tab), settings.get(tab) or {})
            if tab_errors:
                errors[tab] = tab_errors
        return errors

    def sanitize(self, widget_type: str, settings: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
        schema = self.require(widget_type)
        return {tab: self.field_types.sanitize_fields(schema.tab(tab), settings.get(tab) or {}) for tab in TABS}


def field_defaults(definitions: Mapping[str, Any], field_types: FieldTypeRegistry) -> dict[str, Any]:
    defaults: dict[str, Any] = {}
    for name, raw in definitions.items():
        definition = as_definition(raw)
        if definition.type in VISUAL_ONLY_KINDS:
            continue
        if definition.type == "group":
            defaults[name] = field_defaults(definition.fields or {}, field_types)
            continue
        defaults[name] = _declared_default(definition, field_types)
    return defaults


def _declared_default(definition: FieldDefinition, field_types: FieldTypeRegistry) -> Any:
    field_type = field_types.get(definition.type)
    kind_default = field_type.default_value if field_type is not None else None
    if definition.default is None:
        return kind_default
    if isinstance(kind_default, Mapping) and isinstance(definition.default, Mapping):
        return deep_merge(kind_default, definition.default)
    return copy.deepcopy(definition.default)


def merge_fields_with_values(
    definitions: Mapping[str, Any],
    saved: Mapping[str, Any],
    field_types: FieldTypeRegistry,
) -> dict[str, dict[str, Any]]:
    """Attach the stored value (or the default) to every field definition.

    Groups merge per child, composite style values are merged over their
    defaults, and dimension accepts either an object or a CSS shorthand string.
    """
    populated: dict[str, dict[str, Any]] = {}
    for name, raw in definitions.items():
        definition = as_definition(raw)
        config = definition.config()
        value = saved.get(name)
        kind = definition.type

        if kind == "group":
            children = merge_fields_with_values(
                definition.fields or {},
                value if isinstance(value, Mapping) else {},
                field_types,
            )
            config["fields"] = children
            config["value"] = {child: data.get("value") for child, data in children.items()}
        elif kind in VISUAL_ONLY_KINDS:
            pass
        elif kind == "dimension" or kind in MERGED_KINDS:
            default = _declared_default(definition, field_types)
            field_type = field_types.get(kind)
            if isinstance(value, str) and kind == "dimension":
                config["value"] = field_type.merge(value)
            elif isinstance(value, Mapping):
                config["value"] = deep_merge(default, value) if kind in MERGED_KINDS else field_type.merge({**default, **value})
            else:
                config["value"] = default
        elif kind == "repeater":
            config["value"] = copy.deepcopy(value) if isinstance(value, list) else _declared_default(definition, field_types)
        else:
            config["value"] = copy.deepcopy(value) if value is not None else _declared_default(definition, field_types)

        config["visible"] = definition.is_visible(saved)
        populated[name] = config
    return populated


__all__ = [
    "WidgetSchema",
    "WidgetSchemaRegistry",
    "SECTION_SCHEMA",
    "COLUMN_SCHEMA",
    "COMMON_ADVANCED_FIELDS",
    "TABS",
    "field_defaults",
    "merge_fields_with_values",
]
