from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping

from .fields.base import as_number, format_number
from .fields.spacing import SIDES, format_spacing, parse_spacing
from .fields.style import BackgroundField, BorderShadowField, TypographyField
from .models.fields import FieldDefinition
from .schema import TABS, WidgetSchemaRegistry

logger = logging.getLogger(__name__)

DEFAULT_BREAKPOINTS: Mapping[str, str] = {
    "desktop": "",
    "tablet": "@media (max-width: 1024px)",
    "mobile": "@media (max-width: 768px)",
}

# Section/column settings keys that map straight onto a CSS property.
LAYOUT_PROPERTIES: Mapping[str, str] = {
    "padding": "padding",
    "margin": "margin",
    "backgroundColor": "background-color",
    "background_color": "background-color",
    "color": "color",
    "gap": "gap",
    "minHeight": "min-height",
    "min_height": "min-height",
    "maxWidth": "max-width",
    "max_width": "max-width",
    "borderRadius": "border-radius",
    "border_radius": "border-radius",
    "textAlign": "text-align",
    "text_align": "text-align",
    "width": "width",
}
_SPACING_KEYS = frozenset({"padding", "margin"})
_UNITLESS_RE = re.compile(r"^-?\d+(\.\d+)?$")

Declarations = list[str]
RuleSet = dict[str, Declarations]


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == {} or value == [] or isinstance(value, bool)


def _is_responsive(value: Any) -> bool:
    return isinstance(value, Mapping) and any(device in value for device in DEFAULT_BREAKPOINTS)


class CSSGenerator:
    """Builds scoped CSS for widgets, sections and columns from their settings."""

    def __init__(
        self,
        schemas: WidgetSchemaRegistry | None = None,
        *,
        breakpoints: Mapping[str, str] | None = None,
    ) -> None:
        self.schemas = schemas or WidgetSchemaRegistry()
        self.breakpoints = dict(breakpoints or DEFAULT_BREAKPOINTS)
        self._background = BackgroundField()
        self._typography = TypographyField()
        self._border_shadow = BorderShadowField()

    def generate(
        self,
        element_type: str,
        element_id: str,
        settings: Mapping[str, Any],
        *,
        widget_type: str | None = None,
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> str:
        if element_type == "widget":
            if not widget_type:
                raise ValueError("widget_type is required for widget CSS")
            return self.generate_widget_css(element_id, widget_type, settings)
        if element_type == "section":
            return self.generate_section_css(element_id, settings, responsive_settings)
        if element_type == "column":
            return self.generate_column_css(element_id, settings, responsive_settings)
        raise ValueError(f"Unknown element type: {element_type}")

    def generate_bulk(self, items: Iterable[Mapping[str, Any]]) -> dict[str, str]:
        results: dict[str, str] = {}
        for item in items:
            element_id = str(item["id"])
            results[element_id] = self.generate(
                item.get("type", "widget"),
                element_id,
                item.get("settings") or {},
                widget_type=item.get("widget_type"),
                responsive_settings=item.get("responsive_settings") or item.get("responsiveSettings"),
            )
        return results

    def generate_widget_css(self, widget_id: str, widget_type: str, settings: Mapping[str, Any]) -> str:
        schema = self.schemas.get(widget_type)
        if schema is None:
            logger.warning("No schema for widget type, skipping CSS", extra={"widget_type": widget_type})
            return ""
        wrapper = f"#widget-{widget_id}"
        per_device: dict[str, RuleSet] = {device: {} for device in self.breakpoints}

        for tab in TABS:
            values = settings.get(tab) or {}
            for name, definition in schema.tab(tab).items():
                explicit = name in values
                value = values.get(name, definition.default)
                if _is_blank(value):
                    continue
                if definition.responsive and _is_responsive(value):
                    for device in self.breakpoints:
                        if not _is_blank(value.get(device)):
                            self._field_rules(per_device[device], wrapper, name, definition, value[device], explicit)
                else:
                    self._field_rules(per_device["desktop"], wrapper, name, definition, value, explicit)

        return self._render(per_device)

    def generate_section_css(
        self,
        section_id: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> str:
        return self._layout_css(f"#section-{section_id}", settings, responsive_settings)

    def generate_column_css(
        self,
        column_id: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> str:
        return self._layout_css(f"#column-{column_id}", settings, responsive_settings)

    def _layout_css(
        self,
        selector: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None,
    ) -> str:
        per_device: dict[str, RuleSet] = {device: {} for device in self.breakpoints}
        per_device["desktop"][selector] = self._layout_declarations(settings)
        for device, device_settings in (responsive_settings or {}).items():
            if device in per_device and isinstance(device_settings, Mapping):
                per_device[device][selector] = self._layout_declarations(device_settings)
        return self._render(per_device)

    def _layout_declarations(self, settings: Mapping[str, Any]) -> Declarations:
        declarations: Declarations = []
        for key, value in settings.items():
            if _is_blank(value):
                continue
            if key == "background" and isinstance(value, Mapping):
                declarations.extend(self._background.css_declarations(value))
            elif key == "border_shadow" and isinstance(value, Mapping):
                declarations.extend(self._border_shadow.css_declarations(value))
            elif key == "typography" and isinstance(value, Mapping):
                declarations.extend(self._typography.css_declarations(value))
            elif key in LAYOUT_PROPERTIES:
                prop = LAYOUT_PROPERTIES[key]
                if key in _SPACING_KEYS:
                    declarations.append(f"{prop}: {_spacing_css(value)}")
                elif isinstance(value, (int, float)) or _UNITLESS_RE.match(str(value)):
                    declarations.append(f"{prop}: {format_number(value)}px")
                else:
                    declarations.append(f"{prop}: {value}")
        return declarations

    def _field_rules(
        self,
        rules: RuleSet,
        wrapper: str,
        name: str,
        definition: FieldDefinition,
        value: Any,
        explicit: bool,
    ) -> None:
        if definition.selectors:
            for selector, template in definition.selectors.items():
                properties = self._process_properties(template, value, definition)
                if properties:
                    target = selector.replace("{{WRAPPER}}", wrapper)
                    rules.setdefault(target, []).extend(_split_declarations(properties))
            return
        if not explicit:
            return
        declarations: Declarations = []
        if definition.type == "background":
            declarations = self._background.css_declarations(value)
        elif definition.type == "typography":
            declarations = self._typography.css_declarations(value)
        elif definition.type == "border_shadow":
            declarations = self._border_shadow.css_declarations(value)
        elif definition.type == "dimension" and name in _SPACING_KEYS:
            declarations = [f"{name}: {_spacing_css(value)}"]
        if declarations:
            rules.setdefault(wrapper, []).extend(declarations)

    def _process_properties(self, template: str, value: Any, definition: FieldDefinition) -> str:
        kind = definition.type
        unit = str(getattr(definition, "unit", "") or "")
        if kind == "dimension":
            spacing = parse_spacing(value, default_unit=unit or "px")
            for side in SIDES:
                template = template.replace("{{VALUE.%s}}" % side.upper(), format_number(getattr(spacing, side)))
            template = template.replace("{{UNIT}}", spacing.unit)
            return template.replace("{{VALUE}}", format_spacing(spacing))
        if kind in ("typography", "background", "border_shadow"):
            field_type = {"typography": self._typography, "background": self._background}.get(kind, self._border_shadow)
            declarations = field_type.css_declarations(value)
            if not declarations:
                return ""
            return template.replace("{{VALUE}}", "; ".join(declarations))
        if isinstance(value, (Mapping, list)):
            return ""
        if kind in ("number", "range"):
            if as_number(value) is None:
                return ""
            value = format_number(value)
        return template.replace("{{VALUE}}", str(value).strip()).replace("{{UNIT}}", unit)

    def _render(self, per_device: Mapping[str, RuleSet]) -> str:
        blocks: list[str] = []
        for device, rules in per_device.items():
            body = "".join(_format_rule(selector, declarations) for selector, declarations in rules.items() if declarations)
            if not body:
                continue
            media = self.breakpoints.get(device, "")
            if media:
                indented = "".join(f"  {line}\n" for line in body.rstrip("\n").split("\n"))
                blocks.append(f"{media} {{\n{indented}}}\n")
            else:
                blocks.append(body)
        return "".join(blocks)


def _spacing_css(value: Any) -> str:
    if isinstance(value, str):
        return " ".join(value.split())
    return format_spacing(parse_spacing(value))


def _split_declarations(properties: str) -> Declarations:
    return [part.strip() for part in properties.split(";") if part.strip()]


def _format_rule(selector: str, declarations: Declarations) -> str:
    lines = "".join(f"  {declaration};\n" for declaration in declarations)
    return f"{selector} {{\n{lines}}}\n"


__all__ = ["CSSGenerator", "DEFAULT_BREAKPOINTS", "LAYOUT_PROPERTIES"]
