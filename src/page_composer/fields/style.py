from __future__ import annotations

import copy
import re
from typing import Any, Mapping

from .base import ErrorList, FieldType, as_number, format_number
from .spacing import KEYWORDS, SIDES, UNITS, Spacing, format_spacing, parse_spacing

BORDER_STYLES = ("none", "solid", "dashed", "dotted", "double", "groove", "ridge", "inset", "outset")
BACKGROUND_TYPES = ("none", "color", "gradient", "image")

_CSS_COLOR_RE = re.compile(r"^(#[0-9a-f]{3,8}|rgba?\(|hsla?\(|[a-z]+$)")


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(merged.get(key), Mapping):
            # Nested default objects keep their shape.
            if isinstance(value, Mapping):
                merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def is_css_color(value: Any) -> bool:
    return isinstance(value, str) and bool(_CSS_COLOR_RE.match(value.strip().lower()))


class _CompositeStyleField(FieldType):
    """Multi-property value stored as a nested object and merged over a default."""

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, Mapping):
            return self.default_value
        return deep_merge(self.default, value)

    def merge(self, saved: Any) -> Any:
        if isinstance(saved, Mapping):
            return deep_merge(self.default, saved)
        return self.default_value

    def css_declarations(self, value: Any) -> list[str]:
        return []


class DimensionField(FieldType):
    kind = "dimension"
    default = {"top": 0, "right": 0, "bottom": 0, "left": 0, "unit": "px", "linked": True}
    properties = {
        "sides": {"type": "array", "default": list(SIDES)},
        "units": {"type": "array", "default": list(UNITS)},
        "allow_negative": {"type": "boolean", "default": False},
    }

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            value = parse_spacing(value).to_dict()
        if not isinstance(value, Mapping):
            return ["Dimension value must be an object or a CSS shorthand string"]
        errors: ErrorList = []
        units = rules.get("units", UNITS)
        unit = value.get("unit", "px")
        if unit not in units:
            errors.append(f"Invalid unit '{unit}'. Allowed: " + ", ".join(units))
        for side in rules.get("sides", SIDES):
            if side not in value or value[side] in KEYWORDS:
                continue
            number = as_number(value[side])
            if number is None:
                errors.append(f"Invalid value for {side} side")
                continue
            if number < 0 and not rules.get("allow_negative", False):
                errors.append(f"Negative value not allowed for {side} side")
            minimum = rules.get("min")
            if minimum is not None and number < minimum:
                errors.append(f"Value for {side} side must be at least {format_number(minimum)}")
            maximum = rules.get("max")
            if maximum is not None and number > maximum:
                errors.append(f"Value for {side} side must be at most {format_number(maximum)}")
        return errors

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        return self.merge(value)

    def merge(self, saved: Any) -> dict[str, Any]:
        if isinstance(saved, str):
            return {**parse_spacing(saved).to_dict(), "linked": False}
        if isinstance(saved, Mapping):
            merged = copy.deepcopy(self.default)
            merged.update(Spacing.from_mapping(saved).to_dict())
            merged["linked"] = bool(saved.get("linked", merged["linked"]))
            return merged
        return self.default_value

    def css_value(self, value: Any) -> str:
        return format_spacing(parse_spacing(value))

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "sides": list(config.get("sides", SIDES)),
            "units": list(config.get("units", UNITS)),
            "linked": config.get("linked", False),
            "allowNegative": config.get("allow_negative", False),
            "min": config.get("min", 0),
            "max": config.get("max", 1000),
            "step": config.get("step", 1),
            "showLabels": config.get("show_labels", True),
        }


class BackgroundField(_CompositeStyleField):
    kind = "background"
    default = {
        "type": "none",
        "color": "#000000",
        "gradient": {
            "type": "linear",
            "angle": 135,
            "colorStops": [
                {"color": "#667EEA", "position": 0},
                {"color": "#764BA2", "position": 100},
            ],
        },
        "image": {
            "url": "",
            "size": "cover",
            "position": "center center",
            "repeat": "no-repeat",
            "attachment": "scroll",
        },
        "hover": {"color": ""},
    }

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None:
            return []
        if not isinstance(value, Mapping):
            return ["Background value must be an object"]
        errors: ErrorList = []
        allowed = rules.get("allowed_types", BACKGROUND_TYPES)
        if value.get("type", "none") not in allowed:
            errors.append("Invalid background type")
        color = value.get("color")
        if color and not is_css_color(color):
            errors.append("Invalid background color format")
        return errors

    def css_declarations(self, value: Any) -> list[str]:
        value = self.merge(value)
        kind = value["type"]
        if kind == "color" and value["color"]:
            return [f"background-color: {value['color']}"]
        if kind == "gradient":
            gradient = value["gradient"]
            color_stops = gradient.get("colorStops")
            stops = ", ".join(
                f"{stop['color']} {stop.get('position', 0)}%"
                for stop in (color_stops if isinstance(color_stops, list) else [])
                if isinstance(stop, Mapping) and stop.get("color")
            )
            if not stops:
                return []
            if gradient.get("type") == "radial":
                return [f"background: radial-gradient(circle, {stops})"]
            return [f"background: linear-gradient({gradient.get('angle', 135)}deg, {stops})"]
        if kind == "image" and value["image"].get("url"):
            image = value["image"]
            return [
                f"background-image: url('{image['url']}')",
                f"background-size: {image['size']}",
                f"background-position: {image['position']}",
                f"background-repeat: {image['repeat']}",
                f"background-attachment: {image['attachment']}",
            ]
        return []

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "allowedTypes": list(config.get("allowed_types", BACKGROUND_TYPES)),
            "enableHover": config.get("enable_hover", False),
            "enableImage": config.get("enable_image", True),
        }


class TypographyField(_CompositeStyleField):
    kind = "typography"
    default = {
        "font_family": "inherit",
        "font_size": {"value": 16, "unit": "px"},
        "font_weight": "400",
        "font_style": "normal",
        "text_transform": "none",
        "text_decoration": "none",
        "line_height": {"value": 1.4, "unit": "em"},
        "letter_spacing": {"value": 0, "unit": "px"},
        "word_spacing": {"value": 0, "unit": "px"},
    }

    def css_declarations(self, value: Any) -> list[str]:
        if not isinstance(value, Mapping) or not value:
            return []
        styles: list[str] = []
        if value.get("font_family", "inherit") != "inherit":
            styles.append(f"font-family: {value['font_family']}")
        styles.extend(_sized("font-size", value.get("font_size")))
        if "font_weight" in value:
            styles.append(f"font-weight: {value['font_weight']}")
        for key, prop in (
            ("font_style", "font-style"),
            ("text_transform", "text-transform"),
            ("text_decoration", "text-decoration"),
        ):
            default = "normal" if key == "font_style" else "none"
            if value.get(key, default) != default:
                styles.append(f"{prop}: {value[key]}")
        styles.extend(_sized("line-height", value.get("line_height")))
        styles.extend(_sized("letter-spacing", value.get("letter_spacing"), skip_zero=True))
        styles.extend(_sized("word-spacing", value.get("word_spacing"), skip_zero=True))
        return styles

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "fontFamilies": config.get("font_families", {}),
            "enabledControls": list(config.get("enabled_controls", self.default.keys())),
            "enableResponsive": config.get("enable_responsive", False),
        }


class BorderShadowField(_CompositeStyleField):
    kind = "border_shadow"
    default = {
        "border": {
            "style": "solid",
            "width": {"top": 0, "right": 0, "bottom": 0, "left": 0},
            "color": "#000000",
            "radius": {"top": 0, "right": 0, "bottom": 0, "left": 0},
            "linked": True,
        },
        "shadow": {
            "type": "none",
            "x_offset": 0,
            "y_offset": 2,
            "blur_radius": 4,
            "spread_radius": 0,
            "color": "rgba(0,0,0,0.1)",
            "inset": False,
            "shadows": [],
        },
    }

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if not isinstance(value, Mapping):
            return []
        errors: ErrorList = []
        border = value.get("border")
        if isinstance(border, Mapping):
            if border.get("style", "solid") not in BORDER_STYLES:
                errors.append("Invalid border style")
            width = border.get("width")
            if isinstance(width, Mapping):
                for side in SIDES:
                    if side in width and as_number(width[side]) is None:
                        errors.append(f"Invalid border width for {side} side")
            if "color" in border and not is_css_color(border["color"]):
                errors.append("Invalid border color format")
        shadow = value.get("shadow")
        if isinstance(shadow, Mapping):
            for prop in ("x_offset", "y_offset", "blur_radius", "spread_radius"):
                if prop in shadow and as_number(shadow[prop]) is None:
                    errors.append(f"Invalid shadow {prop} value")
            if "color" in shadow and not is_css_color(shadow["color"]):
                errors.append("Invalid shadow color format")
        return errors

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, Mapping):
            return self.default_value
        merged = deep_merge(self.default, value)
        border = merged["border"]
        for key in ("width", "radius"):
            border[key] = {side: max(0, int(as_number(border[key].get(side)) or 0)) for side in SIDES}
        border["linked"] = bool(border.get("linked", True))
        shadow = merged["shadow"]
        for prop in ("x_offset", "y_offset", "spread_radius"):
            shadow[prop] = int(as_number(shadow.get(prop)) or 0)
        shadow["blur_radius"] = max(0, int(as_number(shadow.get("blur_radius")) or 0))
        shadow["inset"] = bool(shadow.get("inset"))
        return merged

    def css_declarations(self, value: Any) -> list[str]:
        value = self.merge(value)
        styles: list[str] = []
        border = value["border"]
        widths = border["width"]
        if border["style"] != "none" and any(widths.get(side) for side in SIDES):
            styles.append(f"border-style: {border['style']}")
            styles.append("border-width: " + " ".join(f"{widths.get(side, 0)}px" for side in SIDES))
            styles.append(f"border-color: {border['color']}")
        radius = border["radius"]
        if any(radius.get(side) for side in SIDES):
            styles.append("border-radius: " + " ".join(f"{radius.get(side, 0)}px" for side in SIDES))
        shadow = value["shadow"]
        if shadow["type"] != "none":
            inset = "inset " if shadow.get("inset") else ""
            styles.append(
                f"box-shadow: {inset}{shadow['x_offset']}px {shadow['y_offset']}px "
                f"{shadow['blur_radius']}px {shadow['spread_radius']}px {shadow['color']}"
            )
        return styles

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "borderStyles": list(config.get("border_styles", BORDER_STYLES)),
            "shadowPresets": config.get("shadow_presets", []),
            "perSideControls": config.get("per_side_controls", True),
            "multipleShadows": config.get("multiple_shadows", False),
            "maxShadows": config.get("max_shadows", 5),
        }


def _sized(prop: str, data: Any, *, skip_zero: bool = False) -> list[str]:
    if not isinstance(data, Mapping) or "value" not in data or "unit" not in data:
        return []
    if skip_zero and as_number(data["value"]) == 0:
        return []
    return [f"{prop}: {format_number(data['value'])}{data['unit']}"]


__all__ = [
    "DimensionField",
    "BackgroundField",
    "TypographyField",
    "BorderShadowField",
    "deep_merge",
    "is_css_color",
    "BORDER_STYLES",
    "BACKGROUND_TYPES",
]
