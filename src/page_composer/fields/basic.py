from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Mapping

from .base import ErrorList, FieldType, as_number, format_number

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_HEX_RE = re.compile(r"^#[a-fA-F0-9]{6}$")


def strip_tags(value: str) -> str:
    return _TAG_RE.sub("", value)


class TextField(FieldType):
    kind = "text"
    default = ""
    properties = {
        "placeholder": {"type": "string", "description": "Placeholder text"},
        "max_length": {"type": "integer", "description": "Maximum character length"},
        "min_length": {"type": "integer", "description": "Minimum character length"},
        "pattern": {"type": "string", "description": "Regular expression pattern"},
    }

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is not None and not isinstance(value, str):
            return ["Value must be a string"]
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None:
            return self.default_value
        value = str(self.sanitize_common(value))
        if rules and rules.get("allow_html"):
            return value
        return strip_tags(value)

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "placeholder": config.get("placeholder", ""),
            "maxLength": config.get("max_length"),
        }


class TextareaField(TextField):
    kind = "textarea"
    class_name = "form-textarea"

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        options = super().render_options(config)
        options.update(
            {
                "rows": config.get("rows", 4),
                "cols": config.get("cols"),
                "resize": config.get("resize", "vertical"),
                "allowHtml": config.get("allow_html", False),
            }
        )
        return options


class CodeField(TextField):
    kind = "code"
    class_name = "form-code"

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None:
            return self.default_value
        return str(self.sanitize_common(value))

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "placeholder": config.get("placeholder", ""),
            "rows": config.get("rows", 10),
            "resize": config.get("resize", "vertical"),
            "allowHtml": config.get("allow_html", False),
            "language": config.get("language", "javascript"),
        }


class WysiwygField(TextField):
    kind = "wysiwyg"
    class_name = "form-wysiwyg"

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None:
            return self.default_value
        return _SCRIPT_RE.sub("", str(self.sanitize_common(value)))

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "toolbar": config.get("toolbar", ["bold", "italic", "underline", "link", "bulletList", "orderedList"]),
            "minHeight": config.get("min_height", 150),
        }


class NumberField(FieldType):
    kind = "number"
    default = 0
    class_name = "form-number-input"
    properties = {
        "min": {"type": "number", "description": "Minimum allowed value"},
        "max": {"type": "number", "description": "Maximum allowed value"},
        "step": {"type": "number", "description": "Step increment", "default": 1},
        "unit": {"type": "string", "description": "Unit label (px, %, em, etc.)"},
        "allow_decimals": {"type": "boolean", "description": "Allow decimal values", "default": True},
    }

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or value == "":
            return []
        number = as_number(value)
        if number is None:
            return ["Value must be a number"]
        errors: ErrorList = []
        minimum = rules.get("min")
        if minimum is not None and number < minimum:
            errors.append(f"Value must be at least {format_number(minimum)}")
        maximum = rules.get("max")
        if maximum is not None and number > maximum:
            errors.append(f"Value must be at most {format_number(maximum)}")
        step = rules.get("step")
        if step is not None and step > 0 and math.fmod(number, step) != 0.0:
            errors.append(f"Value must be a multiple of {format_number(step)}")
        return errors

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None or value == "":
            return self.default_value
        if as_number(value) is None:
            return self.default_value
        if isinstance(value, (int, float)):
            return value
        text = value.strip()
        return float(text) if "." in text else int(float(text))

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "min": config.get("min"),
            "max": config.get("max"),
            "step": config.get("step", 1),
            "unit": config.get("unit", ""),
            "placeholder": config.get("placeholder", ""),
            "showUnit": config.get("show_unit", True),
            "allowDecimals": config.get("allow_decimals", True),
        }


class RangeField(NumberField):
    kind = "range"
    default = 50
    class_name = "form-range"

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        options = super().render_options(config)
        options["min"] = config.get("min", 0)
        options["max"] = config.get("max", 100)
        options["showValue"] = config.get("show_value", True)
        return options


class ColorField(FieldType):
    kind = "color"
    default = "#000000"
    class_name = "form-color-input"

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or value == "":
            return []
        if not isinstance(value, str) or not _HEX_RE.match(value):
            return ["Invalid color format. Use hex format like #FF0000"]
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None or value == "" or not isinstance(value, str):
            return self.default_value
        value = self.sanitize_common(value)
        if not value.startswith("#"):
            value = "#" + value
        value = value.upper()
        if not _HEX_RE.match(value):
            return self.default_value
        return value

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "showInput": config.get("show_input", True),
            "swatches": config.get("swatches", []),
        }


class ToggleField(FieldType):
    kind = "toggle"
    default = False
    class_name = "form-toggle"

    _ACCEPTED = (0, 1, "0", "1", "true", "false")
    _TRUTHY = {"true", "1", "yes", "on"}

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or isinstance(value, bool):
            return []
        if isinstance(value, (int, str)) and value in self._ACCEPTED:
            return []
        return ["Value must be a boolean"]

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None:
            return self.default_value
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in self._TRUTHY
        if isinstance(value, (int, float)):
            return bool(value)
        return self.default_value

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "label": config.get("label", ""),
            "labelPosition": config.get("label_position", "right"),
            "size": config.get("size", "medium"),
            "onText": config.get("on_text", ""),
            "offText": config.get("off_text", ""),
        }


class SelectField(FieldType):
    kind = "select"
    default = ""
    class_name = "form-select"

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        options = rules.get("options")
        if options is None or value is None or value == "":
            return []
        if value not in _option_keys(options):
            return ["Invalid option selected"]
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if value is None:
            return self.default_value
        return self.sanitize_common(value)

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "options": config.get("options", {}),
            "placeholder": config.get("placeholder", "Select an option..."),
            "multiple": config.get("multiple", False),
            "searchable": config.get("searchable", False),
            "clearable": config.get("clearable", False),
            "groupBy": config.get("group_by"),
        }


class MultiSelectField(SelectField):
    kind = "multiselect"
    default = []

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None:
            return []
        if not isinstance(value, list):
            return ["Value must be an array"]
        options = rules.get("options")
        if options is not None:
            keys = _option_keys(options)
            if any(item not in keys for item in value):
                return ["Invalid option selected"]
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, list):
            return self.default_value
        return [self.sanitize_common(item) for item in value]

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        options = super().render_options(config)
        options["multiple"] = True
        return options


class AlignmentField(FieldType):
    kind = "alignment"
    default = "none"

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        alignments = rules.get("alignments")
        if alignments is None or value is None or value == "":
            return []
        if value not in alignments:
            return ["Invalid alignment value"]
        return []

    def render(self, config: Mapping[str, Any], value: Any = None) -> dict[str, Any]:
        if value is None:
            value = config.get("default", self.default_value)
        return {
            "type": self.kind,
            "value": value,
            "alignments": config.get("alignments", ["none", "left", "center", "right"]),
            "config": dict(config),
        }


class DateField(FieldType):
    kind = "date"
    default = ""

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None or value == "":
            return []
        try:
            date.fromisoformat(str(value))
        except ValueError:
            return ["Invalid date. Use YYYY-MM-DD"]
        return []

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {"min": config.get("min"), "max": config.get("max")}


def _option_keys(options: Any) -> list[Any]:
    if isinstance(options, Mapping):
        return list(options.keys())
    keys = []
    for option in options:
        if isinstance(option, Mapping):
            keys.append(option.get("value"))
        else:
            keys.append(option)
    return keys


__all__ = [
    "TextField",
    "TextareaField",
    "CodeField",
    "WysiwygField",
    "NumberField",
    "RangeField",
    "ColorField",
    "ToggleField",
    "SelectField",
    "MultiSelectField",
    "AlignmentField",
    "DateField",
    "strip_tags",
]
