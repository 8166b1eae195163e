from __future__ import annotations

from typing import Any, Mapping

from .base import ErrorList, FieldType, as_definition


def flatten_errors(errors: Mapping[str, Any], prefix: str = "") -> ErrorList:
    """Turn ``{"title": ["..."], "inner": {"x": ["..."]}}`` into ``["title: ...", "inner.x: ..."]``."""
    flat: ErrorList = []
    for key, value in errors.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.extend(flatten_errors(value, path))
        else:
            flat.extend(f"{path}: {message}" for message in value)
    return flat


def _child_definitions(rules: Mapping[str, Any]) -> dict[str, Any]:
    children = rules.get("fields") or {}
    return {name: as_definition(config) for name, config in children.items()}


class GroupField(FieldType):
    kind = "group"
    default = {}

    def validate_common(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        return []

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        children = _child_definitions(rules)
        if not children or not isinstance(value, Mapping):
            return []
        return flatten_errors(self._child_registry().validate_fields(children, value))

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, Mapping):
            return self.default_value
        children = _child_definitions(rules or {})
        if not children:
            return dict(value)
        return self._child_registry().sanitize_fields(children, value)

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "fields": {name: child.config() for name, child in _child_definitions(config).items()},
            "collapsible": config.get("collapsible", False),
        }


class RepeaterField(FieldType):
    kind = "repeater"
    default = []
    class_name = "form-repeater"

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        if value is None:
            return []
        if not isinstance(value, list):
            return ["Value must be an array"]
        errors: ErrorList = []
        minimum = rules.get("min")
        if minimum is not None and len(value) < minimum:
            errors.append(f"Minimum {minimum} items required")
        maximum = rules.get("max")
        if maximum is not None and len(value) > maximum:
            errors.append(f"Maximum {maximum} items allowed")
        if "fields" in rules:
            children = _child_definitions(rules)
            for index, item in enumerate(value):
                if not isinstance(item, Mapping):
                    errors.append(f"Item at index {index} must be an object")
                    continue
                item_errors = self._child_registry().validate_fields(children, item)
                errors.extend(flatten_errors(item_errors, f"[{index}]"))
        return errors

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        if not isinstance(value, list):
            return self.default_value
        items = [dict(item) for item in value if isinstance(item, Mapping)]
        children = _child_definitions(rules or {})
        if not children:
            return items
        registry = self._child_registry()
        return [registry.sanitize_fields(children, item) for item in items]

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "fields": {name: child.config() for name, child in _child_definitions(config).items()},
            "min": config.get("min", 0),
            "max": config.get("max", 100),
            "addButtonText": config.get("add_button_text", "Add Item"),
            "removeButtonText": config.get("remove_button_text", "Remove"),
            "sortable": config.get("sortable", True),
            "collapsible": config.get("collapsible", True),
            "itemLabel": config.get("item_label", "Item"),
        }


class DividerField(FieldType):
    """Visual separator inside a settings panel; carries no value."""

    kind = "divider"

    def validate(self, value: Any, rules: Mapping[str, Any] | None = None) -> ErrorList:
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        return None

    def render(self, config: Mapping[str, Any], value: Any = None) -> dict[str, Any]:
        return {
            "type": self.kind,
            "style": config.get("style", "solid"),
            "color": config.get("color", "#E2E8F0"),
            "thickness": config.get("thickness", 1),
            "margin": config.get("margin", {"top": 16, "bottom": 16}),
            "text": config.get("text"),
        }


class HeadingField(DividerField):
    kind = "heading"

    def render(self, config: Mapping[str, Any], value: Any = None) -> dict[str, Any]:
        return {
            "type": self.kind,
            "text": config.get("label", ""),
            "description": config.get("description"),
        }


__all__ = ["GroupField", "RepeaterField", "DividerField", "HeadingField", "flatten_errors"]
