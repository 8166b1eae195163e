from __future__ import annotations

import logging
import threading
from typing import Any, Mapping

from ..errors import FieldConfigurationError
from ..models.fields import FieldDefinition
from .base import ErrorList, FieldType, as_definition
from .basic import (
    AlignmentField,
    CodeField,
    ColorField,
    DateField,
    MultiSelectField,
    NumberField,
    RangeField,
    SelectField,
    TextareaField,
    TextField,
    ToggleField,
    WysiwygField,
)
from .composite import DividerField, GroupField, HeadingField, RepeaterField
from .media import IconField, ImageField, LinkField, UrlField
from .style import BackgroundField, BorderShadowField, DimensionField, TypographyField

logger = logging.getLogger(__name__)

BUILTIN_FIELD_TYPES: tuple[type[FieldType], ...] = (
    TextField,
    TextareaField,
    CodeField,
    WysiwygField,
    NumberField,
    RangeField,
    ColorField,
    ToggleField,
    SelectField,
    MultiSelectField,
    AlignmentField,
    DateField,
    ImageField,
    UrlField,
    IconField,
    LinkField,
    GroupField,
    RepeaterField,
    DividerField,
    HeadingField,
    DimensionField,
    BackgroundField,
    TypographyField,
    BorderShadowField,
)

# Kind names older saved schemas still use.
KIND_ALIASES: Mapping[str, str] = {
    "border_shadow_group": "border_shadow",
    "background_group": "background",
    "typography_group": "typography",
    "link_group": "link",
    "spacing": "dimension",
}


class FieldTypeRegistry:
    """Lookup table from field kind to its implementation.

    Built-in kinds are registered lazily on first use; callers may register
    additional kinds at any time.
    """

    def __init__(self) -> None:
        self._types: dict[str, FieldType] = {}
        self._initialized = False
        self._lock = threading.Lock()

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            for field_cls in BUILTIN_FIELD_TYPES:
                self._add(field_cls.kind, field_cls())
            self._initialized = True

    def _add(self, kind: str, field_type: FieldType) -> None:
        field_type.bind(self)
        self._types[kind] = field_type

    def register(self, kind: str, field_type: FieldType) -> None:
        if not kind:
            raise FieldConfigurationError("Field kind must be a non-empty string")
        if not isinstance(field_type, FieldType):
            raise FieldConfigurationError(f"Field kind '{kind}' must be a FieldType instance, got {type(field_type).__name__}")
        self._ensure_initialized()
        self._add(kind, field_type)
        logger.debug("Registered field kind", extra={"field_kind": kind})

    def get(self, kind: str) -> FieldType | None:
        self._ensure_initialized()
        return self._types.get(KIND_ALIASES.get(kind, kind))

    def exists(self, kind: str) -> bool:
        return self.get(kind) is not None

    def get_all(self) -> dict[str, FieldType]:
        self._ensure_initialized()
        return dict(self._types)

    def get_types(self) -> list[str]:
        self._ensure_initialized()
        return list(self._types)

    def clear(self) -> None:
        """Drop every registered kind; built-ins come back on the next lookup."""
        with self._lock:
            self._types.clear()
            self._initialized = False

    def validate(self, kind: str, value: Any, rules: Mapping[str, Any] | None = None) -> ErrorList:
        field_type = self.get(kind)
        if field_type is None:
            return [f"Unknown field type: {kind}"]
        return field_type.validate(value, rules or {})

    def sanitize(self, kind: str, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        field_type = self.get(kind)
        if field_type is None:
            return value
        return field_type.sanitize(value, rules or {})

    def render(self, kind: str, config: Mapping[str, Any], value: Any = None) -> dict[str, Any] | None:
        field_type = self.get(kind)
        if field_type is None:
            return None
        return field_type.render(config, value)

    def get_schema(self, kind: str) -> dict[str, Any] | None:
        field_type = self.get(kind)
        if field_type is None:
            return None
        return field_type.get_schema()

    def get_all_schemas(self) -> dict[str, dict[str, Any]]:
        return {kind: field_type.get_schema() for kind, field_type in self.get_all().items()}

    def check_definition(self, definition: FieldDefinition, *, path: str = "") -> None:
        """Raise FieldConfigurationError when a definition (or a child) names an unknown kind."""
        where = path or definition.label or definition.type
        if not self.exists(definition.type):
            raise FieldConfigurationError(f"Unknown field type '{definition.type}' for field '{where}'")
        for name, child in (definition.fields or {}).items():
            self.check_definition(as_definition(child), path=f"{where}.{name}")

    def validate_fields(
        self,
        definitions: Mapping[str, FieldDefinition | Mapping[str, Any]],
        values: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Validate every visible field; errors are keyed by field name, nested for groups."""
        errors: dict[str, Any] = {}
        for name, raw in definitions.items():
            definition = as_definition(raw)
            if not definition.is_visible(values):
                continue
            value = values.get(name)
            if definition.type == "group":
                group_errors = self.validate_fields(definition.fields or {}, value if isinstance(value, Mapping) else {})
                if group_errors:
                    errors[name] = group_errors
                continue
            field_errors = self.validate(definition.type, value, definition.rules())
            if field_errors:
                errors[name] = field_errors
        return errors

    def sanitize_fields(
        self,
        definitions: Mapping[str, FieldDefinition | Mapping[str, Any]],
        values: Mapping[str, Any],
    ) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for name, raw in definitions.items():
            definition = as_definition(raw)
            value = values.get(name)
            if definition.type == "group":
                sanitized[name] = self.sanitize_fields(definition.fields or {}, value if isinstance(value, Mapping) else {})
            elif definition.type in ("divider", "heading"):
                continue
            else:
                sanitized[name] = self.sanitize(definition.type, value, definition.rules())
        return sanitized

    def process_fields(
        self,
        definitions: Mapping[str, FieldDefinition | Mapping[str, Any]],
        values: Mapping[str, Any],
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Sanitize then validate; returns ``(values, errors)``."""
        sanitized = self.sanitize_fields(definitions, values)
        return sanitized, self.validate_fields(definitions, sanitized)


__all__ = ["FieldTypeRegistry", "BUILTIN_FIELD_TYPES", "KIND_ALIASES"]
