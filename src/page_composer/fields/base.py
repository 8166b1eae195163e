from __future__ import annotations

import copy
import math
import re
from abc import ABC
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from ..errors import FieldConfigurationError
from ..models.fields import FieldDefinition

if TYPE_CHECKING:
    from .registry import FieldTypeRegistry

ErrorList = list[str]


def is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {} or value is False


def as_definition(config: Any) -> FieldDefinition:
    if isinstance(config, FieldDefinition):
        return config
    if isinstance(config, Mapping) and "type" in config:
        return FieldDefinition.model_validate(dict(config))
    raise FieldConfigurationError(f"Invalid field definition: {config!r}")


def as_number(value: Any) -> float | None:
    """Numeric value of ``value`` using the loose rules settings payloads need, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FieldType(ABC):
    """Behaviour shared by every field kind.

    Subclasses set ``kind`` and ``default`` and override ``check`` (kind-specific
    validation), ``sanitize``, ``render_options`` and ``properties`` as needed.
    """

    kind: ClassVar[str] = ""
    default: ClassVar[Any] = None
    common_rules: ClassVar[Mapping[str, Any]] = {}
    properties: ClassVar[Mapping[str, Mapping[str, Any]]] = {}
    class_name: ClassVar[str] = "form-input"

    def __init__(self) -> None:
        self.registry: FieldTypeRegistry | None = None

    def bind(self, registry: FieldTypeRegistry) -> None:
        self.registry = registry

    @property
    def default_value(self) -> Any:
        return copy.deepcopy(self.default)

    def validate(self, value: Any, rules: Mapping[str, Any] | None = None) -> ErrorList:
        rules = rules or {}
        return self.validate_common(value, rules) + self.check(value, rules)

    def check(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        return []

    def sanitize(self, value: Any, rules: Mapping[str, Any] | None = None) -> Any:
        return self.sanitize_common(value)

    def render(self, config: Mapping[str, Any], value: Any = None) -> dict[str, Any]:
        descriptor: dict[str, Any] = {
            "type": self.kind,
            "value": self.default_value if value is None else value,
            "required": config.get("required", False),
            "disabled": config.get("disabled", False),
            "className": config.get("class_name", self.class_name),
            "attributes": config.get("attributes", {}),
        }
        descriptor.update(self.render_options(config))
        return descriptor

    def render_options(self, config: Mapping[str, Any]) -> dict[str, Any]:
        return {}

    def get_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {
            "type": self.kind,
            "required": False,
            "default": self.default_value,
            "validation": dict(self.common_rules),
        }
        if self.properties:
            schema["properties"] = copy.deepcopy(dict(self.properties))
        return schema

    def validate_common(self, value: Any, rules: Mapping[str, Any]) -> ErrorList:
        errors: ErrorList = []
        if rules.get("required") and is_empty(value):
            errors.append("This field is required")
        if isinstance(value, str):
            min_length = rules.get("min_length")
            if min_length is not None and len(value) < min_length:
                errors.append(f"Minimum length is {min_length} characters")
            max_length = rules.get("max_length")
            if max_length is not None and len(value) > max_length:
                errors.append(f"Maximum length is {max_length} characters")
            pattern = rules.get("pattern")
            if pattern and value and not re.search(pattern, value):
                errors.append(rules.get("pattern_message") or "Invalid format")
        return errors

    def sanitize_common(self, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().replace("\0", "")
        return value

    def _child_registry(self) -> FieldTypeRegistry:
        if self.registry is None:
            raise FieldConfigurationError(f"Field kind '{self.kind}' is not bound to a registry")
        return self.registry


__all__ = ["FieldType", "ErrorList", "is_empty", "as_definition", "as_number", "format_number"]
