from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

ConditionOperator = Literal["==", "!=", "in", "not_in", "empty", "not_empty"]

# Keys of a definition that describe presentation, not validation.
_NON_RULE_KEYS = frozenset({"label", "description", "condition", "selectors", "validation", "responsive"})


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


class FieldCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    value: Any = None
    operator: ConditionOperator = "=="

    def matches(self, values: Mapping[str, Any]) -> bool:
        current = values.get(self.field)
        if self.operator == "==":
            return current == self.value
        if self.operator == "!=":
            return current != self.value
        if self.operator == "in":
            return current in (self.value or ())
        if self.operator == "not_in":
            return current not in (self.value or ())
        if self.operator == "empty":
            return _is_empty(current)
        return not _is_empty(current)


class FieldDefinition(BaseModel):
    """Declarative description of one settings control.

    Type-specific configuration (``options``, ``min``, ``max``, ``step``, ``unit``,
    ``placeholder`` ...) is accepted as extra keys and travels with the definition.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    label: str | None = None
    description: str | None = None
    default: Any = None
    required: bool = False
    condition: FieldCondition | None = None
    validation: Mapping[str, Any] = Field(default_factory=dict)
    selectors: Mapping[str, str] = Field(default_factory=dict)
    responsive: bool = False
    fields: Mapping[str, "FieldDefinition"] | None = None

    def config(self) -> dict[str, Any]:
        """Full declared config, type-specific extras included."""
        return self.model_dump(exclude_none=True)

    def rules(self) -> dict[str, Any]:
        rules = {
            key: value
            for key, value in self.model_dump(exclude_none=True).items()
            if key not in _NON_RULE_KEYS and key != "fields"
        }
        if self.fields is not None:
            rules["fields"] = dict(self.fields)
        rules.update(self.validation)
        return rules

    def is_visible(self, values: Mapping[str, Any]) -> bool:
        return self.condition is None or self.condition.matches(values)


def field(kind: str, **config: Any) -> FieldDefinition:
    return FieldDefinition(type=kind, **config)


FieldDefinition.model_rebuild()


__all__ = ["FieldCondition", "FieldDefinition", "ConditionOperator", "field"]
