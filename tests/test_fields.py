from typing import Any

import pytest

from page_composer.errors import FieldConfigurationError
from page_composer.fields.base import FieldType
from page_composer.fields.registry import FieldTypeRegistry
from page_composer.models.fields import field


@pytest.fixture
def registry():
    return FieldTypeRegistry()


def test_color_sanitize_and_validate(registry):
    assert registry.sanitize("color", "ff0000") == "#FF0000"
    assert registry.sanitize("color", "#abcdef") == "#ABCDEF"
    assert registry.sanitize("color", "not-a-color") == "#000000"
    assert registry.validate("color", "#FF0000") == []
    assert registry.validate("color", "red") == ["Invalid color format. Use hex format like #FF0000"]


def test_number_bounds_and_step(registry):
    assert registry.validate("number", 5, {"min": 10}) == ["Value must be at least 10"]
    assert registry.validate("number", 50, {"max": 10}) == ["Value must be at most 10"]
    assert registry.validate("number", 7, {"step": 2}) == ["Value must be a multiple of 2"]
    assert registry.validate("number", "abc") == ["Value must be a number"]
    assert registry.validate("number", None, {"min": 1}) == []


def test_number_sanitize(registry):
    assert registry.sanitize("number", "5") == 5
    assert registry.sanitize("number", "5.5") == 5.5
    assert registry.sanitize("number", "abc") == 0
    assert registry.sanitize("number", 3) == 3


def test_text_rules(registry):
    assert registry.validate("text", "", {"required": True}) == ["This field is required"]
    assert registry.validate("text", "abcdef", {"max_length": 3}) == ["Maximum length is 3 characters"]
    assert registry.validate("text", "ab", {"min_length": 3}) == ["Minimum length is 3 characters"]
    assert registry.validate("text", "9lives", {"pattern": r"^[a-z]"}) == ["Invalid format"]
    assert registry.sanitize("text", "  <b>bold</b>  ") == "bold"


def test_select_and_toggle(registry):
    options = {"options": {"h1": "H1", "h2": "H2"}}
    assert registry.validate("select", "h3", options) == ["Invalid option selected"]
    assert registry.validate("select", "h2", options) == []

    assert registry.validate("toggle", "true") == []
    assert registry.validate("toggle", 1) == []
    assert registry.validate("toggle", "yes") == ["Value must be a boolean"]
    assert registry.sanitize("toggle", "true") is True
    assert registry.sanitize("toggle", "0") is False


def test_repeater_validation(registry):
    rules = {"min": 1, "max": 2, "fields": {"title": {"type": "text", "required": True}}}

    assert registry.validate("repeater", "x", rules) == ["Value must be an array"]
    assert registry.validate("repeater", [], rules) == ["Minimum 1 items required"]
    assert registry.validate("repeater", [{"title": "a"}] * 3, rules) == ["Maximum 2 items allowed"]
    assert registry.validate("repeater", [{"title": ""}, "oops"], rules) == [
        "[0].title: This field is required",
        "Item at index 1 must be an object",
    ]


def test_repeater_sanitize_drops_non_objects(registry):
    rules = {"fields": {"title": {"type": "text"}, "count": {"type": "number"}}}

    assert registry.sanitize("repeater", [{"title": " a ", "count": "2"}, "junk"], rules) == [{"title": "a", "count": 2}]
    assert registry.sanitize("repeater", "junk", rules) == []


def test_group_flattens_child_errors(registry):
    rules = {"fields": {"size": {"type": "number", "min": 1}}}

    assert registry.validate("group", {"size": 0}, rules) == ["size: Value must be at least 1"]


def test_unknown_kind(registry):
    assert registry.validate("hologram", 1) == ["Unknown field type: hologram"]
    assert registry.sanitize("hologram", "as-is") == "as-is"
    assert registry.get_schema("hologram") is None


def test_composite_sanitize_keeps_nested_defaults(registry):
    sanitized = registry.sanitize("border_shadow", {"border": {"width": 2, "style": "dashed"}})

    assert sanitized["border"]["width"] == {"top": 0, "right": 0, "bottom": 0, "left": 0}
    assert sanitized["border"]["style"] == "dashed"

    background = registry.sanitize("background", {"type": "image", "image": "/a.png"})
    assert background["image"]["url"] == ""


def test_link_with_non_string_url(registry):
    assert registry.validate("link", {"url": 123}) == ["Invalid URL format"]
    assert registry.sanitize("link", {"url": "/about", "custom_attributes": 5})["custom_attributes"] == []


def test_aliases_resolve_to_builtin_kinds(registry):
    assert registry.get("spacing") is registry.get("dimension")


def test_register_custom_kind(registry):
    class SlugField(FieldType):
        kind = "slug"
        default = ""

        def check(self, value: Any, rules):
            if value and not str(value).replace("-", "").isalnum():
                return ["Invalid slug"]
            return []

    registry.register("slug", SlugField())

    assert registry.validate("slug", "hello world") == ["Invalid slug"]
    assert "slug" in registry.get_types()


def test_register_rejects_non_field_type(registry):
    with pytest.raises(FieldConfigurationError):
        registry.register("broken", object())


def test_validate_fields_skips_hidden_fields(registry):
    definitions = {
        "icon": field("icon"),
        "icon_position": field(
            "select",
            options={"left": "Before", "right": "After"},
            condition={"field": "icon", "operator": "not_empty"},
        ),
    }

    assert registry.validate_fields(definitions, {"icon_position": "middle"}) == {}
    assert registry.validate_fields(definitions, {"icon": "lni-star", "icon_position": "middle"}) == {
        "icon_position": ["Invalid option selected"]
    }


def test_validate_fields_nests_group_errors(registry):
    definitions = {"box": field("group", fields={"width": field("number", max=10)})}

    assert registry.validate_fields(definitions, {"box": {"width": 20}}) == {"box": {"width": ["Value must be at most 10"]}}


def test_process_fields_sanitizes_then_validates(registry):
    sanitized, errors = registry.process_fields(
        {"count": field("number", min=1), "color": field("color")},
        {"count": "0", "color": "00ff00"},
    )

    assert sanitized == {"count": 0, "color": "#00FF00"}
    assert errors == {"count": ["Value must be at least 1"]}


def test_check_definition_rejects_unknown_child_kind(registry):
    with pytest.raises(FieldConfigurationError):
        registry.check_definition(field("group", fields={"inner": field("hologram")}))
