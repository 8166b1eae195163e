from page_composer.fields.spacing import (
    Spacing,
    format_spacing,
    normalize_spacing,
    parse_responsive_spacing,
    parse_spacing,
)


def test_two_value_shorthand():
    assert parse_spacing("10px 5px") == Spacing(top=10, right=5, bottom=10, left=5, unit="px")


def test_one_three_and_four_value_shorthand():
    assert parse_spacing("8px") == Spacing(8, 8, 8, 8, "px")
    assert parse_spacing("1em 2em 3em") == Spacing(1, 2, 3, 2, "em")
    assert parse_spacing("1.5rem 0 2rem 4rem") == Spacing(1.5, 0, 2, 4, "rem")


def test_empty_and_mapping_input():
    assert parse_spacing(None) == Spacing()
    assert parse_spacing("", default_unit="%") == Spacing(unit="%")
    assert parse_spacing({"top": "5", "left": 3, "unit": "em"}) == Spacing(5, 0, 0, 3, "em")


def test_integer_sides_stay_integers():
    spacing = parse_spacing("10px 5px")

    assert isinstance(spacing.top, int)
    assert format_spacing(spacing) == "10px 5px 10px 5px"


def test_normalize_and_format_mapping():
    assert normalize_spacing("20px") == "20px 20px 20px 20px"
    assert format_spacing({"top": 1, "right": 2, "bottom": 3, "left": 4, "unit": "rem"}) == "1rem 2rem 3rem 4rem"


def test_responsive_spacing():
    assert parse_responsive_spacing("10px")["desktop"] == Spacing(10, 10, 10, 10)
    assert parse_responsive_spacing("10px")["mobile"] == Spacing()

    per_device = parse_responsive_spacing({"desktop": "20px", "mobile": "5px 0"})
    assert per_device["mobile"] == Spacing(5, 0, 5, 0)
    assert per_device["tablet"] == Spacing()


def test_keyword_sides_are_kept():
    assert parse_spacing("10px auto") == Spacing(10, "auto", 10, "auto", "px")
    assert normalize_spacing("10px auto") == "10px auto 10px auto"
    assert normalize_spacing("0 auto") == "0px auto 0px auto"
    assert parse_spacing("auto 2em").unit == "em"
