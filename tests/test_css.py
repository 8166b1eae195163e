import pytest

from page_composer.css import CSSGenerator


@pytest.fixture(scope="module")
def generator():
    return CSSGenerator()


def test_section_css(generator):
    css = generator.generate_section_css("s1", {"padding": "20px", "backgroundColor": "#fff"})

    assert css == "#section-s1 {\n  padding: 20px;\n  background-color: #fff;\n}\n"


def test_unitless_numbers_get_pixels(generator):
    css = generator.generate_column_css("c1", {"minHeight": 300, "gap": "1.5", "width": "50%"})

    assert css == "#column-c1 {\n  min-height: 300px;\n  gap: 1.5px;\n  width: 50%;\n}\n"


def test_spacing_object_is_expanded(generator):
    css = generator.generate_section_css("s1", {"margin": {"top": 10, "right": 0, "bottom": 10, "left": 0}})

    assert "margin: 10px 0px 10px 0px;" in css

    css = generator.generate_section_css("s1", {"margin": {"top": 0, "right": "auto", "bottom": 0, "left": "auto"}})
    assert "margin: 0px auto 0px auto;" in css


def test_responsive_settings_become_media_queries(generator):
    css = generator.generate_section_css("s1", {"padding": "20px"}, {"mobile": {"padding": "10px"}})

    assert css == (
        "#section-s1 {\n  padding: 20px;\n}\n"
        "@media (max-width: 768px) {\n  #section-s1 {\n    padding: 10px;\n  }\n}\n"
    )


def test_blank_settings_produce_no_css(generator):
    assert generator.generate_section_css("s1", {"padding": "", "color": None}) == ""


def test_widget_css_uses_field_selectors(generator):
    css = generator.generate("widget", "w1", {"style": {"color": "#FF0000"}}, widget_type="heading")

    assert css == "#widget-w1 {\n  text-align: left;\n}\n#widget-w1 .heading {\n  color: #FF0000;\n}\n"


def test_widget_css_with_number_unit(generator):
    css = generator.generate_widget_css("w2", "spacer", {"general": {"height": 80}})

    assert "height: 80px;" in css


def test_generate_rejects_unknown_element(generator):
    with pytest.raises(ValueError):
        generator.generate("row", "r1", {})
    with pytest.raises(ValueError):
        generator.generate("widget", "w1", {})


def test_unknown_widget_type_yields_empty_css(generator):
    assert generator.generate_widget_css("w1", "carousel", {}) == ""


def test_generate_bulk(generator):
    results = generator.generate_bulk(
        [
            {"type": "section", "id": "s1", "settings": {"padding": "20px"}},
            {"type": "column", "id": "c1", "settings": {}, "responsiveSettings": {"tablet": {"width": "100%"}}},
        ]
    )

    assert results["s1"] == "#section-s1 {\n  padding: 20px;\n}\n"
    assert results["c1"] == "@media (max-width: 1024px) {\n  #column-c1 {\n    width: 100%;\n  }\n}\n"


def test_malformed_composite_values_are_skipped(generator):
    assert generator.generate_section_css("s1", {"background": {"type": "image", "image": "/a.png"}}) == ""
    assert generator.generate_section_css("s1", {"background": {"type": "gradient", "gradient": {"colorStops": 3}}}) == ""
    assert generator.generate_section_css("s1", {"border_shadow": {"border": {"width": 2}, "shadow": "big"}}) == ""
