from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from .models.content import Column, new_id
from .models.drag import SectionTemplate
from .models.fields import field
from .schema import WidgetSchema

_TEXT_ALIGN = field(
    "alignment",
    label="Alignment",
    default="left",
    alignments=["left", "center", "right", "justify"],
    selectors={"{{WRAPPER}}": "text-align: {{VALUE}};"},
)


DEFAULT_WIDGETS: Mapping[str, WidgetSchema] = {
    "heading": WidgetSchema(
        type="heading",
        name="Heading",
        category="basic",
        icon="lni-text-format",
        general={
            "text": field("text", label="Title", default="Your heading text", required=True, max_length=300),
            "tag": field(
                "select",
                label="HTML Tag",
                default="h2",
                options={tag: tag.upper() for tag in ("h1", "h2", "h3", "h4", "h5", "h6")},
            ),
            "link": field("link", label="Link"),
        },
        style={
            "alignment": _TEXT_ALIGN,
            "color": field("color", label="Text Color", default="#1F2937", selectors={"{{WRAPPER}} .heading": "color: {{VALUE}};"}),
            "typography": field("typography", label="Typography", selectors={"{{WRAPPER}} .heading": "{{VALUE}}"}),
        },
    ),
    "text": WidgetSchema(
        type="text",
        name="Text Editor",
        category="basic",
        icon="lni-text-align-left",
        general={
            "content": field("wysiwyg", label="Content", default="<p>Add your text here.</p>"),
            "drop_cap": field("toggle", label="Drop Cap", default=False),
        },
        style={
            "alignment": _TEXT_ALIGN,
            "color": field("color", label="Text Color", default="#374151", selectors={"{{WRAPPER}}": "color: {{VALUE}};"}),
            "typography": field("typography", label="Typography"),
        },
    ),
    "button": WidgetSchema(
        type="button",
        name="Button",
        category="basic",
        icon="lni-pointer",
        general={
            "text": field("text", label="Text", default="Click here", required=True),
            "link": field("link", label="Link"),
            "size": field(
                "select",
                label="Size",
                default="md",
                options={"sm": "Small", "md": "Medium", "lg": "Large"},
            ),
            "icon": field("icon", label="Icon"),
            "icon_position": field(
                "select",
                label="Icon Position",
                default="left",
                options={"left": "Before", "right": "After"},
                condition={"field": "icon", "operator": "not_empty"},
            ),
        },
        style={
            "alignment": _TEXT_ALIGN,
            "text_color": field("color", label="Text Color", default="#FFFFFF", selectors={"{{WRAPPER}} .button": "color: {{VALUE}};"}),
            "background": field("background", label="Background", default={"type": "color", "color": "#3B82F6"}),
            "border_shadow": field("border_shadow", label="Border & Shadow"),
            "border_radius": field(
                "number",
                label="Border Radius",
                default=6,
                unit="px",
                min=0,
                max=100,
                selectors={"{{WRAPPER}} .button": "border-radius: {{VALUE}}{{UNIT}};"},
            ),
        },
    ),
    "image": WidgetSchema(
        type="image",
        name="Image",
        category="media",
        icon="lni-image",
        general={
            "src": field("image", label="Image", allowed_extensions=["jpg", "jpeg", "png", "gif", "webp", "svg"]),
            "alt": field("text", label="Alt Text"),
            "caption": field("text", label="Caption"),
            "link": field("link", label="Link"),
        },
        style={
            "alignment": _TEXT_ALIGN,
            "width": field(
                "range",
                label="Width",
                default=100,
                unit="%",
                min=1,
                max=100,
                responsive=True,
                selectors={"{{WRAPPER}} img": "width: {{VALUE}}{{UNIT}};"},
            ),
            "border_shadow": field("border_shadow", label="Border & Shadow"),
        },
    ),
    "spacer": WidgetSchema(
        type="spacer",
        name="Spacer",
        category="layout",
        icon="lni-arrows-vertical",
        general={
            "height": field(
                "number",
                label="Height",
                default=50,
                unit="px",
                min=0,
                max=1000,
                responsive=True,
                selectors={"{{WRAPPER}}": "height: {{VALUE}}{{UNIT}};"},
            ),
        },
    ),
    "divider": WidgetSchema(
        type="divider",
        name="Divider",
        category="layout",
        icon="lni-line-dashed",
        general={
            "style": field(
                "select",
                label="Style",
                default="solid",
                options={"solid": "Solid", "dashed": "Dashed", "dotted": "Dotted", "double": "Double"},
                selectors={"{{WRAPPER}} hr": "border-top-style: {{VALUE}};"},
            ),
        },
        style={
            "color": field("color", label="Color", default="#E5E7EB", selectors={"{{WRAPPER}} hr": "border-top-color: {{VALUE}};"}),
            "weight": field("number", label="Weight", default=1, unit="px", min=1, max=20, selectors={"{{WRAPPER}} hr": "border-top-width: {{VALUE}}{{UNIT}};"}),
        },
    ),
    "icon": WidgetSchema(
        type="icon",
        name="Icon",
        category="basic",
        icon="lni-star",
        general={
            "icon": field("icon", label="Icon", default="lni-star", required=True),
            "link": field("link", label="Link"),
        },
        style={
            "alignment": _TEXT_ALIGN,
            "color": field("color", label="Color", default="#3B82F6", selectors={"{{WRAPPER}} i": "color: {{VALUE}};"}),
            "size": field("number", label="Size", default=32, unit="px", min=6, max=300, selectors={"{{WRAPPER}} i": "font-size: {{VALUE}}{{UNIT}};"}),
        },
    ),
    "list": WidgetSchema(
        type="list",
        name="Icon List",
        category="basic",
        icon="lni-list",
        general={
            "items": field(
                "repeater",
                label="Items",
                default=[{"text": "List item", "icon": "lni-checkmark"}],
                min=1,
                max=50,
                fields={
                    "text": field("text", label="Text", required=True),
                    "icon": field("icon", label="Icon"),
                    "link": field("url", label="Link"),
                },
            ),
        },
        style={
            "icon_color": field("color", label="Icon Color", default="#10B981", selectors={"{{WRAPPER}} i": "color: {{VALUE}};"}),
            "typography": field("typography", label="Typography"),
        },
    ),
    "container": WidgetSchema(
        type="container",
        name="Container",
        category="layout",
        icon="lni-grid-alt",
        general={
            "columns": field("number", label="Columns", default=2, min=1, max=6, step=1),
            "gap": field("text", label="Gap", default="20px"),
            "padding": field("text", label="Padding", default="40px 20px"),
            "backgroundColor": field("color", label="Background Color", default="#FFFFFF"),
        },
    ),
}


@dataclass(frozen=True)
class SectionLayout:
    key: str
    label: str
    column_widths: Sequence[str]

    def build(self) -> SectionTemplate:
        return SectionTemplate(
            name=self.label,
            columns=[Column(id=new_id("column"), width=width) for width in self.column_widths],
            settings={"padding": "20px", "margin": "0px", "backgroundColor": "#ffffff"},
        )


DEFAULT_SECTION_LAYOUTS: Mapping[str, SectionLayout] = {
    "one-column": SectionLayout(key="one-column", label="One Column", column_widths=("100%",)),
    "two-columns": SectionLayout(key="two-columns", label="Two Columns", column_widths=("50%", "50%")),
    "three-columns": SectionLayout(
        key="three-columns",
        label="Three Columns",
        column_widths=("33.3333%", "33.3333%", "33.3333%"),
    ),
    "sidebar-left": SectionLayout(key="sidebar-left", label="Sidebar Left", column_widths=("30%", "70%")),
    "sidebar-right": SectionLayout(key="sidebar-right", label="Sidebar Right", column_widths=("70%", "30%")),
}


__all__ = ["DEFAULT_WIDGETS", "DEFAULT_SECTION_LAYOUTS", "SectionLayout"]
