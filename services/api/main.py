from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from page_composer.catalog import DEFAULT_SECTION_LAYOUTS
from page_composer.css import CSSGenerator
from page_composer.fields.registry import FieldTypeRegistry
from page_composer.logging_config import set_trace_id, setup_logging
from page_composer.models.content import PageContent
from page_composer.schema import TABS, WidgetSchemaRegistry
from page_composer.store import PageBuilderStore


class FieldValueRequest(BaseModel):
    value: Any = None
    rules: dict[str, Any] = Field(default_factory=dict)


class FieldValidationResponse(BaseModel):
    valid: bool
    errors: list[str]


class WidgetFieldsRequest(BaseModel):
    tab: str = "general"
    values: dict[str, Any] = Field(default_factory=dict)


class WidgetSettingsRequest(BaseModel):
    general: dict[str, Any] = Field(default_factory=dict)
    style: dict[str, Any] = Field(default_factory=dict)
    advanced: dict[str, Any] = Field(default_factory=dict)


class CSSRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = "widget"
    id: str
    settings: dict[str, Any] = Field(default_factory=dict)
    widget_type: str | None = None
    responsive_settings: dict[str, Any] | None = Field(default=None, alias="responsiveSettings")


class BulkCSSRequest(BaseModel):
    components: list[CSSRequest]


class LayoutExtractRequest(BaseModel):
    page_id: str | int | None = None
    content: PageContent = Field(default_factory=PageContent)
    widgets: list[dict[str, Any]] | dict[str, dict[str, Any]] | None = None


# Environment configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
PROJECT_ID = os.getenv("PROJECT_ID")

# Setup logging
setup_logging(environment=ENVIRONMENT, project_id=PROJECT_ID)
logger = logging.getLogger(__name__)

app = FastAPI(title="Page Composer API", version="0.1.0")

field_types = FieldTypeRegistry()
widget_schemas = WidgetSchemaRegistry(field_types)
css_generator = CSSGenerator(widget_schemas)


@app.middleware("http")
async def bind_trace_context(request: Request, call_next: Any) -> Any:
    header = request.headers.get("X-Cloud-Trace-Context")
    if header and PROJECT_ID:
        set_trace_id(f"projects/{PROJECT_ID}/traces/{header.split('/')[0]}")
    else:
        set_trace_id(None)
    return await call_next(request)


@app.get("/v1/fields")
async def list_field_schemas() -> dict[str, Any]:
    return {"fields": field_types.get_all_schemas()}


@app.get("/v1/fields/{kind}")
async def get_field_schema(kind: str) -> dict[str, Any]:
    schema = field_types.get_schema(kind)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"Unknown field type: {kind}")
    return schema


@app.post("/v1/fields/{kind}:validate", response_model=FieldValidationResponse)
async def validate_field(kind: str, request: FieldValueRequest) -> FieldValidationResponse:
    errors = field_types.validate(kind, request.value, request.rules)
    return FieldValidationResponse(valid=not errors, errors=errors)


@app.post("/v1/fields/{kind}:sanitize")
async def sanitize_field(kind: str, request: FieldValueRequest) -> dict[str, Any]:
    if not field_types.exists(kind):
        raise HTTPException(status_code=404, detail=f"Unknown field type: {kind}")
    return {"value": field_types.sanitize(kind, request.value, request.rules)}


@app.get("/v1/widgets")
async def list_widgets() -> dict[str, Any]:
    return {
        "widgets": [widget_schemas.template(schema.type).model_dump(by_alias=True) for schema in widget_schemas.all()],
        "sections": {key: layout.build().model_dump(by_alias=True) for key, layout in DEFAULT_SECTION_LAYOUTS.items()},
    }


@app.post("/v1/widgets/{widget_type}/fields")
async def widget_fields(widget_type: str, request: WidgetFieldsRequest) -> dict[str, Any]:
    if not widget_schemas.exists(widget_type):
        raise HTTPException(status_code=404, detail=f"Unknown widget type: {widget_type}")
    if request.tab not in TABS:
        raise HTTPException(status_code=400, detail=f"Unknown settings tab: {request.tab}")
    return {"tab": request.tab, "fields": widget_schemas.populate(widget_type, request.tab, request.values)}


@app.post("/v1/widgets/{widget_type}:validate")
async def validate_widget(widget_type: str, request: WidgetSettingsRequest) -> dict[str, Any]:
    if not widget_schemas.exists(widget_type):
        raise HTTPException(status_code=404, detail=f"Unknown widget type: {widget_type}")
    errors = widget_schemas.validate(widget_type, request.model_dump())
    return {"valid": not errors, "errors": errors}


@app.post("/v1/css:generate")
async def generate_css(request: CSSRequest) -> dict[str, Any]:
    try:
        css = css_generator.generate(
            request.type,
            request.id,
            request.settings,
            widget_type=request.widget_type,
            responsive_settings=request.responsive_settings,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"success": True, "data": {"css": css}}


@app.post("/v1/css:generate-bulk")
async def generate_css_bulk(request: BulkCSSRequest) -> dict[str, Any]:
    items = [item.model_dump() for item in request.components]
    try:
        css = css_generator.generate_bulk(items)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    combined = "\n".join(block for block in css.values() if block)
    return {"success": True, "data": {"css": css, "combinedCSS": combined}}


@app.post("/v1/layout:extract")
async def extract_layout(request: LayoutExtractRequest) -> dict[str, Any]:
    store = PageBuilderStore(page_id=request.page_id, content=request.content, widgets=request.widgets)
    problems = store.check_invariants()
    if problems:
        logger.warning("Rejected page tree", extra={"problems": problems})
        raise HTTPException(status_code=422, detail=problems)
    layout, widgets = store.extract_widgets_from_page_content()
    return {"content": layout, "widgets": widgets}


@app.get("/health")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok"})
