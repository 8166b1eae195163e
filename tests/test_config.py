import json
import logging

import pytest
from pydantic import ValidationError

from page_composer.config import EditorConfig
from page_composer.logging_config import StructuredFormatter, set_trace_id


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    monkeypatch.setenv("PAGE_COMPOSER_AUTOSAVE", "false")
    monkeypatch.setenv("PAGE_COMPOSER_NAV_COOLDOWN_MS", "500")

    config = EditorConfig.from_env(csrf_token="tok")

    assert config.environment == "prod"
    assert config.autosave_enabled is False
    assert config.nav_cooldown_ms == 500
    assert config.csrf_token == "tok"
    assert config.api_base == "/api/page-builder"


def test_config_rejects_invalid_values():
    with pytest.raises(ValidationError):
        EditorConfig(nav_max_operations=0)


def test_structured_formatter_includes_extra_and_trace():
    record = logging.LogRecord("page_composer.store", logging.INFO, __file__, 10, "Page saved", None, None)
    record.page_id = 7
    set_trace_id("projects/demo/traces/abc")
    try:
        payload = json.loads(StructuredFormatter().format(record))
    finally:
        set_trace_id(None)

    assert payload["message"] == "Page saved"
    assert payload["severity"] == "INFO"
    assert payload["page_id"] == 7
    assert payload["logging.googleapis.com/trace"] == "projects/demo/traces/abc"
