from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class EditorConfig(BaseModel):
    environment: str = "dev"
    project_id: str | None = None
    api_base: str = "/api/page-builder"
    csrf_token: str | None = None
    autosave_enabled: bool = True
    autosave_debounce_seconds: float = Field(default=1.5, ge=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    nav_max_operations: int = Field(default=10, ge=1)
    nav_cooldown_ms: int = Field(default=1000, ge=0)

    @classmethod
    def from_env(cls, **overrides: Any) -> "EditorConfig":
        values: dict[str, Any] = {
            "environment": os.getenv("ENVIRONMENT", "dev"),
            "project_id": os.getenv("PROJECT_ID"),
            "api_base": os.getenv("PAGE_COMPOSER_API_BASE", "/api/page-builder"),
            "csrf_token": os.getenv("PAGE_COMPOSER_CSRF_TOKEN"),
            "autosave_enabled": _env_bool("PAGE_COMPOSER_AUTOSAVE", True),
            "autosave_debounce_seconds": float(os.getenv("PAGE_COMPOSER_AUTOSAVE_DEBOUNCE", "1.5")),
            "http_timeout_seconds": float(os.getenv("PAGE_COMPOSER_HTTP_TIMEOUT", "30")),
            "nav_max_operations": int(os.getenv("PAGE_COMPOSER_NAV_MAX_OPERATIONS", "10")),
            "nav_cooldown_ms": int(os.getenv("PAGE_COMPOSER_NAV_COOLDOWN_MS", "1000")),
        }
        values.update(overrides)
        return cls.model_validate(values)


__all__ = ["EditorConfig"]
