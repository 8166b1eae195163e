from __future__ import annotations


class PageComposerError(Exception):
    """Base class for editor core errors."""


class FieldConfigurationError(PageComposerError):
    """Raised when a field kind or field definition is malformed at registration time."""


class PersistenceError(PageComposerError):
    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class AuthenticationRequired(PersistenceError):
    """The backend answered with an HTML page instead of JSON, i.e. the session expired."""


__all__ = [
    "PageComposerError",
    "FieldConfigurationError",
    "PersistenceError",
    "AuthenticationRequired",
]
