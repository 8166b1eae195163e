from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import httpx

from .config import EditorConfig
from .errors import AuthenticationRequired, PersistenceError

logger = logging.getLogger(__name__)

_HTML_PREFIXES = ("<!doctype", "<html")


def _payload(data: Mapping[str, Any]) -> Mapping[str, Any]:
    inner = data.get("data")
    return inner if isinstance(inner, Mapping) else data


class PageBuilderClient:
    """Async client for the page builder backend.

    All calls go through one ``httpx.AsyncClient`` carrying the CSRF header, so a
    single instance should be shared per editor session and closed with
    ``aclose()`` (or used as an async context manager).
    """

    def __init__(
        self,
        base_url: str,
        *,
        csrf_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/json",
            "X-Requested-With": "XMLHttpRequest",
        }
        if csrf_token:
            headers["X-CSRF-TOKEN"] = csrf_token
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: EditorConfig,
        *,
        origin: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "PageBuilderClient":
        return cls(
            f"{origin.rstrip('/')}{config.api_base}",
            csrf_token=config.csrf_token,
            timeout=config.http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "PageBuilderClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # Page content

    async def load_page(self, page_id: str | int) -> dict[str, Any]:
        """Fetch the stored layout and widget records of a page.

        Args:
            page_id: Page identifier

        Returns:
            ``{"content": {...}, "widgets": [...]}``; ``widgets`` may be absent
        """
        return await self._request("GET", f"/pages/{page_id}/content")

    async def save_page(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Persist the full page payload produced by ``PageBuilderStore.build_save_payload``.

        Args:
            payload: ``{page_id, content, widgets, is_published, version}``; a
                ``revision`` key, when present, is forwarded for stale-write detection

        Returns:
            Decoded JSON response (``{success, message}``)
        """
        return await self._request("POST", "/save", json=dict(payload))

    async def publish_page(self, page_id: str | int) -> dict[str, Any]:
        return await self._request("POST", "/publish", json={"page_id": page_id})

    # Element settings

    async def save_widget_settings(
        self,
        page_id: str | int,
        widget_id: str,
        settings: Mapping[str, Any],
        widget_type: str | None = None,
    ) -> dict[str, Any]:
        """Save the general/style/advanced tabs of one widget.

        ``widget_type`` is only needed the first time a widget is saved, when the
        backend creates its record.
        """
        body = {
            "general": dict(settings.get("general") or {}),
            "style": dict(settings.get("style") or {}),
            "advanced": dict(settings.get("advanced") or {}),
        }
        if widget_type:
            body["widget_type"] = widget_type
        return await self._request("POST", f"/pages/{page_id}/widgets/{widget_id}/save-all-settings", json=body)

    async def save_section_settings(
        self,
        page_id: str | int,
        section_id: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        body = {"settings": dict(settings), "responsiveSettings": dict(responsive_settings or {})}
        return await self._request("POST", f"/pages/{page_id}/sections/{section_id}/save-all-settings", json=body)

    async def save_column_settings(
        self,
        page_id: str | int,
        column_id: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        body = {"settings": dict(settings), "responsiveSettings": dict(responsive_settings or {})}
        return await self._request("POST", f"/pages/{page_id}/columns/{column_id}/save-all-settings", json=body)

    # CSS preview

    async def generate_css(
        self,
        element_type: str,
        element_id: str,
        settings: Mapping[str, Any],
        widget_type: str | None = None,
    ) -> str:
        body: dict[str, Any] = {"type": element_type, "id": element_id, "settings": dict(settings)}
        if widget_type:
            body["widget_type"] = widget_type
        data = await self._request("POST", "/css/generate", json=body)
        return str(_payload(data).get("css") or "")

    async def generate_css_bulk(self, components: Iterable[Mapping[str, Any]]) -> str:
        """Generate the combined stylesheet for many elements in one request."""
        data = await self._request("POST", "/css/generate-bulk", json={"components": [dict(item) for item in components]})
        return str(_payload(data).get("combinedCSS") or "")

    # Editing sessions

    async def start_editing(self, page_id: str | int, editing_section: str = "full_page") -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/pages/{page_id}/start-editing",
            json={"editing_section": editing_section},
        )

    async def heartbeat(self, token: str) -> dict[str, Any]:
        return await self._request("PUT", f"/editing-sessions/{token}/heartbeat")

    async def end_editing(self, token: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/editing-sessions/{token}")

    async def takeover(
        self,
        page_id: str | int,
        message: str = "",
        editing_section: str = "full_page",
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/pages/{page_id}/takeover",
            json={"force": True, "message": message, "editing_section": editing_section},
        )

    async def get_editors(self, page_id: str | int) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/pages/{page_id}/editors")
        editors = _payload(data).get("editors") or data.get("data") or []
        return list(editors) if isinstance(editors, list) else []

    # Transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Request to {path} failed: {exc}", url=f"{self.base_url}{path}") from exc
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        url = str(response.request.url)
        content_type = response.headers.get("content-type", "").lower()
        body = response.text
        if "text/html" in content_type or body.lstrip()[:16].lower().startswith(_HTML_PREFIXES):
            logger.warning("Backend returned HTML, session expired", extra={"url": url, "status_code": response.status_code})
            raise AuthenticationRequired(
                "Authentication required",
                status_code=response.status_code,
                url=url,
            )

        if response.is_error:
            raise PersistenceError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                url=url,
            )

        if not body.strip():
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise PersistenceError("Response is not valid JSON", status_code=response.status_code, url=url) from exc

        if not isinstance(data, dict):
            return {"data": data}
        if data.get("success") is False:
            raise PersistenceError(
                str(data.get("message") or "Request failed"),
                status_code=response.status_code,
                url=url,
            )
        return data


__all__ = ["PageBuilderClient"]
