import json

import httpx
import pytest

from page_composer.client import PageBuilderClient
from page_composer.config import EditorConfig
from page_composer.errors import AuthenticationRequired, PersistenceError

BASE_URL = "https://cms.example.test/api/page-builder"


def make_client(handler, **kwargs):
    return PageBuilderClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_requests_carry_session_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {"content": {"containers": []}}})

    async with make_client(handler, csrf_token="token-123") as client:
        data = await client.load_page(5)

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/page-builder/pages/5/content"
    assert request.headers["X-CSRF-TOKEN"] == "token-123"
    assert request.headers["X-Requested-With"] == "XMLHttpRequest"
    assert request.headers["Accept"] == "application/json"
    assert data["data"]["content"] == {"containers": []}


@pytest.mark.asyncio
async def test_save_widget_settings_body():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    async with make_client(handler) as client:
        await client.save_widget_settings(5, "w1", {"general": {"text": "Hi"}}, widget_type="heading")

    request = seen[0]
    assert request.url.path == "/api/page-builder/pages/5/widgets/w1/save-all-settings"
    assert json.loads(request.content) == {
        "general": {"text": "Hi"},
        "style": {},
        "advanced": {},
        "widget_type": "heading",
    }
    assert "X-CSRF-TOKEN" not in request.headers


@pytest.mark.asyncio
async def test_html_response_means_session_expired():
    def handler(request):
        return httpx.Response(200, text="<!DOCTYPE html><html><body>Login</body></html>", headers={"content-type": "text/html"})

    async with make_client(handler) as client:
        with pytest.raises(AuthenticationRequired) as excinfo:
            await client.save_page({"page_id": 5})

    assert excinfo.value.url == f"{BASE_URL}/save"


@pytest.mark.asyncio
async def test_http_error_status_raises_persistence_error():
    def handler(request):
        return httpx.Response(500, json={"message": "boom"})

    async with make_client(handler) as client:
        with pytest.raises(PersistenceError) as excinfo:
            await client.publish_page(5)

    assert excinfo.value.status_code == 500
    assert str(excinfo.value) == "HTTP 500: Internal Server Error"


@pytest.mark.asyncio
async def test_unsuccessful_body_raises_with_message():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "Page is locked"})

    async with make_client(handler) as client:
        with pytest.raises(PersistenceError, match="Page is locked"):
            await client.save_page({"page_id": 5})


@pytest.mark.asyncio
async def test_transport_failure_raises_persistence_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(PersistenceError):
            await client.heartbeat("abc")


@pytest.mark.asyncio
async def test_css_endpoints_unwrap_payload():
    def handler(request):
        if request.url.path.endswith("/css/generate"):
            return httpx.Response(200, json={"success": True, "data": {"css": "#widget-w1 {}"}})
        return httpx.Response(200, json={"success": True, "data": {"combinedCSS": "a{}\nb{}"}})

    async with make_client(handler) as client:
        css = await client.generate_css("widget", "w1", {}, widget_type="heading")
        combined = await client.generate_css_bulk([{"type": "widget", "id": "w1"}])

    assert css == "#widget-w1 {}"
    assert combined == "a{}\nb{}"


@pytest.mark.asyncio
async def test_editing_session_calls():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        if request.url.path.endswith("/editors"):
            return httpx.Response(200, json={"success": True, "data": {"editors": [{"user_id": 3}]}})
        return httpx.Response(200, json={"success": True, "data": {"token": "abc"}})

    async with make_client(handler) as client:
        await client.start_editing(5)
        await client.heartbeat("abc")
        await client.takeover(5, message="Sorry")
        await client.end_editing("abc")
        editors = await client.get_editors(5)

    assert seen == [
        ("POST", "/api/page-builder/pages/5/start-editing"),
        ("PUT", "/api/page-builder/editing-sessions/abc/heartbeat"),
        ("POST", "/api/page-builder/pages/5/takeover"),
        ("DELETE", "/api/page-builder/editing-sessions/abc"),
        ("GET", "/api/page-builder/pages/5/editors"),
    ]
    assert editors == [{"user_id": 3}]


@pytest.mark.asyncio
async def test_client_from_config():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    config = EditorConfig(csrf_token="cfg-token", api_base="/cms/page-builder")
    client = PageBuilderClient.from_config(config, origin="https://cms.example.test/", transport=httpx.MockTransport(handler))
    async with client:
        await client.publish_page(9)

    assert str(seen[0].url) == "https://cms.example.test/cms/page-builder/publish"
    assert seen[0].headers["X-CSRF-TOKEN"] == "cfg-token"
