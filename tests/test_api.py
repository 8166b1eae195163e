import pytest
from fastapi.testclient import TestClient

from services.api.main import app


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_field_schemas(client):
    schemas = client.get("/v1/fields").json()["fields"]

    assert schemas["color"]["default"] == "#000000"
    assert client.get("/v1/fields/number").json()["type"] == "number"
    assert client.get("/v1/fields/hologram").status_code == 404


def test_validate_and_sanitize_field(client):
    response = client.post("/v1/fields/number:validate", json={"value": 3, "rules": {"min": 5}})
    assert response.json() == {"valid": False, "errors": ["Value must be at least 5"]}

    response = client.post("/v1/fields/color:sanitize", json={"value": "abcdef"})
    assert response.json() == {"value": "#ABCDEF"}

    assert client.post("/v1/fields/hologram:sanitize", json={"value": 1}).status_code == 404


def test_widget_palette(client):
    body = client.get("/v1/widgets").json()

    heading = next(widget for widget in body["widgets"] if widget["type"] == "heading")
    assert heading["defaultContent"]["text"] == "Your heading text"
    assert [column["width"] for column in body["sections"]["two-columns"]["columns"]] == ["50%", "50%"]


def test_widget_fields(client):
    response = client.post("/v1/widgets/heading/fields", json={"tab": "general", "values": {"text": "Saved"}})
    assert response.json()["fields"]["text"]["value"] == "Saved"

    assert client.post("/v1/widgets/carousel/fields", json={}).status_code == 404
    assert client.post("/v1/widgets/heading/fields", json={"tab": "seo"}).status_code == 400


def test_validate_widget(client):
    response = client.post("/v1/widgets/heading:validate", json={"general": {"text": ""}})

    assert response.json() == {"valid": False, "errors": {"general": {"text": ["This field is required"]}}}


def test_generate_css(client):
    response = client.post(
        "/v1/css:generate",
        json={"type": "section", "id": "s1", "settings": {"padding": "20px"}},
    )
    assert response.json() == {"success": True, "data": {"css": "#section-s1 {\n  padding: 20px;\n}\n"}}

    assert client.post("/v1/css:generate", json={"type": "widget", "id": "w1"}).status_code == 400


def test_generate_css_bulk(client):
    response = client.post(
        "/v1/css:generate-bulk",
        json={
            "components": [
                {"type": "section", "id": "s1", "settings": {"padding": "20px"}},
                {"type": "column", "id": "c1", "settings": {"width": "50%"}},
            ]
        },
    )

    data = response.json()["data"]
    assert data["css"]["c1"] == "#column-c1 {\n  width: 50%;\n}\n"
    assert data["combinedCSS"] == "#section-s1 {\n  padding: 20px;\n}\n\n#column-c1 {\n  width: 50%;\n}\n"


def test_layout_extract(client, content):
    response = client.post("/v1/layout:extract", json={"page_id": 7, "content": content})

    body = response.json()
    assert response.status_code == 200
    assert body["content"]["containers"][1]["columns"][0]["widgets"] == [{"id": "w4", "type": "image"}]
    assert body["widgets"]["w2"]["sort_order"] == 1
