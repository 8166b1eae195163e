from typing import Any

import pytest

from page_composer.store import PageBuilderStore


def sample_content() -> dict[str, Any]:
    return {
        "containers": [
            {
                "id": "S1",
                "type": "section",
                "settings": {"padding": "20px"},
                "columns": [
                    {
                        "id": "C1",
                        "width": "50%",
                        "widgets": [
                            {"id": "w1", "type": "heading", "general": {"text": "Hello"}},
                            {"id": "w2", "type": "text", "general": {"content": "<p>Body</p>"}},
                            {"id": "w3", "type": "button", "general": {"text": "Click"}},
                        ],
                    },
                    {"id": "C2", "width": "50%", "widgets": []},
                ],
            },
            {
                "id": "S2",
                "type": "section",
                "settings": [],
                "columns": [
                    {
                        "id": "C3",
                        "width": "100%",
                        "widgets": [{"id": "w4", "type": "image", "general": {"url": "/hero.png"}}],
                    }
                ],
            },
        ]
    }


@pytest.fixture
def content() -> dict[str, Any]:
    return sample_content()


@pytest.fixture
def store(content: dict[str, Any]) -> PageBuilderStore:
    return PageBuilderStore(page_id=7, content=content)
