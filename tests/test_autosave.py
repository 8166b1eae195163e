import asyncio

import pytest

from page_composer.autosave import AutoSaveCoordinator
from page_composer.config import EditorConfig
from page_composer.errors import AuthenticationRequired, PersistenceError
from page_composer.store import PageBuilderStore


class FakeBackend:
    def __init__(self):
        self.calls = []
        self.pages = []
        self.widget_settings = []
        self.gate = None
        self.fail_page = None
        self.fail_widget = None

    async def save_page(self, payload):
        self.calls.append("save_page")
        self.pages.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_page is not None:
            raise self.fail_page
        return {"success": True}

    async def publish_page(self, page_id):
        self.calls.append("publish_page")
        return {"success": True}

    async def save_widget_settings(self, page_id, widget_id, settings, widget_type=None):
        self.calls.append("save_widget_settings")
        self.widget_settings.append((page_id, widget_id, settings, widget_type))
        if self.fail_widget is not None:
            raise self.fail_widget
        return {"success": True}

    async def save_section_settings(self, page_id, section_id, settings, responsive_settings=None):
        self.calls.append(("save_section_settings", section_id, settings))
        return {"success": True}

    async def save_column_settings(self, page_id, column_id, settings, responsive_settings=None):
        self.calls.append(("save_column_settings", column_id, settings))
        return {"success": True}


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def autosave(backend, store):
    coordinator = AutoSaveCoordinator(backend)
    store.attach_autosave(coordinator)
    return coordinator


@pytest.mark.asyncio
async def test_structural_change_saves_page(store, backend, autosave):
    store.reorder_widgets("C1", 0, 2)
    await autosave.drain()

    assert backend.calls == ["save_page"]
    payload = backend.pages[0]
    assert payload["revision"] == 1
    assert payload["page_id"] == 7
    assert payload["content"]["containers"][0]["columns"][0]["widgets"][0] == {"id": "w2", "type": "text"}
    assert store.is_dirty is False
    assert autosave.state.last_saved is not None
    assert autosave.state.last_acknowledged_revision == 1


@pytest.mark.asyncio
async def test_saves_during_flight_collapse_into_one_trailing_save(store, backend, autosave):
    backend.gate = asyncio.Event()
    store.reorder_widgets("C1", 0, 2)
    await asyncio.sleep(0)
    assert autosave.state.is_saving is True

    store.reorder_widgets("C1", 0, 1)
    store.reorder_containers(0, 1)
    backend.gate.set()
    await autosave.drain()

    assert backend.calls == ["save_page", "save_page"]
    assert [page["revision"] for page in backend.pages] == [1, 2]
    assert [c["id"] for c in backend.pages[-1]["content"]["containers"]] == ["S2", "S1"]
    assert autosave.state.pending is False
    assert store.is_dirty is False


@pytest.mark.asyncio
async def test_edit_during_save_keeps_store_dirty(store, backend, autosave):
    backend.gate = asyncio.Event()
    store.reorder_widgets("C1", 0, 2)
    await asyncio.sleep(0)

    store.update_widget("w1", {"general": {"text": "Edited mid-save"}})
    backend.gate.set()
    await autosave.drain()

    assert backend.calls == ["save_page"]
    assert store.is_dirty is True


@pytest.mark.asyncio
async def test_failed_save_is_recorded_not_raised(store, backend, autosave):
    backend.fail_page = PersistenceError("HTTP 500: Internal Server Error", status_code=500)

    assert await autosave.save_now() is False

    assert autosave.state.save_error == "HTTP 500: Internal Server Error"
    assert autosave.state.is_saving is False
    assert autosave.state.last_saved is None


@pytest.mark.asyncio
async def test_expired_session_notifies_handler(store, backend):
    seen = []
    coordinator = AutoSaveCoordinator(backend, on_auth_required=seen.append)
    store.attach_autosave(coordinator)
    backend.fail_page = AuthenticationRequired("Authentication required", status_code=200)

    store.remove_widget("w3")
    await coordinator.drain()

    assert seen == [backend.fail_page]
    assert coordinator.state.save_error == "Authentication required"
    assert store.is_dirty is True


@pytest.mark.asyncio
async def test_new_widget_saves_record_before_page(store, backend, autosave):
    widget = store.add_widget_to_column({"type": "text", "defaultContent": {"content": "<p>x</p>"}}, "C2")
    await autosave.drain()

    assert backend.calls == ["save_widget_settings", "save_page"]
    page_id, widget_id, settings, widget_type = backend.widget_settings[0]
    assert (page_id, widget_id, widget_type) == (7, widget.id, "text")
    assert settings["general"] == {"content": "<p>x</p>"}
    assert widget.id in backend.pages[0]["widgets"]


@pytest.mark.asyncio
async def test_page_save_skipped_when_widget_record_fails(store, backend, autosave):
    backend.fail_widget = PersistenceError("HTTP 422: Unprocessable Entity", status_code=422)

    store.wrap_widget_in_section({"type": "heading"})
    await autosave.drain()

    assert backend.calls == ["save_widget_settings"]
    assert autosave.state.save_error == "HTTP 422: Unprocessable Entity"
    assert store.is_dirty is True


@pytest.mark.asyncio
async def test_debounced_save_runs_once(store, backend):
    coordinator = AutoSaveCoordinator(backend, debounce_seconds=0.01)
    store.attach_autosave(coordinator)

    for _ in range(3):
        coordinator.debounced_save()
    await coordinator.drain()

    assert backend.calls == ["save_page"]


@pytest.mark.asyncio
async def test_disabled_coordinator_never_saves(store, backend):
    coordinator = AutoSaveCoordinator(backend, enabled=False)
    store.attach_autosave(coordinator)

    store.reorder_widgets("C1", 0, 1)
    await coordinator.drain()

    assert coordinator.request_save() is None
    assert backend.calls == []


@pytest.mark.asyncio
async def test_section_and_column_settings(store, backend, autosave):
    assert await autosave.save_section_settings("S1") is True
    assert await autosave.save_column_settings("C3") is True
    assert await autosave.save_section_settings("missing") is False

    assert backend.calls == [
        ("save_section_settings", "S1", {"padding": "20px"}),
        ("save_column_settings", "C3", {}),
    ]


@pytest.mark.asyncio
async def test_publish(store, backend, autosave):
    assert await autosave.publish() is True
    assert backend.calls == ["publish_page"]


def test_mutation_without_event_loop_does_not_schedule(backend):
    store = PageBuilderStore(page_id=1, autosave=AutoSaveCoordinator(backend))
    store.add_container()

    assert store.is_dirty is True
    assert backend.calls == []


def test_coordinator_from_config(backend):
    coordinator = AutoSaveCoordinator.from_config(
        backend,
        EditorConfig(autosave_enabled=False, autosave_debounce_seconds=0.5),
    )

    assert coordinator.enabled is False
    assert coordinator.debounce_seconds == 0.5
