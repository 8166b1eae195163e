from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Coroutine, Mapping, Protocol

from pydantic import BaseModel

from .config import EditorConfig
from .errors import AuthenticationRequired, PersistenceError
from .models.content import Widget

if TYPE_CHECKING:
    from .store import PageBuilderStore

logger = logging.getLogger(__name__)


class PageBackend(Protocol):
    async def save_page(self, payload: Mapping[str, Any]) -> Mapping[str, Any]: ...

    async def publish_page(self, page_id: str | int) -> Mapping[str, Any]: ...

    async def save_widget_settings(
        self,
        page_id: str | int,
        widget_id: str,
        settings: Mapping[str, Any],
        widget_type: str | None = None,
    ) -> Mapping[str, Any]: ...

    async def save_section_settings(
        self,
        page_id: str | int,
        section_id: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]: ...

    async def save_column_settings(
        self,
        page_id: str | int,
        column_id: str,
        settings: Mapping[str, Any],
        responsive_settings: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]: ...


class SaveState(BaseModel):
    is_saving: bool = False
    last_saved: datetime | None = None
    save_error: str | None = None
    revision: int = 0
    last_acknowledged_revision: int = 0
    pending: bool = False


AuthRequiredHandler = Callable[[AuthenticationRequired], Any]


class AutoSaveCoordinator:
    """Decides when structural edits reach the backend.

    Page saves are single-flight: a request that arrives while a save is running
    only sets ``state.pending``, and one trailing save runs once the current one
    finishes. Each page save carries a revision number; a completion older than
    the last acknowledged revision is ignored. Failures never propagate to the
    caller, they are logged and kept in ``state.save_error``.
    """

    def __init__(
        self,
        backend: PageBackend,
        *,
        enabled: bool = True,
        debounce_seconds: float = 1.5,
        on_auth_required: AuthRequiredHandler | None = None,
    ) -> None:
        self.backend = backend
        self.enabled = enabled
        self.debounce_seconds = debounce_seconds
        self.on_auth_required = on_auth_required
        self.state = SaveState()
        self._store: PageBuilderStore | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._debounce_task: asyncio.Task[Any] | None = None

    @classmethod
    def from_config(
        cls,
        backend: PageBackend,
        config: EditorConfig,
        *,
        on_auth_required: AuthRequiredHandler | None = None,
    ) -> "AutoSaveCoordinator":
        return cls(
            backend,
            enabled=config.autosave_enabled,
            debounce_seconds=config.autosave_debounce_seconds,
            on_auth_required=on_auth_required,
        )

    def bind(self, store: PageBuilderStore) -> None:
        self._store = store

    @property
    def page_id(self) -> str | int | None:
        return self._store.page_id if self._store is not None else None

    # Scheduling

    def request_save(self) -> asyncio.Task[bool] | None:
        """Schedule an immediate page save without waiting for it."""
        if not self._can_save():
            return None
        return self._spawn(self.save_now())

    def debounced_save(self) -> asyncio.Task[bool] | None:
        """Restart the debounce timer; only the last call in a burst saves."""
        if not self._can_save():
            return None
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = self._spawn(self._save_after_delay())
        return self._debounce_task

    def persist_new_widget(self, widget: Widget) -> asyncio.Task[bool] | None:
        """Save a freshly created widget's record, then the page structure."""
        if not self._can_save():
            return None
        return self._spawn(self._persist_new_widget(widget))

    async def drain(self) -> None:
        """Wait until every scheduled save, including trailing ones, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Page saves

    async def save_now(self) -> bool:
        if not self._can_save():
            return False
        if self.state.is_saving:
            self.state.pending = True
            logger.debug("Save already in flight, queued trailing save", extra={"page_id": self.page_id})
            return False

        saved = await self._save_once()
        while self.state.pending:
            self.state.pending = False
            saved = await self._save_once()
        return saved

    async def publish(self) -> bool:
        page_id = self.page_id
        if page_id is None:
            return False
        return await self._call(
            "publish",
            self.backend.publish_page(page_id),
            page_id=page_id,
        )

    async def _save_once(self) -> bool:
        store = self._store
        if store is None:
            return False
        self.state.revision += 1
        revision = self.state.revision
        payload = store.build_save_payload()
        payload["revision"] = revision
        fingerprint = store.content_fingerprint()

        self.state.is_saving = True
        self.state.save_error = None
        try:
            await self.backend.save_page(payload)
        except AuthenticationRequired as exc:
            self._record_failure("save_page", exc, revision=revision)
            self._notify_auth_required(exc)
            return False
        except PersistenceError as exc:
            self._record_failure("save_page", exc, revision=revision)
            return False
        finally:
            self.state.is_saving = False

        if revision < self.state.last_acknowledged_revision:
            logger.info(
                "Ignoring stale save completion",
                extra={"revision": revision, "acknowledged": self.state.last_acknowledged_revision},
            )
            return False

        self.state.last_acknowledged_revision = revision
        self.state.last_saved = datetime.now(timezone.utc)
        store.mark_saved(fingerprint)
        logger.info(
            "Page saved",
            extra={"page_id": payload.get("page_id"), "revision": revision, "widgets": len(payload["widgets"])},
        )
        return True

    async def _save_after_delay(self) -> bool:
        await asyncio.sleep(self.debounce_seconds)
        return await self.save_now()

    async def _persist_new_widget(self, widget: Widget) -> bool:
        # The page save references the widget record, so it only runs once the record exists.
        if not await self.save_widget_settings(widget, widget_type=widget.type):
            return False
        return await self.save_now()

    # Element settings

    async def save_widget_settings(self, widget: Widget | str, *, widget_type: str | None = None) -> bool:
        page_id = self.page_id
        if isinstance(widget, str):
            found = self._store.find_widget(widget) if self._store is not None else None
            if found is None:
                logger.warning("Widget not found for settings save", extra={"widget_id": widget})
                return False
            widget = found
        if page_id is None:
            return False
        settings = {"general": widget.general, "style": widget.style, "advanced": widget.advanced}
        return await self._call(
            "save_widget_settings",
            self.backend.save_widget_settings(page_id, widget.id, settings, widget_type),
            page_id=page_id,
            widget_id=widget.id,
        )

    async def save_section_settings(self, container_id: str) -> bool:
        page_id = self.page_id
        container = self._store.find_container(container_id) if self._store is not None else None
        if page_id is None or container is None:
            logger.warning("Section not found for settings save", extra={"container_id": container_id})
            return False
        return await self._call(
            "save_section_settings",
            self.backend.save_section_settings(page_id, container.id, container.settings, container.responsive_settings),
            page_id=page_id,
            container_id=container.id,
        )

    async def save_column_settings(self, column_id: str) -> bool:
        page_id = self.page_id
        column = self._store.find_column(column_id) if self._store is not None else None
        if page_id is None or column is None:
            logger.warning("Column not found for settings save", extra={"column_id": column_id})
            return False
        return await self._call(
            "save_column_settings",
            self.backend.save_column_settings(page_id, column.id, column.settings, column.responsive_settings),
            page_id=page_id,
            column_id=column.id,
        )

    # Internals

    def _can_save(self) -> bool:
        return self.enabled and self._store is not None and self.page_id is not None

    def _spawn(self, coro: Coroutine[Any, Any, bool]) -> asyncio.Task[bool] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("No running event loop, save not scheduled", extra={"page_id": self.page_id})
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _call(self, operation: str, call: Awaitable[Any], **context: Any) -> bool:
        try:
            await call
        except AuthenticationRequired as exc:
            self._record_failure(operation, exc, **context)
            self._notify_auth_required(exc)
            return False
        except PersistenceError as exc:
            self._record_failure(operation, exc, **context)
            return False
        logger.debug("Persistence call succeeded", extra={"operation": operation, **context})
        return True

    def _record_failure(self, operation: str, exc: PersistenceError, **context: Any) -> None:
        self.state.save_error = str(exc)
        logger.warning(
            "Persistence call failed",
            extra={"operation": operation, "status_code": exc.status_code, "url": exc.url, **context},
            exc_info=exc,
        )

    def _notify_auth_required(self, exc: AuthenticationRequired) -> None:
        if self.on_auth_required is not None:
            self.on_auth_required(exc)


__all__ = ["AutoSaveCoordinator", "PageBackend", "SaveState"]
