"""Vectorization progress tracking with callback-based listener notification.

Holds the latest :class:`~shelfmind.models.rag.VectorizationStatus` for
every document and broadcasts each update to listeners registered for
that document.  Listeners are keyed by document id so concurrent runs for
different books never see each other's updates.

    Coordinator ──update()──→ ProgressTracker ──callback(status)──→ WebSocket handler
                                                              ──→ CLI progress printer
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from shelfmind.models.rag import VectorizationStatus
from shelfmind.utils.logging import get_logger


class ProgressTracker:
    """Tracks and broadcasts per-document vectorization status.

    Both sync and async callbacks are supported; a callback receives the
    new :class:`VectorizationStatus`.  A failing listener is logged and
    skipped so it cannot stall the run that is reporting progress.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, VectorizationStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def update(self, status: VectorizationStatus) -> None:
        """Record *status* and notify the document's listeners."""
        self._statuses[status.document_id] = status

        self._logger.debug(
            "progress_update",
            document_id=status.document_id,
            state=status.state.value,
            processed=status.processed_chunks,
            total=status.total_chunks,
            progress=round(status.progress, 1),
        )

        await self._notify_listeners(status)

    def get_status(self, document_id: str) -> VectorizationStatus | None:
        """Return the last recorded status, or ``None`` if never tracked."""
        return self._statuses.get(document_id)

    def clear(self, document_id: str) -> None:
        """Forget the recorded status for *document_id* (listeners stay registered)."""
        self._statuses.pop(document_id, None)

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register *callback* to receive updates for *document_id*."""
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                document_id=document_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        """Remove a previously registered callback."""
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                document_id=document_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(document_id, None)

    async def _notify_listeners(self, status: VectorizationStatus) -> None:
        # Copy: a listener may unregister itself while being notified.
        for callback in list(self._listeners.get(status.document_id, [])):
            try:
                result = callback(status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=status.document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
