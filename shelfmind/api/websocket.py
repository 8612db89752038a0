"""WebSocket endpoint for real-time vectorization progress.

    client                              server
    ──────                              ──────
    connect /ws/vectorize/{id}  ──────→ accept, register_listener(callback)
                                ←────── current status snapshot
                                ←────── one message per status change
    close                       ──────→ unregister_listener(callback)

Message format is :class:`~shelfmind.api.schemas.VectorizationStatusResponse`
as JSON.
"""

from __future__ import annotations

import contextlib

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from shelfmind.api.schemas import VectorizationStatusResponse
from shelfmind.models.rag import VectorizationStatus
from shelfmind.services.vectorization_coordinator import VectorizationCoordinator
from shelfmind.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_vectorize_progress(websocket: WebSocket, document_id: str) -> None:
    """Stream status updates for *document_id* until the client disconnects."""
    coordinator: VectorizationCoordinator = websocket.app.state.coordinator
    tracker = coordinator.progress_tracker

    await websocket.accept()
    _logger.info("websocket_connected", document_id=document_id)

    async def _on_status(status: VectorizationStatus) -> None:
        # The socket may close between updates; cleanup happens in finally.
        with contextlib.suppress(Exception):
            await websocket.send_json(
                VectorizationStatusResponse.from_status(status).model_dump(mode="json")
            )

    tracker.register_listener(document_id, _on_status)

    try:
        status = await coordinator.get_vectorization_status(document_id)
        await websocket.send_json(
            VectorizationStatusResponse.from_status(status).model_dump(mode="json")
        )

        # Blocks until the client disconnects.
        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", document_id=document_id)

    finally:
        tracker.unregister_listener(document_id, _on_status)
        _logger.debug("websocket_listener_cleaned_up", document_id=document_id)
