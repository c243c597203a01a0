"""WebSocket support for real-time render progress notifications.

This module provides:
- WebSocketManager: Manages the connected UI clients
- RenderProgressNotifier: Turns render session events into messages
- Message creation helpers: Standardized message formats
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from cutline.render.sequencer import RenderProgress

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketManager:
    """Manages WebSocket connections for render progress updates.

    A render session is process wide, so every client receives every
    message.
    """

    def __init__(self):
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        if websocket in self._connections:
            self._connections.remove(websocket)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Broadcast a message to all connected clients."""
        disconnected = []
        for websocket in list(self._connections):
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                logger.info("[WS] Client disconnected during broadcast")
                disconnected.append(websocket)

        for ws in disconnected:
            self.disconnect(ws)

    def get_connection_count(self) -> int:
        """Get the number of connected clients."""
        return len(self._connections)


class RenderProgressNotifier:
    """High-level API for sending render progress notifications.

    The notify_* methods match the controller's on_progress, on_complete
    and on_error callbacks.
    """

    def __init__(self, manager: WebSocketManager):
        self._manager = manager

    async def notify_progress(self, progress: RenderProgress) -> None:
        """Send a progress update to all connected clients."""
        await self._manager.broadcast(create_progress_message(progress))

    async def notify_complete(self, output_path: str) -> None:
        """Send a completion notification to all connected clients."""
        await self._manager.broadcast(create_complete_message(output_path))

    async def notify_error(self, error_message: str, error_code: Optional[str] = None) -> None:
        """Send an error notification to all connected clients."""
        await self._manager.broadcast(create_error_message(error_message, error_code))


def create_progress_message(progress: RenderProgress) -> dict[str, Any]:
    """Create a standardized progress message."""
    return {
        "type": "progress",
        "status": "rendering",
        **progress.to_dict(),
    }


def create_complete_message(output_path: str) -> dict[str, Any]:
    """Create a standardized completion message."""
    return {
        "type": "complete",
        "status": "completed",
        "percent": 100.0,
        "output_path": output_path,
    }


def create_error_message(error_message: str, error_code: Optional[str] = None) -> dict[str, Any]:
    """Create a standardized error message."""
    return {
        "type": "error",
        "status": "failed",
        "error_message": error_message,
        "error_code": error_code,
    }


# Global WebSocket manager instance
websocket_manager = WebSocketManager()
progress_notifier = RenderProgressNotifier(websocket_manager)


@router.websocket("/render/ws")
async def render_updates_socket(websocket: WebSocket) -> None:
    await websocket_manager.connect(websocket)
    try:
        while True:
            # Clients only listen; incoming text keeps the connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        websocket_manager.disconnect(websocket)
