"""Overlay WebSocket routes.

Overlay clients (browser sources) connect to ``/overlay-ws`` and receive
every observer event as ``{"type": ..., "data": ...}``.
"""

from uuid import uuid4

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect
from loguru import logger

from .connection_manager import OverlayConnectionManager


def init_overlay_ws_route(manager: OverlayConnectionManager) -> APIRouter:
    """
    Create the router for the ``/overlay-ws`` endpoint.

    Args:
        manager: Connection manager shared with the event listener.

    Returns:
        APIRouter: Configured router with WebSocket endpoint.
    """
    router = APIRouter()

    @router.websocket("/overlay-ws", name="overlay_websocket")
    async def overlay_endpoint(websocket: WebSocket):
        client_id = str(uuid4())
        if not await manager.connect(client_id, websocket):
            return
        try:
            while True:
                # Overlays only listen; incoming frames are ignored
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"[Overlay] Error in WebSocket connection: {e}")
        finally:
            await manager.disconnect(client_id)

    return router
