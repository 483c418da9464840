"""Overlay WebSocket connection lifecycle management."""
from typing import Dict

from fastapi import WebSocket
from loguru import logger

from ..events import Event


class OverlayConnectionManager:
    """Tracks overlay clients and broadcasts observer events to them."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, client_id: str, websocket: WebSocket) -> bool:
        """Accept a new overlay client."""
        try:
            await websocket.accept()
            self.active_connections[client_id] = websocket
            logger.info(f"[Overlay] Client {client_id} connected. Total connections: {len(self.active_connections)}")
            return True
        except Exception as e:
            logger.error(f"[Overlay] Failed to accept connection for {client_id}: {e}")
            return False

    async def disconnect(self, client_id: str) -> None:
        websocket = self.active_connections.pop(client_id, None)
        if websocket:
            try:
                await websocket.close()
            except Exception:
                pass  # already closed
            logger.info(f"[Overlay] Client {client_id} disconnected. Total connections: {len(self.active_connections)}")

    def get_connection_count(self) -> int:
        return len(self.active_connections)

    async def broadcast(self, data: dict) -> int:
        """Send a JSON message to every overlay client."""
        sent_count = 0

        for client_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.send_json(data)
                sent_count += 1
            except Exception as e:
                logger.warning(f"[Overlay] Failed to broadcast to {client_id}: {e}")
                self.active_connections.pop(client_id, None)

        return sent_count

    async def on_event(self, event: Event) -> None:
        """EventBus listener."""
        if self.active_connections:
            await self.broadcast(event.to_dict())
