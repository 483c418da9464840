"""Overlay HTTP/WebSocket server running inside the main event loop."""

from typing import Optional

import uvicorn
from fastapi import FastAPI
from loguru import logger

from .connection_manager import OverlayConnectionManager
from .routes import init_overlay_ws_route


def create_overlay_app(manager: OverlayConnectionManager) -> FastAPI:
    app = FastAPI(title="Chat Plays Overlay")
    app.include_router(init_overlay_ws_route(manager))

    @app.get("/health")
    async def health():
        return {"status": "ok", "connections": manager.get_connection_count()}

    return app


class OverlayServer:
    """Serves the overlay app with uvicorn on the running loop."""

    def __init__(self, manager: OverlayConnectionManager, host: str = "localhost", port: int = 3456):
        self.manager = manager
        self.host = host
        self.port = port
        self.app = create_overlay_app(manager)
        self._server: Optional[uvicorn.Server] = None

    async def serve(self) -> None:
        config = uvicorn.Config(
            self.app, host=self.host, port=self.port, log_level="warning"
        )
        self._server = uvicorn.Server(config)
        logger.info(f"[Overlay] Serving overlay events at ws://{self.host}:{self.port}/overlay-ws")
        await self._server.serve()

    def stop(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
