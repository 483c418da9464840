from .connection_manager import OverlayConnectionManager
from .routes import init_overlay_ws_route
from .server import OverlayServer, create_overlay_app

__all__ = [
    "OverlayConnectionManager",
    "OverlayServer",
    "create_overlay_app",
    "init_overlay_ws_route",
]
