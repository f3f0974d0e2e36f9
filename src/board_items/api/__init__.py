from board_items.api.dependencies import get_service
from board_items.api.routes import router

__all__ = ["get_service", "router"]
