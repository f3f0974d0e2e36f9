from fastapi import APIRouter

from board_items.api.routes.debug import router as debug_router
from board_items.api.routes.items import router as items_router

router = APIRouter()
router.include_router(items_router)
router.include_router(debug_router)

__all__ = ["router"]
