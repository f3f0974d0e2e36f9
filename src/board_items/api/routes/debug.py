import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from board_items.api.dependencies import get_service, require_debug_enabled
from board_items.api.route_utils import SERVICE_ERROR_RESPONSES, call_service_or_http, error_body
from board_items.services import ItemsService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Debug"], dependencies=[Depends(require_debug_enabled)])

DEBUG_MODES = ("env", "boards", "raw", "schema")
_MODE_ALIASES = {"1": "raw", "true": "raw"}
_NO_DEBUG_VALUES = frozenset({"", "0", "false", "no", "off"})


def debug_requested(mode: str | None) -> bool:
    return mode is not None and mode.strip().lower() not in _NO_DEBUG_VALUES


async def run_debug_mode(mode: str, service: ItemsService, page_size: int = 100) -> JSONResponse:
    normalized = _MODE_ALIASES.get(mode.strip().lower(), mode.strip().lower())
    if normalized not in DEBUG_MODES:
        raise HTTPException(
            status_code=400,
            detail=error_body("invalid_request", f"Unknown debug mode {mode!r}; expected one of {', '.join(DEBUG_MODES)}"),
        )
    logger.info("Debug mode requested: %s", normalized)

    if normalized == "env":
        return JSONResponse(jsonable_encoder(service.env_report()))

    async def _run():
        if normalized == "boards":
            return await service.visible_boards()
        if normalized == "raw":
            return await service.raw_first_page(page_size)
        return await service.schema_report()

    payload = await call_service_or_http(_run, logger=logger, endpoint=f"debug/{normalized}")
    return JSONResponse(jsonable_encoder(payload))


@router.get(
    "/api/debug/{mode}",
    summary="Operator diagnostics for token, board visibility and column mapping",
    description=(
        "`env` reports whether the token and board id are configured, `boards` lists boards the token can see, "
        "`raw` returns the untouched first upstream page, `schema` compares the field mapping with board columns."
    ),
    responses=SERVICE_ERROR_RESPONSES,
)
async def debug_mode(
    mode: str,
    limit: int = Query(100, ge=1, le=500),
    service: ItemsService = Depends(get_service),
) -> JSONResponse:
    return await run_debug_mode(mode, service, page_size=limit)
