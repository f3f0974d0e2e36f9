import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from board_items.api.dependencies import get_service, require_debug_enabled
from board_items.api.route_utils import SERVICE_ERROR_RESPONSES, call_service_or_http
from board_items.api.routes.debug import debug_requested, run_debug_mode
from board_items.core.config import Settings, get_settings
from board_items.models import ItemsResponse
from board_items.services import ItemsService, build_row_filter

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Items"])


@router.get(
    "/api/items",
    response_model=ItemsResponse,
    summary="Fetch the next batch of shareable board items",
    description=(
        "Follows the board cursor until at least `minFirst` rows passed the shareable filter, the board is "
        "exhausted, `maxPages` pages were read, or the invocation time budget runs out. Call again with the "
        "returned `cursor` until it is null."
    ),
    responses=SERVICE_ERROR_RESPONSES,
)
@router.get("/.netlify/functions/items", response_model=ItemsResponse, include_in_schema=False)
async def list_items(
    cursor: str | None = Query(None, description="Continuation cursor from the previous response"),
    limit: int = Query(100, ge=1, le=500, description="Upstream page size"),
    page_size: int | None = Query(None, alias="pageSize", ge=1, le=500),
    min_first: int = Query(20, alias="minFirst", ge=0, description="Minimum rows to gather in this call"),
    max_pages: int = Query(5, alias="maxPages", ge=1, le=50),
    progressive: bool = Query(False, description="Read exactly one upstream page"),
    q: str | None = Query(None, description="Free-text search over name and category fields"),
    eq: list[str] = Query(default=[], description="Categorical filter, field:value"),
    range_: list[str] = Query(default=[], alias="range", description="Numeric filter, field:min:max"),
    debug: str | None = Query(None, description="Diagnostics: env, boards, raw (or 1), schema"),
    service: ItemsService = Depends(get_service),
    settings: Settings = Depends(get_settings),
) -> ItemsResponse | JSONResponse:
    effective_page_size = page_size or limit
    if debug_requested(debug):
        require_debug_enabled(settings)
        return await run_debug_mode(debug, service, page_size=effective_page_size)

    logger.info(
        "Handling items request cursor=%s page_size=%d min_first=%d max_pages=%d progressive=%s filtered=%s",
        "yes" if cursor else "no",
        effective_page_size,
        min_first,
        max_pages,
        progressive,
        bool(q or eq or range_),
    )

    async def _fetch() -> ItemsResponse:
        row_filter = build_row_filter(q, eq, range_, service.schema.category_fields)
        return await service.get_items(
            cursor=cursor,
            page_size=effective_page_size,
            min_rows=min_first,
            max_pages=max_pages,
            progressive=progressive,
            row_filter=row_filter,
        )

    response = await call_service_or_http(
        _fetch,
        logger=logger,
        endpoint="items",
        context={"page_size": effective_page_size, "cursor": "yes" if cursor else "no"},
    )
    logger.info(
        "Items request completed count=%d more=%s stop=%s",
        response.count,
        response.cursor is not None,
        response.meta.stop_reason,
    )
    return response
