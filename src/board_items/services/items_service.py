from __future__ import annotations

import logging
from typing import Any

from board_items.core.config import Settings
from board_items.core.exceptions import AppValidationError, ConfigurationError
from board_items.models import BoardSchema, BoardSummary, EnvDebugResponse, ItemsMeta, ItemsResponse
from board_items.services.cache import TTLCache
from board_items.services.filters import RowFilter
from board_items.services.monday_client import MondayClient
from board_items.services.pagination import PaginationEngine, StopReason

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500
MAX_PAGES_PER_CALL = 50


class ItemsService:
    def __init__(
        self,
        settings: Settings,
        client: MondayClient,
        engine: PaginationEngine,
        schema: BoardSchema,
        cache: TTLCache | None = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.engine = engine
        self.schema = schema
        self.cache = cache

    def _require_token(self) -> None:
        if not self.settings.monday_api_token:
            raise ConfigurationError(
                "MONDAY_API_TOKEN",
                "MONDAY_API_TOKEN is missing in environment variables (also checked MONDAY_TOKEN, MONDAY_API_KEY)",
            )

    @staticmethod
    def _validate(page_size: int, min_rows: int, max_pages: int) -> None:
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise AppValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if min_rows < 0:
            raise AppValidationError("minFirst must not be negative")
        if not 1 <= max_pages <= MAX_PAGES_PER_CALL:
            raise AppValidationError(f"maxPages must be between 1 and {MAX_PAGES_PER_CALL}")

    async def get_items(
        self,
        *,
        cursor: str | None,
        page_size: int,
        min_rows: int,
        max_pages: int,
        progressive: bool,
        row_filter: RowFilter | None = None,
    ) -> ItemsResponse:
        self._validate(page_size, min_rows, max_pages)
        self._require_token()

        cache_key: tuple[Any, ...] | None = None
        if self.cache is not None and not cursor and (row_filter is None or row_filter.is_empty):
            cache_key = (self.settings.monday_board_id, page_size, min_rows, progressive)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("First page served from cache key=%s", cache_key)
                return cached.model_copy(update={"meta": cached.meta.model_copy(update={"cache_hit": True})})

        result = await self.engine.run(
            cursor=cursor or None,
            page_size=page_size,
            min_rows=min_rows,
            max_pages=max_pages,
            progressive=progressive,
            budget_seconds=self.settings.invocation_budget_seconds,
            row_filter=None if row_filter is None or row_filter.is_empty else row_filter,
        )
        response = ItemsResponse(
            items=result.rows,
            cursor=result.cursor,
            count=len(result.rows),
            meta=ItemsMeta(
                pages_fetched=result.pages_fetched,
                attempts=result.attempts,
                elapsed_ms=result.elapsed_ms,
                stop_reason=result.stop_reason.value,
                cursor_reset=result.cursor_reset,
            ),
        )
        if cache_key is not None and result.stop_reason != StopReason.CURSOR_EXPIRED:
            self.cache.put(cache_key, response)
        return response

    def env_report(self) -> EnvDebugResponse:
        token = self.settings.monday_api_token
        report = EnvDebugResponse(
            has_token=bool(token),
            approx_length=len(token),
            token_starts_with=token[:3],
            board_id=self.settings.monday_board_id,
            api_version=self.settings.monday_api_version,
        )
        logger.info("Env check has_token=%s board_id=%s", report.has_token, report.board_id)
        return report

    async def visible_boards(self) -> list[BoardSummary]:
        self._require_token()
        boards = await self.client.list_boards(self.settings.request_timeout_seconds)
        logger.info("Token can see %d boards", len(boards))
        return boards

    async def raw_first_page(self, page_size: int) -> dict[str, Any]:
        self._validate(page_size, 0, 1)
        self._require_token()
        return await self.client.fetch_raw_first_page(page_size, self.settings.request_timeout_seconds)

    async def schema_report(self) -> dict[str, Any]:
        self._require_token()
        page = await self.client.fetch_items_page(1, None, self.settings.request_timeout_seconds)
        board_column_ids = {column.id for column in page.columns}
        unmapped = sorted(
            name for name, spec in self.schema.columns.items() if spec.column_id not in board_column_ids
        )
        return {
            "schema": self.schema.model_dump(mode="json"),
            "boardColumns": [column.model_dump() for column in page.columns],
            "fieldsMissingOnBoard": unmapped,
        }
