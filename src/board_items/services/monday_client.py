from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import httpx

from board_items.core.exceptions import (
    ConfigurationError,
    CursorExpiredError,
    RateLimitedError,
    TransientUpstreamError,
    UpstreamBusinessError,
)
from board_items.models import BoardColumn, BoardItem, BoardSummary, ItemsPage

logger = logging.getLogger(__name__)

ITEM_FIELDS = """
      cursor
      items {
        id
        name
        column_values { id type text value }
      }
"""

FIRST_PAGE_QUERY = (
    """
query ($boardId: [ID!], $limit: Int!) {
  boards(ids: $boardId) {
    id
    name
    columns { id title type }
    items_page(limit: $limit) {"""
    + ITEM_FIELDS
    + """    }
  }
}
"""
)

NEXT_PAGE_QUERY = (
    """
query ($cursor: String!, $limit: Int!) {
  next_items_page(limit: $limit, cursor: $cursor) {"""
    + ITEM_FIELDS
    + """  }
}
"""
)

BOARDS_QUERY = """
query {
  boards(limit: 50, state: active) {
    id
    name
    kind
    state
  }
}
"""


class MondayClient:
    """Single GraphQL round trips against the board API.

    Each call raises one of the upstream error classes so the retry layer can
    decide between backing off, stepping down the page size, or giving up.
    """

    _CURSOR_EXPIRED_PATTERN = re.compile(r"cursor.{0,40}(expired|invalid|not\s+found)|CursorExpired", re.IGNORECASE)
    _RATE_LIMIT_CODES = frozenset(
        {
            "complexityexception",
            "complexity_budget_exhausted",
            "rate_limit_exceeded",
            "ratelimitexceeded",
            "maxconcurrencyexceeded",
            "ip_rate_limit_exceeded",
            "field_minute_rate_limit_exceeded",
        }
    )
    _TRANSIENT_CODES = frozenset({"internal_server_error", "internalservererror", "service_unavailable"})

    def __init__(
        self,
        api_token: str,
        board_id: str,
        api_url: str = "https://api.monday.com/v2",
        api_version: str = "2024-10",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_token = api_token
        self.board_id = board_id
        self.api_url = api_url
        self.api_version = api_version
        self._transport = transport

    async def fetch_items_page(self, limit: int, cursor: str | None, timeout_seconds: float) -> ItemsPage:
        if cursor:
            data = await self._post(NEXT_PAGE_QUERY, {"cursor": cursor, "limit": limit}, timeout_seconds)
            page = data.get("next_items_page")
            if not isinstance(page, dict):
                raise TransientUpstreamError("Board API response missing next_items_page")
            return self._to_page(page, limit, columns=[])

        data = await self._post(FIRST_PAGE_QUERY, {"boardId": [self.board_id], "limit": limit}, timeout_seconds)
        board = self._first_board(data)
        page = board.get("items_page")
        if not isinstance(page, dict):
            raise TransientUpstreamError("Board API response missing items_page")
        columns = [BoardColumn.model_validate(col) for col in board.get("columns") or [] if isinstance(col, dict)]
        return self._to_page(page, limit, columns=columns)

    async def fetch_raw_first_page(self, limit: int, timeout_seconds: float) -> dict[str, Any]:
        return await self._post(
            FIRST_PAGE_QUERY,
            {"boardId": [self.board_id], "limit": limit},
            timeout_seconds,
            raw=True,
        )

    async def list_boards(self, timeout_seconds: float) -> list[BoardSummary]:
        data = await self._post(BOARDS_QUERY, {}, timeout_seconds)
        boards = data.get("boards") or []
        return [BoardSummary.model_validate(board) for board in boards if isinstance(board, dict)]

    def _first_board(self, data: dict[str, Any]) -> dict[str, Any]:
        boards = data.get("boards")
        if not isinstance(boards, list) or not boards or not isinstance(boards[0], dict):
            raise UpstreamBusinessError(
                f"Board {self.board_id} was not found or is not visible to the configured token",
                errors=[{"message": "board not found", "boardId": self.board_id}],
            )
        return boards[0]

    @staticmethod
    def _to_page(page: dict[str, Any], limit: int, columns: list[BoardColumn]) -> ItemsPage:
        items = [BoardItem.model_validate(item) for item in page.get("items") or [] if isinstance(item, dict)]
        cursor = page.get("cursor") or None
        return ItemsPage(items=items, cursor=cursor, page_size=limit, columns=columns)

    async def _post(
        self,
        query: str,
        variables: dict[str, Any],
        timeout_seconds: float,
        raw: bool = False,
    ) -> dict[str, Any]:
        if not self.api_token:
            raise ConfigurationError("MONDAY_API_TOKEN")

        headers = {
            "Content-Type": "application/json",
            "Authorization": self.api_token,
            "API-Version": self.api_version,
        }
        timeout = max(0.1, timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                # wait_for cancels the in-flight request when the attempt budget runs out.
                response = await asyncio.wait_for(
                    client.post(self.api_url, json={"query": query, "variables": variables}, headers=headers),
                    timeout=timeout,
                )
        except asyncio.TimeoutError as exc:
            raise TransientUpstreamError(f"Board API request timed out after {timeout:.2f}s") from exc
        except httpx.TimeoutException as exc:
            raise TransientUpstreamError(f"Board API request timed out after {timeout:.2f}s") from exc
        except httpx.TransportError as exc:
            raise TransientUpstreamError(f"Board API network error: {exc.__class__.__name__}") from exc

        status = response.status_code
        if status == 429:
            retry_after = self._retry_after_seconds(response)
            logger.warning("Board API responded with HTTP 429; retry_after=%s", retry_after)
            raise RateLimitedError("Board API rate limit exceeded (HTTP 429)", retry_after_seconds=retry_after)
        if status >= 500:
            raise TransientUpstreamError(f"Board API request failed with HTTP {status}")

        try:
            payload = response.json()
        except ValueError as exc:
            if status >= 400:
                raise UpstreamBusinessError(f"Board API request failed with HTTP {status}", status_code=status) from exc
            raise TransientUpstreamError("Board API response is not valid JSON") from exc

        if not isinstance(payload, dict):
            raise TransientUpstreamError("Board API response has unexpected shape")
        if raw:
            return payload

        errors = self._collect_errors(payload)
        if errors:
            self._raise_for_errors(errors, status)
        if status >= 400:
            raise UpstreamBusinessError(f"Board API request failed with HTTP {status}", status_code=status)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise TransientUpstreamError("Board API response missing data")
        return data

    @staticmethod
    def _collect_errors(payload: dict[str, Any]) -> list[dict[str, Any]]:
        errors: list[dict[str, Any]] = []
        for error in payload.get("errors") or []:
            if isinstance(error, dict):
                errors.append(error)
            else:
                errors.append({"message": str(error)})
        # Older API versions report failures as top-level error_code/error_message.
        if payload.get("error_code") or payload.get("error_message"):
            errors.append(
                {
                    "message": payload.get("error_message") or payload.get("error_code"),
                    "extensions": {"code": payload.get("error_code")},
                }
            )
        return errors

    def _raise_for_errors(self, errors: list[dict[str, Any]], status: int) -> None:
        messages = [str(error.get("message") or "") for error in errors]
        codes: list[str] = []
        retry_in: float | None = None
        for error in errors:
            extensions = error.get("extensions") if isinstance(error.get("extensions"), dict) else {}
            code = extensions.get("code") or error.get("error_code")
            if code:
                codes.append(str(code))
            seconds = extensions.get("retry_in_seconds")
            if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
                retry_in = max(retry_in or 0.0, float(seconds))

        summary = "; ".join(message for message in messages if message) or "unknown error"
        if any(self._CURSOR_EXPIRED_PATTERN.search(text) for text in messages + codes):
            raise CursorExpiredError(f"Board API rejected the cursor: {summary}")
        lowered_codes = {code.lower() for code in codes}
        if lowered_codes & self._RATE_LIMIT_CODES or "rate limit" in summary.lower():
            raise RateLimitedError(f"Board API rate limit exceeded: {summary}", retry_after_seconds=retry_in)
        if lowered_codes & self._TRANSIENT_CODES:
            raise TransientUpstreamError(f"Board API internal error: {summary}")
        logger.info("Board API returned business errors status=%s codes=%s", status, codes)
        raise UpstreamBusinessError(f"Board API returned errors: {summary}", errors=errors, status_code=status)

    @staticmethod
    def _retry_after_seconds(response: httpx.Response) -> float | None:
        raw = response.headers.get("Retry-After")
        if raw is None:
            return None
        try:
            value = float(raw)
        except ValueError:
            return None
        return max(0.0, value)
