from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from board_items.core.exceptions import CursorExpiredError, UpstreamUnavailableError
from board_items.models import BoardColumn
from board_items.services.derivation import RowDeriver
from board_items.services.retry import ResilientPageFetcher
from board_items.services.session import FetchSession

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    PROGRESSIVE = "progressive"
    MIN_ROWS = "min_rows"
    EXHAUSTED = "exhausted"
    MAX_PAGES = "max_pages"
    TIME_BUDGET = "time_budget"
    CURSOR_EXPIRED = "cursor_expired"


@dataclass
class FetchResult:
    rows: list[dict[str, Any]]
    cursor: str | None
    elapsed_ms: float
    pages_fetched: int
    attempts: int
    stop_reason: StopReason
    cursor_reset: bool = False
    columns: list[BoardColumn] = field(default_factory=list)


class PaginationEngine:
    """Follows board cursors one page at a time until a stop condition holds.

    Pages are strictly sequential because each cursor comes from the previous
    response. The returned cursor is always the upstream position after the
    last page whose rows were accumulated.
    """

    def __init__(
        self,
        fetcher: ResilientPageFetcher,
        deriver: RowDeriver,
        min_page_seconds: float = 1.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetcher = fetcher
        self.deriver = deriver
        self.min_page_seconds = min_page_seconds
        self._clock = clock

    async def run(
        self,
        *,
        cursor: str | None,
        page_size: int,
        min_rows: int,
        max_pages: int,
        progressive: bool,
        budget_seconds: float,
        row_filter: Callable[[dict[str, Any]], bool] | None = None,
    ) -> FetchResult:
        session = FetchSession(budget_seconds=budget_seconds, cursor=cursor, clock=self._clock)
        columns: list[BoardColumn] = []

        while True:
            try:
                page = await self.fetcher.fetch(page_size, session.cursor, session)
            except CursorExpiredError as exc:
                # The caller has to rescan from the start; rows already gathered are still valid.
                logger.warning(
                    "Cursor expired after %d pages (%d rows kept); forcing restart: %s",
                    session.pages_fetched,
                    len(session.rows),
                    exc,
                )
                return self._result(session, StopReason.CURSOR_EXPIRED, columns, cursor=None, cursor_reset=True)
            except UpstreamUnavailableError:
                logger.warning(
                    "Upstream unavailable after %d pages (%d rows discarded); caller retries with its original cursor",
                    session.pages_fetched,
                    len(session.rows),
                )
                raise

            session.pages_fetched += 1
            if page.columns:
                columns = page.columns
            rows = self.deriver.derive_many(page.items)
            if row_filter is not None:
                rows = [row for row in rows if row_filter(row)]
            added = session.add_rows(rows)
            session.cursor = page.cursor
            logger.info(
                "Consumed page %d size=%d raw=%d kept=%d total=%d more=%s",
                session.pages_fetched,
                page.page_size,
                len(page.items),
                added,
                len(session.rows),
                page.cursor is not None,
            )

            reason = self._stop_reason(session, min_rows, max_pages, progressive)
            if reason is not None:
                return self._result(session, reason, columns, cursor=session.cursor)

    def _stop_reason(
        self,
        session: FetchSession,
        min_rows: int,
        max_pages: int,
        progressive: bool,
    ) -> StopReason | None:
        if progressive:
            return StopReason.PROGRESSIVE
        if len(session.rows) >= min_rows:
            return StopReason.MIN_ROWS
        if session.cursor is None:
            return StopReason.EXHAUSTED
        if session.pages_fetched >= max_pages:
            return StopReason.MAX_PAGES
        if session.remaining_seconds() < self.min_page_seconds:
            return StopReason.TIME_BUDGET
        return None

    @staticmethod
    def _result(
        session: FetchSession,
        reason: StopReason,
        columns: list[BoardColumn],
        cursor: str | None,
        cursor_reset: bool = False,
    ) -> FetchResult:
        logger.info(
            "Pagination stopped reason=%s pages=%d rows=%d attempts=%d elapsed_ms=%.2f",
            reason.value,
            session.pages_fetched,
            len(session.rows),
            session.attempts,
            session.elapsed_ms(),
        )
        return FetchResult(
            rows=session.rows,
            cursor=cursor,
            elapsed_ms=session.elapsed_ms(),
            pages_fetched=session.pages_fetched,
            attempts=session.attempts,
            stop_reason=reason,
            cursor_reset=cursor_reset,
            columns=columns,
        )
