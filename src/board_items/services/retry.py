from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

from board_items.core.exceptions import RateLimitedError, TransientUpstreamError, UpstreamUnavailableError
from board_items.models import ItemsPage
from board_items.services.monday_client import MondayClient
from board_items.services.session import FetchSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    fallback_page_sizes: tuple[int, ...] = (50, 25, 10)
    attempts_per_size: int = 2
    attempt_timeout_fraction: float = 0.6
    max_attempt_timeout_seconds: float = 6.0
    min_attempt_seconds: float = 0.75
    base_backoff_seconds: float = 0.25
    jitter_seconds: float = 0.2
    rate_limit_backoff_seconds: float = 2.0
    retry_after_cap_seconds: float = 4.0

    def ladder(self, requested_size: int) -> list[int]:
        sizes = [requested_size]
        for size in sorted(set(self.fallback_page_sizes), reverse=True):
            if 0 < size < sizes[-1]:
                sizes.append(size)
        return sizes

    def attempt_timeout(self, remaining_seconds: float) -> float:
        return min(self.max_attempt_timeout_seconds, remaining_seconds * self.attempt_timeout_fraction)


class ResilientPageFetcher:
    """Fetches one page, walking down a ladder of page sizes on transient failures.

    Large pages are the ones the board API aborts under load, so each size
    gets a bounded number of attempts before the next smaller size is tried.
    """

    def __init__(
        self,
        client: MondayClient,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def fetch(self, page_size: int, cursor: str | None, session: FetchSession) -> ItemsPage:
        ladder = self.policy.ladder(page_size)
        attempts = 0
        last_error: TransientUpstreamError | None = None
        last_size: int | None = None
        total_slots = len(ladder) * self.policy.attempts_per_size

        for size in ladder:
            for attempt in range(self.policy.attempts_per_size):
                remaining = session.remaining_seconds()
                if remaining < self.policy.min_attempt_seconds:
                    raise self._exhausted(
                        f"time budget exhausted before attempt {attempts + 1} ({remaining:.2f}s left)",
                        attempts,
                        last_size,
                        last_error,
                    )
                timeout = self.policy.attempt_timeout(remaining)
                attempts += 1
                session.attempts += 1
                last_size = size
                try:
                    page = await self.client.fetch_items_page(size, cursor, timeout)
                except TransientUpstreamError as exc:
                    last_error = exc
                    if attempts >= total_slots:
                        break
                    delay = self._backoff_seconds(exc, attempt)
                    if delay + self.policy.min_attempt_seconds > session.remaining_seconds():
                        raise self._exhausted(
                            f"backoff of {delay:.2f}s would overrun the time budget",
                            attempts,
                            last_size,
                            last_error,
                        ) from exc
                    logger.warning(
                        "Board page request failed size=%d attempt=%d/%d cursor=%s: %s; retrying in %.2fs",
                        size,
                        attempt + 1,
                        self.policy.attempts_per_size,
                        "yes" if cursor else "no",
                        exc,
                        delay,
                    )
                    await self._sleep(delay)
                    continue
                if size != page_size:
                    logger.info("Board page succeeded at reduced size=%d (requested %d)", size, page_size)
                return page
            if size != ladder[-1]:
                logger.info("Stepping page size down from %d after %d failed attempts", size, self.policy.attempts_per_size)

        raise self._exhausted("all page sizes and attempts failed", attempts, last_size, last_error)

    def _backoff_seconds(self, exc: TransientUpstreamError, attempt: int) -> float:
        if isinstance(exc, RateLimitedError):
            requested = exc.retry_after_seconds or 0.0
            return min(
                max(self.policy.rate_limit_backoff_seconds, requested),
                max(self.policy.retry_after_cap_seconds, self.policy.rate_limit_backoff_seconds),
            )
        jitter = self._rng.uniform(0.0, self.policy.jitter_seconds) if self.policy.jitter_seconds > 0 else 0.0
        return self.policy.base_backoff_seconds * (2**attempt) + jitter

    @staticmethod
    def _exhausted(
        reason: str,
        attempts: int,
        last_size: int | None,
        last_error: Exception | None,
    ) -> UpstreamUnavailableError:
        detail = f"Board API unavailable: {reason}"
        if last_error is not None:
            detail = f"{detail}. last_error={last_error}"
        logger.error("%s attempts=%d last_page_size=%s", detail, attempts, last_size)
        return UpstreamUnavailableError(detail, attempts=attempts, last_page_size=last_size, last_error=last_error)
