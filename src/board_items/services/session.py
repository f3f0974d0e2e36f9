from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass
class FetchSession:
    """Per-invocation bookkeeping; created when a request arrives, dropped with the response."""

    budget_seconds: float
    cursor: str | None = None
    clock: Callable[[], float] = time.monotonic
    started_at: float = field(init=False)
    rows: list[dict[str, Any]] = field(default_factory=list)
    seen_ids: set[str] = field(default_factory=set)
    pages_fetched: int = 0
    attempts: int = 0

    def __post_init__(self) -> None:
        self.started_at = self.clock()

    def elapsed_seconds(self) -> float:
        return self.clock() - self.started_at

    def elapsed_ms(self) -> float:
        return round(self.elapsed_seconds() * 1000.0, 2)

    def remaining_seconds(self) -> float:
        return max(0.0, self.budget_seconds - self.elapsed_seconds())

    def add_rows(self, rows: list[dict[str, Any]]) -> int:
        added = 0
        for row in rows:
            row_id = str(row.get("id"))
            if row_id in self.seen_ids:
                continue
            self.seen_ids.add(row_id)
            self.rows.append(row)
            added += 1
        return added
