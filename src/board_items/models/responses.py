from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ItemsMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pages_fetched: int = Field(alias="pagesFetched")
    attempts: int
    elapsed_ms: float = Field(alias="elapsedMs")
    stop_reason: str = Field(alias="stopReason")
    cursor_reset: bool = Field(default=False, alias="cursorReset")
    cache_hit: bool = Field(default=False, alias="cacheHit")


class ItemsResponse(BaseModel):
    items: list[dict[str, Any]]
    cursor: str | None = None
    count: int
    meta: ItemsMeta


class EnvDebugResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_token: bool = Field(alias="hasToken")
    approx_length: int = Field(alias="approxLength")
    token_starts_with: str = Field(alias="tokenStartsWith")
    board_id: str = Field(alias="boardId")
    api_version: str = Field(alias="apiVersion")


class BoardSummary(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str | None = None
    kind: str | None = None
    state: str | None = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    error: str
    detail: Any = None
