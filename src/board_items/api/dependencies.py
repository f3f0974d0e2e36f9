from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, status

from board_items.core.config import Settings, get_settings
from board_items.models import BoardSchema, load_board_schema
from board_items.services import (
    ItemsService,
    MondayClient,
    PaginationEngine,
    ResilientPageFetcher,
    RetryPolicy,
    RowDeriver,
    TTLCache,
)


@lru_cache(maxsize=1)
def _cached_schema(raw_json: str) -> BoardSchema:
    return load_board_schema(raw_json)


@lru_cache(maxsize=1)
def _cached_first_page_cache(ttl_seconds: float) -> TTLCache:
    return TTLCache(ttl_seconds)


@lru_cache(maxsize=1)
def _cached_monday_client(api_token: str, board_id: str, api_url: str, api_version: str) -> MondayClient:
    return MondayClient(api_token, board_id, api_url=api_url, api_version=api_version)


def _retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        fallback_page_sizes=settings.page_size_ladder,
        attempts_per_size=settings.attempts_per_page_size,
        max_attempt_timeout_seconds=settings.request_timeout_seconds,
        retry_after_cap_seconds=settings.retry_after_cap_seconds,
    )


@lru_cache(maxsize=1)
def _cached_service(settings: Settings) -> ItemsService:
    schema = _cached_schema(settings.board_schema_json)
    client = _cached_monday_client(
        settings.monday_api_token,
        settings.monday_board_id,
        settings.monday_api_url,
        settings.monday_api_version,
    )
    engine = PaginationEngine(
        fetcher=ResilientPageFetcher(client, _retry_policy(settings)),
        deriver=RowDeriver(schema),
    )
    cache = _cached_first_page_cache(settings.first_page_cache_ttl_seconds)
    return ItemsService(settings=settings, client=client, engine=engine, schema=schema, cache=cache)


def get_service(settings: Settings = Depends(get_settings)) -> ItemsService:
    return _cached_service(settings)


def require_debug_enabled(settings: Settings = Depends(get_settings)) -> None:
    if not settings.debug_endpoints_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Debug modes are disabled.")


def clear_dependency_caches() -> None:
    _cached_schema.cache_clear()
    _cached_first_page_cache.cache_clear()
    _cached_monday_client.cache_clear()
    _cached_service.cache_clear()
