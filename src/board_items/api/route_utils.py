from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import HTTPException

from board_items.core.exceptions import (
    ConfigurationError,
    UpstreamBusinessError,
    UpstreamServiceError,
    UpstreamUnavailableError,
)
from board_items.models import ErrorResponse

T = TypeVar("T")

SERVICE_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid query parameters."},
    500: {"model": ErrorResponse, "description": "Server configuration is incomplete (for example a missing API token)."},
    502: {"model": ErrorResponse, "description": "Board API rejected the request; upstream error detail is passed through."},
    503: {"model": ErrorResponse, "description": "Board API stayed unavailable after every retry and page size."},
}


def error_body(error: str, detail: Any, **extra: Any) -> dict[str, Any]:
    body = {"error": error, "detail": detail}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


def _context_text(context: dict[str, Any] | None) -> str:
    if not context:
        return ""
    return " " + " ".join(f"{key}={value}" for key, value in context.items())


async def call_service_or_http(
    call: Callable[[], Awaitable[T]],
    *,
    logger: logging.Logger,
    endpoint: str,
    context: dict[str, Any] | None = None,
) -> T:
    try:
        return await call()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=error_body("invalid_request", str(exc))) from exc
    except ConfigurationError as exc:
        logger.error("Configuration error on %s endpoint: setting=%s", endpoint, exc.setting)
        raise HTTPException(
            status_code=500,
            detail=error_body("configuration_error", str(exc), setting=exc.setting),
        ) from exc
    except UpstreamBusinessError as exc:
        logger.warning("Board API rejected %s request%s: detail=%s", endpoint, _context_text(context), str(exc))
        raise HTTPException(
            status_code=502,
            detail=error_body("upstream_error", str(exc), errors=exc.errors, upstreamStatus=exc.status_code),
        ) from exc
    except UpstreamUnavailableError as exc:
        logger.warning("Board API unavailable on %s endpoint%s: detail=%s", endpoint, _context_text(context), str(exc))
        raise HTTPException(
            status_code=503,
            detail=error_body(
                "upstream_unavailable",
                str(exc),
                attempts=exc.attempts,
                lastPageSize=exc.last_page_size,
            ),
        ) from exc
    except UpstreamServiceError as exc:
        logger.warning("Upstream failure on %s endpoint%s: detail=%s", endpoint, _context_text(context), str(exc))
        raise HTTPException(status_code=502, detail=error_body("upstream_error", str(exc))) from exc
