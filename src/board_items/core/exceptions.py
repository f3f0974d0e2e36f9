from __future__ import annotations

from typing import Any


class AppValidationError(ValueError):
    """Raised when user input or domain constraints are invalid."""


class ConfigurationError(RuntimeError):
    """Raised before any network call when a required setting is absent."""

    def __init__(self, setting: str, message: str | None = None) -> None:
        self.setting = setting
        super().__init__(message or f"{setting} is missing in environment variables")


class UpstreamServiceError(RuntimeError):
    """Raised when the board API fails or returns an invalid payload."""


class UpstreamBusinessError(UpstreamServiceError):
    """Non-retryable upstream rejection (bad query, auth failure, missing board)."""

    def __init__(self, message: str, errors: list[Any] | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.status_code = status_code


class TransientUpstreamError(UpstreamServiceError):
    """Network abort, timeout or 5xx; safe to retry."""


class RateLimitedError(TransientUpstreamError):
    def __init__(self, message: str, retry_after_seconds: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class CursorExpiredError(UpstreamServiceError):
    """The continuation cursor is no longer accepted upstream."""


class UpstreamUnavailableError(UpstreamServiceError):
    """Every page size and attempt was used up without a successful response."""

    def __init__(self, message: str, *, attempts: int, last_page_size: int | None, last_error: Exception | None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_page_size = last_page_size
        self.last_error = last_error
