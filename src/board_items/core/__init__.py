from board_items.core.config import Settings, get_settings
from board_items.core.exceptions import (
    AppValidationError,
    ConfigurationError,
    CursorExpiredError,
    RateLimitedError,
    TransientUpstreamError,
    UpstreamBusinessError,
    UpstreamServiceError,
    UpstreamUnavailableError,
)
from board_items.core.logging import configure_logging

__all__ = [
    "Settings",
    "get_settings",
    "AppValidationError",
    "ConfigurationError",
    "CursorExpiredError",
    "RateLimitedError",
    "TransientUpstreamError",
    "UpstreamBusinessError",
    "UpstreamServiceError",
    "UpstreamUnavailableError",
    "configure_logging",
]
