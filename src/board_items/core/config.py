from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_BOARD_ID = "2761790925"
DEFAULT_API_URL = "https://api.monday.com/v2"
DEFAULT_API_VERSION = "2024-10"


@dataclass(frozen=True)
class Settings:
    monday_api_token: str
    monday_board_id: str
    monday_api_url: str = DEFAULT_API_URL
    monday_api_version: str = DEFAULT_API_VERSION
    request_timeout_seconds: float = 6.0
    invocation_budget_seconds: float = 8.5
    page_size_ladder: tuple[int, ...] = (50, 25, 10)
    attempts_per_page_size: int = 2
    retry_after_cap_seconds: float = 4.0
    first_page_cache_ttl_seconds: float = 30.0
    board_schema_json: str = ""
    cors_allow_origins: tuple[str, ...] = ("*",)
    debug_endpoints_enabled: bool = True


def _strip_wrapping_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_dotenv_if_present() -> None:
    env_paths = [
        Path.cwd() / ".env",
        Path(__file__).resolve().parents[3] / ".env",
    ]
    for env_path in env_paths:
        if not env_path.exists():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = _strip_wrapping_quotes(value.strip())
            if key:
                os.environ.setdefault(key, value)
        break


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_first(names: tuple[str, ...], default: str = "") -> str:
    # Hosting dashboards have used several names for the same value.
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def _env_int_tuple(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    sizes: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            size = int(part)
        except ValueError:
            continue
        if size > 0:
            sizes.append(size)
    return tuple(sizes) if sizes else default


def _env_csv(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    values = tuple(part.strip() for part in raw.split(",") if part.strip())
    return values or default


def get_settings() -> Settings:
    _load_dotenv_if_present()
    return Settings(
        monday_api_token=_env_first(("MONDAY_API_TOKEN", "MONDAY_TOKEN", "MONDAY_API_KEY")),
        monday_board_id=_env_first(("MONDAY_BOARD_ID", "BOARD_ID"), DEFAULT_BOARD_ID),
        monday_api_url=os.getenv("MONDAY_API_URL", DEFAULT_API_URL),
        monday_api_version=os.getenv("MONDAY_API_VERSION", DEFAULT_API_VERSION),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "6")),
        invocation_budget_seconds=float(os.getenv("INVOCATION_BUDGET_SECONDS", "8.5")),
        page_size_ladder=_env_int_tuple("PAGE_SIZE_LADDER", (50, 25, 10)),
        attempts_per_page_size=max(1, int(os.getenv("ATTEMPTS_PER_PAGE_SIZE", "2"))),
        retry_after_cap_seconds=float(os.getenv("RETRY_AFTER_CAP_SECONDS", "4")),
        first_page_cache_ttl_seconds=float(os.getenv("FIRST_PAGE_CACHE_TTL_SECONDS", "30")),
        board_schema_json=os.getenv("BOARD_SCHEMA_JSON", ""),
        cors_allow_origins=_env_csv("CORS_ALLOW_ORIGINS", ("*",)),
        debug_endpoints_enabled=_env_bool("DEBUG_ENDPOINTS_ENABLED", True),
    )


get_settings = lru_cache(maxsize=1)(get_settings)


def clear_settings_cache() -> None:
    get_settings.cache_clear()  # type: ignore[attr-defined]
