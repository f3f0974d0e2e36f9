from board_items.services.cache import TTLCache
from board_items.services.derivation import RowDeriver
from board_items.services.filters import RowFilter, build_row_filter
from board_items.services.items_service import ItemsService
from board_items.services.monday_client import MondayClient
from board_items.services.pagination import FetchResult, PaginationEngine, StopReason
from board_items.services.retry import ResilientPageFetcher, RetryPolicy
from board_items.services.session import FetchSession

__all__ = [
    "FetchResult",
    "FetchSession",
    "ItemsService",
    "MondayClient",
    "PaginationEngine",
    "ResilientPageFetcher",
    "RetryPolicy",
    "RowDeriver",
    "RowFilter",
    "StopReason",
    "TTLCache",
    "build_row_filter",
]
