from board_items.models.board import BoardColumn, BoardItem, ColumnValue, ItemsPage
from board_items.models.responses import (
    BoardSummary,
    EnvDebugResponse,
    ErrorResponse,
    ItemsMeta,
    ItemsResponse,
)
from board_items.models.schema import (
    BoardSchema,
    EligibilityPolicy,
    FieldKind,
    FieldSpec,
    load_board_schema,
)

__all__ = [
    "BoardColumn",
    "BoardItem",
    "BoardSchema",
    "BoardSummary",
    "ColumnValue",
    "EligibilityPolicy",
    "EnvDebugResponse",
    "ErrorResponse",
    "FieldKind",
    "FieldSpec",
    "ItemsMeta",
    "ItemsPage",
    "ItemsResponse",
    "load_board_schema",
]
