from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ColumnValue(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    type: str | None = None
    text: str | None = None
    value: str | None = None


class BoardColumn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    title: str | None = None
    type: str | None = None


class BoardItem(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str = ""
    column_values: list[ColumnValue] = Field(default_factory=list)

    def column(self, column_id: str) -> ColumnValue | None:
        for column_value in self.column_values:
            if column_value.id == column_id:
                return column_value
        return None


class ItemsPage(BaseModel):
    items: list[BoardItem] = Field(default_factory=list)
    cursor: str | None = None
    page_size: int
    columns: list[BoardColumn] = Field(default_factory=list)
