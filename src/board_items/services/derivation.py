"""Row inclusion and derived numeric fields for board items.

Board columns are free text in practice: editors type ``$12,345``, ``35%`` or
leave cells empty, and formula columns are only sometimes filled in. Every
helper here degrades to ``None`` instead of raising, so one bad cell never
drops a row or fails a page.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from board_items.models import BoardItem, BoardSchema, EligibilityPolicy, FieldKind

logger = logging.getLogger(__name__)

_NUMERIC_NOISE = re.compile(r"[\s$€£¥%,' ]")
_DECIMAL = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")
_AFFIRMATIVE_LABELS = frozenset({"yes", "limited", "shareable", "true"})
_NEGATIVE_LABELS = frozenset({"no"})


def try_parse_json(raw: str | None) -> Any | None:
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def parse_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        as_float = float(value)
        return as_float if math.isfinite(as_float) else None
    if not isinstance(value, str):
        return None
    cleaned = _NUMERIC_NOISE.sub("", value)
    if not cleaned or not _DECIMAL.fullmatch(cleaned):
        return None
    number = float(cleaned)
    return number if math.isfinite(number) else None


def normalize_percent(value: float | None) -> float | None:
    if value is None:
        return None
    if value > 1:
        value = value / 100.0
    return min(1.0, max(0.0, value))


def _structured_number(raw_value: str | None) -> float | None:
    parsed = try_parse_json(raw_value)
    if isinstance(parsed, dict):
        for key in ("value", "number"):
            if key in parsed:
                return parse_number(parsed[key])
        return None
    return parse_number(parsed)


def column_text(item: BoardItem, column_id: str | None) -> str | None:
    if column_id is None:
        return None
    column = item.column(column_id)
    if column is None or column.text is None:
        return None
    text = column.text.strip()
    return text or None


def column_number(item: BoardItem, column_id: str | None) -> float | None:
    if column_id is None:
        return None
    column = item.column(column_id)
    if column is None:
        return None
    number = parse_number(column.text)
    if number is not None:
        return number
    return _structured_number(column.value)


def _status_index(item: BoardItem, column_id: str | None) -> int | None:
    if column_id is None:
        return None
    column = item.column(column_id)
    if column is None:
        return None
    parsed = try_parse_json(column.value)
    if not isinstance(parsed, dict):
        return None
    index = parse_number(parsed.get("index"))
    if index is None or not index.is_integer():
        return None
    return int(index)


def is_eligible(text: str | None, policy: EligibilityPolicy) -> bool | None:
    if text is None:
        return None
    label = text.strip().lower()
    if not label:
        return None
    if policy == EligibilityPolicy.EXACT_YES:
        return label == "yes"
    if policy == EligibilityPolicy.AFFIRMATIVE:
        return label in _AFFIRMATIVE_LABELS
    return label not in _NEGATIVE_LABELS


def _difference_floor_zero(total: float | None, deduction: float | None) -> float | None:
    if total is None or deduction is None:
        return None
    return max(0.0, total - deduction)


def _ceil_product(left: float | None, right: float | None) -> int | None:
    if left is None or right is None:
        return None
    # Round first: 1000 * 0.35 is 350.00000000000006 in binary floating point.
    return int(math.ceil(round(left * right, 6)))


class RowDeriver:
    """Applies a :class:`BoardSchema` to raw board items."""

    def __init__(self, schema: BoardSchema) -> None:
        self.schema = schema

    def is_included(self, item: BoardItem) -> bool:
        column_id = self.schema.column_id(self.schema.inclusion_field)
        text = column_text(item, column_id)
        if text is not None and text.lower() == self.schema.inclusion_label.strip().lower():
            return True
        expected_index = self.schema.inclusion_index
        if expected_index is None:
            return False
        return _status_index(item, column_id) == expected_index

    def derive(self, item: BoardItem) -> dict[str, Any] | None:
        if not self.is_included(item):
            return None

        row: dict[str, Any] = {"id": item.id, "name": item.name}
        numbers: dict[str, float | None] = {}
        for field_name, spec in self.schema.columns.items():
            if spec.kind == FieldKind.TEXT:
                row[field_name] = column_text(item, spec.column_id)
                continue
            number = column_number(item, spec.column_id)
            if spec.kind == FieldKind.PERCENT:
                number = normalize_percent(number)
            numbers[field_name] = number
            row[field_name] = number

        row.update(self._derived_fields(item, numbers))
        return row

    def _derived_fields(self, item: BoardItem, numbers: dict[str, float | None]) -> dict[str, Any]:
        components = [numbers.get(name) for name in ("tuition", "room", "board", "fees")]
        if all(component is not None for component in components):
            total = sum(components)
        else:
            total = numbers.get("total_cost")

        derived: dict[str, Any] = {"total_cost": total}
        # Low net cost pairs with the highest scholarship tier.
        for field_name, scholarship_name in (
            ("net_cost_low", "scholarship_high"),
            ("net_cost_mid", "scholarship_mid"),
            ("net_cost_high", "scholarship_low"),
        ):
            computed = _difference_floor_zero(total, numbers.get(scholarship_name))
            derived[field_name] = computed if computed is not None else numbers.get(field_name)

        derived["campus_job_compensation"] = self._compensation(item, numbers)

        occupancy = _ceil_product(numbers.get("enrollment"), numbers.get("housing_percent"))
        if occupancy is None:
            occupancy = numbers.get("housing_occupancy")
            if occupancy is not None and occupancy.is_integer():
                occupancy = int(occupancy)
        derived["housing_occupancy"] = occupancy
        return derived

    def _compensation(self, item: BoardItem, numbers: dict[str, float | None]) -> float | None:
        eligibility_text = column_text(item, self.schema.column_id(self.schema.eligibility_field))
        eligible = is_eligible(eligibility_text, self.schema.eligibility_policy)
        if eligible is False:
            return 0.0
        wage = numbers.get("hourly_wage")
        if eligible and wage is not None:
            return wage * self.schema.hours_per_week * self.schema.weeks_per_year
        return numbers.get("campus_job_compensation")

    def derive_many(self, items: list[BoardItem]) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for item in items:
            row = self.derive(item)
            if row is not None:
                rows.append(row)
        logger.debug("Derived %d of %d board items", len(rows), len(items))
        return rows
