from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from board_items.core.exceptions import AppValidationError
from board_items.services.derivation import parse_number


@dataclass(frozen=True)
class RowFilter:
    """Caller-supplied criteria applied to derived rows.

    Every criterion is optional. Range checks let rows with an unknown value
    through so a missing cell never hides a row the user might want.
    """

    text: str | None = None
    text_fields: tuple[str, ...] = ("name",)
    equals: dict[str, str] = field(default_factory=dict)
    ranges: dict[str, tuple[float | None, float | None]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.equals and not self.ranges

    def matches(self, row: dict[str, Any]) -> bool:
        if self.text:
            needle = self.text.strip().lower()
            haystack = " ".join(str(row.get(name) or "") for name in self.text_fields).lower()
            if needle not in haystack:
                return False
        for field_name, expected in self.equals.items():
            actual = row.get(field_name)
            if actual is None or str(actual).strip().lower() != expected.strip().lower():
                return False
        for field_name, (lower, upper) in self.ranges.items():
            value = parse_number(row.get(field_name))
            if value is None:
                continue
            if lower is not None and value < lower:
                return False
            if upper is not None and value > upper:
                return False
        return True

    def __call__(self, row: dict[str, Any]) -> bool:
        return self.matches(row)


def _split_pair(raw: str, param: str) -> tuple[str, str]:
    name, sep, rest = raw.partition(":")
    if not sep or not name.strip():
        raise AppValidationError(f"{param} must use the form field:value (got {raw!r})")
    return name.strip(), rest


def _bound(raw: str, param: str) -> float | None:
    if not raw.strip():
        return None
    value = parse_number(raw)
    if value is None:
        raise AppValidationError(f"{param} bound {raw!r} is not a number")
    return value


def build_row_filter(
    text: str | None,
    equals: list[str] | None,
    ranges: list[str] | None,
    category_fields: list[str],
) -> RowFilter:
    parsed_equals: dict[str, str] = {}
    for raw in equals or []:
        name, value = _split_pair(raw, "eq")
        parsed_equals[name] = value

    parsed_ranges: dict[str, tuple[float | None, float | None]] = {}
    for raw in ranges or []:
        name, rest = _split_pair(raw, "range")
        lower_raw, _, upper_raw = rest.partition(":")
        lower = _bound(lower_raw, "range")
        upper = _bound(upper_raw, "range")
        if lower is not None and upper is not None and lower > upper:
            raise AppValidationError(f"range for {name} has min greater than max")
        parsed_ranges[name] = (lower, upper)

    text = text.strip() if text else None
    return RowFilter(
        text=text or None,
        text_fields=("name", *category_fields),
        equals=parsed_equals,
        ranges=parsed_ranges,
    )
