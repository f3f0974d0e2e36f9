from __future__ import annotations

import json
import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from board_items.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    PERCENT = "percent"


class EligibilityPolicy(str, Enum):
    EXACT_YES = "exact_yes"
    AFFIRMATIVE = "affirmative"
    NOT_NO = "not_no"


class FieldSpec(BaseModel):
    column_id: str = Field(alias="columnId")
    kind: FieldKind = FieldKind.TEXT

    model_config = ConfigDict(populate_by_name=True)


def _spec(column_id: str, kind: FieldKind = FieldKind.TEXT) -> FieldSpec:
    return FieldSpec(column_id=column_id, kind=kind)


DEFAULT_FIELDS: dict[str, FieldSpec] = {
    "state": _spec("text_state"),
    "city": _spec("text_city"),
    "school_type": _spec("status_school_type"),
    "website": _spec("link_website"),
    "shareable": _spec("status_shareable"),
    "tuition": _spec("numeric_tuition", FieldKind.NUMBER),
    "room": _spec("numeric_room", FieldKind.NUMBER),
    "board": _spec("numeric_board", FieldKind.NUMBER),
    "fees": _spec("numeric_fees", FieldKind.NUMBER),
    "total_cost": _spec("formula_total_cost", FieldKind.NUMBER),
    "scholarship_low": _spec("numeric_scholarship_low", FieldKind.NUMBER),
    "scholarship_mid": _spec("numeric_scholarship_mid", FieldKind.NUMBER),
    "scholarship_high": _spec("numeric_scholarship_high", FieldKind.NUMBER),
    "net_cost_low": _spec("formula_net_low", FieldKind.NUMBER),
    "net_cost_mid": _spec("formula_net_mid", FieldKind.NUMBER),
    "net_cost_high": _spec("formula_net_high", FieldKind.NUMBER),
    "hourly_wage": _spec("numeric_hourly_wage", FieldKind.NUMBER),
    "campus_job": _spec("status_campus_job"),
    "campus_job_compensation": _spec("formula_campus_job_comp", FieldKind.NUMBER),
    "enrollment": _spec("numeric_enrollment", FieldKind.NUMBER),
    "housing_percent": _spec("numeric_housing_percent", FieldKind.PERCENT),
    "housing_occupancy": _spec("formula_housing_occupancy", FieldKind.NUMBER),
}


class BoardSchema(BaseModel):
    """Maps logical field names to board column ids.

    Derivation only ever looks fields up by logical name, so a board whose
    columns were renamed or recreated only needs a new mapping.
    """

    columns: dict[str, FieldSpec] = Field(default_factory=lambda: dict(DEFAULT_FIELDS))
    inclusion_field: str = "shareable"
    inclusion_label: str = "yes"
    inclusion_index: int | None = 1
    category_fields: list[str] = Field(default_factory=lambda: ["state", "city", "school_type"])
    eligibility_field: str = "campus_job"
    eligibility_policy: EligibilityPolicy = EligibilityPolicy.AFFIRMATIVE
    hours_per_week: float = 10.0
    weeks_per_year: float = 30.0

    def column_id(self, field_name: str) -> str | None:
        spec = self.columns.get(field_name)
        return spec.column_id if spec else None


def load_board_schema(raw_json: str) -> BoardSchema:
    if not raw_json or not raw_json.strip():
        return BoardSchema()
    try:
        payload = json.loads(raw_json)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("BOARD_SCHEMA_JSON", f"BOARD_SCHEMA_JSON is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("BOARD_SCHEMA_JSON", "BOARD_SCHEMA_JSON must be a JSON object")
    # Partial overrides keep the default mapping for fields they do not name.
    columns = dict(DEFAULT_FIELDS)
    overrides = payload.pop("columns", None) or {}
    if not isinstance(overrides, dict):
        raise ConfigurationError("BOARD_SCHEMA_JSON", "BOARD_SCHEMA_JSON 'columns' must be an object")
    for name, spec in overrides.items():
        if isinstance(spec, str):
            spec = {"column_id": spec}
        columns[name] = spec
    try:
        schema = BoardSchema.model_validate({**payload, "columns": columns})
    except ValidationError as exc:
        raise ConfigurationError("BOARD_SCHEMA_JSON", f"BOARD_SCHEMA_JSON is invalid: {exc}") from exc
    logger.info("Loaded board schema override with %d mapped fields", len(schema.columns))
    return schema
