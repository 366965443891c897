from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


def _to_json_value(value):
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    # Covers datetime as well
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple, set)):
        return [_to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_json_value(item) for key, item in value.items()}
    return value


class CamelCaseBaseModel(BaseModel):
    """
    Base model for API-facing schemas.

    Accepts camelCase or snake_case input and, with `model_dump(by_alias=True)`,
    serializes to camelCase with enums, dates and nested models already converted
    to JSON values.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*")
    def serialize_any(self, value):
        return _to_json_value(value)
