"""Shared pydantic base for API payloads (camelCase on the wire)."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, renders camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
