"""Shared pydantic base for models exchanged over the JSON API."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; both accepted on input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_json_dict(self) -> dict:
        """Serialize with camelCase keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)
