from datetime import datetime, date
from enum import Enum
from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelCaseBaseModel(BaseModel):
    """
    Base model with camelCase field aliases and automatic serialization.

    The registrar front end speaks camelCase (``firstName``, ``birthDate``) while
    the Python side uses snake_case:

    - Input: camelCase keys from the client are validated into snake_case fields.
    - Output: call `model_dump(by_alias=True)` to serialize back to camelCase.
    - Auto-serialization: Enums become their values, dates and datetimes
      become ISO-8601 strings.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*")
    def serialize_any(self, value):
        """Global serializer for all fields"""

        if isinstance(value, Enum):
            return value.value

        # datetime is a subclass of date, both serialize the same way
        if isinstance(value, (datetime, date)):
            return value.isoformat()

        if isinstance(value, (list, tuple, set)):
            return [self.serialize_any(item) for item in value]

        if isinstance(value, dict):
            return {key: self.serialize_any(val) for key, val in value.items()}

        return value
