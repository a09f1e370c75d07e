from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    # wire format is camelCase, attributes stay snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class OutModel(CamelModel):
    @field_validator("*", mode="after")
    @classmethod
    def _utc(cls, v):
        # SQLite hands back naive values; they are stored as UTC
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
