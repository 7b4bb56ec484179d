from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dropbin.core.clock import as_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextCreate(CamelModel):
    content: str = Field("", description="Text to share, must not be empty")


class TextUpdate(CamelModel):
    content: str
    password: Optional[str] = Field(None, description="Required when the text is locked")


class TextLock(CamelModel):
    password: str = ""


class TextCreated(CamelModel):
    id: str
    share_link: str


class Text(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    content: str
    created_at: datetime
    expires_at: datetime
    locked: bool = False

    @field_validator("created_at", "expires_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class Message(BaseModel):
    message: str
