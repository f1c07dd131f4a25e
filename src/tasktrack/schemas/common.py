"""Response envelope shared by every route.

Learn: Every response body has the same shape:
  {"success": true, "message": "...", "count": 3, "data": {...}}
Routes declare response_model=Envelope[X] with response_model_exclude_unset,
so keys a route did not set (message, count) are left out of the JSON.
"success" always counts as set.
Error bodies are built by tasktrack.api.errors with success=false.
"""

from datetime import datetime, timezone
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    count: Optional[int] = None
    data: Optional[T] = None

    def model_post_init(self, __context) -> None:
        # success is part of every body, even when left at its default
        self.__pydantic_fields_set__.add("success")


class FieldError(BaseModel):
    field: str
    message: str
