# campus_events/schemas.py
# ------------------------------------------------------------
# Pydantic v2 schemas, organized by domain
# ------------------------------------------------------------
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


def _required_text(value: str | None) -> str | None:
    """Trim a required text value; blank counts as missing. Content is otherwise stored as sent."""

    if value is None:
        return value
    if not isinstance(value, str):
        raise ValueError("Expected string input")
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("Value cannot be empty")
    return cleaned


def as_utc(value: datetime | None) -> datetime | None:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""

    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _CamelModel(BaseModel):
    # The web client speaks camelCase (imageUrl, eventId, registeredAt).
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# Events
# ============================================================

class EventCreate(_CamelModel):
    title: str = Field(max_length=255)
    description: Optional[str] = None
    date: datetime
    location: str = Field(max_length=255)
    image_url: str

    @field_validator("title", "location", "image_url", mode="before")
    @classmethod
    def _clean_required(cls, value):
        return _required_text(value)

    @field_validator("date")
    @classmethod
    def _date_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class EventUpdate(_CamelModel):
    """Partial update: fields left out (or sent as null) keep their stored value."""

    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    image_url: Optional[str] = None

    @field_validator("title", "location", "image_url", mode="before")
    @classmethod
    def _clean_required(cls, value):
        return _required_text(value)

    @field_validator("date")
    @classmethod
    def _date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class EventRead(_CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str = ""
    date: datetime
    location: str
    image_url: str

    @field_validator("description", mode="before")
    @classmethod
    def _description_default(cls, value):
        return value or ""

    @field_serializer("date")
    def _serialize_date(self, value: datetime) -> str:
        return as_utc(value).isoformat()


# ============================================================
# Registrations
# ============================================================

class RegistrationCreate(_CamelModel):
    name: str = Field(max_length=255)
    email: EmailStr

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value):
        return _required_text(value)

    @field_validator("email", mode="before")
    @classmethod
    def _clean_email(cls, value):
        return _required_text(value)


class RegistrationRead(_CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_id: UUID
    name: str
    email: str
    registered_at: datetime

    @field_serializer("registered_at")
    def _serialize_registered_at(self, value: datetime) -> str:
        return as_utc(value).isoformat()


# ============================================================
# Uploads
# ============================================================

class PresignedUploadRead(_CamelModel):
    upload_url: str
    public_url: str
    key: str
