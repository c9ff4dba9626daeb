"""
EventRepository: SQLAlchemy CRUD operations for events.
"""
from __future__ import annotations

import uuid
from typing import List, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.errors import EventNotFoundError, ValidationFailedError
from campus_events.models.event import Event
from campus_events.models.registration import Registration
from campus_events.schemas import EventCreate, EventUpdate

_REQUIRED_FIELDS = ("title", "date", "location", "image_url")


def parse_event_id(event_id: Union[str, uuid.UUID]) -> uuid.UUID:
    """Coerce a path id to a UUID; anything unparseable cannot name an event."""

    if isinstance(event_id, uuid.UUID):
        return event_id
    try:
        return uuid.UUID(str(event_id))
    except (TypeError, ValueError):
        raise EventNotFoundError(event_id) from None


class EventRepository:
    """Repository for Event rows. One instance per request session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_events(self) -> List[Event]:
        rows = await self.db.execute(select(Event).order_by(Event.date.asc()))
        return list(rows.scalars().all())

    async def get_event(self, event_id: Union[str, uuid.UUID]) -> Event:
        event = await self.db.get(Event, parse_event_id(event_id))
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def exists(self, key: uuid.UUID) -> bool:
        row = await self.db.execute(select(Event.id).where(Event.id == key))
        return row.scalar_one_or_none() is not None

    async def create_event(self, payload: EventCreate) -> Event:
        missing = [name for name in _REQUIRED_FIELDS if not getattr(payload, name, None)]
        if missing:
            raise ValidationFailedError(
                "Title, date, location, and imageUrl are required"
            )

        event = Event(
            id=uuid.uuid4(),
            title=payload.title,
            description=payload.description or "",
            date=payload.date,
            location=payload.location,
            image_url=payload.image_url,
        )
        self.db.add(event)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def update_event(self, event_id: Union[str, uuid.UUID], payload: EventUpdate) -> Event:
        event = await self.get_event(event_id)

        for field, value in payload.changes().items():
            setattr(event, field, value)

        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def delete_event(self, event_id: Union[str, uuid.UUID]) -> None:
        key = parse_event_id(event_id)
        if not await self.exists(key):
            raise EventNotFoundError(event_id)

        # Not every backend enforces ON DELETE CASCADE (SQLite needs a pragma).
        await self.db.execute(delete(Registration).where(Registration.event_id == key))
        await self.db.execute(delete(Event).where(Event.id == key))
        await self.db.commit()
