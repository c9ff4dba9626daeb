"""
RegistrationRepository: inserts and lists attendee registrations.
"""
from __future__ import annotations

import uuid
from typing import List, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.errors import EventNotFoundError
from campus_events.models.event import utcnow
from campus_events.models.registration import Registration
from campus_events.repositories.event_repository import EventRepository, parse_event_id
from campus_events.schemas import RegistrationCreate


class RegistrationRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.events = EventRepository(db)

    async def _require_event(self, event_id: Union[str, uuid.UUID]) -> uuid.UUID:
        key = parse_event_id(event_id)
        if not await self.events.exists(key):
            raise EventNotFoundError(event_id)
        return key

    async def create_registration(
        self, event_id: Union[str, uuid.UUID], payload: RegistrationCreate
    ) -> Registration:
        key = await self._require_event(event_id)

        registration = Registration(
            id=uuid.uuid4(),
            event_id=key,
            name=payload.name,
            email=str(payload.email),
            registered_at=utcnow(),
        )
        self.db.add(registration)
        await self.db.commit()
        await self.db.refresh(registration)
        return registration

    async def list_registrations(self, event_id: Union[str, uuid.UUID]) -> List[Registration]:
        """Registrations for one event, newest first."""

        key = await self._require_event(event_id)
        rows = await self.db.execute(
            select(Registration)
            .where(Registration.event_id == key)
            .order_by(Registration.registered_at.desc())
        )
        return list(rows.scalars().all())
