"""Event listing (public) and event management (admin) endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.database import get_db
from campus_events.repositories import EventRepository
from campus_events.schemas import EventCreate, EventRead, EventUpdate

router = APIRouter(prefix="/api/events", tags=["Events"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[EventRead])
async def list_events(db: AsyncSession = Depends(get_db)) -> List[EventRead]:
    try:
        events = await EventRepository(db).list_events()
    except SQLAlchemyError:
        logger.error("Failed to fetch events", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch events")
    return [EventRead.model_validate(event) for event in events]


@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: str, db: AsyncSession = Depends(get_db)) -> EventRead:
    try:
        event = await EventRepository(db).get_event(event_id)
    except SQLAlchemyError:
        logger.error("Failed to fetch event %s", event_id, exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch event")
    return EventRead.model_validate(event)


@router.post("", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(payload: EventCreate, db: AsyncSession = Depends(get_db)) -> EventRead:
    try:
        event = await EventRepository(db).create_event(payload)
    except SQLAlchemyError:
        logger.error("Failed to create event", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create event")
    logger.info("Created event %s (%s)", event.id, event.title)
    return EventRead.model_validate(event)


@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: str,
    payload: EventUpdate,
    db: AsyncSession = Depends(get_db),
) -> EventRead:
    try:
        event = await EventRepository(db).update_event(event_id, payload)
    except SQLAlchemyError:
        logger.error("Failed to update event %s", event_id, exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update event")
    return EventRead.model_validate(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await EventRepository(db).delete_event(event_id)
    except SQLAlchemyError:
        logger.error("Failed to delete event %s", event_id, exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete event")
    logger.info("Deleted event %s and its registrations", event_id)
    return None
