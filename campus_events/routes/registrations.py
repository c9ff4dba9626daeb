import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.database import get_db
from campus_events.repositories import RegistrationRepository
from campus_events.schemas import RegistrationCreate, RegistrationRead

router = APIRouter(prefix="/api/events", tags=["Registrations"])
logger = logging.getLogger(__name__)


@router.post(
    "/{event_id}/register",
    response_model=RegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_event(
    event_id: str,
    payload: RegistrationCreate,
    db: AsyncSession = Depends(get_db),
) -> RegistrationRead:
    try:
        registration = await RegistrationRepository(db).create_registration(event_id, payload)
    except SQLAlchemyError:
        logger.error("Failed to register for event %s", event_id, exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to register for event")
    return RegistrationRead.model_validate(registration)


@router.get("/{event_id}/registrations", response_model=List[RegistrationRead])
async def list_registrations(
    event_id: str,
    db: AsyncSession = Depends(get_db),
) -> List[RegistrationRead]:
    try:
        registrations = await RegistrationRepository(db).list_registrations(event_id)
    except SQLAlchemyError:
        logger.error("Failed to fetch registrations for event %s", event_id, exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch registrations")
    return [RegistrationRead.model_validate(r) for r in registrations]
