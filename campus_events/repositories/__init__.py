"""Data-access layer for events and their registrations."""

from .event_repository import EventRepository
from .registration_repository import RegistrationRepository

__all__ = ["EventRepository", "RegistrationRepository"]
