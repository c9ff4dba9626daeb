"""ORM models; importing this package registers every table with ``Base``."""

from .event import Event
from .registration import Registration

__all__ = ["Event", "Registration"]
