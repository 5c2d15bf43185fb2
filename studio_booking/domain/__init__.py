"""Domain models - core business entities."""

from .booking import Booking, BookingRequest, BookingStatus
from .catalog import PackageCatalog
from .session import Role, Session

__all__ = ["Booking", "BookingRequest", "BookingStatus", "PackageCatalog", "Role", "Session"]
