"""
Booking domain models.

BookingRequest is the in-progress draft owned by the booking form;
Booking is the persisted entity returned by the API.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


# Admin transitions. Cancellation (owner, pending only) removes the booking
# instead of moving it to another status.
_ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.REJECTED}),
    BookingStatus.APPROVED: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def allowed_transitions(current: BookingStatus) -> FrozenSet[BookingStatus]:
    return _ALLOWED_TRANSITIONS.get(current, frozenset())


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in allowed_transitions(current)


def is_terminal(status: BookingStatus) -> bool:
    return not _ALLOWED_TRANSITIONS.get(status)


def parse_status(value: str) -> BookingStatus:
    """
    Parse a status string.

    Raises:
        ValueError: If value is not a known status
    """
    return BookingStatus(value.strip().lower())


# Request/response field names used by the REST API
_WIRE_FIELDS = {
    "service_type": "serviceType",
    "package_type": "packageType",
    "date": "date",
    "location": "location",
    "additional_requirements": "additionalRequirements",
    "price": "price",
}


@dataclass
class BookingRequest:
    """
    Booking draft collected by the booking form.

    `price` is derived from the package catalog and is never set directly
    by the user.
    """

    service_type: str = ""
    package_type: str = ""
    date: str = ""
    location: str = ""
    additional_requirements: str = ""
    price: int = 0

    def missing_fields(self) -> list:
        """Names of required fields that are empty."""
        required = ("service_type", "package_type", "date", "location")
        return [name for name in required if not str(getattr(self, name)).strip()]

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the JSON body expected by POST /api/bookings."""
        data = asdict(self)
        return {_WIRE_FIELDS[key]: value for key, value in data.items()}


@dataclass(frozen=True)
class Booking:
    """
    Persisted booking.

    Attributes:
        id: Server id (`_id`)
        owner_id: Id of the user who created the booking
        status: Lifecycle status; see allowed_transitions()
        admin_notes: Note attached by the last admin status change
        created_at: ISO timestamp string as returned by the server
        extra_fields: Any additional server fields (updatedAt, __v, ...)
    """

    id: str
    owner_id: Optional[str]
    service_type: str
    package_type: str
    date: str
    location: str
    additional_requirements: str = ""
    price: int = 0
    status: BookingStatus = BookingStatus.PENDING
    admin_notes: str = ""
    created_at: Optional[str] = None
    extra_fields: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        """
        Create Booking from an API response object.

        The owner may arrive either as an id string or as a populated user
        object; unknown fields are kept in extra_fields.
        """
        core_fields = {
            "_id",
            "id",
            "user",
            "serviceType",
            "packageType",
            "date",
            "location",
            "additionalRequirements",
            "price",
            "status",
            "adminNotes",
            "createdAt",
        }

        owner = data.get("user")
        if isinstance(owner, dict):
            owner = owner.get("_id") or owner.get("id")

        booking_id = data.get("_id") or data.get("id")

        return cls(
            id=str(booking_id) if booking_id is not None else "",
            owner_id=str(owner) if owner is not None else None,
            service_type=data.get("serviceType", ""),
            package_type=data.get("packageType", ""),
            date=data.get("date", ""),
            location=data.get("location", ""),
            additional_requirements=data.get("additionalRequirements", "") or "",
            price=data.get("price", 0),
            status=parse_status(data.get("status", BookingStatus.PENDING.value)),
            admin_notes=data.get("adminNotes", "") or "",
            created_at=data.get("createdAt"),
            extra_fields={k: v for k, v in data.items() if k not in core_fields},
        )

    @property
    def is_cancellable(self) -> bool:
        return self.status == BookingStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "user": self.owner_id,
            "serviceType": self.service_type,
            "packageType": self.package_type,
            "date": self.date,
            "location": self.location,
            "additionalRequirements": self.additional_requirements,
            "price": self.price,
            "status": self.status.value,
            "adminNotes": self.admin_notes,
            "createdAt": self.created_at,
        }
