"""
AdminReviewFlow - list, filter and transition bookings for administrators.

The only state held here is the selected status filter. Every call is safe
for non-admin sessions: BookingStore refuses before any request and this
flow reports the refusal instead of raising.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from studio_booking.bookings.store import BookingStore, ErrorState
from studio_booking.domain.booking import (
    Booking,
    BookingStatus,
    allowed_transitions,
    parse_status,
)
from studio_booking.exceptions import StudioBookingError
from studio_booking.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    ok: bool
    booking: Optional[Booking] = None
    error: Optional[ErrorState] = None
    stale: bool = False


class AdminReviewFlow:
    """Admin bookings view logic layered on BookingStore."""

    def __init__(self, store: BookingStore):
        self.store = store
        self.status_filter: Optional[BookingStatus] = None

    @property
    def bookings(self) -> List[Booking]:
        return self.store.bookings

    @property
    def error(self) -> Optional[ErrorState]:
        return self.store.error

    @property
    def is_stale(self) -> bool:
        return self.store.admin_list_stale

    def refresh(self) -> List[Booking]:
        """Reload the list with the current filter. Empty for non-admin sessions."""
        value = self.status_filter.value if self.status_filter else None
        return self.store.fetch_all_bookings(value)

    def set_filter(self, status: Optional[str]) -> List[Booking]:
        """
        Select a status filter ("" or None for all) and reload the list.

        An unknown status leaves the current filter unchanged and returns an
        empty list with the error stored on the store.
        """
        if status:
            try:
                selected: Optional[BookingStatus] = parse_status(status)
            except ValueError:
                return self.store.fetch_all_bookings(status)
        else:
            selected = None

        self.status_filter = selected
        return self.refresh()

    def counts_by_status(self) -> dict:
        """Number of listed bookings per status."""
        counts = {status.value: 0 for status in BookingStatus}
        for booking in self.store.bookings:
            counts[booking.status.value] += 1
        return counts

    def available_actions(self, booking: Booking) -> FrozenSet[BookingStatus]:
        """Statuses the UI should offer for a booking. Display only."""
        return allowed_transitions(booking.status)

    def transition(self, booking_id: str, status: str, notes: str = "") -> TransitionResult:
        """Change a booking's status with an admin note."""
        try:
            booking = self.store.update_booking_status(booking_id, status, notes)
        except StudioBookingError as e:
            logger.info(
                "Status transition not applied",
                operation="admin_transition",
                context={"booking_id": booking_id, "status": status, "kind": type(e).__name__},
            )
            return TransitionResult(ok=False, error=self.store.error or ErrorState.from_exception(e))

        return TransitionResult(ok=True, booking=booking, stale=self.store.admin_list_stale)

    def approve(self, booking_id: str, notes: str = "") -> TransitionResult:
        return self.transition(booking_id, BookingStatus.APPROVED.value, notes)

    def reject(self, booking_id: str, notes: str = "") -> TransitionResult:
        return self.transition(booking_id, BookingStatus.REJECTED.value, notes)

    def complete(self, booking_id: str, notes: str = "") -> TransitionResult:
        return self.transition(booking_id, BookingStatus.COMPLETED.value, notes)
