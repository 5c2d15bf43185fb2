"""
BookingStore - orchestration of Booking reads and writes against the API.

Owns the caller's booking list and the admin booking list, applies the role
gate before admin-only requests, and debounces user-list fetches. All state
is scoped to one store instance; identity changes reported by AuthSession
reset it.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from studio_booking.api.client import StudioAPIClient
from studio_booking.auth.session import AuthSession
from studio_booking.domain.booking import Booking, BookingRequest, parse_status
from studio_booking.domain.session import Session
from studio_booking.exceptions import (
    AuthRequired,
    PermissionDenied,
    ServerError,
    StudioBookingError,
    ValidationError,
)
from studio_booking.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MIN_FETCH_INTERVAL = 5.0


@dataclass(frozen=True)
class ErrorState:
    """Stored form of the last failure: exception class name plus message."""

    kind: str
    message: str
    status_code: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: StudioBookingError) -> "ErrorState":
        return cls(kind=type(exc).__name__, message=exc.user_message, status_code=exc.status_code)


def _parse_bookings(raw: List[Dict[str, Any]], operation: str) -> List[Booking]:
    try:
        return [Booking.from_dict(item) for item in raw]
    except (TypeError, ValueError, AttributeError) as e:
        raise ServerError(f"Malformed booking in response: {e}", operation=operation) from e


def _parse_booking(data: Dict[str, Any], operation: str) -> Booking:
    raw = data.get("booking")
    if not isinstance(raw, dict):
        raise ServerError("Unexpected response from server.", operation=operation)
    return _parse_bookings([raw], operation)[0]


class BookingStore:
    """
    Booking state shared by the booking form and admin views.

    Attributes:
        user_bookings: The caller's own bookings
        bookings: All bookings (admin view), filtered by last_status_filter
        error: Last failure of a primary operation
        refresh_error: Last failure of a background refresh
        admin_list_stale: True when `bookings` missed a refresh after a status change
    """

    def __init__(
        self,
        api: StudioAPIClient,
        auth: AuthSession,
        min_fetch_interval: float = DEFAULT_MIN_FETCH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        auto_load: bool = True,
    ):
        """
        Initialize BookingStore and subscribe to session changes.

        Args:
            api: REST client
            auth: Session provider
            min_fetch_interval: Minimum seconds between completed user-list fetches
            clock: Monotonic time source in seconds
            auto_load: Load bookings whenever a new identity logs in
        """
        self.api = api
        self.auth = auth
        self.min_fetch_interval = min_fetch_interval
        self.clock = clock
        self.auto_load = auto_load

        self.user_bookings: List[Booking] = []
        self.bookings: List[Booking] = []
        self.error: Optional[ErrorState] = None
        self.refresh_error: Optional[ErrorState] = None
        self.admin_list_stale = False
        self.last_status_filter: Optional[str] = None

        self._pending = 0
        self._fetch_in_progress = False
        self._last_fetch_time: Optional[float] = None
        self._session_generation = 0
        self._session_key: Tuple[Optional[str], Optional[str]] = self._key_for(auth.current)
        self._user_fetch_seq = 0
        self._admin_fetch_seq = 0

        self._unsubscribe = auth.subscribe(self._on_session_changed)

    @property
    def loading(self) -> bool:
        return self._pending > 0

    def close(self) -> None:
        """Stop following session changes."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def _key_for(session: Session) -> Tuple[Optional[str], Optional[str]]:
        return (session.user_id, session.auth_token)

    def _on_session_changed(self, session: Session) -> None:
        key = self._key_for(session)
        if key == self._session_key:
            return

        self._session_key = key
        self._session_generation += 1
        self.user_bookings = []
        self.bookings = []
        self.error = None
        self.refresh_error = None
        self.admin_list_stale = False
        self.last_status_filter = None
        self._fetch_in_progress = False
        self._last_fetch_time = None

        logger.debug(
            "Session changed; booking state reset",
            operation="session_changed",
            context={"generation": self._session_generation, "role": session.role.value},
        )

        if self.auto_load and session.is_authenticated:
            self.load_for_session()

    def load_for_session(self) -> None:
        """Initial load for the current identity: own bookings, plus all bookings for admins."""
        if not self.auth.is_authenticated:
            return
        self._fetch_user_bookings(background=True)
        if self.auth.is_admin:
            self._fetch_all_bookings(self.last_status_filter, background=True)

    # ------------------------------------------------------------------
    # Error bookkeeping
    # ------------------------------------------------------------------

    def _record(self, exc: StudioBookingError, background: bool = False) -> None:
        if isinstance(exc, AuthRequired) and exc.status_code == 401:
            self.auth.invalidate()

        state = ErrorState.from_exception(exc)
        if background:
            self.refresh_error = state
        else:
            self.error = state

        log_context = {"kind": state.kind, "background": background}
        if exc.status_code is not None:
            log_context["status"] = exc.status_code
        logger.warning(
            "Booking operation failed",
            operation=exc.operation,
            context=log_context,
            error=exc.message,
        )

    def _require_token(self, operation: str) -> str:
        token = self.auth.token
        if not token or not self.auth.is_authenticated:
            exc = AuthRequired(operation=operation)
            self._record(exc)
            raise exc
        return token

    def _require_admin(self, operation: str) -> str:
        if not self.auth.is_admin:
            exc = PermissionDenied(operation=operation)
            self._record(exc)
            raise exc
        return self.auth.token

    def _invalid(self, message: str, operation: str) -> ValidationError:
        exc = ValidationError(message, operation=operation)
        self._record(exc)
        return exc

    def _is_current(self, generation: int) -> bool:
        return generation == self._session_generation

    # ------------------------------------------------------------------
    # Customer operations
    # ------------------------------------------------------------------

    def create_booking(self, draft: Union[BookingRequest, Dict[str, Any]]) -> Booking:
        """
        Create a booking, then refresh the caller's list (subject to the debounce guard).

        Raises:
            AuthRequired: No session token
            ValidationError: Server rejected the draft
            StudioBookingError: Any other remote failure
        """
        token = self._require_token("create_booking")
        payload = draft.to_payload() if isinstance(draft, BookingRequest) else dict(draft)

        self.error = None
        self._pending += 1
        try:
            data = self.api.create_booking(token, payload)
            booking = _parse_booking(data, "create_booking")
        except StudioBookingError as e:
            self._record(e)
            raise
        finally:
            self._pending -= 1

        logger.info(
            "Booking created",
            operation="create_booking",
            context={"booking_id": booking.id, "status": booking.status.value, "price": booking.price},
        )

        self._fetch_user_bookings(background=True)
        return booking

    def fetch_user_bookings(self) -> Optional[List[Booking]]:
        """
        Fetch the caller's own bookings.

        Returns None without any request when a fetch is already in flight or
        the previous fetch completed less than min_fetch_interval seconds ago.
        On remote failure the error is stored and an empty list returned.

        Raises:
            AuthRequired: Anonymous session
        """
        self._require_token("fetch_user_bookings")
        return self._fetch_user_bookings(background=False)

    def _fetch_user_bookings(self, background: bool) -> Optional[List[Booking]]:
        token = self.auth.token
        if not token:
            return None

        now = self.clock()
        if self._fetch_in_progress or (
            self._last_fetch_time is not None
            and now - self._last_fetch_time < self.min_fetch_interval
        ):
            logger.debug(
                "Skipping user bookings fetch",
                operation="fetch_user_bookings",
                context={"in_progress": self._fetch_in_progress},
            )
            return None

        self._fetch_in_progress = True
        self._user_fetch_seq += 1
        seq = self._user_fetch_seq
        generation = self._session_generation
        if not background:
            self.error = None

        self._pending += 1
        try:
            raw = self.api.list_user_bookings(token)
            bookings = _parse_bookings(raw, "fetch_user_bookings")
        except StudioBookingError as e:
            if self._is_current(generation):
                self._record(e, background=background)
            return []
        finally:
            self._pending -= 1
            if self._is_current(generation):
                self._fetch_in_progress = False

        if not self._is_current(generation) or seq != self._user_fetch_seq:
            logger.info(
                "Discarding stale user bookings response",
                operation="fetch_user_bookings",
                context={"seq": seq, "latest_seq": self._user_fetch_seq},
            )
            return bookings

        self.user_bookings = bookings
        self._last_fetch_time = self.clock()
        logger.debug(
            "User bookings refreshed",
            operation="fetch_user_bookings",
            context={"count": len(bookings)},
        )
        return bookings

    def get_booking(self, booking_id: str) -> Booking:
        """Fetch a single booking the caller owns (admins may read any)."""
        token = self._require_token("get_booking")
        if not booking_id:
            raise self._invalid("Booking id is required", "get_booking")

        self._pending += 1
        try:
            return _parse_booking(self.api.get_booking(token, booking_id), "get_booking")
        except StudioBookingError as e:
            self._record(e)
            raise
        finally:
            self._pending -= 1

    def cancel_booking(self, booking_id: str) -> Dict[str, Any]:
        """
        Cancel (delete) a pending booking.

        The server decides whether cancellation is legal and its rejection
        message is surfaced unchanged. No list is refreshed here.
        """
        token = self._require_token("cancel_booking")
        if not booking_id:
            raise self._invalid("Booking id is required", "cancel_booking")

        self.error = None
        self._pending += 1
        try:
            result = self.api.cancel_booking(token, booking_id)
        except StudioBookingError as e:
            self._record(e)
            raise
        finally:
            self._pending -= 1

        logger.info("Booking cancelled", operation="cancel_booking", context={"booking_id": booking_id})
        return result

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def fetch_all_bookings(self, status_filter: Optional[str] = None) -> List[Booking]:
        """
        Fetch every booking, optionally filtered by status (admin only).

        Non-admin sessions get an empty list and a PermissionDenied error
        without any request being sent.
        """
        if not self.auth.is_admin:
            self._record(PermissionDenied(operation="fetch_all_bookings"))
            return []

        if status_filter:
            try:
                status_filter = parse_status(status_filter).value
            except ValueError:
                self._invalid(f"Unknown booking status '{status_filter}'", "fetch_all_bookings")
                return []

        _, bookings = self._fetch_all_bookings(status_filter or None, background=False)
        return bookings

    def _fetch_all_bookings(
        self, status_filter: Optional[str], background: bool
    ) -> Tuple[bool, List[Booking]]:
        token = self.auth.token
        self._admin_fetch_seq += 1
        seq = self._admin_fetch_seq
        generation = self._session_generation
        self.last_status_filter = status_filter
        if not background:
            self.error = None

        self._pending += 1
        try:
            raw = self.api.list_all_bookings(token, status_filter)
            bookings = _parse_bookings(raw, "fetch_all_bookings")
        except StudioBookingError as e:
            if self._is_current(generation):
                self._record(e, background=background)
            return False, []
        finally:
            self._pending -= 1

        if not self._is_current(generation) or seq != self._admin_fetch_seq:
            logger.info(
                "Discarding stale admin bookings response",
                operation="fetch_all_bookings",
                context={"seq": seq, "latest_seq": self._admin_fetch_seq},
            )
            return True, bookings

        self.bookings = bookings
        self.admin_list_stale = False
        self.refresh_error = None
        return True, bookings

    def update_booking_status(self, booking_id: str, status: str, notes: str = "") -> Booking:
        """
        Move a booking to a new status with an admin note (admin only).

        On success the admin list is re-fetched with the last used filter. A
        failure of that re-fetch marks the list stale and is stored in
        refresh_error; it never fails this call.

        Raises:
            PermissionDenied: Non-admin session (no request sent), or HTTP 403
            ValidationError: Unknown status, or server rejected the transition
        """
        token = self._require_admin("update_booking_status")
        if not booking_id:
            raise self._invalid("Booking id is required", "update_booking_status")
        try:
            status_value = parse_status(status).value
        except (AttributeError, ValueError):
            raise self._invalid(f"Unknown booking status '{status}'", "update_booking_status")

        self.error = None
        self._pending += 1
        try:
            data = self.api.update_booking_status(token, booking_id, status_value, notes or "")
            booking = _parse_booking(data, "update_booking_status")
        except StudioBookingError as e:
            self._record(e)
            raise
        finally:
            self._pending -= 1

        logger.info(
            "Booking status updated",
            operation="update_booking_status",
            context={"booking_id": booking_id, "status": status_value},
        )

        self.bookings = [booking if item.id == booking.id else item for item in self.bookings]

        refreshed, _ = self._fetch_all_bookings(self.last_status_filter, background=True)
        if not refreshed:
            self.admin_list_stale = True
            logger.warning(
                "Admin booking list may be stale after status update",
                operation="update_booking_status",
                context={"booking_id": booking_id},
            )
        return booking
