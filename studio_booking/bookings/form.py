"""
BookingFormFlow - collects a booking draft and submits it once authenticated.

Submission by an anonymous user is suspended (AWAITING_AUTH) while an auth
prompt is shown; it resumes at most once, either when AuthSession reports an
authenticated session or when the prompt closes with one in place.
"""

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional

from studio_booking.auth.session import AuthSession
from studio_booking.bookings.store import BookingStore
from studio_booking.config.settings import BOOKINGS_VIEW_PATH
from studio_booking.domain.booking import Booking, BookingRequest
from studio_booking.domain.catalog import PackageCatalog
from studio_booking.domain.session import Session
from studio_booking.exceptions import StudioBookingError, ValidationError
from studio_booking.utils.logger import get_logger

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Your booking request has been submitted. We will confirm it shortly."
REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."
FAILURE_MESSAGE = "Failed to submit booking. Please try again."

# Fields the user may edit directly; price is always derived.
EDITABLE_FIELDS = ("date", "location", "additional_requirements")

Scheduler = Callable[[float, Callable[[], None]], Any]


class FlowState(str, Enum):
    READY = "ready"
    AWAITING_AUTH = "awaiting_auth"


class Outcome(str, Enum):
    SUBMITTED = "submitted"
    AWAITING_AUTH = "awaiting_auth"
    FAILED = "failed"


@dataclass(frozen=True)
class FormMessage:
    text: str
    type: str  # "success" or "error"


@dataclass(frozen=True)
class SubmissionResult:
    outcome: Outcome
    booking: Optional[Booking] = None
    message: Optional[FormMessage] = None
    redirect_to: Optional[str] = None
    redirect_delay: float = 0.0


class BookingFormFlow:
    """
    Booking form state and submission orchestration.

    Args:
        store: BookingStore used for submission
        auth: AuthSession consulted before submitting
        catalog: Package price lookup
        open_auth_prompt: Called when an anonymous submit needs the user to log in
        redirect: Called with the bookings view path after a successful submission
        scheduler: Runs a callback after a delay, e.g. a UI timer; when None the
            redirect is only reported in the SubmissionResult
        redirect_delay: Seconds between success and redirect
    """

    def __init__(
        self,
        store: BookingStore,
        auth: AuthSession,
        catalog: PackageCatalog,
        open_auth_prompt: Optional[Callable[[], None]] = None,
        redirect: Optional[Callable[[str], None]] = None,
        scheduler: Optional[Scheduler] = None,
        redirect_delay: float = 3.0,
        redirect_to: str = BOOKINGS_VIEW_PATH,
    ):
        self.store = store
        self.auth = auth
        self.catalog = catalog
        self.open_auth_prompt = open_auth_prompt
        self.redirect = redirect
        self.scheduler = scheduler
        self.redirect_delay = redirect_delay
        self.redirect_to = redirect_to

        self.draft = BookingRequest()
        self.state = FlowState.READY
        self.message: Optional[FormMessage] = None
        self.last_result: Optional[SubmissionResult] = None
        self._held_draft: Optional[BookingRequest] = None
        self._unsubscribe = auth.subscribe(self._on_session_changed)

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Draft editing
    # ------------------------------------------------------------------

    def _reprice(self) -> None:
        self.draft.price = self.catalog.price_for(self.draft.package_type)

    def select_service(self, service_type: str) -> int:
        """Set the service type. Returns the recomputed price."""
        if service_type and not self.catalog.has_service(service_type):
            raise ValidationError(f"Unknown service '{service_type}'", operation="select_service")
        self.draft.service_type = service_type or ""
        self._reprice()
        return self.draft.price

    def select_package(self, package_type: str) -> int:
        """Set the package type. Returns the recomputed price."""
        if package_type and not self.catalog.has_package(package_type):
            raise ValidationError(f"Unknown package '{package_type}'", operation="select_package")
        self.draft.package_type = package_type or ""
        self._reprice()
        return self.draft.price

    def set_field(self, name: str, value: str) -> None:
        """Set date, location or additional_requirements."""
        if name not in EDITABLE_FIELDS:
            raise ValidationError(f"Field '{name}' cannot be edited", operation="set_field")
        setattr(self.draft, name, value or "")

    def reset(self) -> None:
        self.draft = BookingRequest()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _validate(self, draft: BookingRequest) -> None:
        missing = draft.missing_fields()
        if missing:
            self.message = FormMessage(REQUIRED_FIELDS_MESSAGE, "error")
            raise ValidationError(
                f"{REQUIRED_FIELDS_MESSAGE} Missing: {', '.join(missing)}", operation="submit"
            )
        try:
            date.fromisoformat(draft.date.strip())
        except ValueError:
            self.message = FormMessage("Please enter a valid date (YYYY-MM-DD).", "error")
            raise ValidationError(f"Invalid date '{draft.date}'", operation="submit")
        if draft.price <= 0:
            self.message = FormMessage("Please select a package.", "error")
            raise ValidationError("Selected package has no price", operation="submit")

    def submit(self) -> SubmissionResult:
        """
        Validate and submit the current draft.

        Anonymous sessions suspend the submission and open the auth prompt
        without calling the store. When the prompt logs the user in before
        returning, the resumed submission's result is returned instead.

        Raises:
            ValidationError: A required field is missing or malformed
        """
        self.message = None
        self.last_result = None
        self._reprice()
        self._validate(self.draft)

        if not self.auth.is_authenticated:
            self._held_draft = replace(self.draft)
            self.state = FlowState.AWAITING_AUTH
            logger.info("Submission awaiting authentication", operation="submit")
            if self.open_auth_prompt is not None:
                self.open_auth_prompt()
            # A prompt that logs in synchronously has already resumed the submission.
            if self.state != FlowState.AWAITING_AUTH and self.last_result is not None:
                return self.last_result
            return SubmissionResult(outcome=Outcome.AWAITING_AUTH)

        return self._submit(replace(self.draft))

    def on_auth_prompt_closed(self) -> Optional[SubmissionResult]:
        """
        Resume a suspended submission if the user is now logged in.

        If the session is still anonymous the held draft is dropped and the
        user has to submit again.
        """
        if self.state != FlowState.AWAITING_AUTH:
            return None
        if self.auth.is_authenticated:
            return self._resume()

        logger.info("Auth prompt closed without login", operation="on_auth_prompt_closed")
        self.state = FlowState.READY
        self._held_draft = None
        return None

    def _on_session_changed(self, session: Session) -> None:
        if self.state == FlowState.AWAITING_AUTH and session.is_authenticated:
            self._resume()

    def _resume(self) -> SubmissionResult:
        draft = self._held_draft or replace(self.draft)
        self.state = FlowState.READY
        self._held_draft = None
        logger.info("Resuming submission after authentication", operation="resume_submit")
        return self._submit(draft)

    def _submit(self, draft: BookingRequest) -> SubmissionResult:
        try:
            booking = self.store.create_booking(draft)
        except StudioBookingError as e:
            self.message = FormMessage(e.user_message or FAILURE_MESSAGE, "error")
            self.last_result = SubmissionResult(outcome=Outcome.FAILED, message=self.message)
            return self.last_result

        self.message = FormMessage(SUCCESS_MESSAGE, "success")
        self.reset()

        if self.redirect is not None and self.scheduler is not None:
            target = self.redirect_to
            self.scheduler(self.redirect_delay, lambda: self.redirect(target))

        self.last_result = SubmissionResult(
            outcome=Outcome.SUBMITTED,
            booking=booking,
            message=self.message,
            redirect_to=self.redirect_to,
            redirect_delay=self.redirect_delay,
        )
        return self.last_result
