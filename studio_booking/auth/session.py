"""
AuthSession - single source of truth for who is acting.

Holds the current Session, writes every change through to a SessionStorage
backend before returning, and notifies subscribers after each change.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from studio_booking.api.client import StudioAPIClient
from studio_booking.auth.storage import MemorySessionStorage, SessionStorage
from studio_booking.config.settings import SecretRedactionFilter
from studio_booking.domain.session import Role, Session
from studio_booking.exceptions import (
    AuthRequired,
    ServerError,
    StorageError,
    StudioBookingError,
    ValidationError,
)
from studio_booking.utils.logger import get_logger, mask_email, mask_token

logger = get_logger(__name__)

SessionListener = Callable[[Session], None]


class AuthSession:
    """
    Current identity plus its persistence.

    The stored pair (user, token) is the only persisted state; both halves
    are always written or cleared together by the storage backend.
    """

    def __init__(
        self,
        api: StudioAPIClient,
        storage: Optional[SessionStorage] = None,
        redaction_filter: Optional[SecretRedactionFilter] = None,
    ):
        """
        Initialize AuthSession in the anonymous state.

        Args:
            api: REST client used for auth endpoints
            storage: Session pair backend (default: in-memory)
            redaction_filter: Optional log filter that tokens are registered with
        """
        self.api = api
        self.storage = storage or MemorySessionStorage()
        self.redaction_filter = redaction_filter
        self.current = Session.anonymous()
        self.error: Optional[str] = None
        self._listeners: List[SessionListener] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.current.is_authenticated

    @property
    def is_admin(self) -> bool:
        return self.current.is_admin

    @property
    def token(self) -> Optional[str]:
        return self.current.auth_token

    @property
    def role(self) -> Role:
        return self.current.role

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a session-changed listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.current)
            except StudioBookingError as e:
                logger.error(
                    "Session listener failed",
                    operation="session_changed",
                    context={"listener": getattr(listener, "__qualname__", repr(listener))},
                    error=str(e),
                )

    def _set(self, session: Session) -> None:
        """Persist then publish a new session."""
        if session.is_authenticated:
            self.storage.write(session.user_entry(), session.auth_token)
            if self.redaction_filter is not None:
                self.redaction_filter.register(session.auth_token)
        else:
            self.storage.clear()
        self.current = session
        self._notify()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def restore(self) -> Session:
        """
        Load the persisted pair without any network call.

        A pair with only one half present is treated as corrupt and cleared.
        """
        try:
            user, token = self.storage.read()
        except StorageError as e:
            logger.error("Could not read stored session", operation="restore", error=str(e))
            user, token = None, None

        if user and token:
            try:
                session = Session.from_stored(user, token)
            except (KeyError, ValueError) as e:
                logger.warning("Stored session is malformed", operation="restore", error=str(e))
                session = None
            if session is not None and session.is_authenticated:
                self.current = session
                if self.redaction_filter is not None:
                    self.redaction_filter.register(token)
                logger.info(
                    "Session restored",
                    operation="restore",
                    context={"email": mask_email(session.email), "role": session.role.value},
                )
                self._notify()
                return self.current

        if user or token:
            logger.warning(
                "Discarding half-persisted session",
                operation="restore",
                context={"has_user": bool(user), "has_token": bool(token)},
            )
            self.storage.clear()

        self.current = Session.anonymous()
        self._notify()
        return self.current

    def _authenticate(self, operation: str, call: Callable[[], Dict[str, Any]]) -> Session:
        self.error = None
        try:
            data = call()
            user, token = data.get("user"), data.get("token")
            if not isinstance(user, dict) or not token:
                raise ServerError("Unexpected response from server.", operation=operation)
            session = Session.from_auth_response(user, token)
            self._set(session)
        except StudioBookingError as e:
            self.error = e.user_message
            raise

        logger.info(
            "Authenticated",
            operation=operation,
            context={
                "email": mask_email(session.email),
                "role": session.role.value,
                "token": mask_token(session.auth_token),
            },
        )
        return session

    def login(self, credentials: Dict[str, Any]) -> Session:
        """
        Log in with {email, password}.

        Raises:
            ValidationError, AuthRequired, ServerError, NetworkError: Session unchanged
        """
        if not credentials.get("email") or not credentials.get("password"):
            self.error = "Email and password are required"
            raise ValidationError(self.error, operation="login")
        return self._authenticate("login", lambda: self.api.login(credentials))

    def register(self, user_data: Dict[str, Any]) -> Session:
        """Register a new account with {name, email, password} and log it in."""
        missing = [key for key in ("name", "email", "password") if not user_data.get(key)]
        if missing:
            self.error = f"Missing required fields: {', '.join(missing)}"
            raise ValidationError(self.error, operation="register")
        return self._authenticate("register", lambda: self.api.register(user_data))

    def request_admin_otp(self, email: str) -> str:
        """Ask the server to email an admin verification code. Returns the server message."""
        if not email:
            raise ValidationError("Email is required", operation="request_admin_otp")
        data = self.api.request_admin_otp(email)
        return data.get("message", "Verification code has been sent to your email")

    def verify_admin_otp(self, email: str, otp: str) -> Session:
        """Exchange an admin verification code for an admin session."""
        if not email or not otp:
            self.error = "Email and verification code are required"
            raise ValidationError(self.error, operation="verify_admin_otp")
        return self._authenticate(
            "verify_admin_otp", lambda: self.api.verify_admin_otp(email, otp)
        )

    def fetch_profile(self) -> Session:
        """
        Refresh the persisted user entry from GET /api/auth/profile.

        A 401 means the token is no longer valid and ends the session.
        """
        if not self.is_authenticated:
            raise AuthRequired(operation="fetch_profile")
        try:
            data = self.api.get_profile(self.token)
        except AuthRequired as e:
            if e.status_code == 401:
                self.invalidate()
            raise

        user = data.get("user")
        if not isinstance(user, dict):
            raise ServerError("Unexpected response from server.", operation="fetch_profile")

        refreshed = Session.from_auth_response(user, self.token)
        if self.current.role == Role.ADMIN:
            refreshed = replace(refreshed, role=Role.ADMIN)
        self._set(refreshed)
        return refreshed

    def logout(self) -> None:
        """Clear the persisted pair and reset to anonymous. Never raises."""
        try:
            self.storage.clear()
        except StorageError as e:
            logger.error("Failed to clear stored session", operation="logout", error=str(e))
        self.current = Session.anonymous()
        self.error = None
        logger.info("Logged out", operation="logout")
        self._notify()

    def invalidate(self) -> None:
        """End the session after the server rejected its token (HTTP 401)."""
        logger.warning(
            "Session token rejected by server",
            operation="invalidate",
            context={"token": mask_token(self.token)},
        )
        self.logout()
