"""
Studio REST API client.

Thin transport over requests.Session that attaches bearer tokens and maps
non-2xx responses onto the client exception hierarchy. All endpoints are
relative to the configured base URL.
"""

import time
from typing import Any, Dict, List, Optional

import requests

from studio_booking.exceptions import (
    AuthRequired,
    NetworkError,
    NotFoundError,
    PermissionDenied,
    ServerError,
    StudioBookingError,
    ValidationError,
)
from studio_booking.utils.logger import get_logger, mask_email

logger = get_logger(__name__)


class StudioAPIClient:
    """
    Client for the studio booking REST API.

    Every call returns the decoded JSON body of a 2xx response, or raises a
    StudioBookingError subclass. Authenticated calls require a non-empty
    token and fail with AuthRequired before any I/O when it is missing.
    """

    DEFAULT_BASE_URL = "http://localhost:5000"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize API client.

        Args:
            base_url: API root, e.g. "https://api.example.com"
            session: requests.Session to send requests through (default: new session)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, token: Optional[str], with_body: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if with_body:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        token: Optional[str] = None,
        auth: bool = True,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        fallback_message: str = "Request failed",
    ) -> Dict[str, Any]:
        """
        Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path below the base URL, starting with "/"
            operation: Operation name for logs and error objects
            token: Bearer token
            auth: Whether the endpoint requires a token
            json_body: JSON request body
            params: Query string parameters
            fallback_message: Message used when the server sends none

        Returns:
            Decoded JSON object

        Raises:
            AuthRequired: Token missing (local) or HTTP 401
            ValidationError: HTTP 400/422
            PermissionDenied: HTTP 403
            NotFoundError: HTTP 404
            ServerError: Any other non-2xx status or undecodable body
            NetworkError: Request never completed
        """
        if auth and not token:
            logger.warning(
                "Refusing authenticated request without token",
                operation=operation,
                context={"path": path},
            )
            raise AuthRequired(operation=operation)

        url = f"{self.base_url}{path}"
        context: Dict[str, Any] = {"method": method, "path": path}
        if params:
            context["params"] = params

        start_time = time.time()
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(token if auth else None, json_body is not None),
                json=json_body,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "Request did not complete",
                operation=operation,
                context=context,
                error=str(e),
            )
            raise NetworkError(
                f"Network error during {operation}: {e}", operation=operation
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code
        context["status"] = status_code

        try:
            data = response.json()
        except ValueError:
            data = None

        if 200 <= status_code < 300:
            if not isinstance(data, dict):
                logger.error(
                    "Undecodable response body",
                    operation=operation,
                    context=context,
                    duration_ms=duration_ms,
                )
                raise ServerError(
                    "Unexpected response from server.",
                    status_code=status_code,
                    operation=operation,
                )
            logger.debug("Request succeeded", operation=operation, context=context)
            return data

        message = fallback_message
        if isinstance(data, dict) and data.get("message"):
            message = str(data["message"])

        logger.error(
            "Request rejected by server",
            operation=operation,
            context=context,
            error=message,
            duration_ms=duration_ms,
        )
        raise self._error_for_status(status_code, message, operation)

    @staticmethod
    def _error_for_status(
        status_code: int, message: str, operation: str
    ) -> StudioBookingError:
        if status_code in (400, 422):
            return ValidationError(message, status_code=status_code, operation=operation)
        if status_code == 401:
            return AuthRequired(message, status_code=status_code, operation=operation)
        if status_code == 403:
            return PermissionDenied(message, status_code=status_code, operation=operation)
        if status_code == 404:
            return NotFoundError(message, status_code=status_code, operation=operation)
        return ServerError(message, status_code=status_code, operation=operation)

    # ------------------------------------------------------------------
    # Auth endpoints
    # ------------------------------------------------------------------

    def login(self, credentials: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/auth/login -> {user, token}"""
        logger.info(
            "Logging in",
            operation="login",
            context={"email": mask_email(credentials.get("email"))},
        )
        return self._request(
            "POST",
            "/api/auth/login",
            operation="login",
            auth=False,
            json_body=credentials,
            fallback_message="Login failed",
        )

    def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/auth/register -> {user, token}"""
        logger.info(
            "Registering account",
            operation="register",
            context={"email": mask_email(user_data.get("email"))},
        )
        return self._request(
            "POST",
            "/api/auth/register",
            operation="register",
            auth=False,
            json_body=user_data,
            fallback_message="Registration failed",
        )

    def get_profile(self, token: Optional[str]) -> Dict[str, Any]:
        """GET /api/auth/profile -> {user}"""
        return self._request(
            "GET",
            "/api/auth/profile",
            operation="get_profile",
            token=token,
            fallback_message="Failed to fetch profile",
        )

    def request_admin_otp(self, email: str) -> Dict[str, Any]:
        """POST /api/admin/login -> {message}"""
        return self._request(
            "POST",
            "/api/admin/login",
            operation="request_admin_otp",
            auth=False,
            json_body={"email": email},
            fallback_message="Failed to send verification code",
        )

    def verify_admin_otp(self, email: str, otp: str) -> Dict[str, Any]:
        """POST /api/admin/verify-otp -> {user, token}"""
        return self._request(
            "POST",
            "/api/admin/verify-otp",
            operation="verify_admin_otp",
            auth=False,
            json_body={"email": email, "otp": otp},
            fallback_message="Invalid or expired verification code",
        )

    # ------------------------------------------------------------------
    # Booking endpoints
    # ------------------------------------------------------------------

    def create_booking(self, token: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/bookings -> {booking}"""
        return self._request(
            "POST",
            "/api/bookings",
            operation="create_booking",
            token=token,
            json_body=payload,
            fallback_message="Failed to create booking",
        )

    def list_user_bookings(self, token: Optional[str]) -> List[Dict[str, Any]]:
        """GET /api/bookings -> {bookings}"""
        data = self._request(
            "GET",
            "/api/bookings",
            operation="fetch_user_bookings",
            token=token,
            fallback_message="Failed to fetch bookings",
        )
        return list(data.get("bookings") or [])

    def get_booking(self, token: Optional[str], booking_id: str) -> Dict[str, Any]:
        """GET /api/bookings/:id -> {booking}"""
        return self._request(
            "GET",
            f"/api/bookings/{booking_id}",
            operation="get_booking",
            token=token,
            fallback_message="Failed to fetch booking",
        )

    def list_all_bookings(
        self, token: Optional[str], status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """GET /api/bookings/admin/all[?status=...] -> {bookings}"""
        data = self._request(
            "GET",
            "/api/bookings/admin/all",
            operation="fetch_all_bookings",
            token=token,
            params={"status": status} if status else None,
            fallback_message="Failed to fetch all bookings",
        )
        return list(data.get("bookings") or [])

    def update_booking_status(
        self, token: Optional[str], booking_id: str, status: str, admin_notes: str = ""
    ) -> Dict[str, Any]:
        """PATCH /api/bookings/admin/status/:id -> {booking}"""
        return self._request(
            "PATCH",
            f"/api/bookings/admin/status/{booking_id}",
            operation="update_booking_status",
            token=token,
            json_body={"status": status, "adminNotes": admin_notes},
            fallback_message="Failed to update booking status",
        )

    def cancel_booking(self, token: Optional[str], booking_id: str) -> Dict[str, Any]:
        """DELETE /api/bookings/:id -> {...result}"""
        return self._request(
            "DELETE",
            f"/api/bookings/{booking_id}",
            operation="cancel_booking",
            token=token,
            fallback_message="Failed to cancel booking",
        )
