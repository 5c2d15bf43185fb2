"""
In-memory stand-in for the studio REST API.

Plugged into StudioAPIClient through Mock(spec=requests.Session) so tests can
drive end-to-end flows and still inspect every request that was sent.
"""

import itertools
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import Mock
from urllib.parse import urlparse

import requests

BASE_URL = "http://api.test"

CUSTOMER_EMAIL = "jane@example.com"
ADMIN_EMAIL = "admin@studio.test"
PASSWORD = "secret"

TRANSITIONS = {
    "pending": {"approved", "rejected"},
    "approved": {"completed"},
    "rejected": set(),
    "completed": set(),
}


class FakeResponse:
    def __init__(self, status_code: int, body: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeStudioBackend:
    """Implements the auth, admin OTP and booking endpoints in memory."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.bookings: List[Dict[str, Any]] = []
        self.otps: Dict[str, str] = {}
        self.calls: List[Tuple[str, str]] = []
        self._ids = itertools.count(1)
        self._failures: List[Tuple[str, str, Any]] = []

    # -- test setup helpers -------------------------------------------------

    def add_user(self, email: str, password: str = "secret", name: str = "Test User",
                 role: str = "user") -> Dict[str, Any]:
        user = {
            "_id": f"user{next(self._ids)}",
            "name": name,
            "email": email,
            "password": password,
            "role": role,
            "avatar": None,
        }
        self.users[email] = user
        return user

    def issue_token(self, email: str) -> str:
        user = self.users[email]
        token = f"token-{user['_id']}-{next(self._ids)}"
        self.tokens[token] = email
        return token

    def add_booking(self, owner_email: str, status: str = "pending", **fields) -> Dict[str, Any]:
        booking = {
            "_id": f"bk{next(self._ids)}",
            "user": self.users[owner_email]["_id"],
            "serviceType": "Wedding Shoot",
            "packageType": "Silver Package",
            "date": "2025-06-01T00:00:00.000Z",
            "location": "Dehradun",
            "additionalRequirements": "",
            "price": 75000,
            "status": status,
            "adminNotes": "",
            "createdAt": "2025-05-01T10:00:00.000Z",
        }
        booking.update(fields)
        self.bookings.append(booking)
        return booking

    def fail_next(self, method: str, path_prefix: str, status: Any,
                  message: str = "Injected failure") -> None:
        """Make the next matching request fail with a status code or raise an exception."""
        self._failures.append((method, path_prefix, (status, message)))

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call == (method, path))

    def session(self) -> Mock:
        session = Mock(spec=requests.Session)
        session.request.side_effect = self.handle
        return session

    # -- request dispatch ---------------------------------------------------

    def handle(self, method, url, headers=None, json=None, params=None, timeout=None):
        path = urlparse(url).path
        self.calls.append((method, path))

        for index, (f_method, prefix, (status, message)) in enumerate(self._failures):
            if f_method == method and path.startswith(prefix):
                del self._failures[index]
                if isinstance(status, Exception):
                    raise status
                return FakeResponse(status, {"success": False, "message": message})

        headers = headers or {}
        body = json or {}
        user = self._user_for(headers.get("Authorization", ""))

        if path == "/api/auth/login" and method == "POST":
            return self._login(body)
        if path == "/api/auth/register" and method == "POST":
            return self._register(body)
        if path == "/api/admin/login" and method == "POST":
            return self._admin_login(body)
        if path == "/api/admin/verify-otp" and method == "POST":
            return self._admin_verify(body)

        if user is None:
            return FakeResponse(401, {"message": "Authentication invalid"})

        if path == "/api/auth/profile" and method == "GET":
            return FakeResponse(200, {"user": self._public(user)})
        if path == "/api/bookings" and method == "POST":
            return self._create(user, body)
        if path == "/api/bookings" and method == "GET":
            mine = [b for b in self.bookings if b["user"] == user["_id"]]
            return FakeResponse(200, {"success": True, "bookings": [dict(b) for b in mine]})
        if path == "/api/bookings/admin/all" and method == "GET":
            return self._all(user, params or {})
        if path.startswith("/api/bookings/admin/status/") and method == "PATCH":
            return self._update_status(user, path.rsplit("/", 1)[1], body)
        if path.startswith("/api/bookings/"):
            booking_id = path.rsplit("/", 1)[1]
            if method == "GET":
                return self._get(user, booking_id)
            if method == "DELETE":
                return self._delete(user, booking_id)

        return FakeResponse(404, {"message": f"Route {path} not found"})

    # -- endpoint implementations -------------------------------------------

    def _user_for(self, authorization: str) -> Optional[Dict[str, Any]]:
        if not authorization.startswith("Bearer "):
            return None
        email = self.tokens.get(authorization[len("Bearer "):])
        return self.users.get(email) if email else None

    @staticmethod
    def _public(user: Dict[str, Any]) -> Dict[str, Any]:
        public = {k: v for k, v in user.items() if k != "password"}
        if user["role"] != "admin":
            public.pop("role", None)
        return public

    def _find(self, booking_id: str) -> Optional[Dict[str, Any]]:
        return next((b for b in self.bookings if b["_id"] == booking_id), None)

    def _login(self, body):
        user = self.users.get(body.get("email"))
        if user is None or user["password"] != body.get("password"):
            return FakeResponse(401, {"message": "Invalid credentials"})
        return FakeResponse(200, {"user": self._public(user), "token": self.issue_token(user["email"])})

    def _register(self, body):
        if body.get("email") in self.users:
            return FakeResponse(400, {"message": "Email already registered"})
        user = self.add_user(body["email"], body["password"], body["name"])
        return FakeResponse(201, {"user": self._public(user), "token": self.issue_token(user["email"])})

    def _admin_login(self, body):
        user = self.users.get(body.get("email"))
        if user is None or user["role"] != "admin":
            return FakeResponse(403, {"message": "Unauthorized access"})
        self.otps[user["email"]] = "123456"
        return FakeResponse(200, {"message": "Verification code has been sent to your email"})

    def _admin_verify(self, body):
        email = body.get("email")
        if self.otps.get(email) != body.get("otp"):
            return FakeResponse(400, {"message": "Invalid or expired verification code"})
        del self.otps[email]
        user = self.users[email]
        return FakeResponse(200, {
            "message": "Admin login successful",
            "user": {"_id": user["_id"], "name": user["name"], "email": email, "isAdmin": True},
            "token": self.issue_token(email),
        })

    def _create(self, user, body):
        required = ("serviceType", "packageType", "date", "location", "price")
        if any(not body.get(key) for key in required):
            return FakeResponse(400, {"message": "Please provide all required fields"})
        booking = self.add_booking(
            user["email"],
            serviceType=body["serviceType"],
            packageType=body["packageType"],
            date=body["date"],
            location=body["location"],
            additionalRequirements=body.get("additionalRequirements", ""),
            price=body["price"],
        )
        return FakeResponse(201, {"success": True, "booking": dict(booking)})

    def _get(self, user, booking_id):
        booking = self._find(booking_id)
        if booking is None:
            return FakeResponse(404, {"message": f"No booking found with id {booking_id}"})
        if booking["user"] != user["_id"] and user["role"] != "admin":
            return FakeResponse(403, {"message": "Not authorized to access this booking"})
        return FakeResponse(200, {"success": True, "booking": dict(booking)})

    def _delete(self, user, booking_id):
        booking = self._find(booking_id)
        if booking is None:
            return FakeResponse(404, {"message": f"No booking found with id {booking_id}"})
        if booking["user"] != user["_id"] and user["role"] != "admin":
            return FakeResponse(403, {"message": "Not authorized to delete this booking"})
        if user["role"] != "admin" and booking["status"] != "pending":
            return FakeResponse(400, {"message": f"Cannot delete booking with status '{booking['status']}'"})
        self.bookings.remove(booking)
        return FakeResponse(200, {"success": True, "message": "Booking successfully deleted"})

    def _all(self, user, params):
        if user["role"] != "admin":
            return FakeResponse(403, {"message": "Not authorized to access all bookings"})
        status = params.get("status")
        selected = [dict(b) for b in self.bookings if not status or b["status"] == status]
        return FakeResponse(200, {"success": True, "count": len(selected), "bookings": selected})

    def _update_status(self, user, booking_id, body):
        if user["role"] != "admin":
            return FakeResponse(403, {"message": "Not authorized to update booking status"})
        status = body.get("status")
        if not status:
            return FakeResponse(400, {"message": "Status is required"})
        booking = self._find(booking_id)
        if booking is None:
            return FakeResponse(404, {"message": f"No booking found with id {booking_id}"})
        if status not in TRANSITIONS[booking["status"]]:
            return FakeResponse(400, {
                "message": f"Cannot change status from '{booking['status']}' to '{status}'"
            })
        booking["status"] = status
        if body.get("adminNotes"):
            booking["adminNotes"] = body["adminNotes"]
        return FakeResponse(200, {"success": True, "booking": dict(booking)})


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
