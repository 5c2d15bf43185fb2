"""
Session domain model.

Represents the identity currently acting against the studio API. The
persisted form is split in two entries, `user` (everything but the token)
and `token`, which are always written and cleared together.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Role(str, Enum):
    GUEST = "guest"
    CUSTOMER = "customer"
    ADMIN = "admin"


def role_from_user(data: Dict[str, Any]) -> Role:
    """Map a server user payload to a Role. Only admins are distinguished."""
    if data.get("role") == Role.ADMIN.value or data.get("isAdmin") is True:
        return Role.ADMIN
    return Role.CUSTOMER


@dataclass(frozen=True)
class Session:
    """
    Session domain model.

    Attributes:
        user_id: Server user id (`_id`)
        display_name: User's name
        email: User's email address
        role: guest, customer or admin
        auth_token: Bearer token; None for anonymous sessions
        avatar_ref: Avatar URL or image reference, if any
    """

    user_id: Optional[str] = None
    display_name: str = ""
    email: str = ""
    role: Role = Role.GUEST
    auth_token: Optional[str] = None
    avatar_ref: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "Session":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.auth_token) and self.role != Role.GUEST

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == Role.ADMIN

    @classmethod
    def from_auth_response(cls, user: Dict[str, Any], token: str) -> "Session":
        """
        Build a session from a login/register/OTP response body.

        Args:
            user: The `user` object returned by the server
            token: The bearer token returned by the server

        Returns:
            Authenticated Session
        """
        user_id = user.get("_id") or user.get("id")
        return cls(
            user_id=str(user_id) if user_id is not None else None,
            display_name=user.get("name", "") or "",
            email=user.get("email", "") or "",
            role=role_from_user(user),
            auth_token=token,
            avatar_ref=user.get("avatar"),
        )

    @classmethod
    def from_stored(cls, user: Dict[str, Any], token: str) -> "Session":
        """Rebuild a session from the persisted `user` entry and `token` entry."""
        return cls(
            user_id=user.get("user_id"),
            display_name=user.get("display_name", ""),
            email=user.get("email", ""),
            role=Role(user.get("role", Role.CUSTOMER.value)),
            auth_token=token,
            avatar_ref=user.get("avatar_ref"),
        )

    def user_entry(self) -> Dict[str, Any]:
        """Serializable `user` storage entry (the session minus its token)."""
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "email": self.email,
            "role": self.role.value,
            "avatar_ref": self.avatar_ref,
        }
