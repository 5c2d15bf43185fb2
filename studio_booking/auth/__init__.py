"""Auth module - session state and session pair persistence"""

from .session import AuthSession
from .storage import (
    DynamoDBSessionStorage,
    FileSessionStorage,
    MemorySessionStorage,
    SessionStorage,
)

__all__ = [
    "AuthSession",
    "SessionStorage",
    "MemorySessionStorage",
    "FileSessionStorage",
    "DynamoDBSessionStorage",
]
