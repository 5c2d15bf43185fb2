"""
Session pair persistence.

The session is persisted as two entries, `user` and `token`. Every backend
writes and clears them as one unit so a reader never observes one entry
without the other.
"""

import json
import os
import tempfile
import time
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from studio_booking.exceptions import StorageError
from studio_booking.utils.logger import get_logger

logger = get_logger(__name__)

StoredPair = Tuple[Optional[Dict[str, Any]], Optional[str]]

USER_KEY = "user"
TOKEN_KEY = "token"


class SessionStorage:
    """
    Interface for session pair backends.

    read() may return a half-present pair if the underlying store was
    corrupted externally; AuthSession treats that as anonymous.
    """

    def read(self) -> StoredPair:
        raise NotImplementedError

    def write(self, user: Dict[str, Any], token: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStorage(SessionStorage):
    """In-process storage; the pair lives as long as this object."""

    def __init__(self):
        self.entries: Dict[str, Any] = {}

    def read(self) -> StoredPair:
        user = self.entries.get(USER_KEY)
        return (json.loads(user) if user else None, self.entries.get(TOKEN_KEY))

    def write(self, user: Dict[str, Any], token: str) -> None:
        self.entries = {USER_KEY: json.dumps(user), TOKEN_KEY: token}

    def clear(self) -> None:
        self.entries = {}


class FileSessionStorage(SessionStorage):
    """
    JSON file storage: {"user": {...}, "token": "..."}.

    Writes go to a temporary file in the same directory which then replaces
    the target, so the pair is updated atomically.
    """

    def __init__(self, path: str):
        self.path = path

    def read(self) -> StoredPair:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None, None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "Unreadable session file",
                operation="read_session",
                context={"path": self.path},
                error=str(e),
            )
            return None, None

        if not isinstance(data, dict):
            return None, None
        user = data.get(USER_KEY)
        return (user if isinstance(user, dict) else None, data.get(TOKEN_KEY))

    def write(self, user: Dict[str, Any], token: str) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".session-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump({USER_KEY: user, TOKEN_KEY: token}, f)
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(
                "Failed to write session file",
                operation="write_session",
                context={"path": self.path},
                error=str(e),
            )
            raise StorageError(f"Failed to write session file {self.path}: {e}") from e

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(
                "Failed to remove session file",
                operation="clear_session",
                context={"path": self.path},
                error=str(e),
            )
            raise StorageError(f"Failed to remove session file {self.path}: {e}") from e


class DynamoDBSessionStorage(SessionStorage):
    """
    DynamoDB storage holding the pair in a single item.

    Table Schema:
        Partition Key: id (session slot, default "1")
        Attributes: user (JSON string), token
    """

    def __init__(
        self,
        table_name: str = "session",
        dynamodb_resource: Optional[Any] = None,
        slot_id: str = "1",
        region_name: Optional[str] = None,
    ):
        """
        Initialize DynamoDBSessionStorage.

        Args:
            table_name: DynamoDB table name (default: "session")
            dynamodb_resource: boto3 DynamoDB resource (default: creates new)
            slot_id: Partition key of the session item
            region_name: AWS region used when creating the resource
        """
        self.table_name = table_name
        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        self.slot_id = slot_id

    def _translate(self, exc: Exception, operation: str) -> StorageError:
        context = {"table": self.table_name, "slot_id": self.slot_id}
        if isinstance(exc, ClientError):
            error_code = exc.response.get("Error", {}).get("Code", "Unknown")
            logger.error("DynamoDB error", operation=operation, context=context, error=error_code)
            if error_code == "AccessDeniedException":
                return StorageError(f"Insufficient IAM permissions: {error_code}")
            return StorageError(f"DynamoDB error: {exc}")

        logger.error("Network error", operation=operation, context=context, error=str(exc))
        return StorageError(f"Network error: {exc}")

    def read(self) -> StoredPair:
        try:
            start_time = time.time()
            response = self.table.get_item(Key={"id": self.slot_id})
            duration_ms = (time.time() - start_time) * 1000
        except (ClientError, BotoCoreError, OSError) as e:
            raise self._translate(e, "read_session") from e

        item = response.get("Item")
        if item is None:
            return None, None

        logger.debug(
            "Session item retrieved",
            operation="read_session",
            context={"slot_id": self.slot_id, "duration_ms": round(duration_ms, 2)},
        )

        user_raw = item.get(USER_KEY)
        try:
            user = json.loads(user_raw) if user_raw else None
        except (TypeError, json.JSONDecodeError):
            user = None
        return user, item.get(TOKEN_KEY)

    def write(self, user: Dict[str, Any], token: str) -> None:
        try:
            self.table.put_item(
                Item={"id": self.slot_id, USER_KEY: json.dumps(user), TOKEN_KEY: token}
            )
        except (ClientError, BotoCoreError, OSError) as e:
            raise self._translate(e, "write_session") from e

    def clear(self) -> None:
        try:
            self.table.delete_item(Key={"id": self.slot_id})
        except (ClientError, BotoCoreError, OSError) as e:
            raise self._translate(e, "clear_session") from e
