"""
Component wiring.

Builds the API client, session, store and flows from Settings so callers
(the CLI, a UI shell, tests) share one set of instances per process.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from studio_booking.api.client import StudioAPIClient
from studio_booking.auth.session import AuthSession
from studio_booking.auth.storage import (
    DynamoDBSessionStorage,
    FileSessionStorage,
    MemorySessionStorage,
    SessionStorage,
)
from studio_booking.bookings.admin import AdminReviewFlow
from studio_booking.bookings.form import BookingFormFlow
from studio_booking.bookings.store import BookingStore
from studio_booking.config.settings import Settings, setup_token_redaction
from studio_booking.domain.catalog import PackageCatalog
from studio_booking.utils.logger import get_logger, log_operation

logger = get_logger(__name__)


def build_storage(settings: Settings) -> SessionStorage:
    """Create the session pair backend selected by STUDIO_SESSION_BACKEND."""
    if settings.session_backend == "memory":
        return MemorySessionStorage()
    if settings.session_backend == "dynamodb":
        return DynamoDBSessionStorage(
            table_name=settings.session_table, region_name=settings.aws_region
        )
    return FileSessionStorage(settings.session_file)


@dataclass
class StudioApp:
    settings: Settings
    api: StudioAPIClient
    auth: AuthSession
    store: BookingStore
    catalog: PackageCatalog

    def booking_form(self, **kwargs) -> BookingFormFlow:
        """New booking form bound to this app's session and store."""
        kwargs.setdefault("redirect_delay", self.settings.redirect_delay)
        return BookingFormFlow(self.store, self.auth, self.catalog, **kwargs)

    def admin_review(self) -> AdminReviewFlow:
        return AdminReviewFlow(self.store)


@log_operation("build_app")
def build_app(
    settings: Optional[Settings] = None,
    http_session: Optional[requests.Session] = None,
    storage: Optional[SessionStorage] = None,
    clock: Callable[[], float] = time.monotonic,
    auto_load: bool = True,
    restore: bool = True,
) -> StudioApp:
    """
    Wire all components.

    Args:
        settings: Configuration (default: read from environment)
        http_session: requests.Session for the API client
        storage: Session backend override
        clock: Time source for the fetch debounce guard
        auto_load: Load bookings on every identity change
        restore: Restore the persisted session before returning
    """
    settings = settings or Settings()
    redaction_filter = setup_token_redaction()

    api = StudioAPIClient(settings.api_url, session=http_session, timeout=settings.http_timeout)
    auth = AuthSession(api, storage or build_storage(settings), redaction_filter=redaction_filter)
    store = BookingStore(
        api,
        auth,
        min_fetch_interval=settings.min_fetch_interval,
        clock=clock,
        auto_load=auto_load,
    )
    catalog = settings.load_catalog()

    if restore:
        auth.restore()

    logger.debug("Application wired", operation="build_app", context=settings.as_dict())
    return StudioApp(settings=settings, api=api, auth=auth, store=store, catalog=catalog)
