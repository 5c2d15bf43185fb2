"""Shared fixtures: fake backend, API client, session and store wiring."""

import pytest

from studio_booking.api.client import StudioAPIClient
from studio_booking.auth.session import AuthSession
from studio_booking.auth.storage import MemorySessionStorage
from studio_booking.bookings.store import BookingStore
from studio_booking.config.settings import load_catalog
from tests.fake_backend import (
    ADMIN_EMAIL,
    BASE_URL,
    CUSTOMER_EMAIL,
    PASSWORD,
    FakeClock,
    FakeStudioBackend,
)


@pytest.fixture
def backend():
    backend = FakeStudioBackend()
    backend.add_user(CUSTOMER_EMAIL, PASSWORD, name="Jane Doe")
    backend.add_user(ADMIN_EMAIL, PASSWORD, name="Studio Admin", role="admin")
    return backend


@pytest.fixture
def http_session(backend):
    return backend.session()


@pytest.fixture
def api(http_session):
    return StudioAPIClient(BASE_URL, session=http_session, timeout=5)


@pytest.fixture
def storage():
    return MemorySessionStorage()


@pytest.fixture
def auth(api, storage):
    return AuthSession(api, storage)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(api, auth, clock):
    """Store without auto-load so each test controls every request."""
    store = BookingStore(api, auth, min_fetch_interval=5.0, clock=clock, auto_load=False)
    yield store
    store.close()


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def customer(auth):
    auth.login({"email": CUSTOMER_EMAIL, "password": PASSWORD})
    return auth


@pytest.fixture
def admin(auth):
    auth.login({"email": ADMIN_EMAIL, "password": PASSWORD})
    return auth
