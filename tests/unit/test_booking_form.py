"""
Unit tests for BookingFormFlow.

Covers derived pricing, local validation, the AWAITING_AUTH suspension and
its single resumption, and the scheduled redirect after success.
"""

import pytest

from studio_booking.bookings.form import (
    REQUIRED_FIELDS_MESSAGE,
    SUCCESS_MESSAGE,
    BookingFormFlow,
    FlowState,
    Outcome,
)
from studio_booking.config.settings import BOOKINGS_VIEW_PATH
from studio_booking.domain.booking import BookingStatus
from studio_booking.exceptions import ServerError, ValidationError
from tests.fake_backend import CUSTOMER_EMAIL, PASSWORD

CREATE = ("POST", "/api/bookings")


@pytest.fixture
def prompts():
    return []


@pytest.fixture
def form(store, auth, catalog, prompts):
    form = BookingFormFlow(store, auth, catalog, open_auth_prompt=lambda: prompts.append(1))
    yield form
    form.close()


def fill_wedding(form):
    form.select_service("Wedding Shoot")
    form.select_package("Silver Package")
    form.set_field("date", "2025-06-01")
    form.set_field("location", "Dehradun")


class TestDraftEditing:
    def test_price_follows_package(self, form):
        assert form.select_package("Gold Package") == 105000
        assert form.select_package("Traditional Wedding") == 49999
        assert form.select_package("") == 0
        assert form.draft.price == 0

    def test_service_does_not_change_price(self, form):
        form.select_package("Silver Package")
        assert form.select_service("Portrait Session") == 75000

    def test_unknown_package_is_rejected(self, form):
        with pytest.raises(ValidationError):
            form.select_package("Platinum Package")
        assert form.draft.package_type == ""

    def test_price_is_not_editable(self, form):
        with pytest.raises(ValidationError):
            form.set_field("price", "1")


class TestValidation:
    def test_missing_location_blocks_submit(self, customer, form, backend):
        form.select_service("Wedding Shoot")
        form.select_package("Silver Package")
        form.set_field("date", "2025-06-01")

        with pytest.raises(ValidationError):
            form.submit()

        assert form.message.text == REQUIRED_FIELDS_MESSAGE
        assert form.message.type == "error"
        assert backend.count(*CREATE) == 0

    def test_whitespace_only_field_counts_as_missing(self, customer, form, backend):
        fill_wedding(form)
        form.set_field("location", "   ")

        with pytest.raises(ValidationError):
            form.submit()
        assert backend.count(*CREATE) == 0

    def test_malformed_date(self, customer, form, backend):
        fill_wedding(form)
        form.set_field("date", "June 1st")

        with pytest.raises(ValidationError):
            form.submit()
        assert backend.count(*CREATE) == 0

    def test_anonymous_invalid_draft_does_not_prompt(self, form, prompts):
        with pytest.raises(ValidationError):
            form.submit()
        assert prompts == []
        assert form.state == FlowState.READY


class TestAuthenticatedSubmit:
    def test_submit_creates_pending_booking(self, customer, form, backend):
        fill_wedding(form)

        result = form.submit()

        assert result.outcome == Outcome.SUBMITTED
        assert result.booking.status == BookingStatus.PENDING
        assert result.booking.price == 75000
        assert result.message.text == SUCCESS_MESSAGE
        assert result.redirect_to == BOOKINGS_VIEW_PATH
        assert backend.count(*CREATE) == 1

    def test_draft_reset_after_success(self, customer, form):
        fill_wedding(form)
        form.submit()
        assert form.draft.service_type == ""
        assert form.draft.price == 0

    def test_redirect_scheduled_after_delay(self, store, customer, catalog):
        scheduled = []
        redirects = []
        form = BookingFormFlow(
            store,
            customer,
            catalog,
            redirect=redirects.append,
            scheduler=lambda delay, callback: scheduled.append((delay, callback)),
        )
        fill_wedding(form)

        form.submit()

        assert [delay for delay, _ in scheduled] == [3.0]
        assert redirects == []
        scheduled[0][1]()
        assert redirects == [BOOKINGS_VIEW_PATH]
        form.close()

    def test_server_failure_keeps_draft(self, customer, form, backend):
        fill_wedding(form)
        backend.fail_next("POST", "/api/bookings", 500)

        result = form.submit()

        assert result.outcome == Outcome.FAILED
        assert result.message.type == "error"
        assert result.message.text == ServerError.default_user_message
        assert form.draft.location == "Dehradun"


class TestAnonymousSubmit:
    def test_submit_suspends_and_opens_prompt(self, form, prompts, backend):
        fill_wedding(form)

        result = form.submit()

        assert result.outcome == Outcome.AWAITING_AUTH
        assert form.state == FlowState.AWAITING_AUTH
        assert prompts == [1]
        assert backend.calls == []

    def test_login_resumes_exactly_once(self, form, auth, backend):
        fill_wedding(form)
        form.submit()

        auth.login({"email": CUSTOMER_EMAIL, "password": PASSWORD})
        closed = form.on_auth_prompt_closed()

        assert closed is None
        assert backend.count(*CREATE) == 1
        assert form.state == FlowState.READY
        assert form.last_result.outcome == Outcome.SUBMITTED
        assert form.last_result.booking.price == 75000

    def test_prompt_closed_after_login_without_notification(self, form, auth, backend):
        fill_wedding(form)
        form.submit()
        form.close()
        auth.login({"email": CUSTOMER_EMAIL, "password": PASSWORD})

        result = form.on_auth_prompt_closed()

        assert result.outcome == Outcome.SUBMITTED
        assert backend.count(*CREATE) == 1

    def test_prompt_dismissed_drops_submission(self, form, auth, backend):
        fill_wedding(form)
        form.submit()

        assert form.on_auth_prompt_closed() is None
        assert form.state == FlowState.READY

        auth.login({"email": CUSTOMER_EMAIL, "password": PASSWORD})
        assert backend.count(*CREATE) == 0

    def test_resumed_submission_uses_draft_held_at_submit(self, form, auth, backend):
        fill_wedding(form)
        form.submit()
        form.set_field("location", "Mussoorie")

        auth.login({"email": CUSTOMER_EMAIL, "password": PASSWORD})

        assert backend.bookings[0]["location"] == "Dehradun"

    def test_prompt_that_logs_in_returns_submitted_result(self, store, auth, catalog, backend):
        form = BookingFormFlow(
            store,
            auth,
            catalog,
            open_auth_prompt=lambda: auth.login({"email": CUSTOMER_EMAIL, "password": PASSWORD}),
        )
        fill_wedding(form)

        result = form.submit()

        assert result.outcome == Outcome.SUBMITTED
        assert result.booking.price == 75000
        assert form.state == FlowState.READY
        assert backend.count(*CREATE) == 1
        assert form.on_auth_prompt_closed() is None
        assert backend.count(*CREATE) == 1
        form.close()
