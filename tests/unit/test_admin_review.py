"""Unit tests for AdminReviewFlow."""

import pytest

from studio_booking.bookings.admin import AdminReviewFlow
from studio_booking.domain.booking import BookingStatus
from tests.fake_backend import CUSTOMER_EMAIL


@pytest.fixture
def review(store):
    return AdminReviewFlow(store)


class TestListing:
    def test_refresh_lists_everything(self, admin, review, backend):
        backend.add_booking(CUSTOMER_EMAIL)
        backend.add_booking(CUSTOMER_EMAIL, status="approved")

        assert len(review.refresh()) == 2
        assert review.counts_by_status() == {
            "pending": 1,
            "approved": 1,
            "rejected": 0,
            "completed": 0,
        }

    def test_set_filter(self, admin, review, backend):
        backend.add_booking(CUSTOMER_EMAIL)
        backend.add_booking(CUSTOMER_EMAIL, status="rejected")

        bookings = review.set_filter("rejected")

        assert review.status_filter == BookingStatus.REJECTED
        assert [b.status for b in bookings] == [BookingStatus.REJECTED]

    def test_clear_filter(self, admin, review, backend):
        backend.add_booking(CUSTOMER_EMAIL)
        review.set_filter("approved")

        assert len(review.set_filter("")) == 1
        assert review.status_filter is None

    def test_unknown_filter_keeps_current_one(self, admin, review, backend):
        review.set_filter("pending")

        assert review.set_filter("archived") == []
        assert review.status_filter == BookingStatus.PENDING
        assert review.error.kind == "ValidationError"

    def test_customer_sees_nothing(self, customer, review, backend):
        backend.add_booking(CUSTOMER_EMAIL)

        assert review.refresh() == []
        assert review.error.kind == "PermissionDenied"
        assert backend.count("GET", "/api/bookings/admin/all") == 0


class TestTransitions:
    def test_available_actions(self, admin, review, backend):
        backend.add_booking(CUSTOMER_EMAIL)
        backend.add_booking(CUSTOMER_EMAIL, status="approved")
        backend.add_booking(CUSTOMER_EMAIL, status="completed")
        pending, approved, completed = review.refresh()

        assert review.available_actions(pending) == {BookingStatus.APPROVED, BookingStatus.REJECTED}
        assert review.available_actions(approved) == {BookingStatus.COMPLETED}
        assert review.available_actions(completed) == frozenset()

    def test_approve_then_complete(self, admin, review, backend):
        raw = backend.add_booking(CUSTOMER_EMAIL)

        approved = review.approve(raw["_id"], "Confirmed slot")
        completed = review.complete(raw["_id"])

        assert approved.ok and approved.booking.status == BookingStatus.APPROVED
        assert approved.booking.admin_notes == "Confirmed slot"
        assert completed.ok and completed.booking.status == BookingStatus.COMPLETED

    def test_rejected_transition_reports_error(self, admin, review, backend):
        raw = backend.add_booking(CUSTOMER_EMAIL, status="rejected")

        result = review.approve(raw["_id"])

        assert not result.ok
        assert result.error.kind == "ValidationError"
        assert result.error.message == "Cannot change status from 'rejected' to 'approved'"

    def test_stale_flag_reported(self, admin, review, backend):
        raw = backend.add_booking(CUSTOMER_EMAIL)
        backend.fail_next("GET", "/api/bookings/admin/all", 500)

        result = review.reject(raw["_id"], "Date unavailable")

        assert result.ok
        assert result.stale
        assert review.is_stale

    def test_customer_transition_is_refused(self, customer, review, backend):
        raw = backend.add_booking(CUSTOMER_EMAIL)

        result = review.approve(raw["_id"])

        assert not result.ok
        assert result.error.kind == "PermissionDenied"
        assert backend.count("PATCH", f"/api/bookings/admin/status/{raw['_id']}") == 0

    def test_missing_id_reports_its_own_error(self, admin, review, backend):
        raw = backend.add_booking(CUSTOMER_EMAIL, status="rejected")
        review.approve(raw["_id"])

        result = review.approve("")

        assert not result.ok
        assert result.error.message == "Booking id is required"
        assert backend.count("PATCH", "/api/bookings/admin/status/") == 0
