"""Booking store and the flows built on it."""

from .admin import AdminReviewFlow
from .form import BookingFormFlow, FlowState
from .store import BookingStore, ErrorState

__all__ = ["AdminReviewFlow", "BookingFormFlow", "BookingStore", "ErrorState", "FlowState"]
