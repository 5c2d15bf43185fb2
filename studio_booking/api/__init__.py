"""API module - studio REST client"""

from .client import StudioAPIClient

__all__ = ["StudioAPIClient"]
