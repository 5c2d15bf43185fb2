"""Studio booking client - session, booking store and booking flows."""

__version__ = "0.1.0"
