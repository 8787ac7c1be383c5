from __future__ import annotations


class DrawerClientError(Exception):
    """Base class for failures surfaced by the scene client."""


class TransportError(DrawerClientError):
    """A poll request failed. Non-fatal: the next tick tries again."""


class ConnectionLost(DrawerClientError):
    """The push channel closed. Terminal for the session."""


class QuotaExceeded(DrawerClientError):
    """A persistence write was rejected. The in-memory scene stays authoritative."""
