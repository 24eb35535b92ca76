"""
Error taxonomy shared by the store adapter, readers, and view models.
"""


class DashboardError(Exception):
    """Base class for every error raised by the dashboard core."""


class DataUnavailable(DashboardError):
    """A query, mutation, or subscription round-trip to the store failed."""


class NotFound(DashboardError):
    """A single-row fetch returned nothing (e.g. a machine deleted behind a stale link)."""


class InvalidTransition(DashboardError):
    """The requested alert status change is not allowed by the alert lifecycle."""


class ConfigurationError(DashboardError, RuntimeError):
    """Store credentials could not be resolved from env or secrets."""
