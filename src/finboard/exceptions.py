"""Exception types raised by Finboard components."""


class FinboardError(Exception):
    """Base class for Finboard errors."""


class ProviderError(FinboardError):
    """A call to the bank-data aggregation provider failed.

    Covers network failures, timeouts, authentication problems and API
    errors such as rate limits or expired items.
    """

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class NotificationError(FinboardError):
    """Delivering a balance notification failed."""
