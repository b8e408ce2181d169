"""Failure taxonomy for short link operations.

Business failures (InvalidURLError, NotFoundError, ExpiredError, InactiveError)
are expected outcomes mapped to 4xx responses. Store and generation failures
are internal and surface as 5xx. Deadline failures are kept apart from both.
"""


class ShortLinkError(Exception):
    """Base class for every failure raised by the short link core."""


class InvalidURLError(ShortLinkError):
    """The submitted URL is not an absolute URL with a scheme and a host."""


class NotFoundError(ShortLinkError):
    """No short link matches the requested code."""


class ExpiredError(ShortLinkError):
    """The short link exists but its expiry time has passed."""


class InactiveError(ShortLinkError):
    """The short link exists but has been deactivated."""


class GenerationFailure(ShortLinkError):
    """No usable short code could be produced."""


class StoreFailure(ShortLinkError):
    """A persistence or lookup call failed.

    `operation` names the repository call that failed so logs carry context.
    """

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}" if message else f"{operation} failed")


class DuplicateShortCodeError(StoreFailure):
    """The store rejected a short code already held by another record."""


class StoreTimeout(StoreFailure):
    """A store call did not complete within its configured timeout."""


class OperationTimeout(ShortLinkError):
    """The caller's deadline passed before the operation finished."""


class OperationCancelled(ShortLinkError):
    """The caller cancelled the operation."""
