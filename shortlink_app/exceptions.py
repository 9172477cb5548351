"""
Error taxonomy for the short link service.

Only these cross the service boundary. The duplicate-id condition is not
an exception: it is consumed inside the allocation loop.
"""


class ShortLinkError(Exception):
    """Base class for service errors."""


class DatabaseError(ShortLinkError):
    """Any failure of the persistent store (connectivity, SQL, transaction)."""


class IdAllocationError(ShortLinkError):
    """The retry policy gave up before a candidate id could be inserted."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique id after {attempts} attempts")


class ShortIdNotFoundError(ShortLinkError):
    """No record exists for the requested short id."""

    def __init__(self, short_id: str):
        self.short_id = short_id
        super().__init__(f"Short id not found: {short_id!r}")


class ShortenCancelled(ShortLinkError):
    """The caller went away; the transaction is rolled back."""
