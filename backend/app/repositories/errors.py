"""Store error taxonomy shared by the repositories."""


class StoreError(Exception):
    """Base class for failures talking to the backing store."""

    pass


class TransientStoreError(StoreError):
    """A store call failed in a way that may succeed if retried.

    Raised to callers only after the retry budget is exhausted.
    """

    pass


class ConcurrencyConflictError(TransientStoreError):
    """Every optimistic write attempt lost to a concurrent writer."""

    pass


class PermanentStoreError(StoreError):
    """A store call failed in a way retrying cannot fix."""

    pass
