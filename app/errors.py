# app/errors.py
# Role: Exceptions raised while opening and upgrading a ledger store.
#       Everything here is fatal for the open call; the one recoverable case
#       (duplicate templates during an upgrade) is handled inside the step.


class StoreError(Exception):
    """Base class for store-open failures."""


class UnsupportedDowngradeError(StoreError):
    """The store was written by a newer version than this one supports."""

    def __init__(self, recorded_version: int, supported_version: int):
        self.recorded_version = recorded_version
        self.supported_version = supported_version
        super().__init__(
            f"Store is at version {recorded_version}, "
            f"this build only supports up to {supported_version}"
        )


class MigrationError(StoreError):
    """
    An upgrade step (or the step list itself) is broken.

    ``threshold`` is the version of the failing step, or None when the step
    list was rejected before anything ran.
    """

    def __init__(self, message: str, threshold: int | None = None):
        self.message = message
        self.threshold = threshold
        super().__init__(message)
