"""Error types raised by the uploader."""

from __future__ import annotations


class UploaderError(Exception):
    """Base class for every error raised by imghost."""


class ValidationError(UploaderError):
    """Input was rejected before it could enter the queue.

    Raised for unsupported file types, missing configuration such as the
    target folder, or out-of-range settings. Never creates a queue item.
    """


class TransferError(UploaderError):
    """A remote store operation failed.

    Recoverable through an explicit retry of the affected item. The queue
    captures these per item instead of letting them propagate.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.rate_limited = rate_limited


class StateError(UploaderError):
    """An operation was requested against an item in an incompatible state."""
