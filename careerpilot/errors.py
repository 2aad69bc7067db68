"""Error taxonomy for scoring, analysis and delivery."""
from __future__ import annotations


class CareerPilotError(Exception):
    """Base class for every error raised by careerpilot."""


class ConfigurationError(CareerPilotError):
    """Invalid weights or a malformed profile/settings file.

    Raised before any scoring runs; callers treat it as fatal.
    """


class InsufficientDataError(CareerPilotError):
    """Too few records for an analysis to be meaningful."""

    def __init__(self, message: str, *, available: int = 0, required: int = 0) -> None:
        super().__init__(message)
        self.available = available
        self.required = required


class ValidationError(CareerPilotError):
    """A single record is unusable (duplicate identity, out-of-range value).

    Fatal to that record only: batch code logs it and moves on.
    """


class TransportError(CareerPilotError):
    """A notification chunk could not be delivered.

    ``chunk_index`` is zero-based; chunks before it were delivered, chunks
    after it were not attempted.
    """

    def __init__(
        self,
        channel: str,
        chunk_index: int,
        cause: BaseException | None = None,
        *,
        chunks_total: int | None = None,
    ) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"{channel} delivery failed at chunk {chunk_index}{detail}")
        self.channel = channel
        self.chunk_index = chunk_index
        self.cause = cause
        self.chunks_total = chunks_total
