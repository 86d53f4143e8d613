"""Exceptions raised by the BLAST job client."""

from __future__ import annotations

from typing import Any, Optional


class BlastClientError(RuntimeError):
    """Base error for BLAST client failures.

    ``rid`` and ``status`` hold the last known job identifier and status so a
    caller can still build a results reference after a failure.
    """

    def __init__(self, message: str, *, rid: Optional[str] = None, status: Any = None) -> None:
        super().__init__(message)
        self.rid = rid
        self.status = status

    def attach(self, rid: Optional[str], status: Any) -> "BlastClientError":
        if self.rid is None:
            self.rid = rid
        if self.status is None:
            self.status = status
        return self


class InvalidParameterError(BlastClientError, ValueError):
    """Raised when caller input violates a documented constraint."""


class TransportError(BlastClientError):
    """Raised on connection failures, timeouts and non-2xx responses."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class IdentifierNotFoundError(BlastClientError):
    """Raised when a response body carries no RID marker."""


class MalformedResponseError(BlastClientError):
    """Raised when a marker is present but not properly terminated."""


class AttemptsExhaustedError(BlastClientError):
    """Raised when the poll policy gives up while the job is still pending."""


class CancelledError(BlastClientError):
    """Raised when cancellation is observed between poll cycles."""


__all__ = [
    "BlastClientError",
    "InvalidParameterError",
    "TransportError",
    "IdentifierNotFoundError",
    "MalformedResponseError",
    "AttemptsExhaustedError",
    "CancelledError",
]
