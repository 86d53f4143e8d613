"""HTTP transport for the BLAST URL API."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from .config import MIN_REQUEST_INTERVAL, REQUEST_TIMEOUT_SECONDS
from .errors import TransportError
from .request_builder import Request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    status_code: int
    body: bytes


class Transport(Protocol):
    """One timeout-bounded request/response exchange."""

    def send(self, request: Request, timeout: Optional[float] = None) -> Response:
        ...


class RateLimitGate:
    """Enforce a minimum delay between HTTP operations across threads.

    Each caller reserves the next free slot under the lock and waits for it
    outside the lock, so a cancelled caller wakes at once instead of queueing
    behind the others.
    """

    def __init__(self, interval: float = MIN_REQUEST_INTERVAL) -> None:
        self.interval = max(interval, 0.0)
        self._lock = threading.Lock()
        self._next_slot: Optional[float] = None

    def wait(self, cancel: Optional[threading.Event] = None) -> bool:
        """Block until this caller's slot; return True if ``cancel`` is set."""
        if self.interval > 0:
            with self._lock:
                now = time.monotonic()
                slot = now if self._next_slot is None else max(now, self._next_slot)
                self._next_slot = slot + self.interval
            remaining = slot - now
            if remaining > 0:
                logger.debug("Rate limit: sleeping %.2fs before next request", remaining)
                if cancel is not None:
                    return cancel.wait(remaining)
                time.sleep(remaining)
        return cancel is not None and cancel.is_set()


_SHARED_GATE: Optional[RateLimitGate] = None
_SHARED_GATE_LOCK = threading.Lock()


def shared_gate(interval: float = MIN_REQUEST_INTERVAL) -> RateLimitGate:
    """Process-wide gate; the interval only applies on first creation."""
    global _SHARED_GATE
    with _SHARED_GATE_LOCK:
        if _SHARED_GATE is None:
            _SHARED_GATE = RateLimitGate(interval)
        return _SHARED_GATE


class RequestsTransport:
    """Transport backed by a ``requests.Session``.

    Connection errors, timeouts and non-2xx responses all surface as
    TransportError. Nothing is retried here, and rate limiting is left to
    the caller's RateLimitGate.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be greater than zero")
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, request: Request, timeout: Optional[float] = None) -> Response:
        prepared = request.prepare()
        logger.debug("%s %s (CMD=%s)", request.method, request.url, request.command)
        try:
            response = self.session.send(prepared, timeout=timeout or self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise TransportError(
                f"BLAST server answered {status_code} for CMD={request.command}",
                status_code=status_code,
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(f"error requesting {request.url}: {exc}") from exc
        return Response(response.status_code, response.content)

    def close(self) -> None:
        self.session.close()


__all__ = ["Response", "Transport", "RateLimitGate", "shared_gate", "RequestsTransport"]
