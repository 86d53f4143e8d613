"""Submit BLAST jobs and poll them until they finish.

A :class:`BlastJob` is a single-use state machine::

    SUBMITTING -> PENDING -> READY | FAILED
    SUBMITTING | PENDING -> ABORTED

Every transport call for one job happens on the calling thread, one at a
time. Waits, including the rate-limit gate, go through a ``threading.Event``
so a caller can cancel between poll cycles; a request already in flight is
never interrupted.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from .config import BASE_URL
from .errors import AttemptsExhaustedError, BlastClientError, CancelledError, TransportError
from .extract import extract_estimated_wait, extract_job_identifier, extract_status
from .params import FormatType, JobStatus, PollPolicy, SubmissionParameters
from .request_builder import (
    Request,
    build_delete_request,
    build_results_request,
    build_status_request,
    build_submission_request,
)
from .transport import RateLimitGate, RequestsTransport, Response, Transport, shared_gate

logger = logging.getLogger(__name__)

Waiter = Callable[[threading.Event, float], bool]
Clock = Callable[[], float]


class JobState(enum.Enum):
    SUBMITTING = "SUBMITTING"
    PENDING = "PENDING"
    READY = "READY"
    FAILED = "FAILED"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class JobResult:
    """Outcome of a job that reached READY or FAILED."""

    rid: str
    status: JobStatus
    state: JobState
    attempts: int
    elapsed: float
    estimated_wait: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.state is JobState.READY


def _event_wait(event: threading.Event, seconds: float) -> bool:
    return event.wait(seconds)


def _send(transport: Transport, request: Request, timeout: Optional[float]) -> Response:
    response = transport.send(request, timeout)
    if not 200 <= response.status_code < 300:
        raise TransportError(
            f"BLAST server answered {response.status_code} for CMD={request.command}",
            status_code=response.status_code,
        )
    return response


class BlastJob:
    """Drive one BLAST search from submission to a terminal state."""

    def __init__(
        self,
        params: SubmissionParameters,
        policy: Optional[PollPolicy] = None,
        transport: Optional[Transport] = None,
        *,
        base_url: str = BASE_URL,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        gate: Optional[RateLimitGate] = None,
        wait: Optional[Waiter] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.params = params
        self.policy = policy or PollPolicy()
        self._owns_transport = transport is None
        self.transport = transport or RequestsTransport()
        self.base_url = base_url
        self.timeout = timeout
        self.cancel = cancel or threading.Event()
        self.gate = gate
        self._wait = wait or _event_wait
        self._clock = clock

        self.state = JobState.SUBMITTING
        self.rid: Optional[str] = None
        self.status: Optional[JobStatus] = None
        self.attempts = 0
        self.estimated_wait: Optional[int] = None

    def run(self) -> JobResult:
        """Submit, then poll until READY or FAILED.

        Raises a BlastClientError subclass on abort; the error carries the
        RID and last status whenever submission got that far.
        """
        if self.state is not JobState.SUBMITTING:
            raise BlastClientError(f"job already ran (state {self.state.value})", rid=self.rid, status=self.status)
        started = self._clock()
        try:
            self._submit()
            return self._poll(started)
        except BlastClientError as exc:
            self.state = JobState.ABORTED
            exc.attach(self.rid, self.status)
            logger.warning("BLAST job aborted (RID=%s): %s", self.rid, exc)
            raise
        finally:
            if self._owns_transport:
                self.transport.close()

    def _submit(self) -> None:
        request = build_submission_request(self.params, self.base_url)
        logger.info(
            "Submitting query (%d chars) to BLAST %s/%s",
            len(self.params.query),
            self.params.program.value,
            self.params.database,
        )
        response = self._call(request)
        self.rid = extract_job_identifier(response.body)
        self.estimated_wait = extract_estimated_wait(response.body)
        self.state = JobState.PENDING
        self.status = JobStatus.PENDING
        logger.info("Submitted BLAST job (RID=%s, RTOE=%s)", self.rid, self.estimated_wait)

    def _poll(self, started: float) -> JobResult:
        status_request = build_status_request(self.rid, self.params.format_type, self.base_url)
        delay = self.policy.first_delay(self.estimated_wait)
        while True:
            self._check_deadline(started, delay)
            self._sleep(delay)
            self.attempts += 1
            response = self._call(status_request)
            self.status = extract_status(response.body)

            if self.status is JobStatus.READY:
                self.state = JobState.READY
                return self._result(started)
            if self.status is JobStatus.FAILED:
                self.state = JobState.FAILED
                logger.warning("BLAST job %s reported FAILED", self.rid)
                return self._result(started)
            if self.status is JobStatus.UNKNOWN:
                logger.warning("RID %s returned an unrecognised status, still polling", self.rid)

            if self.policy.max_attempts is not None and self.attempts >= self.policy.max_attempts:
                raise AttemptsExhaustedError(
                    f"RID {self.rid} still pending after {self.attempts} status checks"
                )
            delay = self.policy.delay_after(self.attempts)
            logger.info("RID %s still processing, waiting %ss", self.rid, delay)

    def _check_deadline(self, started: float, delay: float) -> None:
        """Refuse a wait that would end past ``policy.max_wait``."""
        if self.policy.max_wait is None:
            return
        elapsed = self._clock() - started
        if elapsed + delay > self.policy.max_wait:
            raise AttemptsExhaustedError(
                f"RID {self.rid} still pending after {elapsed:.0f}s; "
                f"waiting {delay:.0f}s more would exceed max_wait={self.policy.max_wait:.0f}s"
            )

    def _call(self, request: Request) -> Response:
        if self.cancel.is_set():
            raise CancelledError(f"cancelled before CMD={request.command}")
        if self.gate is not None and self.gate.wait(self.cancel):
            raise CancelledError(f"cancelled while rate limited before CMD={request.command}")
        return _send(self.transport, request, self.timeout)

    def _sleep(self, seconds: float) -> None:
        if self._wait(self.cancel, seconds):
            raise CancelledError(f"cancelled while waiting on RID {self.rid}")

    def _result(self, started: float) -> JobResult:
        elapsed = self._clock() - started
        logger.info("RID %s finished with %s after %d checks", self.rid, self.status.value, self.attempts)
        return JobResult(
            rid=self.rid,
            status=self.status,
            state=self.state,
            attempts=self.attempts,
            elapsed=elapsed,
            estimated_wait=self.estimated_wait,
        )


def submit_and_poll(
    params: SubmissionParameters,
    policy: Optional[PollPolicy] = None,
    *,
    transport: Optional[Transport] = None,
    cancel: Optional[threading.Event] = None,
    gate: Optional[RateLimitGate] = None,
    base_url: str = BASE_URL,
) -> JobResult:
    return BlastJob(params, policy, transport, base_url=base_url, cancel=cancel, gate=gate).run()


def run_jobs(
    params_list: Sequence[SubmissionParameters],
    policy: Optional[PollPolicy] = None,
    *,
    transport: Optional[Transport] = None,
    cancel: Optional[threading.Event] = None,
    gate: Optional[RateLimitGate] = None,
    max_workers: int = 4,
    base_url: str = BASE_URL,
) -> List[Union[JobResult, BlastClientError]]:
    """Run independent jobs concurrently, one outcome per input in order.

    Every job goes through ``gate`` (the process-wide :func:`shared_gate` by
    default) so calls from all jobs stay spaced out. Setting ``cancel`` aborts
    every job at its next wait or before its next request.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    owns_transport = transport is None
    transport = transport or RequestsTransport()
    gate = gate or shared_gate()
    cancel = cancel or threading.Event()
    jobs = [
        BlastJob(params, policy, transport, base_url=base_url, cancel=cancel, gate=gate)
        for params in params_list
    ]
    outcomes: List[Union[JobResult, BlastClientError, None]] = [None] * len(jobs)
    try:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(job.run): idx for idx, job in enumerate(jobs)}
            try:
                for future in as_completed(futures):
                    idx = futures[future]
                    try:
                        outcomes[idx] = future.result()
                    except BlastClientError as exc:
                        outcomes[idx] = exc
            except KeyboardInterrupt:
                # Wake every worker at its next wait before the pool joins.
                cancel.set()
                raise
    finally:
        if owns_transport:
            transport.close()
    return outcomes  # type: ignore[return-value]


def _send_once(transport: Optional[Transport], request: Request) -> Response:
    if transport is not None:
        return _send(transport, request, None)
    owned = RequestsTransport()
    try:
        return _send(owned, request, None)
    finally:
        owned.close()


def check_status(
    rid: str,
    format_type: Union[FormatType, str] = FormatType.TEXT,
    *,
    transport: Optional[Transport] = None,
    base_url: str = BASE_URL,
) -> JobStatus:
    """Run a single SearchInfo status check."""
    response = _send_once(transport, build_status_request(rid, format_type, base_url))
    return extract_status(response.body)


def fetch_results(
    rid: str,
    format_type: Union[FormatType, str] = FormatType.TEXT,
    *,
    transport: Optional[Transport] = None,
    base_url: str = BASE_URL,
    **options,
) -> str:
    """Retrieve the raw report text for a finished job."""
    request = build_results_request(rid, format_type, base_url=base_url, **options)
    logger.info("Fetching BLAST results for %s (%s)", rid, request.fields["FORMAT_TYPE"])
    response = _send_once(transport, request)
    return response.body.decode("utf-8", errors="replace")


def delete_job(rid: str, *, transport: Optional[Transport] = None, base_url: str = BASE_URL) -> None:
    """Ask the server to discard a job and its results."""
    _send_once(transport, build_delete_request(rid, base_url))
    logger.info("Deleted BLAST job %s", rid)


__all__ = [
    "JobState",
    "JobResult",
    "BlastJob",
    "submit_and_poll",
    "run_jobs",
    "check_status",
    "fetch_results",
    "delete_job",
]
