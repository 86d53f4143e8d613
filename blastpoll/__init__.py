"""Client for the NCBI BLAST URL API: submit a search, poll until it finishes."""

__version__ = "0.1.0"

from .errors import (
    AttemptsExhaustedError,
    BlastClientError,
    CancelledError,
    IdentifierNotFoundError,
    InvalidParameterError,
    MalformedResponseError,
    TransportError,
)
from .extract import extract_estimated_wait, extract_job_identifier, extract_status
from .params import FormatType, JobStatus, Matrix, PollPolicy, Program, SubmissionParameters
from .poller import (
    BlastJob,
    JobResult,
    JobState,
    check_status,
    delete_job,
    fetch_results,
    run_jobs,
    submit_and_poll,
)
from .request_builder import (
    Request,
    build_results_request,
    build_status_request,
    build_submission_request,
    results_reference_for,
)
from .transport import RateLimitGate, RequestsTransport, Response, Transport, shared_gate

__all__ = [
    "__version__",
    "AttemptsExhaustedError",
    "BlastClientError",
    "CancelledError",
    "IdentifierNotFoundError",
    "InvalidParameterError",
    "MalformedResponseError",
    "TransportError",
    "extract_estimated_wait",
    "extract_job_identifier",
    "extract_status",
    "FormatType",
    "JobStatus",
    "Matrix",
    "PollPolicy",
    "Program",
    "SubmissionParameters",
    "BlastJob",
    "JobResult",
    "JobState",
    "check_status",
    "delete_job",
    "fetch_results",
    "run_jobs",
    "submit_and_poll",
    "Request",
    "build_results_request",
    "build_status_request",
    "build_submission_request",
    "results_reference_for",
    "RateLimitGate",
    "RequestsTransport",
    "Response",
    "Transport",
    "shared_gate",
]
