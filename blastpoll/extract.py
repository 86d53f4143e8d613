"""Pull job identifiers and statuses out of BLAST response bodies.

The BLAST URL API answers with HTML. Rather than parsing the document, the
functions here look for attribute-like marker tokens such as
``name="RID" value="ABC123"`` and the ``QBlastInfoBegin`` comment block.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from .errors import IdentifierNotFoundError, MalformedResponseError
from .params import JobStatus

logger = logging.getLogger(__name__)

RID_MARKER = b'name="RID" value='
STATUS_MARKER = b'name="Status" value='
QBLAST_INFO_BEGIN = b"QBlastInfoBegin"
QBLAST_INFO_END = b"QBlastInfoEnd"

_STATUS_TOKENS = {
    "WAITING": JobStatus.PENDING,
    "READY": JobStatus.READY,
    "FAILED": JobStatus.FAILED,
}

Body = Union[bytes, str]


def _as_bytes(body: Body) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def scan_marker(body: Body, prefix: Body) -> Optional[str]:
    """Return the quoted value following ``prefix``, or None if absent.

    Only whitespace may sit between the prefix and the opening quote. Raises
    MalformedResponseError when either quote is missing before end of input.
    """
    data = _as_bytes(body)
    marker = _as_bytes(prefix)
    start = data.find(marker)
    if start == -1:
        return None

    cursor = start + len(marker)
    end = len(data)
    while cursor < end and data[cursor : cursor + 1].isspace():
        cursor += 1
    if cursor >= end or data[cursor : cursor + 1] != b'"':
        raise MalformedResponseError(f"marker {marker!r} is not followed by a quoted value")

    closing = data.find(b'"', cursor + 1)
    if closing == -1:
        raise MalformedResponseError(f"unterminated value after marker {marker!r}")
    return data[cursor + 1 : closing].decode("utf-8", errors="replace")


def extract_job_identifier(body: Body) -> str:
    value = scan_marker(body, RID_MARKER)
    if value is None:
        raise IdentifierNotFoundError("no RID found in the BLAST response")
    rid = value.strip()
    if not rid:
        raise MalformedResponseError("BLAST response carries an empty RID")
    logger.debug("Parsed RID %s", rid)
    return rid


def parse_qblast_info(body: Body) -> Dict[str, str]:
    """Parse the ``key=value`` lines of the QBlastInfo comment block."""
    data = _as_bytes(body)
    begin = data.find(QBLAST_INFO_BEGIN)
    if begin == -1:
        return {}
    begin += len(QBLAST_INFO_BEGIN)
    end = data.find(QBLAST_INFO_END, begin)
    block = data[begin:] if end == -1 else data[begin:end]

    info: Dict[str, str] = {}
    for line in block.decode("utf-8", errors="replace").splitlines():
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        info[key.strip()] = value.strip()
    return info


def extract_status(body: Body) -> JobStatus:
    """Map the status marker to JobStatus; unrecognised values give UNKNOWN."""
    try:
        token = scan_marker(body, STATUS_MARKER)
    except MalformedResponseError:
        logger.debug("Ignoring malformed status marker")
        token = None
    if token is None:
        token = parse_qblast_info(body).get("Status")
    if not token:
        logger.debug("No status marker in SearchInfo response")
        return JobStatus.UNKNOWN

    status = _STATUS_TOKENS.get(token.strip().upper(), JobStatus.UNKNOWN)
    if status is JobStatus.UNKNOWN:
        logger.debug("Unrecognised BLAST status %r", token)
    return status


def extract_estimated_wait(body: Body) -> Optional[int]:
    """Seconds the server expects the job to take (RTOE), if it says."""
    raw = parse_qblast_info(body).get("RTOE")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.debug("Unable to parse RTOE value %r", raw)
        return None


__all__ = [
    "scan_marker",
    "extract_job_identifier",
    "extract_status",
    "extract_estimated_wait",
    "parse_qblast_info",
]
