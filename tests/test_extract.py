"""Tests for marker scanning in BLAST responses."""

from __future__ import annotations

import pytest

from blastpoll.errors import IdentifierNotFoundError, MalformedResponseError
from blastpoll.extract import (
    extract_estimated_wait,
    extract_job_identifier,
    extract_status,
    parse_qblast_info,
    scan_marker,
)
from blastpoll.params import JobStatus

PUT_RESPONSE = b"""
<html><body>
<!--QBlastInfoBegin
    RID = 9R4VHUSB016
    RTOE = 27
QBlastInfoEnd
-->
<form><input name="RID" value="9R4VHUSB016" type="hidden"></form>
</body></html>
"""

SEARCH_INFO = b"""
<html><body><!--
QBlastInfoBegin
\tStatus=%s
QBlastInfoEnd
--></body></html>
"""


def test_extracts_rid_from_markup() -> None:
    assert extract_job_identifier(PUT_RESPONSE) == "9R4VHUSB016"


def test_extracts_rid_regardless_of_whitespace() -> None:
    body = b'   \n\t<p>  name="RID" value="ABC123"  </p>\n\n   '
    assert extract_job_identifier(body) == "ABC123"
    assert extract_job_identifier('name="RID" value="ABC123"') == "ABC123"


def test_missing_marker_raises_not_found() -> None:
    with pytest.raises(IdentifierNotFoundError):
        extract_job_identifier(b"<html><body>Nothing here</body></html>")


def test_unterminated_value_raises_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        extract_job_identifier(b'<input name="RID" value="ABC123')


def test_marker_at_end_of_input_raises_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        extract_job_identifier(b'<input name="RID" value=')


def test_unquoted_value_raises_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        extract_job_identifier(b'<input name="RID" value=ABC123 type="hidden">')


def test_empty_rid_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        extract_job_identifier(b'<input name="RID" value="">')


def test_scan_marker_returns_none_when_absent() -> None:
    assert scan_marker(b"abc", b"name=") is None
    assert scan_marker(b'x name= "v" y', b"name=") == "v"


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        (b"WAITING", JobStatus.PENDING),
        (b"READY", JobStatus.READY),
        (b"FAILED", JobStatus.FAILED),
        (b"UNKNOWN", JobStatus.UNKNOWN),
        (b"SOMETHING_NEW", JobStatus.UNKNOWN),
    ],
)
def test_search_info_status(token: bytes, expected: JobStatus) -> None:
    assert extract_status(SEARCH_INFO % token) is expected


def test_quoted_status_marker() -> None:
    assert extract_status(b'<input name="Status" value="READY">') is JobStatus.READY
    assert extract_status(b'<input name="Status" value="ready">') is JobStatus.READY


def test_status_without_marker_is_unknown() -> None:
    assert extract_status(b"<html></html>") is JobStatus.UNKNOWN


def test_estimated_wait() -> None:
    assert extract_estimated_wait(PUT_RESPONSE) == 27
    assert extract_estimated_wait(b"no info") is None
    assert parse_qblast_info(PUT_RESPONSE)["RID"] == "9R4VHUSB016"
