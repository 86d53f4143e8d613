"""Build BLAST URL API requests from typed parameters.

Nothing in this module performs I/O. A :class:`Request` only becomes wire
bytes when :meth:`Request.prepare` hands it to ``requests`` for encoding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Union
from urllib.parse import urlencode

import requests

from .config import BASE_URL
from .errors import InvalidParameterError
from .params import FormatType, SubmissionParameters, coerce_enum

# Attribute name -> URL API parameter name, in emission order.
_OPTIONAL_FIELDS = (
    ("filter", "FILTER"),
    ("expect", "EXPECT"),
    ("reward", "NUCL_REWARD"),
    ("penalty", "NUCL_PENALTY"),
    ("gap_costs", "GAPCOSTS"),
    ("matrix", "MATRIX"),
    ("hitlist_size", "HITLIST_SIZE"),
    ("descriptions", "DESCRIPTIONS"),
    ("alignments", "ALIGNMENTS"),
    ("ncbi_gi", "NCBI_GI"),
    ("threshold", "THRESHOLD"),
    ("word_size", "WORD_SIZE"),
    ("composition_based_stats", "COMPOSITION_BASED_STATISTICS"),
    ("email", "EMAIL"),
    ("tool", "TOOL"),
)


@dataclass(frozen=True)
class Request:
    """A transport-level request: method, endpoint and ordered fields."""

    method: str
    url: str
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def command(self) -> Optional[str]:
        return self.fields.get("CMD")

    def encode(self) -> str:
        """Percent-encoded form body (POST) or query string (GET)."""
        return urlencode(list(self.fields.items()))

    def prepare(self) -> requests.PreparedRequest:
        if self.method == "POST":
            raw = requests.Request(self.method, self.url, data=list(self.fields.items()))
        else:
            raw = requests.Request(self.method, self.url, params=list(self.fields.items()))
        return raw.prepare()


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "T" if value else "F"
    if isinstance(value, tuple):
        return " ".join(str(part) for part in value)
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _require_rid(rid: str) -> str:
    if not isinstance(rid, str) or not rid.strip():
        raise InvalidParameterError("a non-empty RID is required")
    return rid.strip()


def build_submission_request(params: SubmissionParameters, base_url: str = BASE_URL) -> Request:
    """Map every set field of ``params`` to its ``CMD=Put`` form field."""
    params.validate()
    fields: Dict[str, str] = {
        "CMD": "Put",
        "QUERY": params.query,
        "DATABASE": params.database,
        "PROGRAM": _format_value(params.program),
        "FORMAT_TYPE": _format_value(params.format_type),
    }
    for attribute, name in _OPTIONAL_FIELDS:
        value = getattr(params, attribute)
        if value is None:
            continue
        fields[name] = _format_value(value)
    return Request("POST", base_url, fields)


def build_status_request(
    rid: str,
    format_type: Union[FormatType, str] = FormatType.TEXT,
    base_url: str = BASE_URL,
) -> Request:
    fmt = coerce_enum(FormatType, format_type, "format_type")
    fields = {
        "CMD": "Get",
        "RID": _require_rid(rid),
        "FORMAT_OBJECT": "SearchInfo",
        "FORMAT_TYPE": fmt.value,
    }
    return Request("GET", base_url, fields)


def build_results_request(
    rid: str,
    format_type: Union[FormatType, str] = FormatType.TEXT,
    *,
    hitlist_size: Optional[int] = None,
    descriptions: Optional[int] = None,
    alignments: Optional[int] = None,
    ncbi_gi: Optional[bool] = None,
    base_url: str = BASE_URL,
) -> Request:
    """Request for the raw report of a finished job."""
    fmt = coerce_enum(FormatType, format_type, "format_type")
    fields = {
        "CMD": "Get",
        "RID": _require_rid(rid),
        "FORMAT_TYPE": fmt.value,
    }
    for name, value in (
        ("HITLIST_SIZE", hitlist_size),
        ("DESCRIPTIONS", descriptions),
        ("ALIGNMENTS", alignments),
    ):
        if value is None:
            continue
        if value <= 0:
            raise InvalidParameterError(f"{name} must be greater than zero, got {value!r}")
        fields[name] = str(value)
    if ncbi_gi is not None:
        fields["NCBI_GI"] = _format_value(ncbi_gi)
    return Request("GET", base_url, fields)


def build_delete_request(rid: str, base_url: str = BASE_URL) -> Request:
    return Request("GET", base_url, {"CMD": "Delete", "RID": _require_rid(rid)})


def results_reference_for(rid: str, base_url: str = BASE_URL) -> str:
    """URL where the results of ``rid`` can be viewed or fetched."""
    return f"{base_url}?{urlencode([('CMD', 'Get'), ('RID', _require_rid(rid))])}"


__all__ = [
    "Request",
    "build_submission_request",
    "build_status_request",
    "build_results_request",
    "build_delete_request",
    "results_reference_for",
]
