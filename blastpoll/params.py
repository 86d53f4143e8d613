"""Typed parameters for BLAST submissions and polling."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .errors import InvalidParameterError

_FILTER_PATTERN = re.compile(r"^m?[FTL]$")


class Program(str, enum.Enum):
    """BLAST programs accepted by the URL API."""

    BLASTN = "blastn"
    MEGABLAST = "megablast"
    BLASTP = "blastp"
    BLASTX = "blastx"
    TBLASTN = "tblastn"
    TBLASTX = "tblastx"


class FormatType(str, enum.Enum):
    """Report formats (FORMAT_TYPE)."""

    HTML = "HTML"
    TEXT = "Text"
    XML = "XML"
    XML2 = "XML2"
    JSON2 = "JSON2"
    TABULAR = "Tabular"


class Matrix(str, enum.Enum):
    BLOSUM45 = "BLOSUM45"
    BLOSUM50 = "BLOSUM50"
    BLOSUM62 = "BLOSUM62"
    BLOSUM80 = "BLOSUM80"
    BLOSUM90 = "BLOSUM90"
    PAM250 = "PAM250"
    PAM30 = "PAM30"
    PAM70 = "PAM70"


class JobStatus(enum.Enum):
    """Latest observed status of a submitted job."""

    PENDING = "WAITING"
    READY = "READY"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


def coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidParameterError(f"{field_name} must be a non-empty string")
    lowered = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == lowered:
            return member
    choices = ", ".join(member.value for member in enum_cls)
    raise InvalidParameterError(f"{field_name} must be one of {choices}, got {value!r}")


def _gap_cost_int(part, value) -> int:
    if isinstance(part, bool):
        raise InvalidParameterError(f"gap_costs must be two integers, got {value!r}")
    if isinstance(part, int):
        return part
    if isinstance(part, str):
        try:
            return int(part.strip())
        except ValueError as exc:
            raise InvalidParameterError(f"gap_costs must be two integers, got {value!r}") from exc
    raise InvalidParameterError(f"gap_costs must be two integers, got {value!r}")


def _parse_gap_costs(value: Union[str, Tuple[int, int]]) -> Tuple[int, int]:
    if isinstance(value, str):
        parts = value.split()
        if len(parts) != 2:
            raise InvalidParameterError(f"gap_costs must be two integers such as '11 1', got {value!r}")
    else:
        try:
            parts = list(value)
        except TypeError as exc:
            raise InvalidParameterError(f"gap_costs must be a pair of integers, got {value!r}") from exc
        if len(parts) != 2:
            raise InvalidParameterError(f"gap_costs must be a pair of integers, got {value!r}")
    pair = (_gap_cost_int(parts[0], value), _gap_cost_int(parts[1], value))
    if pair[0] <= 0 or pair[1] <= 0:
        raise InvalidParameterError(f"gap_costs must be positive, got {pair!r}")
    return pair


def _require_int(name: str, value) -> None:
    # bool is an int subclass but never a meaningful count.
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")


def _require_positive(name: str, value) -> None:
    _require_int(name, value)
    if value is not None and value <= 0:
        raise InvalidParameterError(f"{name} must be greater than zero, got {value!r}")


@dataclass(frozen=True, slots=True)
class SubmissionParameters:
    """One BLAST search request.

    Optional knobs left as ``None`` are omitted from the request entirely.
    String values for ``program``, ``format_type`` and ``matrix`` are
    normalised to their enum members (case-insensitive).
    """

    query: str
    database: str = "nt"
    program: Union[Program, str] = Program.BLASTN
    format_type: Union[FormatType, str] = FormatType.TEXT
    filter: Optional[str] = None
    expect: Optional[float] = None
    reward: Optional[int] = None
    penalty: Optional[int] = None
    gap_costs: Optional[Union[str, Tuple[int, int]]] = None
    matrix: Optional[Union[Matrix, str]] = None
    hitlist_size: Optional[int] = None
    descriptions: Optional[int] = None
    alignments: Optional[int] = None
    ncbi_gi: Optional[bool] = None
    threshold: Optional[int] = None
    word_size: Optional[int] = None
    composition_based_stats: Optional[int] = None
    email: Optional[str] = None
    tool: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.query, str) or not self.query.strip():
            raise InvalidParameterError("query must be a non-empty sequence, accession or FASTA string")
        if not isinstance(self.database, str) or not self.database.strip():
            raise InvalidParameterError("database must be a non-empty string")
        object.__setattr__(self, "program", coerce_enum(Program, self.program, "program"))
        object.__setattr__(self, "format_type", coerce_enum(FormatType, self.format_type, "format_type"))
        if self.matrix is not None:
            object.__setattr__(self, "matrix", coerce_enum(Matrix, self.matrix, "matrix"))
        if self.gap_costs is not None:
            object.__setattr__(self, "gap_costs", _parse_gap_costs(self.gap_costs))
        self.validate()

    def validate(self) -> None:
        """Check numeric and one-of constraints, raising InvalidParameterError."""
        if self.filter is not None and not _FILTER_PATTERN.match(self.filter):
            raise InvalidParameterError(f"filter must be F, T or L, optionally prefixed by 'm', got {self.filter!r}")
        if self.expect is not None:
            if isinstance(self.expect, bool) or not isinstance(self.expect, (int, float)):
                raise InvalidParameterError(f"expect must be a number, got {self.expect!r}")
            if not self.expect > 0:
                raise InvalidParameterError(f"expect must be greater than zero, got {self.expect!r}")
        _require_positive("reward", self.reward)
        _require_int("penalty", self.penalty)
        if self.penalty is not None and self.penalty >= 0:
            raise InvalidParameterError(f"penalty must be less than zero, got {self.penalty!r}")
        _require_positive("hitlist_size", self.hitlist_size)
        _require_positive("descriptions", self.descriptions)
        _require_positive("alignments", self.alignments)
        _require_positive("threshold", self.threshold)
        _require_positive("word_size", self.word_size)
        _require_int("composition_based_stats", self.composition_based_stats)
        if self.composition_based_stats is not None and self.composition_based_stats not in (0, 1, 2, 3):
            raise InvalidParameterError(
                f"composition_based_stats must be one of 0, 1, 2 or 3, got {self.composition_based_stats!r}"
            )


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """Cadence and give-up rules for status checks (all values in seconds)."""

    initial_delay: float = 10.0
    poll_interval: float = 10.0
    backoff_factor: float = 1.0
    max_interval: float = 120.0
    min_interval: float = 10.0
    max_attempts: Optional[int] = None
    max_wait: Optional[float] = None
    use_server_estimate: bool = False

    def __post_init__(self) -> None:
        for name in ("initial_delay", "poll_interval", "max_interval", "min_interval"):
            if getattr(self, name) < 0:
                raise InvalidParameterError(f"{name} must be non-negative, got {getattr(self, name)!r}")
        if self.backoff_factor < 1.0:
            raise InvalidParameterError(f"backoff_factor must be >= 1.0, got {self.backoff_factor!r}")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise InvalidParameterError(f"max_attempts must be >= 1, got {self.max_attempts!r}")
        if self.max_wait is not None and self.max_wait < 0:
            raise InvalidParameterError(f"max_wait must be non-negative, got {self.max_wait!r}")

    def first_delay(self, estimated_wait: Optional[int] = None) -> float:
        delay = max(self.initial_delay, self.min_interval)
        if self.use_server_estimate and estimated_wait:
            delay = max(delay, float(estimated_wait))
        return delay

    def delay_after(self, attempt: int) -> float:
        """Delay following the ``attempt``-th status check (1-based)."""
        delay = self.poll_interval * self.backoff_factor ** max(attempt - 1, 0)
        return max(min(delay, self.max_interval), self.min_interval)


__all__ = [
    "Program",
    "FormatType",
    "Matrix",
    "JobStatus",
    "SubmissionParameters",
    "PollPolicy",
]
