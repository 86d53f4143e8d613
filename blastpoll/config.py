"""Defaults and environment configuration for the BLAST job client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from dotenv import find_dotenv, load_dotenv

from .errors import InvalidParameterError

BASE_URL = "https://blast.ncbi.nlm.nih.gov/Blast.cgi"

# NCBI usage guidelines: no more than one request every 10 seconds.
MIN_REQUEST_INTERVAL = 10.0
REQUEST_TIMEOUT_SECONDS = 30.0


@dataclass(slots=True)
class BlastDefaults:
    """Defaults for the CLI submit command."""

    program: str = "blastn"
    db: str = "nt"
    format_type: str = "Text"
    tool: str = "blastpoll"
    initial_delay: float = MIN_REQUEST_INTERVAL
    poll_seconds: float = MIN_REQUEST_INTERVAL
    backoff_factor: float = 1.0
    max_interval: float = 120.0
    max_attempts: Optional[int] = None
    max_wait_seconds: Optional[float] = 600.0
    timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    rate_limit_seconds: float = MIN_REQUEST_INTERVAL
    max_workers: int = 4


BLAST_DEFAULTS = BlastDefaults()


@dataclass
class RuntimeConfig:
    """Values read from the environment (and an optional .env file)."""

    ncbi_email: Optional[str]
    ncbi_tool: Optional[str]
    blast_program: Optional[str]
    blast_db: Optional[str]
    base_url: str = BASE_URL
    timeout_seconds: float = BLAST_DEFAULTS.timeout_seconds
    rate_limit_seconds: float = BLAST_DEFAULTS.rate_limit_seconds

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            "NCBI_EMAIL": self.ncbi_email,
            "NCBI_TOOL": self.ncbi_tool,
            "BLAST_PROGRAM": self.blast_program,
            "BLAST_DB": self.blast_db,
        }

    def missing_keys(self) -> Iterator[str]:
        for key, value in self.as_dict().items():
            if not value:
                yield key


PathLike = Union[str, Path]


def load_env_file(start_path: Optional[PathLike] = None) -> Optional[Path]:
    """Load the closest .env file without overriding variables already set."""
    if start_path:
        candidate = _find_upwards(Path(start_path).resolve())
    else:
        found = find_dotenv(usecwd=True)
        candidate = Path(found) if found else None
    if candidate is None:
        return None
    load_dotenv(candidate, override=False)
    return candidate


def collect_runtime_config(start_path: Optional[PathLike] = None) -> RuntimeConfig:
    load_env_file(start_path)
    env = os.environ
    return RuntimeConfig(
        ncbi_email=env.get("NCBI_EMAIL"),
        ncbi_tool=env.get("NCBI_TOOL"),
        blast_program=env.get("BLAST_PROGRAM"),
        blast_db=env.get("BLAST_DB"),
        base_url=env.get("BLAST_BASE_URL") or BASE_URL,
        timeout_seconds=_float_env(env, "BLAST_TIMEOUT_SECONDS", BLAST_DEFAULTS.timeout_seconds),
        rate_limit_seconds=_float_env(env, "BLAST_RATE_LIMIT_SECONDS", BLAST_DEFAULTS.rate_limit_seconds),
    )


def _float_env(env, key: str, default: float) -> float:
    raw = env.get(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidParameterError(f"{key} must be a number, got {raw!r}") from exc


def _find_upwards(start: Path) -> Optional[Path]:
    current = start
    last = None
    while last != current:
        candidate = current / ".env"
        if candidate.exists():
            return candidate
        last = current
        current = current.parent
    return None
