"""Tests for submission parameters and poll policy validation."""

from __future__ import annotations

import pytest

from blastpoll.errors import InvalidParameterError
from blastpoll.params import FormatType, Matrix, PollPolicy, Program, SubmissionParameters


def test_strings_are_normalised_to_enums() -> None:
    params = SubmissionParameters(query="ACGT", program="BLASTP", format_type="json2", matrix="pam30")
    assert params.program is Program.BLASTP
    assert params.format_type is FormatType.JSON2
    assert params.matrix is Matrix.PAM30


def test_gap_costs_accepts_string_or_pair() -> None:
    assert SubmissionParameters(query="ACGT", gap_costs="11 1").gap_costs == (11, 1)
    assert SubmissionParameters(query="ACGT", gap_costs=(5, 2)).gap_costs == (5, 2)
    assert SubmissionParameters(query="ACGT", gap_costs=("11", "1")).gap_costs == (11, 1)


@pytest.mark.parametrize(
    "overrides",
    [
        {"query": ""},
        {"query": "   "},
        {"database": ""},
        {"program": "blastz"},
        {"format_type": "PDF"},
        {"reward": 0},
        {"penalty": 1},
        {"expect": 0},
        {"expect": -1.5},
        {"gap_costs": "11"},
        {"gap_costs": "11 -1"},
        {"gap_costs": ("a", "b")},
        {"gap_costs": (11.9, 1)},
        {"gap_costs": (11, 1, 2)},
        {"matrix": "BLOSUM100"},
        {"filter": "X"},
        {"hitlist_size": 0},
        {"word_size": -3},
        {"composition_based_stats": 4},
        {"composition_based_stats": True},
        {"reward": "2"},
        {"penalty": "-3"},
        {"expect": "10"},
        {"hitlist_size": 2.5},
    ],
)
def test_invalid_values_raise(overrides) -> None:
    kwargs = {"query": "ACGT", **overrides}
    with pytest.raises(InvalidParameterError):
        SubmissionParameters(**kwargs)


def test_masked_filter_is_accepted() -> None:
    assert SubmissionParameters(query="ACGT", filter="mL").filter == "mL"


def test_invalid_parameter_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        SubmissionParameters(query="ACGT", reward=-2)


def test_poll_policy_rejects_bad_values() -> None:
    with pytest.raises(InvalidParameterError):
        PollPolicy(poll_interval=-1)
    with pytest.raises(InvalidParameterError):
        PollPolicy(max_attempts=0)
    with pytest.raises(InvalidParameterError):
        PollPolicy(backoff_factor=0.5)


def test_poll_policy_never_goes_below_min_interval() -> None:
    policy = PollPolicy(initial_delay=0, poll_interval=1, min_interval=10)
    assert policy.first_delay() == 10
    assert policy.delay_after(1) == 10


def test_poll_policy_backoff_is_capped() -> None:
    policy = PollPolicy(poll_interval=10, backoff_factor=2.0, max_interval=35, min_interval=0)
    assert [policy.delay_after(n) for n in (1, 2, 3, 4)] == [10, 20, 35, 35]


def test_server_estimate_only_used_when_enabled() -> None:
    assert PollPolicy(initial_delay=10, min_interval=0).first_delay(45) == 10
    assert PollPolicy(initial_delay=10, min_interval=0, use_server_estimate=True).first_delay(45) == 45
