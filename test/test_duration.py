from __future__ import annotations

import pytest

from resource_tracker.duration import parse_flexible


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1:30", 90_000),
        ("10m", 600_000),
        ("2h", 7_200_000),
        ("45", 45_000),
        ("0:59", 59_000),
        ("90 mins", 5_400_000),
        ("1.5 hours", 5_400_000),
        ("30 Seconds", 30_000),
        ("2 HRS", 7_200_000),
        ("2.5", 2_500),
        (" 12sec ", 12_000),
        (0, 0),
    ],
)
def test_accepted_forms(text: object, expected: int) -> None:
    assert parse_flexible(text) == expected


@pytest.mark.parametrize(
    "text",
    ["", "   ", None, "abc", "1:60", "1:2:3", "-5", "10ms", "h", "1:xx", ".", "5 days", True],
)
def test_rejected_forms_return_none(text: object) -> None:
    assert parse_flexible(text) is None


def test_integral_results_are_ints() -> None:
    assert isinstance(parse_flexible("10m"), int)
    assert isinstance(parse_flexible("1:30"), int)
