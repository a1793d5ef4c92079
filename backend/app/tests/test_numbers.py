import numpy as np
import pytest

from app.engine.numbers import finite_or_none, parse_number


@pytest.mark.parametrize(
    "raw,expected",
    [
        (12, 12.0),
        (3.5, 3.5),
        ("1,234.5", 1234.5),
        ("1 234", 1234.0),
        (" 42 ", 42.0),
        (np.int64(7), 7.0),
        ("", None),
        ("n/a", None),
        ("inf", None),
        (float("nan"), None),
        (True, None),
        (None, None),
        ([1], None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_finite_or_none_rejects_strings():
    assert finite_or_none("12") is None
    assert finite_or_none(np.float64(2.5)) == 2.5
