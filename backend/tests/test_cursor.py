from __future__ import annotations

import pytest

from frontail.cursor import Cursor


def test_start_is_epoch_and_zero_offset():
    assert Cursor.start() == Cursor(0, 0)


def test_from_params_parses_decimal_integers():
    assert Cursor.from_params("1700000000123456789", "42") == Cursor(1700000000123456789, 42)


@pytest.mark.parametrize(
    ("mod_time", "offset", "expected"),
    [
        (None, None, Cursor(0, 0)),
        ("", "", Cursor(0, 0)),
        ("abc", "12", Cursor(0, 12)),
        ("5", "-3", Cursor(5, 0)),
        ("1e9", "0x10", Cursor(0, 0)),
    ],
)
def test_from_params_falls_back_to_zero(mod_time, offset, expected):
    assert Cursor.from_params(mod_time, offset) == expected


def test_to_params_matches_stream_query_names():
    assert Cursor(7, 12).to_params() == {"modTime": "7", "offset": "12"}


def test_negative_values_are_rejected():
    with pytest.raises(ValueError, match="offset"):
        Cursor(0, -1)
    with pytest.raises(ValueError, match="mod_time_ns"):
        Cursor(-1, 0)
