"""座標とパス・共有用コードの変換テスト。"""

from __future__ import annotations

import pytest

from utatle.codec import decode, encode, path_for
from utatle.models import Coordinate


@pytest.mark.light
def test_path_for_pads_month_but_not_rank():
    coord = Coordinate(2020, 5, 7)
    assert path_for(coord) == (
        "melon/monthly-chart/melon-2020/melon-2020-05/melon-monthly_2020-05_7.json"
    )


@pytest.mark.light
def test_path_for_two_digit_month_and_three_digit_rank():
    coord = Coordinate(2003, 11, 100)
    assert path_for(coord) == (
        "melon/monthly-chart/melon-2003/melon-2003-11/melon-monthly_2003-11_100.json"
    )


@pytest.mark.light
def test_encode_zero_pads_each_field():
    assert encode(Coordinate(2020, 5, 7)) == "202005007"
    assert encode(Coordinate(999, 12, 100)) == "099912100"


@pytest.mark.light
@pytest.mark.parametrize(
    "coord",
    [
        Coordinate(2020, 5, 7),
        Coordinate(2000, 1, 1),
        Coordinate(2023, 12, 100),
        Coordinate(1, 1, 999),
        Coordinate(9999, 12, 999),
    ],
)
def test_decode_is_inverse_of_encode(coord):
    assert decode(encode(coord)) == coord


@pytest.mark.light
def test_decode_ignores_non_digit_characters():
    assert decode("2020-05-007") == Coordinate(2020, 5, 7)
    assert decode(" code:202005007 ") == Coordinate(2020, 5, 7)


@pytest.mark.light
@pytest.mark.parametrize(
    "code",
    [
        None,
        "",
        "abc",
        "20200500",
        "2020-05-07",
        "000005007",
        "202000007",
        "202005000",
    ],
)
def test_decode_returns_none_for_malformed_codes(code):
    """9桁未満、または0になる値を含むコードは None(例外にしない)。"""
    assert decode(code) is None
