"""
座標(year, month, rank)とデータセット上のパス・共有用コードの相互変換。

パスは月を2桁ゼロ埋め、順位はゼロ埋めしない(データセット側の命名規則)。
コードは年4桁 + 月2桁 + 順位3桁の数字列。
"""

from __future__ import annotations

import re
from typing import Optional

from utatle.models import Coordinate

CODE_DIGITS = 9


def path_for(coord: Coordinate) -> str:
    """
    座標からデータセット内のJSONファイルパスを組み立てる。

    Args:
        coord: 対象座標。

    Returns:
        ``melon/monthly-chart/melon-YYYY/melon-YYYY-MM/melon-monthly_YYYY-MM_R.json``
    """
    yy = str(coord.year)
    mm = f"{coord.month:02d}"
    return (
        f"melon/monthly-chart/melon-{yy}/melon-{yy}-{mm}/"
        f"melon-monthly_{yy}-{mm}_{coord.rank}.json"
    )


def encode(coord: Coordinate) -> str:
    """座標を共有用コード(例: 2020年5月7位 -> ``202005007``)に変換する。"""
    return f"{coord.year:04d}{coord.month:02d}{coord.rank:03d}"


def decode(code: Optional[str]) -> Optional[Coordinate]:
    """
    共有用コードを座標に戻す。

    数字以外の文字は除去してから解釈する。数字が9桁未満、
    またはいずれかの値が0になる場合は None を返す(例外は送出しない)。

    Args:
        code: 共有用コード。

    Returns:
        Coordinate。解釈できない場合は None。
    """
    digits = re.sub(r"[^0-9]", "", code or "")
    if len(digits) < CODE_DIGITS:
        return None

    year = int(digits[0:4])
    month = int(digits[4:6])
    rank = int(digits[6:9])
    if not year or not month or not rank:
        return None

    return Coordinate(year=year, month=month, rank=rank)
