"""
文字列正規化ユーティリティ。

歌詞行の整形と、ジャンル検索用キーの生成を行う。
ジャンル検索キーは「大文字小文字・ダイアクリティカルマーク・記号の揺れを同一視する」ことを目的とする。
"""

from __future__ import annotations

import unicodedata
from typing import Iterable, List, Optional

# NFKD分解では基底文字に分解されない文字
_FOLD_MAP = {
    "ß": "ss",
    "æ": "ae",
    "œ": "oe",
    "ø": "o",
    "đ": "d",
    "ł": "l",
    "ı": "i",
}


def normalize_genre_key(s: Optional[str]) -> str:
    """
    ジャンル文字列を検索用キーに正規化して返す。

    正規化内容:
    - Unicode正規化 (NFKC) と小文字化
    - ダイアクリティカルマークの除去 (NFKD分解後に結合文字を除去)
    - 分解されない合字等の置換
    - 英数字以外(Unicode上の文字・数字以外)の除去

    ハングル等は結合文字を含まないため、そのまま残る。

    Args:
        s: 入力文字列。

    Returns:
        正規化済み文字列。入力が None の場合は空文字を返す。
    """
    if s is None:
        return ""

    s = unicodedata.normalize("NFKC", s).lower()

    for k, v in _FOLD_MAP.items():
        s = s.replace(k, v)

    decomposed = unicodedata.normalize("NFKD", s)
    s = "".join(c for c in decomposed if not unicodedata.combining(c))

    # ハングル字母の分解を元に戻す
    s = unicodedata.normalize("NFC", s)

    return "".join(c for c in s if c.isalnum())


def genre_matches(genre: Optional[str], query: Optional[str]) -> bool:
    """
    正規化済みジャンルに正規化済みクエリが部分一致するかを判定する。

    クエリが正規化後に空になる場合は一致しないものとする。
    """
    q = normalize_genre_key(query)
    if not q:
        return False
    return q in normalize_genre_key(genre)


def clean_lines(lines: Iterable[object]) -> List[str]:
    """
    歌詞行を前後空白除去し、空行を取り除いて返す。

    Args:
        lines: 歌詞行。None や非文字列が混ざっていてもよい。

    Returns:
        空でない行のリスト(元の順序を保持)。
    """
    out: List[str] = []
    for line in lines:
        if line is None:
            continue
        text = str(line).strip()
        if text:
            out.append(text)
    return out
