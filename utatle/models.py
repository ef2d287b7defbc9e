"""
データモデル定義モジュール。

データセット上の位置(Coordinate)、取得した1曲分の情報(SongRecord)、
フロントエンドへ返すクイズ応答(QuizPayload)を定義する。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Coordinate:
    """
    月間チャート上の1枠を表す座標。

    存在するレコードを指すとは限らない(データセットは疎である)。

    Attributes:
        year: 年(4桁)。
        month: 月(1-12)。
        rank: 順位(1-100)。
    """

    year: int
    month: int
    rank: int


@dataclass(frozen=True)
class SongRecord:
    """
    データセットから取得・正規化した1曲分の情報。

    lines は歌詞の行。歌詞が存在しない場合は空リスト。
    genre は元データに無い場合は空文字。
    """

    year: int
    month: int
    rank: int
    title: str
    artist: str
    genre: str = ""
    lines: List[str] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.year, self.month, self.rank)


@dataclass(frozen=True)
class QuizPayload:
    """
    クイズ応答。

    lyrics_ko_lines / lyrics_ja_lines / lyrics_ja_ruby_lines は
    行番号で対応する同じ長さの配列。
    """

    year: int
    month: int
    rank: int
    title: str
    artist: str
    genre: str
    code: str
    lyrics_ko_lines: List[str]
    lyrics_ja_lines: List[str]
    lyrics_ja_ruby_lines: List[str]

    def to_dict(self) -> dict:
        """フロントエンド向けのJSON形式(camelCase)に変換する。"""
        return {
            "year": self.year,
            "month": self.month,
            "rank": self.rank,
            "title": self.title,
            "artist": self.artist,
            "genre": self.genre,
            "code": self.code,
            "lyricsKoLines": list(self.lyrics_ko_lines),
            "lyricsJaLines": list(self.lyrics_ja_lines),
            "lyricsJaRubyLines": list(self.lyrics_ja_ruby_lines),
        }
