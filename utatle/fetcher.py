"""
データセットから1曲分のレコードを取得し、SongRecord に正規化する。

元データの歌詞の持ち方は2種類ある:
- ``{"lyrics": {"lines": [...]}}``
- ``{"lyrics": [{"text": ...}, ...]}``

どちらにも当てはまらない場合や項目が欠けている場合も、
空の歌詞を持つ SongRecord を返す(レコード欠落はよくあることなので例外にしない)。

例外方針:
- 取得失敗は RemoteUnavailable、デコード失敗は MalformedRecord として上位へ伝播する。
- 正常にデコードできた生データのみキャッシュする。
"""

from __future__ import annotations

import logging
from typing import Any, List

import httpx

from utatle.cache import TTLCache, record_key
from utatle.codec import path_for
from utatle.config import DatasetConfig
from utatle.github_content import decode_content, get_contents
from utatle.models import Coordinate, SongRecord

logger = logging.getLogger(__name__)

GENRE_FIELDS = ("genre", "song_genre")


def _as_int(value: Any, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v is not None)
    return str(value)


def extract_lines(raw: Any) -> List[str]:
    """
    生データから歌詞行を取り出す。

    入れ子形式(lyrics.lines)を優先し、次に配列形式(lyrics[].text)を試す。
    どちらでもなければ空リスト。
    """
    if not isinstance(raw, dict):
        return []

    lyrics = raw.get("lyrics")
    if isinstance(lyrics, dict) and isinstance(lyrics.get("lines"), list):
        return [str(line) for line in lyrics["lines"] if line is not None]

    if isinstance(lyrics, list):
        lines = []
        for item in lyrics:
            text = item.get("text") if isinstance(item, dict) else None
            if text:
                lines.append(str(text))
        return lines

    return []


def extract_genre(raw: Any) -> str:
    """genre / song_genre の順に探し、どちらも無ければ空文字。"""
    if not isinstance(raw, dict):
        return ""
    for name in GENRE_FIELDS:
        value = _as_str(raw.get(name)).strip()
        if value:
            return value
    return ""


def to_song_record(raw: Any, coord: Coordinate) -> SongRecord:
    """
    生データを SongRecord に変換する。

    年・月は座標の値を使い、順位は生データの rank を優先する。
    """
    data = raw if isinstance(raw, dict) else {}
    title = data.get("song_name")
    if title is None:
        title = data.get("title")

    return SongRecord(
        year=int(coord.year),
        month=int(coord.month),
        rank=_as_int(data.get("rank"), coord.rank),
        title=_as_str(title),
        artist=_as_str(data.get("artist")),
        genre=extract_genre(data),
        lines=extract_lines(data),
    )


class DatasetFetcher:
    """
    座標を指定してデータセットからレコードを取得する。

    Args:
        client: 共有の httpx.AsyncClient。
        cache: 共有キャッシュ。``record:<path>`` に生データを保存する。
        config: データセット設定。
    """

    def __init__(self, client: httpx.AsyncClient, cache: TTLCache, config: DatasetConfig):
        self.client = client
        self.cache = cache
        self.config = config

    async def fetch_raw(self, path: str) -> Any:
        """
        パスを指定して生データを取得する。キャッシュにあればそれを返す。

        Raises:
            RemoteUnavailable: GitHub が成功以外の応答を返した場合。
            MalformedRecord: content が無い、またはデコードできない場合。
        """
        key = record_key(path)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        meta = await get_contents(
            self.client,
            owner=self.config.owner,
            repo=self.config.repo,
            path=path,
            ref=self.config.branch,
            token=self.config.token,
        )
        raw = decode_content(meta)
        self.cache.set(key, raw)
        return raw

    async def fetch_record(self, coord: Coordinate) -> SongRecord:
        """
        座標のレコードを取得して SongRecord を返す。

        Raises:
            RemoteUnavailable: GitHub が成功以外の応答を返した場合。
            MalformedRecord: content が無い、またはデコードできない場合。
        """
        path = path_for(coord)
        raw = await self.fetch_raw(path)
        record = to_song_record(raw, coord)
        logger.debug("fetched %s (%d lines)", path, len(record.lines))
        return record
