"""
プロセス内キャッシュ。

容量上限(LRU追い出し)と有効期限(TTL)を持つ単一のキー・バリューストアを提供する。
レコード・翻訳・ルビの3種類はキー接頭辞で区別するが、ストア自身は接頭辞を意識しない。

キャッシュは最適化のためだけに存在し、ミスはエラーとして扱わない。
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

RECORD_PREFIX = "record:"
TRANSLATE_PREFIX = "translate:"
RUBY_PREFIX = "ruby:"


def record_key(path: str) -> str:
    return f"{RECORD_PREFIX}{path}"


def translate_key(text: str) -> str:
    return f"{TRANSLATE_PREFIX}{text}"


def ruby_key(text: str) -> str:
    return f"{RUBY_PREFIX}{text}"


class TTLCache:
    """
    LRU + TTL のインメモリキャッシュ。

    Args:
        capacity: 最大エントリ数。超過時は最も長く参照されていないエントリを追い出す。
        ttl_seconds: set からの有効秒数。参照の有無にかかわらず期限で失効する。
        clock: 現在時刻(秒)を返す関数。テストでは差し替える。
    """

    def __init__(
        self,
        capacity: int = 1000,
        ttl_seconds: float = 3600,
        clock: Optional[Callable[[], float]] = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._data: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        entry = self._data.get(key)
        return entry is not None and entry[0] > self._clock()

    def get(self, key: str, default: Any = None) -> Any:
        """
        キーに対応する値を返す。

        期限切れのエントリは削除して default を返す。
        ヒットしたエントリは最近参照したものとして扱う。
        """
        entry = self._data.get(key)
        if entry is None:
            return default

        expires_at, value = entry
        if expires_at <= self._clock():
            del self._data[key]
            return default

        self._data.move_to_end(key)
        return value

    def set(self, key: str, value: Any) -> None:
        """値を保存する。既存キーは上書きし、有効期限をリセットする。"""
        self._data.pop(key, None)
        self._data[key] = (self._clock() + self.ttl_seconds, value)

        if len(self._data) > self.capacity:
            self._purge_expired()
        while len(self._data) > self.capacity:
            self._data.popitem(last=False)

    def _purge_expired(self) -> None:
        now = self._clock()
        stale = [k for k, (expires_at, _) in self._data.items() if expires_at <= now]
        for k in stale:
            del self._data[k]
