"""
疎なデータセットからのランダム選曲(棄却サンプリング)。

チャートの全枠にデータがあるわけではないため、ランダムに座標を選んで取得し、
条件を満たさなければ別の座標で再試行する。試行回数には上限を設け、
使い切った場合は NoCandidateFound を送出する。

1回の試行結果は Attempt(hit / miss / failed)として明示的に扱い、
取得失敗(RemoteUnavailable / MalformedRecord)は miss と同じく次の試行へ進む。
"""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from utatle.config import DatasetConfig, SamplerConfig
from utatle.errors import MalformedRecord, NoCandidateFound, RemoteUnavailable
from utatle.models import Coordinate, SongRecord
from utatle.normalize import clean_lines, genre_matches

logger = logging.getLogger(__name__)

RANK_MIN = 1
RANK_MAX = 100


class RecordSource(Protocol):
    async def fetch_record(self, coord: Coordinate) -> SongRecord: ...


class AttemptKind(enum.Enum):
    HIT = "hit"
    MISS = "miss"
    FAILED = "failed"


@dataclass(frozen=True)
class Attempt:
    """
    1座標分の試行結果。

    Attributes:
        kind: HIT(採用)、MISS(取得できたが条件外)、FAILED(取得失敗)。
        coord: 試行した座標。
        record: HIT / MISS の場合の取得レコード。
        error: FAILED の場合の例外。
    """

    kind: AttemptKind
    coord: Coordinate
    record: Optional[SongRecord] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.kind is AttemptKind.HIT


def has_lines(record: SongRecord) -> bool:
    return bool(clean_lines(record.lines))


class Sampler:
    """
    3種類の選曲方法(月指定 / 全期間ランダム / ジャンル指定)を提供する。

    Args:
        source: レコード取得元(DatasetFetcher 等)。
        dataset: 年の範囲を持つデータセット設定。
        config: 試行回数上限。
        rng: 乱数生成器。テストでは seed 固定のものを渡す。
    """

    def __init__(
        self,
        source: RecordSource,
        dataset: DatasetConfig,
        config: SamplerConfig,
        rng: Optional[random.Random] = None,
    ):
        self.source = source
        self.dataset = dataset
        self.config = config
        self.rng = rng or random.Random()

    async def attempt(
        self,
        coord: Coordinate,
        accept: Callable[[SongRecord], bool] = has_lines,
    ) -> Attempt:
        """1座標を取得し、accept を満たすかどうかを Attempt として返す。"""
        try:
            record = await self.source.fetch_record(coord)
        except (RemoteUnavailable, MalformedRecord) as e:
            logger.debug("sample miss %s: %s", coord, e)
            return Attempt(AttemptKind.FAILED, coord, error=e)

        if accept(record):
            return Attempt(AttemptKind.HIT, coord, record=record)
        return Attempt(AttemptKind.MISS, coord, record=record)

    def _random_month(self) -> tuple[int, int]:
        year = self.rng.randint(self.dataset.year_min, self.dataset.year_max)
        month = self.rng.randint(1, 12)
        return year, month

    async def _search_month(
        self,
        year: int,
        month: int,
        accept: Callable[[SongRecord], bool],
    ) -> Attempt:
        """
        指定月の順位を重複なしでランダムに試す。

        Returns:
            最初の HIT。見つからなければ最後の試行結果。
        """
        budget = min(self.config.month_attempts, RANK_MAX - RANK_MIN + 1)
        ranks = self.rng.sample(range(RANK_MIN, RANK_MAX + 1), budget)

        last: Optional[Attempt] = None
        for rank in ranks:
            last = await self.attempt(Coordinate(year, month, rank), accept)
            if last.ok:
                return last

        if last is None:
            return Attempt(AttemptKind.MISS, Coordinate(year, month, 0))
        return last

    async def by_month(self, year: int, month: int) -> SongRecord:
        """
        指定年月から歌詞のある曲を1曲選ぶ。

        Raises:
            NoCandidateFound: 試行回数の上限までに見つからなかった場合。
        """
        result = await self._search_month(year, month, has_lines)
        if result.ok and result.record is not None:
            return result.record

        logger.warning("no song with lyrics in %04d-%02d", year, month)
        raise NoCandidateFound(f"no_song_in_month: {year:04d}-{month:02d}")

    async def random_global(self) -> SongRecord:
        """
        対象年の範囲から年月をランダムに選び、月指定の選曲を繰り返す。

        Raises:
            NoCandidateFound: 試行回数の上限までに見つからなかった場合。
        """
        for _ in range(self.config.random_attempts):
            year, month = self._random_month()
            result = await self._search_month(year, month, has_lines)
            if result.ok and result.record is not None:
                return result.record

        logger.warning("random pick exhausted after %d months", self.config.random_attempts)
        raise NoCandidateFound("random_pick_failed")

    async def by_genre(self, genre_query: str) -> SongRecord:
        """
        ジャンルが部分一致する曲をランダムに1曲選ぶ。

        ジャンルは normalize_genre_key で正規化してから比較する。
        1試行ごとに年・月・順位をランダムに選び、同じ座標は二度試さない。

        Raises:
            NoCandidateFound: 試行回数の上限までに見つからなかった場合。
        """

        def accept(record: SongRecord) -> bool:
            return has_lines(record) and genre_matches(record.genre, genre_query)

        tried: set[Coordinate] = set()
        for _ in range(self.config.genre_attempts):
            year, month = self._random_month()
            coord = Coordinate(year, month, self.rng.randint(RANK_MIN, RANK_MAX))
            if coord in tried:
                continue
            tried.add(coord)

            result = await self.attempt(coord, accept)
            if result.ok and result.record is not None:
                return result.record

        logger.warning("genre pick exhausted for %r", genre_query)
        raise NoCandidateFound(f"genre_pick_failed: {genre_query}")
