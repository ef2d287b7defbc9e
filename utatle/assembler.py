"""
クイズ応答の組み立て。

選曲(Sampler / DatasetFetcher) -> 翻訳(TranslationBatcher) -> ルビ付与(AnnotationStage)
の順に処理し、QuizPayload を返す。各段階は前段の結果に依存するため順に実行する。
"""

from __future__ import annotations

from typing import Sequence

from utatle.annotator import AnnotationStage
from utatle.codec import decode, encode
from utatle.errors import BadRequest, NoCandidateFound
from utatle.fetcher import DatasetFetcher
from utatle.models import QuizPayload, SongRecord
from utatle.normalize import clean_lines, normalize_genre_key
from utatle.sampler import Sampler
from utatle.translator import TranslationBatcher


async def assemble(
    record: SongRecord,
    translated_lines: Sequence[str],
    source_lines: Sequence[str],
    annotator: AnnotationStage,
) -> QuizPayload:
    """
    レコードと原文・訳文の行からクイズ応答を組み立てる。

    訳文の各行にルビを付与し(並行実行、順序は保持)、座標からコードを生成する。

    Raises:
        ValueError: 原文と訳文の行数が一致しない場合。
    """
    if len(translated_lines) != len(source_lines):
        raise ValueError(
            f"line count mismatch: {len(source_lines)} source / {len(translated_lines)} translated"
        )

    ruby_lines = await annotator.annotate_lines(translated_lines)

    return QuizPayload(
        year=record.year,
        month=record.month,
        rank=record.rank,
        title=record.title,
        artist=record.artist,
        genre=record.genre,
        code=encode(record.coordinate),
        lyrics_ko_lines=list(source_lines),
        lyrics_ja_lines=list(translated_lines),
        lyrics_ja_ruby_lines=ruby_lines,
    )


class QuizService:
    """
    各エンドポイントから呼ばれるクイズ生成処理。

    Args:
        fetcher: データセット取得。
        sampler: 選曲。
        translator: 翻訳。
        annotator: ルビ付与。
    """

    def __init__(
        self,
        fetcher: DatasetFetcher,
        sampler: Sampler,
        translator: TranslationBatcher,
        annotator: AnnotationStage,
    ):
        self.fetcher = fetcher
        self.sampler = sampler
        self.translator = translator
        self.annotator = annotator

    async def build(self, record: SongRecord) -> QuizPayload:
        source_lines = clean_lines(record.lines)
        translated_lines = await self.translator.translate_lines(source_lines)
        return await assemble(record, translated_lines, source_lines, self.annotator)

    async def by_month(self, year: int, month: int) -> QuizPayload:
        record = await self.sampler.by_month(year, month)
        return await self.build(record)

    async def random(self) -> QuizPayload:
        record = await self.sampler.random_global()
        return await self.build(record)

    async def by_code(self, code: str) -> QuizPayload:
        """
        共有用コードの曲でクイズを作る。

        Raises:
            BadRequest: コードが解釈できない場合。
            NoCandidateFound: 曲に歌詞が無い場合。
        """
        coord = decode(code)
        if coord is None:
            raise BadRequest("invalid_code")

        record = await self.fetcher.fetch_record(coord)
        if not clean_lines(record.lines):
            raise NoCandidateFound(f"no lyrics at {encode(coord)}")
        return await self.build(record)

    async def by_genre(self, genre: str) -> QuizPayload:
        if not normalize_genre_key(genre):
            raise BadRequest("genre_required")
        record = await self.sampler.by_genre(genre)
        return await self.build(record)

    async def translate_text(self, text: str) -> str:
        return await self.translator.translate_text(text)
