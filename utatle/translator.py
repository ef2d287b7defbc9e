"""
DeepL による歌詞行の一括翻訳。

翻訳は行単位で ``translate:<原文>`` としてキャッシュし、同じ行は一度だけ翻訳する。
キャッシュに無い行だけをまとめて1回のリクエストで翻訳し、
リクエストが失敗した場合はそのバッチの未翻訳行を原文のまま返す(再試行はしない)。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

import httpx

from utatle.cache import TTLCache, translate_key
from utatle.config import TranslationConfig
from utatle.errors import RemoteUnavailable

logger = logging.getLogger(__name__)


class BatchTranslator(Protocol):
    async def translate_batch(self, texts: Sequence[str]) -> List[str]: ...


class DeepLClient:
    """
    DeepL translate API のクライアント。

    複数の ``text`` をフォームで送り、同じ順序で翻訳結果を受け取る。
    """

    def __init__(self, client: httpx.AsyncClient, config: TranslationConfig):
        self.client = client
        self.config = config

    def _headers(self) -> dict:
        return {"Authorization": f"DeepL-Auth-Key {self.config.api_key}"}

    async def translate_batch(self, texts: Sequence[str]) -> List[str]:
        """
        texts をまとめて翻訳する。

        Returns:
            texts と同じ長さ・順序の翻訳結果。

        Raises:
            RemoteUnavailable: 成功以外のステータス、通信失敗、応答の件数不一致の場合。
        """
        form = {
            "text": list(texts),
            "source_lang": self.config.source_lang,
            "target_lang": self.config.target_lang,
        }
        try:
            response = await self.client.post(
                self.config.endpoint, data=form, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"DeepL request failed ({e})") from e

        if response.status_code != 200:
            raise RemoteUnavailable(
                f"DeepL {response.status_code}", status=response.status_code
            )

        try:
            translations = response.json().get("translations") or []
        except (ValueError, AttributeError) as e:
            raise RemoteUnavailable("DeepL returned an unreadable body") from e

        if not isinstance(translations, list):
            raise RemoteUnavailable("DeepL returned translations that are not a list")
        if len(translations) != len(texts):
            raise RemoteUnavailable(
                f"DeepL returned {len(translations)} items for {len(texts)} texts"
            )

        return [
            str(item.get("text", src)) if isinstance(item, dict) else src
            for item, src in zip(translations, texts)
        ]


@dataclass
class BatchResult:
    """1バッチ分の翻訳結果。ok=False の場合 translations は空。"""

    ok: bool
    translations: List[str] = field(default_factory=list)
    error: Optional[Exception] = None


class TranslationBatcher:
    """
    歌詞行の列を翻訳する。

    Args:
        cache: 共有キャッシュ。
        translator: 翻訳バックエンド。None の場合は原文をそのまま返す。
        batch_size: 1リクエストあたりの最大行数。
    """

    def __init__(
        self,
        cache: TTLCache,
        translator: Optional[BatchTranslator] = None,
        batch_size: int = 40,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.cache = cache
        self.translator = translator
        self.batch_size = batch_size

    async def _request(self, translator: BatchTranslator, texts: List[str]) -> BatchResult:
        try:
            translations = await translator.translate_batch(texts)
        except RemoteUnavailable as e:
            return BatchResult(ok=False, error=e)

        if len(translations) != len(texts):
            error = RemoteUnavailable(f"got {len(translations)} translations for {len(texts)} texts")
            return BatchResult(ok=False, error=error)
        return BatchResult(ok=True, translations=list(translations))

    async def _translate_batch(
        self, translator: BatchTranslator, batch: Sequence[str]
    ) -> List[str]:
        resolved: Dict[int, str] = {}
        needed: Dict[str, List[int]] = {}

        for i, text in enumerate(batch):
            if not text:
                resolved[i] = text
                continue
            hit = self.cache.get(translate_key(text))
            if hit is not None:
                resolved[i] = hit
            else:
                needed.setdefault(text, []).append(i)

        if needed:
            texts = list(needed)
            result = await self._request(translator, texts)
            if result.ok:
                for src, out in zip(texts, result.translations):
                    self.cache.set(translate_key(src), out)
                    for i in needed[src]:
                        resolved[i] = out
            else:
                logger.warning(
                    "translation failed for %d lines, using source text: %s",
                    len(texts),
                    result.error,
                )
                for src, indices in needed.items():
                    for i in indices:
                        resolved[i] = src

        return [resolved[i] for i in range(len(batch))]

    async def translate_lines(self, lines: Sequence[str]) -> List[str]:
        """
        lines を翻訳し、同じ長さ・順序の列を返す。

        翻訳バックエンドが無い場合は lines をそのまま返す。
        """
        lines = list(lines)
        translator = self.translator
        if translator is None:
            return lines

        out: List[str] = []
        for start in range(0, len(lines), self.batch_size):
            out.extend(await self._translate_batch(translator, lines[start : start + self.batch_size]))
        return out

    async def translate_text(self, text: str) -> str:
        """単一テキストを翻訳する。"""
        return (await self.translate_lines([text]))[0]
