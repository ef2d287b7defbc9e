"""
翻訳済み歌詞へのルビ(ふりがな)付与。

変換器(pykakasi)は辞書ファイルの読み込みを伴うため、初回利用前に一度だけ初期化する。
初期化は起動時のウォームアップとしても、初回リクエスト時にも呼ばれうる。
初期化中に別の呼び出しが来た場合は、同じ初期化処理の完了を待つ。

pykakasi はハングルや空白を結果から落とすため、行を日本語(仮名・漢字)の連続部分と
それ以外に分け、漢字を含む日本語部分だけを変換器に渡す。それ以外はエスケープしてそのまま残す。
"""

from __future__ import annotations

import asyncio
import enum
import html
import itertools
import logging
import unicodedata
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

import pykakasi

from utatle.cache import TTLCache, ruby_key

logger = logging.getLogger(__name__)

_KANJI_NAMES = ("CJK UNIFIED IDEOGRAPH", "CJK COMPATIBILITY IDEOGRAPH")


def is_kanji(c: str) -> bool:
    """漢字(拡張領域・互換漢字、々・〆を含む)かを判定する。"""
    if c in "々〆":
        return True
    return unicodedata.name(c, "").startswith(_KANJI_NAMES)


def is_kana(c: str) -> bool:
    """ひらがな・カタカナ(半角・長音記号を含む)かを判定する。"""
    return "\u3040" <= c <= "\u30ff" or "\u31f0" <= c <= "\u31ff" or "\uff66" <= c <= "\uff9f"


def has_kanji(s: str) -> bool:
    return any(is_kanji(c) for c in s)


def split_japanese_runs(text: str) -> List[Tuple[bool, str]]:
    """
    行を日本語(仮名・漢字)の連続部分とそれ以外の連続部分に分ける。

    - 彼女 사랑해 -> ``[(True, "彼女"), (False, " 사랑해")]``
    """
    return [
        (japanese, "".join(chars))
        for japanese, chars in itertools.groupby(text, key=lambda c: is_kanji(c) or is_kana(c))
    ]


def ruby_segment(orig: str, reading: str) -> str:
    """
    1語分のルビHTMLを返す。

    送り仮名など、表記と読みで前後に共通する仮名はルビの外に出す。
    - 閉める / しめる -> ``<ruby>閉<rt>し</rt></ruby>める``
    漢字を含まない語はエスケープしてそのまま返す。
    """
    if not has_kanji(orig) or not reading or orig == reading:
        return html.escape(orig, quote=False)

    head = 0
    while head < len(orig) and head < len(reading) and orig[head] == reading[head]:
        head += 1

    tail = 0
    while (
        tail < len(orig) - head
        and tail < len(reading) - head
        and orig[-1 - tail] == reading[-1 - tail]
    ):
        tail += 1

    core = orig[head : len(orig) - tail]
    core_reading = reading[head : len(reading) - tail]
    if not core or not core_reading:
        return html.escape(orig, quote=False)

    return (
        html.escape(orig[:head], quote=False)
        + f"<ruby>{html.escape(core, quote=False)}<rt>{html.escape(core_reading, quote=False)}</rt></ruby>"
        + html.escape(orig[len(orig) - tail :], quote=False)
    )


def to_ruby_html(items: Iterable[Mapping[str, Any]]) -> str:
    """pykakasi.convert の結果をルビHTMLに連結する。"""
    return "".join(ruby_segment(str(item.get("orig", "")), str(item.get("hira", ""))) for item in items)


def annotate_run(kakasi: Any, run: str) -> str:
    """
    日本語の連続部分1つを変換器に通してルビHTMLにする。

    変換結果の表記を連結して元の文字列に戻らない場合(文字が落ちた場合)は、
    ルビを付けずにエスケープした原文を返す。
    """
    items = list(kakasi.convert(run))
    if "".join(str(item.get("orig", "")) for item in items) != run:
        logger.debug("ruby converter dropped characters from %r", run)
        return html.escape(run, quote=False)
    return to_ruby_html(items)


def ruby_html(kakasi: Any, text: str) -> str:
    """行全体のルビHTMLを返す。漢字を含まない部分は変換器に渡さない。"""
    parts = []
    for japanese, run in split_japanese_runs(text):
        if japanese and has_kanji(run):
            parts.append(annotate_run(kakasi, run))
        else:
            parts.append(html.escape(run, quote=False))
    return "".join(parts)


class ConverterState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class RubyConverter(Protocol):
    async def initialize(self) -> None: ...

    async def convert(self, text: str) -> str: ...


class KakasiConverter:
    """
    pykakasi を使ったルビ変換器。

    状態は UNINITIALIZED -> INITIALIZING -> READY と遷移する。
    初期化に失敗した場合は UNINITIALIZED に戻り、次の呼び出しで再試行する。

    Args:
        factory: 変換器インスタンスを生成する関数。
    """

    def __init__(self, factory: Callable[[], Any] = pykakasi.kakasi):
        self._factory = factory
        self._kakasi: Any = None
        self._init_task: Optional[asyncio.Future] = None
        self.state = ConverterState.UNINITIALIZED

    async def _load(self) -> None:
        try:
            # 辞書読み込みはブロッキングなのでイベントループ外で行う
            self._kakasi = await asyncio.to_thread(self._factory)
        except Exception:
            self.state = ConverterState.UNINITIALIZED
            self._init_task = None
            raise
        self.state = ConverterState.READY
        logger.info("ruby converter ready")

    async def initialize(self) -> None:
        """変換器を初期化する。2回目以降の呼び出しは何もしない。"""
        if self.state is ConverterState.READY:
            return
        if self._init_task is None:
            self.state = ConverterState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._load())
        await asyncio.shield(self._init_task)

    async def convert(self, text: str) -> str:
        await self.initialize()
        return ruby_html(self._kakasi, text)


class AnnotationStage:
    """
    行単位でルビを付与し、``ruby:<行>`` としてキャッシュする。

    変換に失敗した行は原文(エスケープ済み)を返し、キャッシュしない。
    """

    def __init__(self, cache: TTLCache, converter: RubyConverter):
        self.cache = cache
        self.converter = converter

    async def warm_up(self) -> None:
        """起動時のウォームアップ。失敗しても初回リクエスト時に再試行される。"""
        try:
            await self.converter.initialize()
        except Exception:
            logger.warning("ruby converter warm-up failed", exc_info=True)

    async def annotate_line(self, line: str) -> str:
        if not line:
            return ""

        key = ruby_key(line)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        try:
            out = await self.converter.convert(line)
        except Exception:
            logger.warning("ruby conversion failed, using source text", exc_info=True)
            return html.escape(line, quote=False)

        self.cache.set(key, out)
        return out

    async def annotate_lines(self, lines: Sequence[str]) -> List[str]:
        """各行を並行して変換する。結果は入力と同じ順序。"""
        return list(await asyncio.gather(*(self.annotate_line(line) for line in lines)))
