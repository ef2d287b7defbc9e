"""
HTTP API(FastAPI)。

ルーティング・CORS・エラーレスポンスへの変換のみを担当し、
クイズ生成処理は QuizService に委譲する。

例外方針:
- 入力検証エラー(BadRequest)は 400 を返す。
- それ以外の失敗はクイズ系で 502 ``fetch_failed``、翻訳で 500 ``translate_failed`` を返し、
  内部のエラー内容はクライアントに返さない。
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from utatle.annotator import AnnotationStage, KakasiConverter, RubyConverter
from utatle.assembler import QuizService
from utatle.cache import TTLCache
from utatle.config import Settings
from utatle.errors import BadRequest, QuizError
from utatle.fetcher import DatasetFetcher
from utatle.models import QuizPayload
from utatle.sampler import Sampler
from utatle.translator import DeepLClient, TranslationBatcher

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 30


def _error(status: int, code: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": code})


def parse_year_month(year: Optional[str], month: Optional[str]) -> tuple[int, int]:
    """
    クエリの year / month を検証して int に変換する。

    Raises:
        BadRequest: 欠落・数値でない・月が1-12の範囲外の場合。
    """
    try:
        y = int(year)  # type: ignore[arg-type]
        m = int(month)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise BadRequest("year_month_required") from None
    if y <= 0 or not 1 <= m <= 12:
        raise BadRequest("year_month_required")
    return y, m


def build_service(
    settings: Settings,
    client: httpx.AsyncClient,
    converter: RubyConverter,
    cache: Optional[TTLCache] = None,
    rng: Optional[random.Random] = None,
) -> QuizService:
    """設定から QuizService を組み立てる。キャッシュは全段階で共有する。"""
    cache = cache or TTLCache(settings.cache.capacity, settings.cache.ttl_seconds)

    fetcher = DatasetFetcher(client, cache, settings.dataset)
    sampler = Sampler(fetcher, settings.dataset, settings.sampler, rng=rng)

    backend = DeepLClient(client, settings.translation) if settings.translation.enabled else None
    if backend is None:
        logger.info("DEEPL_KEY is not set; lyrics are returned untranslated")
    translator = TranslationBatcher(cache, backend, batch_size=settings.translation.batch_size)

    annotator = AnnotationStage(cache, converter)
    return QuizService(fetcher, sampler, translator, annotator)


def create_app(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    converter: Optional[RubyConverter] = None,
    cache: Optional[TTLCache] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    FastAPI アプリを生成する。

    Args:
        settings: アプリケーション設定。
        http_client: 外部API呼び出しに使うクライアント。省略時はアプリが生成・破棄する。
        converter: ルビ変換器。省略時は KakasiConverter。
        cache: 共有キャッシュ。省略時は設定から生成する。
        rng: 選曲用の乱数生成器。

    Returns:
        FastAPI アプリ。
    """
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)
    service = build_service(settings, client, converter or KakasiConverter(), cache, rng)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        warm_up = asyncio.create_task(service.annotator.warm_up())
        try:
            yield
        finally:
            if not warm_up.done():
                warm_up.cancel()
            if owns_client:
                await client.aclose()

    app = FastAPI(title="utatle", lifespan=lifespan)
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    async def run_quiz(make: Callable[[], Awaitable[QuizPayload]]) -> JSONResponse:
        try:
            payload = await make()
        except BadRequest as e:
            return _error(400, e.code)
        except QuizError as e:
            logger.warning("quiz request failed: %s", e)
            return _error(502, "fetch_failed")
        except Exception:
            logger.exception("quiz request failed")
            return _error(502, "fetch_failed")
        return JSONResponse(content=payload.to_dict())

    @app.get("/health")
    async def health():
        return {"ok": True, "timestamp": int(time.time() * 1000)}

    @app.post("/api/translate")
    async def translate(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None

        text = body.get("text") if isinstance(body, dict) else None
        if not text or not isinstance(text, str):
            return _error(400, "text required")

        try:
            out = await service.translate_text(text)
        except Exception:
            logger.exception("translate request failed")
            return _error(500, "translate_failed")
        return {"textJa": out}

    @app.get("/api/quiz/by-month")
    async def quiz_by_month(year: Optional[str] = None, month: Optional[str] = None):
        async def make() -> QuizPayload:
            y, m = parse_year_month(year, month)
            return await service.by_month(y, m)

        return await run_quiz(make)

    @app.get("/api/quiz/random")
    async def quiz_random():
        return await run_quiz(service.random)

    @app.get("/api/quiz/by-code")
    async def quiz_by_code(code: Optional[str] = None):
        return await run_quiz(lambda: service.by_code(code or ""))

    @app.get("/api/quiz/by-genre")
    async def quiz_by_genre(genre: Optional[str] = None):
        return await run_quiz(lambda: service.by_genre(genre or ""))

    return app
