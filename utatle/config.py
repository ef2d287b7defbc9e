"""
設定の読み込み処理を提供するモジュール。

settings.yaml からデータセット・キャッシュ・サンプラー等の調整値を読み込み、
環境変数(DEEPL_KEY / GITHUB_TOKEN / CORS_ORIGINS / PORT)で上書きして
アプリ内で扱いやすい dataclass に変換する。
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import yaml

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"
DEEPL_FREE_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_URL = "https://api.deepl.com/v2/translate"


@dataclass(frozen=True)
class DatasetConfig:
    """
    歌詞データセット(GitHubリポジトリ)の設定。

    Attributes:
        owner: GitHubリポジトリのowner名。
        repo: GitHubリポジトリ名。
        branch: 参照するブランチ。
        token: GitHub API token。未設定なら匿名アクセス。
        year_min: ランダム選曲の対象とする最小年。
        year_max: ランダム選曲の対象とする最大年。
    """

    owner: str = "EX3exp"
    repo: str = "Kpop-lyric-datasets"
    branch: str = "main"
    token: str = ""
    year_min: int = 2000
    year_max: int = 2023


@dataclass(frozen=True)
class TranslationConfig:
    """
    翻訳API(DeepL)の設定。api_key が空なら翻訳せず原文を返す。
    """

    api_key: str = ""
    url: str = ""
    source_lang: str = "KO"
    target_lang: str = "JA"
    batch_size: int = 40

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        """明示指定が無ければ、キーの種類(Free版は末尾 ``:fx``)からURLを決める。"""
        if self.url:
            return self.url
        if self.api_key.endswith(":fx"):
            return DEEPL_FREE_URL
        return DEEPL_PRO_URL


@dataclass(frozen=True)
class CacheConfig:
    capacity: int = 1000
    ttl_seconds: int = 3600


@dataclass(frozen=True)
class SamplerConfig:
    """サンプラーの試行回数上限。"""

    month_attempts: int = 50
    random_attempts: int = 120
    genre_attempts: int = 350


@dataclass(frozen=True)
class ServerConfig:
    port: int = 4000
    cors_origins: Tuple[str, ...] = tuple(DEFAULT_CORS_ORIGINS.split(","))


@dataclass(frozen=True)
class Settings:
    """
    アプリケーション全体設定。

    Attributes:
        dataset: データセット設定。
        translation: 翻訳設定。
        cache: キャッシュ設定。
        sampler: サンプラー設定。
        server: HTTPサーバ設定。
    """

    dataset: DatasetConfig = DatasetConfig()
    translation: TranslationConfig = TranslationConfig()
    cache: CacheConfig = CacheConfig()
    sampler: SamplerConfig = SamplerConfig()
    server: ServerConfig = ServerConfig()


def parse_origins(value: str) -> Tuple[str, ...]:
    """カンマ区切りのオリジン一覧を分割し、空要素を除いて返す。"""
    return tuple(s.strip() for s in value.split(",") if s.strip())


def load_settings(
    path: str = "settings.yaml",
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    settings.yaml と環境変数を読み込み Settings に変換する。

    settings.yaml が存在しない場合は既定値を使う。

    Args:
        path: settings.yaml のファイルパス。
        env: 環境変数。省略時は os.environ。

    Returns:
        Settingsオブジェクト。

    Raises:
        yaml.YAMLError: YAMLのパースに失敗した場合。
        ValueError: 数値項目のint変換に失敗した場合。
    """
    env = os.environ if env is None else env

    data: dict = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    dataset_data = data.get("dataset") or {}
    translation_data = data.get("translation") or {}
    cache_data = data.get("cache") or {}
    sampler_data = data.get("sampler") or {}
    server_data = data.get("server") or {}

    defaults = Settings()

    return Settings(
        dataset=DatasetConfig(
            owner=str(dataset_data.get("owner", defaults.dataset.owner)).strip(),
            repo=str(dataset_data.get("repo", defaults.dataset.repo)).strip(),
            branch=str(dataset_data.get("branch", defaults.dataset.branch)).strip(),
            token=env.get("GITHUB_TOKEN", ""),
            year_min=int(dataset_data.get("year_min", defaults.dataset.year_min)),
            year_max=int(dataset_data.get("year_max", defaults.dataset.year_max)),
        ),
        translation=TranslationConfig(
            api_key=env.get("DEEPL_KEY", ""),
            url=str(translation_data.get("url", "") or ""),
            source_lang=str(translation_data.get("source_lang", defaults.translation.source_lang)),
            target_lang=str(translation_data.get("target_lang", defaults.translation.target_lang)),
            batch_size=int(translation_data.get("batch_size", defaults.translation.batch_size)),
        ),
        cache=CacheConfig(
            capacity=int(cache_data.get("capacity", defaults.cache.capacity)),
            ttl_seconds=int(cache_data.get("ttl_seconds", defaults.cache.ttl_seconds)),
        ),
        sampler=SamplerConfig(
            month_attempts=int(sampler_data.get("month_attempts", defaults.sampler.month_attempts)),
            random_attempts=int(sampler_data.get("random_attempts", defaults.sampler.random_attempts)),
            genre_attempts=int(sampler_data.get("genre_attempts", defaults.sampler.genre_attempts)),
        ),
        server=ServerConfig(
            port=int(env.get("PORT") or server_data.get("port", defaults.server.port)),
            cors_origins=parse_origins(env.get("CORS_ORIGINS") or DEFAULT_CORS_ORIGINS),
        ),
    )
