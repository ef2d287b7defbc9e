from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from urllib.parse import parse_qs, unquote

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

CONTENTS_PREFIX = "/repos/EX3exp/Kpop-lyric-datasets/contents/"


def encode_content(raw: object) -> dict:
    """GitHub contents API と同じく、60文字ごとに改行を入れた base64 を返す。"""
    text = base64.b64encode(json.dumps(raw, ensure_ascii=False).encode("utf-8")).decode("ascii")
    chunked = "\n".join(text[i : i + 60] for i in range(0, len(text), 60))
    return {"type": "file", "encoding": "base64", "content": chunked}


class FakeRemote:
    """GitHub contents API と DeepL translate API のスタブ。"""

    def __init__(self):
        self.records: dict[str, object] = {}
        self.github_calls: list[str] = []
        self.github_headers: list[dict] = []
        self.deepl_calls: list[list[str]] = []
        self.deepl_forms: list[dict] = []
        self.deepl_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.github.com":
            path = unquote(request.url.path)[len(CONTENTS_PREFIX) :]
            self.github_calls.append(path)
            self.github_headers.append(dict(request.headers))
            raw = self.records.get(path)
            if raw is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json=encode_content(raw))

        if request.url.path == "/v2/translate":
            form = parse_qs(request.content.decode("utf-8"))
            texts = form.get("text", [])
            self.deepl_calls.append(texts)
            self.deepl_forms.append(form)
            if self.deepl_status != 200:
                return httpx.Response(self.deepl_status, json={"message": "error"})
            return httpx.Response(
                200,
                json={
                    "translations": [
                        {"detected_source_language": "KO", "text": f"JA:{t}"} for t in texts
                    ]
                },
            )

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeConverter:
    """ルビ変換器のスタブ。呼び出し回数を記録する。"""

    def __init__(self):
        self.init_calls = 0
        self.convert_calls: list[str] = []

    async def initialize(self) -> None:
        self.init_calls += 1

    async def convert(self, text: str) -> str:
        self.convert_calls.append(text)
        return f"<ruby>{text}<rt>r</rt></ruby>"


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
