"""データセット取得・正規化のテスト。"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from utatle.cache import TTLCache, record_key
from utatle.codec import path_for
from utatle.config import DatasetConfig
from utatle.errors import MalformedRecord, RemoteUnavailable
from utatle.fetcher import DatasetFetcher, extract_lines, to_song_record
from utatle.github_content import decode_content
from utatle.models import Coordinate

COORD = Coordinate(2020, 5, 7)


def _fetch(remote, coord=COORD, cache=None, config=None):
    cache = cache if cache is not None else TTLCache(capacity=100, ttl_seconds=3600)

    async def run():
        async with remote.client() as client:
            fetcher = DatasetFetcher(client, cache, config or DatasetConfig())
            return await fetcher.fetch_record(coord)

    return asyncio.run(run())


@pytest.mark.light
def test_fetch_record_with_nested_lines(remote):
    remote.records[path_for(COORD)] = {
        "rank": 7,
        "song_name": "봄날",
        "artist": "방탄소년단",
        "genre": "랩/힙합",
        "lyrics": {"lines": ["보고 싶다", "이렇게 말하니까 더 보고 싶다"]},
    }

    record = _fetch(remote)

    assert record.coordinate == COORD
    assert record.title == "봄날"
    assert record.artist == "방탄소년단"
    assert record.genre == "랩/힙합"
    assert record.lines == ["보고 싶다", "이렇게 말하니까 더 보고 싶다"]
    assert remote.github_calls == [path_for(COORD)]


@pytest.mark.light
def test_fetch_record_with_flat_text_lyrics(remote):
    remote.records[path_for(COORD)] = {
        "title": "Dynamite",
        "artist": "BTS",
        "song_genre": "댄스",
        "lyrics": [{"text": "Cause I"}, {"text": ""}, {}, "bad", {"text": "I'm in the stars tonight"}],
    }

    record = _fetch(remote)

    assert record.title == "Dynamite"
    assert record.genre == "댄스"
    assert record.lines == ["Cause I", "I'm in the stars tonight"]


@pytest.mark.light
def test_fetch_record_tolerates_missing_fields(remote):
    remote.records[path_for(COORD)] = {"artist": None}

    record = _fetch(remote)

    assert record.title == ""
    assert record.artist == ""
    assert record.genre == ""
    assert record.lines == []
    assert record.rank == 7


@pytest.mark.light
def test_to_song_record_coerces_scalar_fields():
    raw = {"rank": "12", "song_name": 1004, "artist": ["IU", "SUGA"], "genre": ["발라드", "국내"]}
    record = to_song_record(raw, Coordinate(2020, 5, 12))

    assert record.rank == 12
    assert record.title == "1004"
    assert record.artist == "IU, SUGA"
    assert record.genre == "발라드, 국내"

    assert to_song_record({"rank": "x"}, COORD).rank == 7
    assert to_song_record(None, COORD).lines == []


@pytest.mark.light
def test_extract_lines_prefers_nested_schema():
    raw = {"lyrics": {"lines": ["a", None, "b"]}}
    assert extract_lines(raw) == ["a", "b"]
    assert extract_lines({"lyrics": "plain text"}) == []
    assert extract_lines([]) == []


@pytest.mark.light
def test_fetch_record_caches_decoded_record(remote):
    remote.records[path_for(COORD)] = {"song_name": "A", "lyrics": {"lines": ["x"]}}
    cache = TTLCache(capacity=100, ttl_seconds=3600)

    first = _fetch(remote, cache=cache)
    second = _fetch(remote, cache=cache)

    assert first == second
    assert remote.github_calls == [path_for(COORD)]
    assert record_key(path_for(COORD)) in cache


@pytest.mark.light
def test_missing_record_raises_and_is_not_cached(remote):
    cache = TTLCache(capacity=100, ttl_seconds=3600)

    for _ in range(2):
        with pytest.raises(RemoteUnavailable) as exc_info:
            _fetch(remote, cache=cache)
        assert exc_info.value.status == 404

    assert len(remote.github_calls) == 2
    assert len(cache) == 0


@pytest.mark.light
def test_response_without_content_is_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"type": "file", "content": ""})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = DatasetFetcher(client, TTLCache(), DatasetConfig())
            return await fetcher.fetch_record(COORD)

    with pytest.raises(MalformedRecord):
        asyncio.run(run())


@pytest.mark.light
def test_decode_content_rejects_non_json_payload():
    with pytest.raises(MalformedRecord):
        decode_content({"content": "bm90IGpzb24=\n"})  # "not json"
    with pytest.raises(MalformedRecord):
        decode_content({})


@pytest.mark.light
def test_transport_error_becomes_remote_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = DatasetFetcher(client, TTLCache(), DatasetConfig())
            return await fetcher.fetch_record(COORD)

    with pytest.raises(RemoteUnavailable):
        asyncio.run(run())


@pytest.mark.light
def test_token_is_sent_as_bearer_header(remote):
    remote.records[path_for(COORD)] = {"lyrics": {"lines": ["x"]}}

    _fetch(remote, config=DatasetConfig(token="secret"))
    headers = remote.github_headers[0]
    assert headers["authorization"] == "Bearer secret"
    assert headers["accept"] == "application/vnd.github+json"

    remote.github_headers.clear()
    _fetch(remote, cache=TTLCache())
    assert "authorization" not in remote.github_headers[0]
