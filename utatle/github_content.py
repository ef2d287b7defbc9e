"""GitHub contents API からデータセットのJSONファイルを取得するヘルパー。"""

from __future__ import annotations

import base64
import binascii
import json
from urllib.parse import quote

import httpx

from utatle.errors import MalformedRecord, RemoteUnavailable

GITHUB_API = "https://api.github.com"


def _headers(token: str | None) -> dict:
    """GitHub API 用の共通ヘッダーを返す。token が空なら認証ヘッダーを付けない。"""
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def contents_url(owner: str, repo: str, path: str) -> str:
    """リポジトリ内ファイルの contents API URL を返す。"""
    return f"{GITHUB_API}/repos/{owner}/{repo}/contents/{quote(path)}"


async def get_contents(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    path: str,
    ref: str = "main",
    token: str | None = None,
) -> dict:
    """
    contents API を呼び出し、メタ情報(JSON)を返す。

    Args:
        client: 共有の httpx.AsyncClient。
        owner: リポジトリのowner名。
        repo: リポジトリ名。
        path: リポジトリ内のファイルパス。
        ref: ブランチ名。
        token: GitHub API token。

    Returns:
        contents API の応答 dict(``content`` に base64 文字列を含む)。

    Raises:
        RemoteUnavailable: 成功以外のステータス、または通信に失敗した場合。
    """
    url = contents_url(owner, repo, path)
    try:
        response = await client.get(url, headers=_headers(token), params={"ref": ref})
    except httpx.HTTPError as e:
        raise RemoteUnavailable(f"GitHub fetch failed: {path} ({e})") from e

    if response.status_code != 200:
        raise RemoteUnavailable(
            f"GitHub {response.status_code} {response.text[:200]}",
            status=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise MalformedRecord(f"GitHub returned non-JSON body: {path}") from e


def decode_content(meta: dict) -> object:
    """
    contents API の ``content`` をデコードし、JSONとしてパースして返す。

    base64文字列には改行が埋め込まれているため、除去してからデコードする。

    Raises:
        MalformedRecord: content が無い、またはデコード・パースに失敗した場合。
    """
    content = meta.get("content") if isinstance(meta, dict) else None
    if not content:
        raise MalformedRecord("GitHub response has no content")

    try:
        raw = base64.b64decode(str(content).replace("\n", ""), validate=False)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise MalformedRecord(f"content decode failed ({e})") from e
