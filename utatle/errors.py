"""
アプリケーション固有の例外定義モジュール。

データセット取得、サンプリング、翻訳、リクエスト検証などの処理で発生する例外を
分類して扱うために、基底例外および派生例外を定義する。
"""

from __future__ import annotations

from typing import Optional


class QuizError(Exception):
    """歌詞クイズバックエンド全体の基底例外。"""


class RemoteUnavailable(QuizError):
    """外部API(GitHub / DeepL)が成功以外の応答を返した、または通信に失敗した場合の例外。"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class MalformedRecord(QuizError):
    """取得したレコードのデコード・JSONパースに失敗した場合の例外。"""


class NoCandidateFound(QuizError):
    """サンプラーが試行回数の上限までに歌詞付きの曲を見つけられなかった場合の例外。"""


class BadRequest(QuizError):
    """クライアント入力が検証に失敗した場合の例外。

    code はレスポンスの ``{"error": code}`` にそのまま使われる。
    """

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code
