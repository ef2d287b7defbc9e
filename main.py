import logging
import os
import sys
import traceback

import uvicorn
from dotenv import load_dotenv

from utatle.api import create_app
from utatle.config import load_settings


def main():
    """
    歌詞クイズAPIサーバを起動する。

    環境変数(.env も読み込む):
    - DEEPL_KEY: DeepL APIキー(未設定なら翻訳せず原文を返す)
    - GITHUB_TOKEN: GitHub API token(オプション)
    - CORS_ORIGINS: 許可するオリジン(カンマ区切り)
    - PORT: 待ち受けポート(デフォルト: 4000)
    - SETTINGS_PATH: 設定ファイルパス(デフォルト: "settings.yaml")
    - LOG_LEVEL: ログレベル(デフォルト: "INFO")
    """
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(os.environ.get("SETTINGS_PATH", "settings.yaml"))
        app = create_app(settings)
    except Exception:
        print(traceback.format_exc(), file=sys.stderr)
        raise

    logging.getLogger(__name__).info("utatle on http://localhost:%d", settings.server.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.server.port)


if __name__ == "__main__":
    main()
