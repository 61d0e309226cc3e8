"""ロギング設定モジュール

端末で動く CLI 向けに、ログをテキスト形式で stderr に出力する。
stdout はコマンドの結果表示専用とする。

使い方:
    from beauty_track.logging_config import setup_logging
    setup_logging()

環境変数:
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL) デフォルト: INFO
"""

import logging
import os
import sys

# Firestore / Cloud Storage / Firebase Admin の SDK が出す通信ログ
NOISY_LOGGERS = ("google", "google.auth", "urllib3", "firebase_admin")


def setup_logging(level: str | None = None) -> None:
    """ログ設定を初期化する

    DEBUG 以外のレベルでは SDK の通信ログを WARNING 以上に絞る。

    Args:
        level: ログレベル（省略時は LOG_LEVEL 環境変数）
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    sdk_level = logging.NOTSET if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)
