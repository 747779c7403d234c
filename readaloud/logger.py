"""
ログ設定
"""
import logging
import sys
from pathlib import Path

from readaloud.config import LOG_FILE


def setup_logging(level: int = logging.INFO, log_file: Path | None = LOG_FILE) -> None:
    """
    標準出力とログファイルにログを出力するよう設定

    Args:
        level: ログレベル
        log_file: ログファイルのパス（Noneの場合は標準出力のみ）
    """
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    handlers: list[logging.Handler] = []
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Azure SDKは独自にネイティブログを出すため、ここではアプリのロガーのみ設定する
    logger = logging.getLogger("readaloud")
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = False
