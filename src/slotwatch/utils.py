"""
Logging setup for the bot process.

ログ設定。ファイル名・レベル・ローテーションは LoggingConfig から取る。
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingConfig, get_settings


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# リクエストごとに INFO を出すライブラリ
_NOISY_LOGGERS = ("httpx", "aiogram.event")


def setup_logging(logging_cfg: LoggingConfig | None = None) -> Path:
    """
    Send logs to a rotating file under ``logs_dir`` and to the console.

    Replaces any handlers already on the root logger. Returns the log file path.
    """
    cfg = logging_cfg or get_settings().logging
    cfg.logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = cfg.logs_dir / cfg.log_file

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_path,
            maxBytes=cfg.max_bytes,
            backupCount=cfg.backup_count,
            encoding="utf-8",
        ),
        logging.StreamHandler(),
    ]

    root = logging.getLogger()
    root.setLevel(cfg.log_level.upper())
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_path


__all__ = ["setup_logging"]
