"""flagbridge のログ出力設定（structlog）

ライブラリ内の各モジュールは logging.getLogger(__name__) で出力する。
configure_logging はそれらの "flagbridge" 配下のロガーに structlog の
フォーマッタを付け、extra= で渡したコンテキストをフィールドとして出力する。
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from .config import LogSection

LIBRARY_LOGGER = "flagbridge"


class _FlagBridgeHandler(logging.StreamHandler):
    """configure_logging が追加したハンドラの目印。"""


def _renderer(format: str) -> structlog.types.Processor:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(
    section: LogSection, stream: TextIO | None = None
) -> structlog.stdlib.BoundLogger:
    """LogSection の内容で flagbridge のログ出力を設定する。

    何度呼んでもハンドラは 1 つに保たれる。stream を省略した場合は標準出力。

    Returns:
        "flagbridge" 名の structlog.stdlib.BoundLogger
    """
    timestamper = structlog.processors.TimeStamper(fmt="iso")
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.stdlib.ExtraAdder(),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(section.format),
        ],
    )
    handler = _FlagBridgeHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    library_logger = logging.getLogger(LIBRARY_LOGGER)
    for old in [h for h in library_logger.handlers if isinstance(h, _FlagBridgeHandler)]:
        library_logger.removeHandler(old)
    library_logger.addHandler(handler)
    library_logger.setLevel(getattr(logging, section.level.upper(), logging.INFO))
    library_logger.propagate = False

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return structlog.stdlib.get_logger(LIBRARY_LOGGER)
