"""
Structlog 日志配置模块

Command output (tables, progress, summaries) goes to stdout through rich.
Structured events go to stderr, rendered for a terminal or as JSON lines
when stderr is piped into a CI log collector.
"""
import json
import logging
import sys
from typing import Any, List, Optional, TextIO

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings

# AWS SDK internals log every request and retry at DEBUG
NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3")

LOG_FORMATS = ("auto", "console", "json")


def _is_terminal(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


def resolve_format(log_format: Optional[str], stream: Any) -> str:
    """Concrete renderer name for ``auto``/``console``/``json``."""
    fmt = (log_format or settings.LOG_FORMAT).lower()
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format {fmt!r}, expected one of {', '.join(LOG_FORMATS)}")
    if fmt == "auto":
        return "console" if _is_terminal(stream) else "json"
    return fmt


def get_renderer(fmt: str, stream: Any) -> Any:
    if fmt == "console":
        return ConsoleRenderer(colors=_is_terminal(stream))
    # structlog 会向 serializer 传入 default/sort_keys 等参数
    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)
    return JSONRenderer(serializer=_dumps)


def resolve_level(debug: Optional[bool] = None) -> int:
    if debug is None:
        debug = settings.DEBUG
    if debug:
        return logging.DEBUG
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    debug: Optional[bool] = None,
    log_format: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> str:
    """配置 structlog 并桥接标准库 logging（boto3 等）到同一处理链。

    Returns the renderer actually selected.
    """
    stream = stream if stream is not None else sys.stderr
    fmt = resolve_format(log_format, stream)

    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_pre_chain,
            ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        ProcessorFormatter(
            foreign_pre_chain=shared_pre_chain,
            processors=[
                ProcessorFormatter.remove_processors_meta,
                get_renderer(fmt, stream),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level(debug))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return fmt


def bind_command(command: str) -> None:
    """Tag every event of this invocation with the CLI command name."""
    bind_contextvars(command=command)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取 structlog logger 实例。"""
    return structlog.get_logger(name)
