"""Logging for the storefront: structlog in front, stdlib handlers behind.

Application code logs through structlog. uvicorn and protean log through the
standard library. Both go through one ``ProcessorFormatter`` chain, so every
record carries the same timestamp, level and bound request id:

* console: JSON in production and staging, coloured with rich tracebacks
  elsewhere;
* ``$LOG_DIR/storefront.log``: every record, always JSON;
* ``$LOG_DIR/storefront_error.log``: errors only, always JSON.
"""

import logging
import logging.handlers
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

STRUCTURED_ENVIRONMENTS = ("production", "staging")

LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Chatty below WARNING: protean logs every unit-of-work commit
QUIET_LOGGERS = ("protean", "asyncio", "httpx", "uvicorn.access")

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


def environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def log_level(env: str) -> str:
    return os.getenv("LOG_LEVEL", LEVELS.get(env, "INFO"))


SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]

JSON_RENDERING = [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def _console_rendering(env: str) -> list:
    if env in STRUCTURED_ENVIRONMENTS:
        return JSON_RENDERING
    return [
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=4),
        )
    ]


def _formatter(rendering: list) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *rendering],
    )


def _rotating(path: Path, level, formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(env: str | None = None) -> None:
    env = env or environment()
    level = log_level(env)

    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(_formatter(_console_rendering(env)))

    as_json = _formatter(JSON_RENDERING)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        console,
        _rotating(log_dir / "storefront.log", level, as_json),
        _rotating(log_dir / "storefront_error.log", logging.ERROR, as_json),
    ]
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            ),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def request_context(request_id: str, **extra) -> Iterator[None]:
    """Bind ``request_id`` (and ``extra``) to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(request_id=request_id, **extra):
        yield
