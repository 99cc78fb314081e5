"""Logging setup for the flash offers service.

structlog renders every event and hands it to the stdlib root logger,
which writes to stdout plus two rotating files under ``LOG_DIR``. Events
pass through ``redact_credentials`` before rendering, so service-account
material and caller JWTs never reach a sink.
"""

import logging
import logging.handlers
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from flash_offers.security import sanitize_object

LEVEL_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

JSON_ENVIRONMENTS = frozenset({"production", "staging"})

QUIET_LIBRARIES = ("urllib3", "asyncio", "google", "httpx")

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_KEEP = 5


def current_environment() -> str:
    for variable in ("ENV", "ENVIRONMENT", "PROTEAN_ENV"):
        value = os.getenv(variable)
        if value:
            return value.lower()
    return "development"


def resolve_level(environment: str | None = None) -> str:
    """``LOG_LEVEL`` wins; otherwise the level follows the environment."""
    environment = environment or current_environment()
    return os.getenv("LOG_LEVEL", LEVEL_BY_ENVIRONMENT.get(environment, "INFO")).upper()


def _rotating(path: Path, level: int | str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=ROTATE_BYTES,
        backupCount=ROTATE_KEEP,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _install_handlers(level: str) -> None:
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setLevel(level)

    root = logging.getLogger()
    root.handlers = [
        stdout,
        _rotating(log_dir / "flash_offers.log", level),
        _rotating(log_dir / "flash_offers_error.log", logging.ERROR),
    ]
    root.setLevel(level)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_credentials(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Processor: scrub credentials from the event before it is rendered."""
    return sanitize_object(event_dict)


def _renderer(environment: str):
    if environment in JSON_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def build_processors(environment: str) -> list:
    callsite = structlog.processors.CallsiteParameterAdder(
        parameters=[
            structlog.processors.CallsiteParameter.MODULE,
            structlog.processors.CallsiteParameter.FUNC_NAME,
            structlog.processors.CallsiteParameter.LINENO,
        ]
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        callsite,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        redact_credentials,
        _renderer(environment),
    ]


def configure_logging(environment: str | None = None) -> None:
    environment = environment or current_environment()
    _install_handlers(resolve_level(environment))
    structlog.configure(
        processors=build_processors(environment),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def dispatch_log_context(**values: Any) -> Iterator[None]:
    """Attach ``values`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
