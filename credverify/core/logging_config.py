"""
Logging setup: stdlib logging routed into loguru, emitted as one JSON line per record.

Two ids are carried through contextvars and stamped on every line:
- request_id, set by RequestIDMiddleware for each HTTP request
- verification_run_id, set by the orchestrator for each verify() call, so the
  registry and profile client logs of one run can be grouped
"""

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from types import FrameType
from typing import Iterator, Optional

from loguru import logger

from credverify.core.config import settings

UNSET = "-"

request_id_var: ContextVar[str] = ContextVar("request_id", default=UNSET)
verification_run_id_var: ContextVar[str] = ContextVar(
    "verification_run_id", default=UNSET
)

# Log field name -> context variable
LOG_CONTEXT_VARS = {
    "request_id": request_id_var,
    "verification_run_id": verification_run_id_var,
}

NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "uvicorn.access", "httpx")


class InterceptHandler(logging.Handler):
    """Redirects standard logging records to loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame: Optional[FrameType] = sys._getframe(settings.LOGGING_FRAME_DEPTH)
        depth: int = settings.LOGGING_FRAME_DEPTH
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def context_filter(record):
    """Copy every set context id into the record's extras."""
    for field, var in LOG_CONTEXT_VARS.items():
        value = var.get()
        if value and value != UNSET:
            record["extra"][field] = value
    return record


def _exception_payload(exception) -> dict:
    traceback_text = None
    if exception.traceback:
        try:
            traceback_text = "".join(
                traceback.format_exception(
                    exception.type, exception.value, exception.traceback
                )
            ).strip()
        except Exception:
            traceback_text = str(exception.traceback)
    return {
        "type": exception.type.__name__ if exception.type else None,
        "value": str(exception.value) if exception.value else None,
        "traceback": traceback_text,
    }


def build_log_record(record) -> dict:
    """Flatten a loguru record into the JSON shape shipped to the log pipeline."""
    log_record = {
        "timestamp": record["time"].strftime("%Y-%m-%d %H:%M:%S"),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
    }
    for field in LOG_CONTEXT_VARS:
        if field in record["extra"]:
            log_record[field] = record["extra"][field]

    log_record["exception"] = (
        _exception_payload(record["exception"]) if record["exception"] else None
    )
    log_record["process"] = {
        "id": record["process"].id,
        "name": record["process"].name,
    }
    return log_record


def json_sink(message):
    sys.stderr.write(json.dumps(build_log_record(message.record), default=str) + "\n")


def configure_logging():
    """
    Install the JSON sink and route all stdlib logging through loguru.

    Level comes from LOG_LEVEL. diagnose stays off so submitted personal data
    held in local variables never reaches the logs.
    """
    logger.remove()
    logger.add(
        json_sink,
        level=settings.LOG_LEVEL,
        backtrace=True,
        diagnose=False,
        filter=context_filter,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured successfully with loguru")


def set_request_id(request_id: str):
    """Called by the middleware at the start of each request."""
    request_id_var.set(request_id)


def clear_request_id():
    request_id_var.set(UNSET)


@contextmanager
def verification_run_context(run_id: str) -> Iterator[str]:
    """Tag every log line emitted inside the block with the verification run id."""
    token = verification_run_id_var.set(run_id)
    try:
        yield run_id
    finally:
        verification_run_id_var.reset(token)
