"""Logging setup: console or JSON output, plus a per-request correlation id."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, the correlation id lives in a contextvar so it follows a request into
# everything it awaits, including the scrobble task it spawns (asyncio copies the context
# into new tasks). Background work started at boot logs with an empty id.
_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Library loggers that drown out ours at DEBUG/INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access")


def get_correlation_id() -> str:
    """Correlation id of the current request ("" outside a request)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context, generating one if needed.

    Returns:
        The id now in effect
    """
    value = correlation_id or str(uuid.uuid4())
    _correlation_id.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the current correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()
        return True


def _own_frames(tb: Any) -> list[str]:
    """Traceback lines from jukebox modules only, library frames skipped."""
    lines: list[str] = []
    for frame in traceback.extract_tb(tb):
        if "site-packages" in frame.filename or "jukebox" not in frame.filename:
            continue
        lines.append(
            f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
        )
        if frame.line:
            lines.append(f"      {frame.line.strip()}")
    return lines


class CompactExceptionFormatter(logging.Formatter):
    """Console formatter that prints exception chains root cause first.

    A failed GC tick then reads:

        12:00:01 │ WARNING │ jukebox.application.workers.command_cleanup_worker:80 │ ...
        ╰─► OperationalError: database is locked
            File "repositories.py", line 412, in delete_acknowledged_before
    """

    def formatException(self, ei: Any) -> str:
        error = ei[1]
        if error is None:
            return ""

        chain: list[BaseException] = []
        while error is not None and error not in chain:
            chain.insert(0, error)
            error = error.__cause__ or error.__context__

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            if exc.__traceback__ is not None:
                lines.extend(_own_frames(exc.__traceback__))
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line with source location and correlation id."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            location=f"{record.module}.{record.funcName}:{record.lineno}",
        )
        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Listen future me, lifespan calls this once at startup. It swaps out every root handler,
# so a second call (tests, reload) just reconfigures instead of doubling output.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "jukebox",
) -> None:
    """Point the root logger at stdout with the chosen format.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines for log shippers instead of the console layout
        app_name: Included in the startup log line
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(
            CustomJsonFormatter(
                "%(timestamp)s %(level)s %(name)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
    else:
        handler.setFormatter(
            CompactExceptionFormatter(
                fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured for %s (level=%s, json=%s)",
        app_name,
        logging.getLevelName(level),
        json_format,
    )
