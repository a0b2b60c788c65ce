"""
Logging for the lookup pipeline.

Every query runs inside a ``LogContext`` carrying a correlation id, so all
lines written while answering it (extraction, resolution, backend fallback)
can be grouped. Pipeline fields passed through ``extra=`` (drug_name,
category, step, provider) are rendered by both formatters.

JSON lines go to files and log aggregation; the pretty format is for
terminals and the CLI.
"""
import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional


_log_context: contextvars.ContextVar = contextvars.ContextVar("pedmed_log_context", default={})

PIPELINE_FIELDS = ("drug_name", "category", "step", "provider")

# Client libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("openai", "httpx", "httpcore")


def pipeline_fields(record: logging.LogRecord) -> Dict[str, object]:
    """Pipeline fields set on the record, plus the active correlation id."""
    fields = {
        name: getattr(record, name)
        for name in PIPELINE_FIELDS
        if getattr(record, name, None) is not None
    }
    correlation_id = getattr(record, "correlation_id", None) or LogContext.get("correlation_id")
    if correlation_id:
        fields["correlation_id"] = correlation_id
    return fields


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Example:
        {"timestamp": "...", "level": "INFO", "logger": "pedmed.resolver...",
         "message": "Entity resolved: Meropenem (exact, 100)", "step": 2,
         "correlation_id": "3f9c0d1e2a4b"}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(pipeline_fields(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # Vietnamese drug text stays readable in the log file
        return json.dumps(entry, ensure_ascii=False, default=str)


class PrettyFormatter(logging.Formatter):
    """
    Colored single-line format for terminals.

        2024-01-29 10:30:00 | INFO     | entity_resolver:resolve:61 | [3f9c0d1e2a4b] Entity resolved: ...
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        fields = pipeline_fields(record)
        correlation_id = fields.pop("correlation_id", None)

        when = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{record.levelname:8}{self.RESET}"
        where = f"{record.module}:{record.funcName}:{record.lineno}"
        prefix = f"[{correlation_id}] " if correlation_id else ""

        line = f"{when} | {level} | {where} | {prefix}{record.getMessage()}"
        if "step" in fields:
            line += f" (step {fields['step']})"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines on the console instead of the pretty format
        log_file: Also write JSON lines to this file
        quiet: Loggers capped at WARNING (HTTP client chatter)

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JSONFormatter() if json_format else PrettyFormatter())
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def setup_logging_from_settings(settings) -> logging.Logger:
    return setup_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.LOG_FORMAT.lower() == "json",
        log_file=settings.LOG_FILE,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scoped logging context (correlation id and friends).

    Stored in a ContextVar, so concurrent queries on threads or asyncio
    tasks never see each other's ids. Nested contexts merge and are undone
    on exit.

    Usage:
        with LogContext(correlation_id=uuid.uuid4().hex[:12]):
            pipeline.answer(query)
    """

    def __init__(self, **values):
        self.values = values
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.values})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
        return False

    @classmethod
    def get(cls, key: str, default=None):
        return _log_context.get().get(key, default)
