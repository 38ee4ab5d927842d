"""
Logging setup for RAI.

Console output is split by severity (INFO/DEBUG to stdout, WARNING and
above to stderr) and each process context ("api", "cli", ...) gets its own
rotating log file under the configured log directory.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone

from rai.config import settings

STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers from third-party libraries that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "sqlalchemy.engine")


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _MaxLevelFilter(logging.Filter):
    """Only pass records strictly below a given level."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


def _build_formatter() -> logging.Formatter:
    if settings.log_format == "json":
        return JsonFormatter()
    return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(context: str = "app") -> None:
    """
    Configure root logging for a process context.

    Safe to call more than once; existing handlers installed by a previous
    call are replaced.

    Args:
        context: Name of the running context, used for the log file name

    Raises:
        PermissionError: If the log directory cannot be created
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = _build_formatter()

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_rai_handler", False):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)

    handlers: list[logging.Handler] = []

    if settings.log_console_enabled:
        if settings.log_to_stdout:
            stdout_handler = logging.StreamHandler(sys.stdout)
            stdout_handler.addFilter(_MaxLevelFilter(logging.WARNING))
            handlers.append(stdout_handler)
        if settings.log_to_stderr:
            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setLevel(logging.WARNING)
            handlers.append(stderr_handler)

    if settings.log_file_enabled:
        log_dir = settings.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._rai_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).debug(
        f"Logging configured for context={context} level={settings.log_level}"
    )
