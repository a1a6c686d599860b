"""
Centralized logging configuration for the web research service.

Structured JSON logs go to rotating files under ``LOG_DIR``:
- app.log   (INFO and above)
- error.log (ERROR and above)
- debug.log (everything, only when LOG_LEVEL=DEBUG)

Console output is opt-in via LOG_TO_CONSOLE=true. Pipeline code attaches run
context through ``extra={"extra_fields": {...}}``.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # run_id, stage, attempt, request_id ...
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class LoggerConfig:
    """
    Process-wide logger setup.

    Settings are read from the environment when ``setup_logging`` first runs,
    so a ``.env`` loaded before the first import is honoured.
    """

    MAX_BYTES = 10 * 1024 * 1024
    BACKUP_COUNT = 5

    _initialized = False

    @classmethod
    def setup_logging(cls) -> None:
        if cls._initialized:
            return

        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_to_console = os.getenv("LOG_TO_CONSOLE", "false").lower() == "true"

        log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level, logging.INFO))
        root_logger.handlers.clear()

        json_formatter = JsonFormatter()

        def _rotating(filename: str, level: int) -> logging.Handler:
            handler = logging.handlers.RotatingFileHandler(
                log_dir / filename,
                maxBytes=cls.MAX_BYTES,
                backupCount=cls.BACKUP_COUNT,
                encoding="utf-8",
            )
            handler.setLevel(level)
            handler.setFormatter(json_formatter)
            return handler

        root_logger.addHandler(_rotating("app.log", logging.INFO))
        root_logger.addHandler(_rotating("error.log", logging.ERROR))
        if log_level == "DEBUG":
            root_logger.addHandler(_rotating("debug.log", logging.DEBUG))

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, log_level, logging.INFO))
            console_handler.setFormatter(
                logging.Formatter(
                    fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            root_logger.addHandler(console_handler)

        cls._initialized = True

        logging.getLogger(__name__).info(
            "Logging system initialized",
            extra={
                "extra_fields": {
                    "log_level": log_level,
                    "log_dir": str(log_dir),
                    "console_logging": log_to_console,
                }
            },
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._initialized:
            cls.setup_logging()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Example:
        >>> from utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Run finalized", extra={"extra_fields": {"run_id": "..."}})
    """
    return LoggerConfig.get_logger(name)
