"""Application logging with Loguru: console + rotating file."""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from etl_pipeline.core.config import Settings, settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[name]}:{function}:{line} | {message}"

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_logging_configured = False


class InterceptHandler(logging.Handler):
    """Redirect stdlib logs to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(name=record.name).log(level, record.getMessage())


def build_sinks(config: Settings) -> List[Dict[str, Any]]:
    """Loguru handler definitions for stdout and the rotating log file."""
    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    common = {
        "level": config.effective_log_level,
        "format": LOG_FORMAT,
        "backtrace": False,
        "diagnose": False,
    }
    return [
        {"sink": sys.stdout, **common},
        {
            "sink": log_dir / config.LOG_FILE,
            "rotation": config.LOG_ROTATION,
            "retention": config.LOG_RETENTION,
            "enqueue": True,
            **common,
        },
    ]


def configure_logging(config: Optional[Settings] = None) -> None:
    """Install the sinks once per process and route stdlib logging through them."""
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    config = config or settings
    logger.configure(handlers=build_sinks(config), extra={"name": "etl"})

    # uvicorn, sqlalchemy and alembic log through the stdlib
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in UVICORN_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False

    for name in config.LOG_QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)
