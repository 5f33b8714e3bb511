"""
Logging Configuration

Single stdout handler for the API process and the operator script.

Application loggers live under the ``repovec`` namespace and follow
LOG_LEVEL. Chatty client libraries (httpx request lines, OpenAI retries,
SQLAlchemy statements) are held at WARNING so that a repository run logs
one line per phase transition rather than one per HTTP call.
"""

import sys
from logging.config import dictConfig
from typing import Any

from repovec.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Third-party loggers pinned regardless of LOG_LEVEL
_PINNED_LEVELS: dict[str, str] = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "httpx": "WARNING",
    "openai": "WARNING",
    "sqlalchemy.engine": "WARNING",
}


def _logger(level: str) -> dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging(level: str | None = None) -> None:
    """
    Configure logging for the process.

    Args:
        level: Overrides LOG_LEVEL (e.g. ``"DEBUG"`` from a script flag).

    Note:
        Call once, at import of ``repovec.main`` or in a script's ``main``.
    """
    app_level = (level or settings.LOG_LEVEL).upper()

    loggers = {name: _logger(pinned) for name, pinned in _PINNED_LEVELS.items()}
    loggers["repovec"] = _logger(app_level)

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": app_level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
