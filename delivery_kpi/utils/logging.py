"""
Root logger setup for the ``delivery-kpi`` commands.

The CLI calls ``configure_logging(config.logging)`` before it reads any
export. Library modules only ever ask for ``logging.getLogger(__name__)``;
they never install handlers themselves.

Output goes to stderr. stdout is reserved for the command result, which must
stay parseable when a command runs with ``--json``.

With ``json_format = true`` under ``[logging]`` each record becomes a single
JSON line, for instance::

    {"ts": "2024-05-14T07:30:00Z", "level": "INFO",
     "logger": "delivery_kpi.rules.loader", "msg": "Loaded rules from ..."}

Keys passed through ``extra=`` are added next to ``msg``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from delivery_kpi.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Keys present on every LogRecord; the rest came in through ``extra=``.
_STANDARD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``,
    ``exc`` when there is a traceback, then any ``extra=`` keys."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: dict = {
            "ts": created.strftime(LOG_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        line.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _STANDARD_KEYS and not key.startswith("_")
        )
        return json.dumps(line, default=str, ensure_ascii=False)


def _formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JsonLineFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _handlers(config: "LoggingConfig") -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    return handlers


def configure_logging(config: "LoggingConfig") -> None:
    """Install the stderr handler, plus a file handler when ``log_file`` is
    set, on the root logger. Replaces any handler installed earlier.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = _formatter(config.json_format)

    handlers = _handlers(config)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.getLogger("pydantic").setLevel(logging.WARNING)
