"""Logging configuration for ztube."""

import json
import logging
import sys
from datetime import datetime, timezone

from ztube.config import get_settings

# Attributes passed through ``extra=`` that the JSON output keeps
CONTEXT_FIELDS = ("source_id", "channel_id", "video_id", "playlist_id")

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "yt_dlp", "aiosqlite")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for production log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging() -> None:
    """Install a stdout handler on the root logger.

    Production gets JSON lines, development a readable one-line format.
    ``ZT_LOG_LEVEL`` overrides the level, which otherwise is DEBUG in
    development and INFO in production.
    """
    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)

    if settings.env == "prod":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )

    level = settings.log_level or ("DEBUG" if settings.env == "dev" else "INFO")

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
