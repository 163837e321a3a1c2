"""easproof.core.logging

Standard library logging, configured once at the edge (CLI).

Library code only ever does ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from easproof.core.config import LoggingConfig

ROOT_LOGGER = "easproof"


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            out["exc"] = self.formatException(record.exc_info)
        return json.dumps(out, sort_keys=True)


def configure_logging(cfg: LoggingConfig | None = None) -> logging.Logger:
    cfg = cfg or LoggingConfig()
    logger = logging.getLogger(ROOT_LOGGER)

    level = logging.getLevelName(str(cfg.level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler()
    if cfg.json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
