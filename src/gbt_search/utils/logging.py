"""
Structured logging helpers.

Every event is one JSON line: ``{"ts": ..., "msg": "<dotted.event>", ...}``.
Search events carry numpy scalars, paths and non-finite thresholds, so field
values are coerced to plain JSON before encoding.
"""

from __future__ import annotations

import json
import logging
import math
import os
import sys
import time
from pathlib import Path
from typing import Any

import numpy as np

DEFAULT_LEVEL = 'INFO'


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, np.ndarray):
        return [_jsonable(v) for v in value.tolist()]
    if isinstance(value, Path):
        return str(value)
    return value


def json_log(message: str, **extra: Any) -> str:
    """Return a JSON-formatted log string."""
    payload = {'ts': time.time(), 'msg': message, **_jsonable(extra)}
    return json.dumps(payload, ensure_ascii=False, allow_nan=False, default=str)


def _resolve_level() -> int:
    # GBTS_DEBUG is a shorthand for GBTS_LOG_LEVEL=DEBUG.
    if os.getenv('GBTS_DEBUG'):
        return logging.DEBUG
    name = os.getenv('GBTS_LOG_LEVEL', DEFAULT_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger following project conventions."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(handler)
    logger.setLevel(_resolve_level())
    return logger
