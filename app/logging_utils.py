"""
app/logging_utils.py

Structured logging helpers for the import workflow.

Events are emitted as one compact JSON object per line so batch lifecycles
can be followed with a plain grep on ``batch_id``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line; ``None`` fields are left out.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event}
    payload.update({name: _jsonable(value) for name, value in fields.items() if value is not None})
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
