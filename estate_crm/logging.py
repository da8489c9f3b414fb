from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from estate_crm.context import get_log_context
from estate_crm.core.config import get_settings

_STRUCTURED_FIELDS = frozenset(
    {
        "lead_id",
        "actor_id",
        "from_status",
        "to_status",
        "scope",
        "role_id",
        "outcome",
        "error",
        "attempt",
        "row_count",
    }
)
_MAX_ERROR_LENGTH = 500
_CONFIGURED_FLAG = "_estate_crm_configured"


def _bind_context(record: logging.LogRecord, keys: tuple[str, ...] = ("correlation_id", "actor_id")) -> logging.LogRecord:
    context = get_log_context()
    for key in keys:
        value = context.get(key)
        if not getattr(record, key, None):
            setattr(record, key, value)
    return record


class CorrelationIdFilter(logging.Filter):
    """Copies the bound correlation and actor ids onto records that lack them."""

    def filter(self, record: logging.LogRecord) -> bool:
        _bind_context(record)
        return True


_default_factory = logging.getLogRecordFactory()


def _record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    # actor_id arrives through ``extra`` after the factory runs.
    return _bind_context(_default_factory(*args, **kwargs), keys=("correlation_id",))


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = {key: value for key, value in vars(record).items() if key in _STRUCTURED_FIELDS and value is not None}
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:_MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        return json.dumps(
            {
                "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "correlation_id": getattr(record, "correlation_id", None),
                "fields": fields,
            },
            default=str,
        )


def configure_logging(level_name: str | None = None) -> None:
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG, False):
        return

    level = logging.getLevelName((level_name or get_settings().log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(CorrelationIdFilter())

    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)
    logging.setLogRecordFactory(_record_factory)
    setattr(root, _CONFIGURED_FLAG, True)
