from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone

# Attributes every LogRecord carries; anything else came in via `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _safe_to_json(obj) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps({"unserializable": str(obj)}, ensure_ascii=False)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineno": record.lineno,
            "thread": record.threadName,
        }
        for k, v in record.__dict__.items():
            if k.startswith("_") or k in base or k in _RECORD_ATTRS:
                continue
            base[k] = v
        if record.exc_info:
            base["exc_info"] = "".join(traceback.format_exception(*record.exc_info))
        return _safe_to_json(base)


def install_json_logging(level: int | str | None = None) -> logging.Logger:
    level = level or os.getenv("LOG_LEVEL", "INFO").upper()
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.handlers[:] = [handler]
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return root
