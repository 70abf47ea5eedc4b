"""Logging utilities: JSON formatting, redaction, and request correlation.

Admission logs carry identities, tokens and client addresses in their extras,
so every handler gets a redaction filter before formatting, and identities
are logged as short hashes via ``hash_identity``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from ratewarden.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "authorization",
        "bearer",
        "token",
        "secret",
        "password",
        "cookie",
        "set-cookie",
        "api_key",
        "x-api-key",
        "admin_key",
        "x-admin-key",
        "admin_api_keys",
        "identity",
        "client_ip",
    }
)

# Built-in LogRecord attributes; everything else on a record came from extra=.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_identity(value: str) -> str:
    """Short, stable digest safe to put in logs.

    Examples:
        >>> len(hash_identity("ip:10.0.0.1"))
        16
    """
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def redact(value: Any, sensitive_keys: frozenset[str] | set[str]) -> Any:
    """Recursively replace values stored under sensitive keys."""
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in sensitive_keys else redact(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, sensitive_keys) for v in value)
    return value


def record_extras(record: LogRecord, sensitive_keys: frozenset[str] | set[str]) -> dict[str, Any]:
    """Return the ``extra=`` fields of a record with sensitive values redacted."""
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        if key.lower() in sensitive_keys:
            extras[key] = REDACTED
        else:
            extras[key] = redact(value, sensitive_keys)
    return extras


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive extras in place so every formatter sees safe values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in record_extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, extras."""

    def __init__(self, *, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id
        payload.update(record_extras(record, self.sensitive_keys))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/ratewarden.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Configure the root logger with redaction and the chosen formatter.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """
    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
