"""Structured logging for the storefront core.

Cache and rate limit events are logged as short event names
(``cache.evict``, ``rate_limit.exceeded``) with their data in ``extra``.
This module renders those events as JSON lines and keeps shopper data out
of them: identifiers are hashed, the id part of namespaced cache keys is
masked, and fields that may carry credentials or cached payloads are
redacted.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from storefront.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

# Extra fields that may carry shopper data or cached payloads.
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "secret",
        "email",
        "identifier",
        "value",
        "card_number",
        "cvv",
    }
)

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def hash_identifier(identifier: str) -> str:
    """Hash a shopper identifier (email, user id) so it can be logged safely."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def mask_cache_key(key: str) -> str:
    """Keep a cache key's namespace and hash the rest.

    ``cart:a@b.com`` becomes ``cart:<hash>``, so evictions and misses stay
    groupable by namespace without exposing whose cart it was. Keys without
    a namespace (``products``, ``coupons``) are returned unchanged.
    """

    namespace, sep, rest = key.partition(":")
    if not sep:
        return key
    return f"{namespace}:{hash_identifier(rest)[:8]}"


def _redact(value: Any, sensitive: frozenset[str]) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in sensitive else _redact(v, sensitive)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(v, sensitive) for v in value)
    return value


def event_fields(record: logging.LogRecord, sensitive: frozenset[str] = SENSITIVE_FIELDS) -> dict[str, Any]:
    """Return the ``extra`` fields of a record with sensitive data redacted."""

    return {
        key: REDACTED if key.lower() in sensitive else _redact(value, sensitive)
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive extra fields in place, whatever the formatter."""

    def __init__(self, sensitive_fields: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive = frozenset(f.lower() for f in (sensitive_fields or SENSITIVE_FIELDS))

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        for key, value in event_fields(record, self.sensitive).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per event: timestamp, level, logger, event, fields."""

    def __init__(self, *, sensitive_fields: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive = frozenset(f.lower() for f in (sensitive_fields or SENSITIVE_FIELDS))

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(event_fields(record, self.sensitive))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/storefront.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting root handler.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
