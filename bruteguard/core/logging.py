"""Structured logging for guard events.

Log records leave the process as JSON lines. Two kinds of fields get
special treatment before formatting:

- secrets (passwords, tokens, cookies, redis URLs) are replaced by
  ``[REDACTED]``;
- identities (usernames, derived store keys, client addresses) are replaced
  by a short sha256 fingerprint, so repeated attempts against one account
  can still be correlated across log lines without storing the account.

The current request id comes from a ContextVar bound by the request-id
middleware.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from collections.abc import Iterable, Mapping
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from bruteguard.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

SECRET_KEYS: frozenset[str] = frozenset(
    {"password", "authorization", "token", "secret", "cookie", "set-cookie", "redis_url"}
)

IDENTITY_KEYS: frozenset[str] = frozenset({"username", "identity", "brute_key", "client_ip"})

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_identity(value: str | None) -> str | None:
    """Short, non-reversible fingerprint of an identity key for log fields."""

    if not value:
        return None
    return hashlib.sha256(value.encode()).hexdigest()[:16]


class _Scrubber:
    """Applies the secret and identity rules to extra fields, recursively."""

    def __init__(self, secret_keys: Iterable[str], identity_keys: Iterable[str]) -> None:
        self.secret_keys = {k.lower() for k in secret_keys}
        self.identity_keys = {k.lower() for k in identity_keys}

    def field(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in self.secret_keys:
            return REDACTED
        if lowered in self.identity_keys:
            return hash_identity(value) if isinstance(value, str) else REDACTED
        return self.value(value)

    def value(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: self.field(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.value(v) for v in value)
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        return {
            key: self.field(key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


def _split_keys(sensitive_keys: Iterable[str] | None) -> _Scrubber:
    if sensitive_keys is None:
        return _Scrubber(SECRET_KEYS, IDENTITY_KEYS)
    keys = {k.lower() for k in sensitive_keys}
    return _Scrubber(keys - IDENTITY_KEYS, keys & IDENTITY_KEYS)


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub secrets and identities on the record itself.

    Running as a handler filter protects plain-text output too, not just the
    JSON formatter. A scrubbed record is flagged so identities are never
    fingerprinted twice.
    """

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self._scrubber = _split_keys(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "_bruteguard_scrubbed", False):
            return True
        for key, value in self._scrubber.extras(record).items():
            setattr(record, key, value)
        record._bruteguard_scrubbed = True
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: envelope fields first, then scrubbed extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self._scrubber = _split_keys(sensitive_keys)
        self.ensure_ascii = ensure_ascii

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

        if getattr(record, "_bruteguard_scrubbed", False):
            extras = {
                key: value
                for key, value in vars(record).items()
                if key not in _RECORD_ATTRS and not key.startswith("_")
            }
        else:
            extras = self._scrubber.extras(record)
        payload.update(extras)

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/bruteguard.log")
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
    """Install a single scrubbing handler on the root logger.

    Args:
        log_settings: Output settings; the global ``settings.log`` when omitted.
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

    # uvicorn installs its own handlers; keep its records from reaching ours twice
    for name in ("uvicorn", "uvicorn.access"):
        logging.getLogger(name).propagate = False
