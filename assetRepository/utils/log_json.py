from __future__ import annotations

"""Structured JSON events for repository, bundler, store and API activity.

Each event is one sorted-key JSON object on its own line. ``asset``,
``trace_id``, ``route``, ``latency_ms`` and ``status`` are promoted to the
top level; every other field lands under ``details``. Asset, artifact and
surrogate identifiers are UUIDs and are logged verbatim, while e-mail
addresses, bearer credentials and URL query strings are redacted.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
BEARER_RE = re.compile(r"bearer\s+[A-Za-z0-9\-_.=]+", re.IGNORECASE)
URL_QUERY_RE = re.compile(r"(https?://[^\s?]+)\?[^\s]+")

LEVEL_ENV = "ASSETREPO_LOG_LEVEL"
PROMOTED_FIELDS = ("asset", "trace_id", "route", "latency_ms", "status")
REDACTED = "[redacted]"


def _scrub(text: str) -> str:
    text = EMAIL_RE.sub(REDACTED, text)
    text = BEARER_RE.sub(REDACTED, text)
    return URL_QUERY_RE.sub(r"\1", text)


def _plain(value: Any) -> Any:
    """JSON-ready copy of ``value`` with ``None`` entries dropped and text scrubbed."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    return _scrub(str(value))


def _bounded(details: Any, max_bytes: int) -> Any:
    if max_bytes <= 0:
        return details
    blob = json.dumps(details, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")
    if len(blob) <= max_bytes:
        return details
    return {"note": "truncated", "preview": blob[:max_bytes].decode("utf-8", errors="ignore")}


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.getenv(LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


class JsonLogger:
    """Emit structured JSON events for one service component.

    ``bind`` returns a logger that adds fixed fields (for example the asset
    being bundled) to every event it emits.
    """

    def __init__(
        self,
        service: str,
        *,
        logger: logging.Logger | None = None,
        max_details_bytes: int = 4096,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._service = service
        self._logger = logger or logging.getLogger(f"assetrepository.{service}.json")
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)
            self._logger.setLevel(_level_from_env())
        self._logger.propagate = False
        self._max_details_bytes = max(0, int(max_details_bytes))
        self._context: Dict[str, Any] = dict(context or {})

    def bind(self, **context: Any) -> "JsonLogger":
        return JsonLogger(
            self._service,
            logger=self._logger,
            max_details_bytes=self._max_details_bytes,
            context={**self._context, **context},
        )

    def info(self, event: str, **fields: Any) -> dict[str, Any]:
        return self.emit("INFO", event, **fields)

    def warning(self, event: str, **fields: Any) -> dict[str, Any]:
        return self.emit("WARNING", event, **fields)

    def error(self, event: str, **fields: Any) -> dict[str, Any]:
        return self.emit("ERROR", event, **fields)

    def emit(self, level: str, event: str, **fields: Any) -> dict[str, Any]:
        level = level.upper()
        merged = {**self._context, **fields}
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "service": self._service,
            "event": event,
        }
        for key in PROMOTED_FIELDS:
            value = merged.pop(key, None)
            if value is not None:
                entry[key] = _plain(value)

        details = _plain(merged.pop("details", None))
        extra = _plain(merged)
        if isinstance(details, dict):
            details.update(extra)
        elif details is None and extra:
            details = extra
        elif extra:
            details = {"value": details, **extra}
        if details:
            entry["details"] = _bounded(details, self._max_details_bytes)

        numeric = logging.getLevelName(level)
        self._logger.log(numeric if isinstance(numeric, int) else logging.INFO, json.dumps(
            entry, ensure_ascii=False, sort_keys=True, separators=(",", ":")
        ))
        return entry


__all__ = ["JsonLogger", "PROMOTED_FIELDS"]
