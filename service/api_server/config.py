from __future__ import annotations

"""Settings for the HTTP facade."""

from dataclasses import dataclass
import os

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_BODY_LIMIT = 16 * 1024 * 1024


def _coerce_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _coerce_float(value: str | None, default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


@dataclass(slots=True)
class ApiSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    request_body_limit: int = DEFAULT_BODY_LIMIT

    @classmethod
    def from_env(cls) -> "ApiSettings":
        return cls(
            host=os.getenv("ASSETREPO_API_HOST", DEFAULT_HOST),
            port=_coerce_int(os.getenv("ASSETREPO_API_PORT"), DEFAULT_PORT),
            request_timeout_seconds=_coerce_float(
                os.getenv("ASSETREPO_API_TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_SECONDS
            ),
            request_body_limit=_coerce_int(os.getenv("ASSETREPO_API_BODY_LIMIT"), DEFAULT_BODY_LIMIT),
        )


__all__ = ["ApiSettings"]
