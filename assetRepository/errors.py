"""Error kinds raised by the asset repository core."""
from __future__ import annotations


class AssetRepositoryError(RuntimeError):
    """Base class for repository failures surfaced to callers."""


class NotFound(AssetRepositoryError, LookupError):
    """A lookup for a specific pointer, surrogate or artifact has no entry."""


class NotAcceptable(AssetRepositoryError):
    """No candidate representation satisfies the client preferences."""

    def __init__(self, message: str, *, preferences: str | None = None) -> None:
        super().__init__(message)
        self.preferences = preferences


class Forbidden(AssetRepositoryError):
    """An administrative operation was invoked while disabled by configuration."""


__all__ = ["AssetRepositoryError", "NotFound", "NotAcceptable", "Forbidden"]
