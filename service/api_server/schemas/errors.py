from __future__ import annotations

"""RFC 7807 problem documents returned by the asset API."""

from typing import Optional

from fastapi import Request
from pydantic import BaseModel

PROBLEM_BASE = "https://assets.example.org/problems/"


class ProblemDetails(BaseModel):
    type: str
    title: str
    status: int
    detail: str | None = None
    instance: str | None = None
    trace_id: str | None = None
    # Echoes the X-Accept preferences a 406 could not satisfy.
    preferences: str | None = None

    @classmethod
    def for_request(
        cls,
        request: Request,
        slug: str,
        title: str,
        status: int,
        detail: Optional[str] = None,
        *,
        trace_id: Optional[str] = None,
        preferences: Optional[str] = None,
    ) -> "ProblemDetails":
        return cls(
            type=PROBLEM_BASE + slug,
            title=title,
            status=status,
            detail=detail,
            instance=str(request.url),
            trace_id=trace_id or getattr(request.state, "trace_id", None),
            preferences=preferences,
        )
