from __future__ import annotations

"""Request tracing, time bounds and body limits for the asset API."""

import asyncio
import json
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from assetRepository.utils.log_json import JsonLogger

from .schemas.errors import ProblemDetails


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a trace id, bounds request time and logs each request."""

    def __init__(self, app: ASGIApp, logger: JsonLogger, timeout_seconds: float) -> None:
        super().__init__(app)
        self._logger = logger
        self._timeout = timeout_seconds

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        # Callers may propagate their own id; otherwise one is minted.
        trace_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        start = time.perf_counter()
        request.state.trace_id = trace_id
        try:
            response = await asyncio.wait_for(call_next(request), timeout=self._timeout)
        except asyncio.TimeoutError:
            self._logger.error(
                "api.timeout",
                trace_id=trace_id,
                route=request.url.path,
                status=504,
            )
            return problem_response(
                ProblemDetails.for_request(
                    request,
                    "timeout",
                    "Gateway Timeout",
                    504,
                    f"Request exceeded {self._timeout} seconds",
                    trace_id=trace_id,
                )
            )
        duration = time.perf_counter() - start
        response.headers["X-Request-Id"] = trace_id
        self._logger.info(
            "api.request",
            trace_id=trace_id,
            route=request.url.path,
            status=response.status_code,
            latency_ms=round(duration * 1000, 2),
            method=request.method,
        )
        return response


class BodyLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limit_bytes: int) -> None:
        super().__init__(app)
        self._limit = limit_bytes

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > self._limit:
            return problem_response(
                ProblemDetails.for_request(
                    request, "payload-too-large", "Payload Too Large", 413, f"Request body exceeds {self._limit} bytes"
                )
            )
        return await call_next(request)


def problem_response(problem: ProblemDetails, headers: dict[str, str] | None = None) -> Response:
    payload = problem.model_dump(exclude_none=True)
    merged = {
        "Content-Type": "application/problem+json",
        "Cache-Control": "no-store",
    }
    if problem.trace_id:
        merged["X-Request-Id"] = problem.trace_id
    if headers:
        merged.update(headers)
    return Response(content=json.dumps(payload), status_code=problem.status, headers=merged)


__all__ = ["RequestContextMiddleware", "BodyLimitMiddleware", "problem_response"]
