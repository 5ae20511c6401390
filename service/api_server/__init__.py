from __future__ import annotations

"""Application factory for the asset repository HTTP facade."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from assetRepository import __version__ as package_version
from assetRepository.config import build_repository, load_settings
from assetRepository.errors import Forbidden, NotAcceptable, NotFound
from assetRepository.repository import KnowledgeAssetRepository
from assetRepository.utils.log_json import JsonLogger

from .config import ApiSettings
from .middleware import BodyLimitMiddleware, RequestContextMiddleware, problem_response
from .routers import build_router
from .schemas import ProblemDetails

_DOMAIN_ERRORS = (
    (NotFound, 404, "not-found", "Not Found"),
    (NotAcceptable, 406, "not-acceptable", "Not Acceptable"),
    (Forbidden, 403, "forbidden", "Forbidden"),
    (ValueError, 400, "bad-request", "Bad Request"),
)


def create_app(
    settings: Optional[ApiSettings] = None,
    *,
    repository: Optional[KnowledgeAssetRepository] = None,
) -> FastAPI:
    settings = settings or ApiSettings.from_env()
    if repository is None:
        repository = build_repository(load_settings())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        repository.close()

    app = FastAPI(
        title="Knowledge Asset Repository API",
        version=package_version,
        default_response_class=JSONResponse,
        lifespan=lifespan,
    )

    json_logger = JsonLogger("api")

    app.add_middleware(BodyLimitMiddleware, limit_bytes=settings.request_body_limit)
    app.add_middleware(
        RequestContextMiddleware,
        logger=json_logger,
        timeout_seconds=settings.request_timeout_seconds,
    )

    app.state.repository = repository
    app.state.request_logger = json_logger

    app.include_router(build_router())

    def _register_domain_handler(exc_type: type, status: int, slug: str, title: str) -> None:
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            problem = ProblemDetails.for_request(
                request,
                slug,
                title,
                status,
                str(exc),
                preferences=getattr(exc, "preferences", None),
            )
            json_logger.warning("api.rejected", trace_id=problem.trace_id, status=status, route=request.url.path)
            return problem_response(problem)

        app.add_exception_handler(exc_type, handler)

    for exc_type, status, slug, title in _DOMAIN_ERRORS:
        _register_domain_handler(exc_type, status, slug, title)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return problem_response(
            ProblemDetails.for_request(request, "validation", "Validation Failed", 422, str(exc.errors()))
        )

    @app.exception_handler(HTTPException)
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else None
        problem = ProblemDetails.for_request(request, "http", detail or "HTTP Error", exc.status_code, detail)
        return problem_response(problem, headers=dict(exc.headers or {}))

    return app


__all__ = ["create_app"]
