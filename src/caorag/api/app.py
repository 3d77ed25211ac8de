"""FastAPI application exposing grounded queries over the CAO store."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from caorag.api.schemas import DocumentModel, QueryRequest, QueryResponse, StoreModel
from caorag.config import Settings, get_settings
from caorag.errors import MalformedResponseError, NotFoundError, TransportError
from caorag.metrics.observability import bind_correlation_id, clear_correlation_id, configure_logging, get_logger
from caorag.services.query import QueryService
from caorag.stores import GatewayConfig, GeminiFileSearchGateway, StoreGateway, get_store_by_name

STORE_RESOURCE_PREFIX = "fileSearchStores/"


class APIError(Exception):
    """Raised inside handlers to return ``{"error": ...}`` with a status code."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class AppDependencies:
    gateway: StoreGateway
    query_service: QueryService


def _build_dependencies(settings: Settings) -> AppDependencies:
    gateway = GeminiFileSearchGateway(
        GatewayConfig(
            api_key=settings.require_api_key(),
            timeout_ms=settings.gemini_timeout_ms,
            wait_for_upload=settings.wait_for_upload,
            poll_interval_seconds=settings.upload_poll_seconds,
        ),
    )
    return AppDependencies(gateway=gateway, query_service=QueryService(gateway, settings.model))


def _error(status_code: int, message: str, correlation_id: str | None = None) -> JSONResponse:
    headers = {"X-Correlation-ID": correlation_id} if correlation_id else None
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    """Build the application; raises :class:`ConfigurationError` without a credential."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    deps = dependencies or _build_dependencies(settings)

    logger = get_logger("api")
    app = FastAPI(title="CAO Query API", version="0.1.0")
    app.state.dependencies = deps

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    def require_api_key(request: Request) -> None:
        expected = settings.api_key
        if not expected:
            return
        if request.headers.get("X-API-Key") != expected:
            raise APIError(status.HTTP_401_UNAUTHORIZED, "Invalid API key")

    class RateLimiter:
        def __init__(self, requests: int, window_seconds: int) -> None:
            self.requests = requests
            self.window = window_seconds
            self._buckets: dict[str, list[float]] = {}

        def __call__(self, request: Request) -> None:
            # Client-supplied forwarding headers are not trusted as keys.
            client_ip = request.client.host if request.client else "-"
            key = f"{client_ip}:{request.url.path}"
            now = time.time()
            cutoff = now - self.window
            self._prune(cutoff)
            bucket = self._buckets.setdefault(key, [])
            while bucket and bucket[0] < cutoff:
                bucket.pop(0)
            if len(bucket) >= self.requests:
                raise APIError(status.HTTP_429_TOO_MANY_REQUESTS, "Rate limit exceeded")
            bucket.append(now)

        def _prune(self, cutoff: float) -> None:
            stale = [key for key, bucket in self._buckets.items() if not bucket or bucket[-1] < cutoff]
            for key in stale:
                del self._buckets[key]

    rate_limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
            for error in errors
        )
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request body: {detail}")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, f"Store not found: {exc}")

    @app.exception_handler(MalformedResponseError)
    async def handle_malformed_response(request: Request, exc: MalformedResponseError) -> JSONResponse:
        logger.error("downstream.malformed", path=request.url.path, detail=str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(TransportError)
    async def handle_transport_error(request: Request, exc: TransportError) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("downstream.error", correlation_id=correlation_id, path=request.url.path, detail=str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), correlation_id)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", correlation_id)

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_gateway(dep: AppDependencies = Depends(get_dependencies)) -> StoreGateway:
        return dep.gateway

    def get_query_service(dep: AppDependencies = Depends(get_dependencies)) -> QueryService:
        return dep.query_service

    @app.post("/query", response_model=QueryResponse, response_model_by_alias=True, response_model_exclude_none=True)
    def query_documents(
        payload: QueryRequest,
        service: QueryService = Depends(get_query_service),
        _auth: None = Depends(require_api_key),
        _rl: None = Depends(rate_limiter),
    ) -> QueryResponse:
        if not payload.query.strip():
            raise APIError(status.HTTP_400_BAD_REQUEST, "Query is required")
        if not payload.store_name.strip():
            raise APIError(status.HTTP_400_BAD_REQUEST, "StoreName is required")
        result = service.query(payload.query, payload.store_name, payload.turns())
        return QueryResponse.from_result(result)

    @app.get("/stores", response_model=List[StoreModel], response_model_by_alias=True)
    def list_stores(
        gateway: StoreGateway = Depends(get_gateway),
        _auth: None = Depends(require_api_key),
    ) -> List[StoreModel]:
        return [StoreModel.from_store(store) for store in gateway.list_stores()]

    @app.get("/documents", response_model=List[DocumentModel], response_model_by_alias=True)
    def list_documents(
        storeName: str | None = None,  # noqa: N803 - public query parameter name
        gateway: StoreGateway = Depends(get_gateway),
        _auth: None = Depends(require_api_key),
    ) -> List[DocumentModel]:
        if not storeName:
            raise APIError(status.HTTP_400_BAD_REQUEST, "storeName query parameter is required")
        if storeName.startswith(STORE_RESOURCE_PREFIX):
            store_id = storeName
        else:
            store_id = get_store_by_name(gateway, storeName).id
        return [DocumentModel.from_document(document) for document in gateway.list_documents(store_id)]

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from caorag import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    return app


__all__ = ["APIError", "AppDependencies", "create_app"]
