from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.api.error_handlers import register_error_handlers
from backend.app.api.routes import router
from backend.app.dependencies import get_database, get_settings, get_telemetry
from backend.app.logging_config import configure_application_logging

REQUEST_ID_HEADER = "X-Request-ID"


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_application_logging(get_settings())
    get_database()
    yield


def _request_id_from(raw_value: str | None) -> str:
    if raw_value is not None and raw_value.strip():
        return raw_value.strip()
    return str(uuid4())


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = _request_id_from(request.headers.get(REQUEST_ID_HEADER))
    context_tokens = bind_contextvars(
        http_request_id=request_id,
        http_method=request.method,
        http_path=request.url.path,
    )
    try:
        with get_telemetry().timed(
            "http.request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ) as request_info:
            response = await call_next(request)
            request_info["status_code"] = response.status_code
    finally:
        reset_contextvars(**context_tokens)

    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app() -> FastAPI:
    app = FastAPI(title="Tubedesk API", version="0.1.0", lifespan=app_lifespan)
    app.middleware("http")(request_context_middleware)
    register_error_handlers(app)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app
