import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator


def instrument_with_metrics(
    app: FastAPI,
    *,
    endpoint: str = "/metrics",
    include_in_schema: bool = False,
) -> None:
    Instrumentator().instrument(app).expose(
        app,
        endpoint=endpoint,
        include_in_schema=include_in_schema,
    )


def add_correlation_id_middleware(
    app: FastAPI,
    *,
    header_name: str = "X-Request-ID",
) -> None:
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name=header_name,
        generator=lambda: str(uuid.uuid4()),
        update_request_header=True,
    )


def create_service_app(
    *,
    title: str,
    version: str = "0.1.0",
    description: str | None = None,
    enable_metrics: bool = True,
    metrics_endpoint: str = "/metrics",
    cors_allow_origins: Sequence[str] | None = ("*",),
    cors_allow_credentials: bool = False,
    correlation_header_name: str = "X-Request-ID",
    health_path: str | None = "/health",
    exception_handlers: Mapping[type[Exception], Callable[..., Any]] | None = None,
    **fastapi_kwargs: Any,
) -> FastAPI:
    """Build a FastAPI app with the middleware stack every service shares.

    ``cors_allow_origins=None`` disables CORS entirely. Credentials are never
    allowed together with a wildcard origin.
    """
    app = FastAPI(
        title=title,
        version=version,
        description=description,
        exception_handlers=dict(exception_handlers or {}),
        **fastapi_kwargs,
    )

    if enable_metrics:
        instrument_with_metrics(app, endpoint=metrics_endpoint)

    if cors_allow_origins is not None:
        origins = list(cors_allow_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=cors_allow_credentials and origins != ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    add_correlation_id_middleware(app, header_name=correlation_header_name)

    if health_path:

        @app.get(health_path, include_in_schema=False)
        async def health() -> dict[str, str]:
            return {"status": "ok"}

    return app
