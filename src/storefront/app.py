"""Storefront FastAPI application.

Web server that processes commands synchronously via HTTP. Each request is
wrapped in the storefront domain context and tagged with a request id that
every log line of the request carries.

Usage:
    uvicorn storefront.app:serve --factory --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.config import Settings
from storefront.domain import storefront
from storefront.exceptions import (
    Forbidden,
    GatewayError,
    InsufficientStock,
    InvalidTransition,
    OrderClosed,
    StorageFailure,
    StoreUnavailable,
)
from storefront.services import Services, build_services
from storefront.utils.logging import add_context, clear_context, configure_logging

logger = structlog.get_logger(__name__)

# Seconds a client should wait before resubmitting after a retryable failure
RETRY_AFTER_SECONDS = 1


def _messages(exc) -> dict:
    messages = getattr(exc, "messages", None)
    return messages if isinstance(messages, dict) else {"_entity": [str(exc)]}


def _error(status_code: int, exc, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": _messages(exc)}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the storefront error taxonomy onto HTTP status codes.

    Handlers are resolved along the exception's MRO, so the conflict
    subclasses of ValidationError win over the generic 400.
    """

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        # The rejected input is omitted; it may hold NaN or Infinity
        messages: dict[str, list[str]] = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
            messages.setdefault(field, []).append(error["msg"])
        return JSONResponse(status_code=422, content={"error": messages})

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error(400, exc)

    @app.exception_handler(InsufficientStock)
    @app.exception_handler(InvalidTransition)
    @app.exception_handler(OrderClosed)
    async def conflict(request: Request, exc: ValidationError):
        return _error(409, exc)

    @app.exception_handler(ObjectNotFoundError)
    async def not_found(request: Request, exc: ObjectNotFoundError):
        return _error(404, exc)

    @app.exception_handler(Forbidden)
    async def forbidden(request: Request, exc: Forbidden):
        return _error(403, exc)

    @app.exception_handler(StorageFailure)
    async def storage_failure(request: Request, exc: StorageFailure):
        return _error(503, exc, headers={"Retry-After": str(RETRY_AFTER_SECONDS)})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable):
        return _error(503, exc, headers={"Retry-After": str(RETRY_AFTER_SECONDS)})

    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        return _error(502, exc)


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the application.

    When ``services`` is given it is used as-is and left open on shutdown;
    otherwise services are built from ``settings`` on startup and closed on
    shutdown. The storefront domain must already be initialized.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "services", None) is None
        if owned:
            with storefront.domain_context():
                app.state.services = build_services(settings)
        yield
        if owned:
            app.state.services.close()
            app.state.services = None

    app = FastAPI(
        title="Storefront API",
        description="Order fulfillment and inventory for a small storefront",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context and bind a request id for logging."""
        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        add_context(request_id=request_id)
        try:
            with storefront.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Request-Id"] = request_id
        return response

    register_exception_handlers(app)

    from storefront.api import admin_router, order_router, payment_router, product_router

    app.include_router(product_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": storefront.name})

    return app


def serve() -> FastAPI:
    """Application factory for uvicorn: initialize the domain and logging, then build the app."""
    configure_logging()
    storefront.init()
    logger.info("Storefront API starting")
    return create_app(settings=Settings.from_env())
