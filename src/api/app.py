import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.container import build_container
from src.domain.base import to_iso_z, utcnow
from src.domain.errors import ErrorCode
from .error import ClientError, ServerError, error_code_value
from .middleware import configure_logging, get_request_id, request_id_middleware

logger = logging.getLogger(__name__)


def error_body(request: Request, code, message: str, retry_after=None) -> dict:
    error_dict = {
        "code": error_code_value(code),
        "message": message,
        "timestamp": to_iso_z(utcnow()),
        "request_id": get_request_id(request),
    }
    if retry_after is not None:
        error_dict["retry_after"] = retry_after
    return {"success": False, "error": error_dict}


async def handle_client_error(request: Request, exc: ClientError):
    error = exc.base_error
    retry_after = (error.details or {}).get("retry_after")
    content = error_body(request, error.code, error.message, retry_after)
    logger.warning(f"Client error: {content['error']}")

    headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def handle_server_error(request: Request, exc: ServerError):
    logger.error(f"Server error: {error_code_value(exc.base_error.code)} {exc.base_error.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, ErrorCode.INTERNAL_ERROR, "Internal server error"),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    message = f"Invalid request: {', '.join(fields)}" if fields else "Invalid request"
    logger.warning(f"Validation error: {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(request, ErrorCode.VALIDATION_ERROR, message),
    )


def create_app(ApplicationConfig) -> FastAPI:
    """
    Build the FastAPI application.

    Raises:
        ConfigurationError: missing or weak signing secrets, bad limits, unknown cache backend
    """
    configure_logging(ApplicationConfig.LOG_LEVEL)

    if ApplicationConfig.ENABLE_SENTRY and ApplicationConfig.DSN_SENTRY:
        sentry_sdk.init(
            dsn=ApplicationConfig.DSN_SENTRY,
            environment=ApplicationConfig.SENTRY_ENVIRONMENT,
        )

    container = build_container(ApplicationConfig)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.init_db()
        await container.audit_service.start()
        container.maintenance.start()
        logger.info("Wallet auth service started")
        try:
            yield
        finally:
            await container.maintenance.stop()
            await container.audit_service.stop()
            await container.close()
            logger.info("Wallet auth service stopped")

    app = FastAPI(title="Wallet Auth API", version="0.1.0", lifespan=lifespan)
    app.state.container = container
    app.state.config = ApplicationConfig

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_id_middleware)

    from src.api.routes import admin, audit, auth, health_check

    prefix = ApplicationConfig.API_PREFIX
    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, prefix=prefix, tags=["Authentication"])
    app.include_router(audit.router, prefix=prefix, tags=["Audit"])
    app.include_router(admin.router, prefix=prefix, tags=["Admin"])

    hide_details = ApplicationConfig.ENVIRONMENT == "production"

    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        sentry_sdk.capture_exception(exc)
        message = "Internal server error" if hide_details else f"{type(exc).__name__}: {exc}"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(request, ErrorCode.INTERNAL_ERROR, message),
        )

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    return app
