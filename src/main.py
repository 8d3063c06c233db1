"""
FastAPI application entry point for the Owl Shoes retail assistant.

This module:
- Configures the FastAPI application with middleware and routers
- Sets up structured logging with structlog
- Implements global exception handlers for consistent error responses
- Manages application lifecycle (startup/shutdown hooks)
- Serves the knowledge documents the assistant is pointed at

Design decisions:
- Every tool route lets domain errors propagate; the handlers here turn them
  into {"status": "error", "error": <code>, "message": ...} with a real HTTP status
- Request timing middleware for performance monitoring
- Lifespan manager for resource cleanup
"""

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from src.api import frontend, voice
from src.api.tools import customer, orders, products, survey, transfer
from src.config import PROJECT_ROOT, settings
from src.core.deps import close_record_store
from src.core.exceptions import RetailAssistantError
from src.core.logging import configure_logging

SERVICE_NAME = "Owl Shoes Retail Assistant"
VERSION = "0.1.0"

configure_logging(settings.log_format, settings.log_level)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for FastAPI application.

    Startup logs the effective configuration; shutdown releases the record
    store's connections.
    """
    # ===== Startup =====
    logger.info(
        "application_starting",
        service=SERVICE_NAME,
        version=VERSION,
        environment=settings.app_env,
        log_level=settings.log_level,
        record_store=settings.record_store,
        assistant_id=settings.assistant_id,
        cors_origins=settings.cors_origins
    )

    yield  # Application is running

    # ===== Shutdown =====
    logger.info("application_shutting_down")
    await close_record_store()
    logger.info("shutdown_complete")


app = FastAPI(
    title=SERVICE_NAME,
    description="Webhook tools and voice entry point for the Owl Shoes AI assistant",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ===== Middleware Configuration =====

# The demo front end calls /front-end/* from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log all incoming requests with timing information.

    Adds X-Process-Time header to response for debugging.
    """
    start_time = time.time()

    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else "unknown",
        user_agent=request.headers.get("user-agent", "unknown")
    )

    response = await call_next(request)

    process_time = time.time() - start_time

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2)
    )

    response.headers["X-Process-Time"] = str(round(process_time, 3))
    return response


# ===== Global Exception Handlers =====


@app.exception_handler(RetailAssistantError)
async def retail_assistant_error_handler(request: Request, exc: RetailAssistantError):
    """
    Handle domain errors with structured responses.

    Response format:
    {
        "status": "error",
        "error": "CONF_003",
        "message": "Return already exists for this order",
        "existing_return_id": "a1b2c3"
    }
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        error_code=exc.error_code.value,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        path=request.url.path
    )

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors with clear messages.

    Common causes: missing required fields, wrong field types, rating out of range.
    """
    errors = exc.errors()
    logger.warning(
        "validation_error",
        errors=errors,
        body=str(exc.body)[:500],  # Truncate to avoid logging sensitive data
        path=request.url.path
    )

    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else "Invalid request data"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "error": "VALIDATION_ERROR",
            "message": message,
            "details": jsonable_errors(errors),
        }
    )


def jsonable_errors(errors) -> list[dict]:
    """Pydantic error dicts can carry exception objects in ctx; keep them printable."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in errors
    ]


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unexpected exceptions.

    Logs full exception for debugging while returning a safe response.
    """
    logger.exception(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
            "reference_id": f"err_{int(time.time())}"
        }
    )


# ===== Router Registration =====

app.include_router(customer.router)
app.include_router(orders.router)
app.include_router(products.router)
app.include_router(survey.router)
app.include_router(transfer.router)
app.include_router(voice.router)
app.include_router(frontend.router)

# Knowledge documents referenced by the assistant's knowledge sources
app.mount("/static", StaticFiles(directory=PROJECT_ROOT / "static"), name="static")

# ===== Core Endpoints =====


@app.get("/")
async def root():
    """Service information and endpoint discovery."""
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "status": "operational",
        "environment": settings.app_env,
        "record_store": settings.record_store,
        "documentation": "/docs" if not settings.is_production else None,
        "endpoints": {
            "health": "/health",
            "voice": "/voice/incoming-call",
            "tools": {
                "customer_lookup": "/tools/customer-lookup",
                "order_lookup": "/tools/order-lookup",
                "order_id_validator": "/tools/order-id-validator",
                "products": "/tools/products",
                "place_order": "/tools/place-order",
                "return_order": "/tools/return-order",
                "create_survey": "/tools/create-survey",
                "send_to_flex": "/tools/send-to-flex",
            },
            "front_end": {
                "create_customer": "/front-end/create-customer",
                "create_order": "/front-end/create-order",
            },
        }
    }


@app.get("/health")
async def health():
    """
    Health check endpoint for load balancers and the provisioning CLI.

    The deploy step calls this through the public URL before registering
    any tool, so a dead tunnel fails fast.
    """
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "version": VERSION,
        "timestamp": int(time.time())
    }
