import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Routers
from .routers.estimate import router as estimate_router
from .routers.notifications import router as notifications_router

# Core modules
from .core.config import settings
from .core.errors import EstimationError
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .core.security import EmptyPreflightCORSMiddleware, RateLimited

logger = logging.getLogger(__name__)

async def estimation_error_handler(request: Request, exc: EstimationError):
    status = 429 if isinstance(exc, RateLimited) else 400
    return JSONResponse(status_code=status, content={"error": exc.message})

async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "invalid request"})
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})

async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return JSONResponse(status_code=400, content={"error": "an unexpected error occurred"})

def create_app() -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    """
    configure_logging()  # Set up JSON logs + correlation-id filter

    app = FastAPI(
        title="Instant Property Estimate API",
        version="1.0.0",
        description="Geocodes an address, gathers comparable sales and prices the property.",
    )

    # CORS: the marketing site may be served from anywhere.
    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        EmptyPreflightCORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["X-Request-Id"],
    )

    # Observability middlewares
    app.add_middleware(CorrelationIdMiddleware)  # Adds/propagates X-Request-Id
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)       # Records req/latency metrics

    # Every failure leaves as 400 {"error": ...}
    app.add_exception_handler(EstimationError, estimation_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Meta routes
    @app.get("/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    if settings.PROMETHEUS_ENABLED:
        # Standard Prometheus scrape endpoint
        app.add_route("/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(estimate_router, tags=["estimate"])
    app.include_router(notifications_router, prefix="/notifications", tags=["notifications"])

    return app

app = create_app()
