"""FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .domain_errors import DomainError
from .problem_details import domain_error_handler
from .routers import deliveries

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

# Create app
app = FastAPI(
    title="Trainer Deliveries",
    version="1.0.0",
    description="Delivery fulfillment lifecycle for trainer product bundles"
)

# Production safety checks (fail closed on insecure config).
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard).")
if settings.ENV.lower() == "production" and settings.JWT_SECRET_KEY == "change-me":
    raise RuntimeError("JWT_SECRET_KEY must be set in production.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.add_exception_handler(DomainError, domain_error_handler)

# Include routers
app.include_router(deliveries.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
    }
