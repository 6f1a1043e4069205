"""
ERP API main application.
Entry point for the FastAPI server exposing the master data modules.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from shared.config.logging import erp_api_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.db import get_engine
from shared.utils.exceptions import ConflictError

from erp_api.models import Base
from erp_api.routers.master_data import router as master_data_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()

    config_errors = settings.validate_production_settings()
    if config_errors and settings.environment == "production":
        raise RuntimeError(
            f"Production configuration errors: {'; '.join(config_errors)}. "
            "Server will not start with this configuration."
        )

    logger.info(
        "Starting ERP API",
        env=settings.environment,
        identifier_strategy=settings.identifier_validation_strategy,
    )

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created/verified")

    yield

    logger.info("Shutting down ERP API")


app = FastAPI(
    title="ERP Admin API",
    description="Multi-tenant ERP administration API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations are client conflicts, not server faults."""
    error = ConflictError("Request conflicts with existing data", path=request.url.path)
    return JSONResponse(status_code=error.status_code, content={"success": False, "detail": error.detail})


# =============================================================================
# Health Check
# =============================================================================


@app.get("/api/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "erp-api",
        "environment": settings.environment,
    }


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(master_data_router, prefix="/api")


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "erp_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
