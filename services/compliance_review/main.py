"""
Compliance Review Service - Main Application
============================================

FastAPI application for medical-device submission compliance review.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.compliance_review.dependencies import close_embedding_service
from services.compliance_review.routes import documents, regulations, submissions
from shared.config import settings
from shared.database.postgres import PostgresClient
from shared.llm import get_optional_llm_provider
from shared.logging import get_logger, setup_logging
from shared.models.common import HealthResponse
from shared.storage import StorageError, get_blob_store


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="compliance-review",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "compliance_review_starting",
        environment=settings.environment.value,
        port=settings.api_port,
        analysis_mode=settings.pipeline.analysis_mode.value,
        failure_policy=settings.pipeline.extraction_failure_policy.value,
    )

    # Startup
    try:
        PostgresClient.get_engine()
        logger.info("postgres_engine_ready")

        store = get_blob_store()
        logger.info("blob_store_ready", backend=store.name)

    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("compliance_review_shutting_down")
    await close_embedding_service()
    await PostgresClient.close()


# Create FastAPI application
app = FastAPI(
    title="MedReview Compliance Review Service",
    description="Regulatory compliance review of medical device submissions",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Reports the database, the model provider and the blob store backend.
    """
    components: dict[str, dict[str, Any]] = {}

    components["postgres"] = await PostgresClient.health_check()

    provider = get_optional_llm_provider()
    components["llm"] = (
        {"status": "healthy", "provider": provider.name, "model": provider.model}
        if provider
        else {"status": "unconfigured"}
    )

    components["storage"] = {"status": "healthy", "backend": get_blob_store().name}

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="compliance-review",
        version="0.1.0",
        environment=settings.environment.value,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "MedReview Compliance Review Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    submissions.router,
    prefix="/api/v1/submissions",
    tags=["Submissions"],
)

app.include_router(
    documents.router,
    prefix="/api/v1/documents",
    tags=["Documents"],
)

app.include_router(
    regulations.router,
    prefix="/api/v1/regulations",
    tags=["Regulations"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Any, exc: HTTPException) -> Any:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Any, exc: StorageError) -> Any:
    """Handle blob store failures."""
    logger.error(
        "storage_exception",
        error=exc.message,
        bucket=exc.bucket,
        object_path=exc.path,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": exc.message,
            "status_code": 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Any, exc: Exception) -> Any:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": str(exc) if settings.debug else "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.compliance_review.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
