from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import inspect, text
import uvicorn
import logging
import sys

from eden.core.config import settings
from eden.db.base import Base
from eden.db.session import engine, SessionLocal
from eden.prime_scorecard import models as _prime_models  # noqa: F401  registers tables on Base
from eden.prime_scorecard.defaults import DEFAULT_REGISTRY
from eden.prime_scorecard.errors import ConfigurationError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(
        f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT.value}), "
        f"scoring revision {settings.SCORING_REVISION}, rule set {DEFAULT_REGISTRY.revision}"
    )

    existing_tables = inspect(engine).get_table_names()
    missing_tables = [t for t in Base.metadata.tables if t not in existing_tables]
    if missing_tables:
        if settings.uses_sqlite:
            Base.metadata.create_all(bind=engine)
            logger.info(f"Created local tables: {missing_tables}")
        else:
            logger.warning(f"Missing database tables: {missing_tables}")
    else:
        logger.info("All required database tables exist")

    yield

    logger.info("Shutting down")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Eden Prime Scorecard - domain scores and confidence from health evidence",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        lifespan=lifespan,
    )

    from eden.prime_scorecard.api import router as prime_scorecard_router

    app.include_router(prime_scorecard_router, prefix=settings.API_V1_STR)

    @app.get("/health", tags=["Health Check"])
    def health_check():
        """Health check endpoint"""
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            db_status = "healthy"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_status = "unhealthy"
        finally:
            db.close()

        return {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": settings.VERSION,
            "scoring_revision": settings.SCORING_REVISION,
            "database": {"status": db_status},
        }

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Global HTTP exception handler"""
        logger.error(f"HTTP {exc.status_code}: {exc.detail} - {request.url}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.detail,
                "status_code": exc.status_code,
            },
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_exception_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Scoring configuration invalid: {exc} - {request.url}")
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Scoring configuration is invalid",
                "status_code": 500,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled exceptions"""
        logger.error(f"Unhandled exception: {exc} - {request.url}")
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Internal server error",
                "status_code": 500,
            },
        )

    return app


app = create_application()


if __name__ == "__main__":
    uvicorn.run("eden.main:app", host="0.0.0.0", port=8000, reload=settings.is_development, log_level="info")
