import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import inspect

from facility_risk.core.config import settings
from facility_risk.core.logging_config import configure_logging
from facility_risk.db.base import Base
from facility_risk.db.session import engine
from facility_risk.focus_areas.api import router as focus_areas_router
from facility_risk.focus_areas.profiles import get_profile, warn_if_profiles_diverge

configure_logging(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting up {settings.PROJECT_NAME} {settings.VERSION}...")

    # Fail fast on a misconfigured profile name
    interactive = get_profile(settings.FOCUS_AREAS_INTERACTIVE_PROFILE)
    batch = get_profile(settings.FOCUS_AREAS_BATCH_PROFILE)
    warn_if_profiles_diverge(interactive.name, batch.name)

    try:
        existing_tables = inspect(engine).get_table_names()
        required_tables = [table.name for table in Base.metadata.tables.values()]
        missing_tables = [table for table in required_tables if table not in existing_tables]
        if missing_tables:
            logger.warning(f"Missing database tables: {missing_tables}")
            logger.warning("Run `alembic upgrade head` before serving requests")
        else:
            logger.info("All required database tables exist")
    except Exception as e:
        logger.warning(f"Could not check database tables: {e}")

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(focus_areas_router, prefix=settings.API_V1_STR)


@app.get("/health")
def health_check():
    return {"status": "healthy", "version": settings.VERSION}


if __name__ == "__main__":
    uvicorn.run(
        "facility_risk.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=True,
        log_level="info",
    )
