"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.dependencies import (
    close_database_connections,
    get_request_engine,
)
from infrastructure.logging import configure_logging
from infrastructure.version import __version__
from tenancy.presentation import routes as tenancy_routes


@asynccontextmanager
async def school_tenancy_lifespan(app: FastAPI):
    """Application lifespan context.

    The request engine is created lazily on first use and disposed on
    shutdown so pooled connections are closed cleanly.
    """
    configure_logging()
    yield
    await close_database_connections()


app = FastAPI(
    title="School Tenancy API",
    description="Per-school namespace isolation on a shared PostgreSQL database",
    version=__version__,
    lifespan=school_tenancy_lifespan,
)

app.include_router(tenancy_routes.router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/db")
async def health_db(
    engine: Annotated[AsyncEngine, Depends(get_request_engine)],
) -> dict:
    """Check that the request pool can reach the database."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return {"status": "error", "connected": False, "error": str(e)}
    return {"status": "ok", "connected": True}
