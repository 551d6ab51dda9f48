"""FastAPI application for device registration.

This is the main entry point for the registration API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.dependencies import close_registration, init_registration
from .api.router import router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    - Startup: build adapters and start the registration manager. A
      ConfigurationError aborts startup so no registration is accepted.
    - Shutdown: stop the manager, close notifier session and database pool
    """
    logger.info("Starting Device Registration API...")

    try:
        await init_registration()
    except Exception as e:
        logger.error(f"Failed to start registration manager: {e}")
        raise

    yield

    logger.info("Shutting down Device Registration API...")
    await close_registration()


app = FastAPI(
    title="Device Registration API",
    description="""
    API for on-demand device registration.

    ## Workflow

    1. A device announces its hardware id, specification token and metadata
    2. Unknown devices are created; known devices must keep their specification
    3. Unassigned devices are auto-assigned to the default site, or rejected
    4. One outcome (ack, invalid specification, site token required) is returned
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Device Registration API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/registration/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.provisioning.registration.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )
