"""
streamin API

Main FastAPI application entry point. Serve it with any ASGI server, e.g.

    uvicorn streamin.main:app --host 127.0.0.1 --port 8080
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from streamin.api import api_router
from streamin.core.config import get_settings
from streamin.core.registry import SessionRegistry

# Load settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("streamin")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to serve when the media directories are missing."""
    for directory in (settings.unprocessed_dir, settings.processed_dir):
        if not directory.is_dir():
            raise RuntimeError(f"Media directory not found: {directory}")
    logger.info(
        f"Serving {settings.unprocessed_dir} -> {settings.processed_dir}"
    )
    yield
    running = sum(
        1 for info in app.state.sessions.infos().values() if info.state == "running"
    )
    if running:
        logger.warning(f"Shutting down with {running} conversions still running")


app = FastAPI(
    title="streamin",
    description="Media to MPEG-DASH conversion service",
    version=settings.version,
    lifespan=lifespan,
)
app.state.sessions = SessionRegistry()

app.include_router(api_router)


@app.get("/")
async def index():
    """Root endpoint."""
    return {"item": "Hello, World!"}
