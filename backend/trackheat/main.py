"""
Trackheat - FastAPI Backend

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trackheat.api.tracks import folder_router, heatmap_router, router as tracks_router
from trackheat.config import PipelinePolicy
from trackheat.services.repository import get_repository, init_repository


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


APP_NAME = "Trackheat"
APP_VERSION = "0.1.0"

# Default data folder (can be overridden via API or environment)
DEFAULT_DATA_FOLDER = Path("./data/tracks")
DATA_FOLDER_ENV = "TRACKHEAT_DATA_FOLDER"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Trackheat backend")

    # Initialize repository with configured folder if it exists
    repo = get_repository()
    if repo.data_folder is None:
        data_folder = Path(os.getenv(DATA_FOLDER_ENV, str(DEFAULT_DATA_FOLDER)))
        if data_folder.exists():
            init_repository(data_folder, PipelinePolicy.from_env())
            logger.info(f"Initialized repository with folder: {data_folder}")
        else:
            logger.info(f"Default data folder not found: {data_folder}")
            logger.info("Use POST /folder to set data folder")

    yield

    logger.info("Shutting down Trackheat backend")


app = FastAPI(
    title=APP_NAME,
    description="""
    Backend API for GPS track heatmaps.

    ## Features
    - Decode binary (FIT) and GPX track recordings
    - Detect coordinate units and reject misdecoded points
    - Serve cleaned tracks and budgeted heatmap point lists

    ## Data Flow
    1. Set data folder via POST /folder
    2. List available tracks via GET /tracks
    3. Get points via GET /tracks/{id}/points
    4. Get the combined heatmap via GET /heatmap
    """,
    version=APP_VERSION,
    lifespan=lifespan,
)


# CORS middleware (allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(tracks_router)
app.include_router(heatmap_router)
app.include_router(folder_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    repo = get_repository()

    return {
        "status": "healthy",
        "data_folder": str(repo.data_folder) if repo.data_folder else None,
        "track_count": repo.track_count,
    }
