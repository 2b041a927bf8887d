"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, SessionLocal
from .dispatcher.router import router as dispatcher_router
from .exceptions import register_exception_handlers
from .core.middleware import setup_middlewares
from .store.migrations import migrate

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Run additive schema evolution and admin seeding before serving.
    """
    logger.info("Starting Radiology Center API...")
    try:
        report = migrate(engine, SessionLocal)
        if report.changed:
            logger.info(f"Schema updated: created={report.created} added={report.added_columns}")
    except Exception as e:
        logger.error(f"Schema migration failed: {str(e)}")
        raise
    yield


# Create FastAPI application
app = FastAPI(
    title="Radiology Center API",
    description="Row store and action dispatcher for the radiology workflow tracker",
    version="1.0.0",
    lifespan=lifespan
)

# Register exception handlers
register_exception_handlers(app)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware
setup_middlewares(app)

# Include routers
app.include_router(dispatcher_router, tags=["Dispatcher"])

# Root endpoint
@app.get("/")
def root():
    """
    Root endpoint for API health check.

    Returns:
        dict: Simple welcome message
    """
    return {"message": "Welcome to Radiology Center API", "version": app.version}

# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns:
        dict: Health status information
    """
    return {"status": "healthy", "database": "connected"}


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn
    uvicorn.run("radcenter.main:app", host="0.0.0.0", port=8000)
