"""Main FastAPI application for the API layer."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from sensorwatch.api.infrastructure.container import get_container, init_container
from sensorwatch.api.routers import devices, ingest
from sensorwatch.config import AppConfig
from sensorwatch.logging import configure_structured_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    config = AppConfig()
    configure_structured_logging(config.logging)
    logger.info("🚀 Starting SensorWatch API...")

    init_container(
        {
            "database": {"async_url": config.database.async_url},
            "monitoring": config.monitoring.model_dump(),
        }
    )
    container = get_container()

    # Create database tables (for development)
    db = container.database()
    await db.create_all()

    logger.info("✓ Database initialized")
    logger.info("✓ API ready")

    yield

    # Shutdown
    logger.info("🛑 Shutting down API...")
    await db.close()


# Create FastAPI app
app = FastAPI(
    title="SensorWatch API",
    description="Device health and alert evaluation for temperature/humidity sensors",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(ingest.router)
app.include_router(devices.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "SensorWatch API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
