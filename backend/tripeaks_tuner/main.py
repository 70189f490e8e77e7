"""FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .core.logging_config import setup_logging
from .api.routes import analyze, simulate, tune

# Get settings
settings = get_settings()
setup_logging(settings.log_level, settings.log_file)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Monte-Carlo deck size balancing for tripeaks-style patience levels",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(analyze.router)
app.include_router(simulate.router)
app.include_router(tune.router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "TriPeaks Deck Tuner API",
        "endpoints": {
            "analyze": "/api/analyze",
            "simulate": "/api/simulate",
            "playout": "/api/simulate/playout",
            "tune": "/api/tune",
            "tune_export": "/api/tune/export",
            "optimized_level": "/api/tune/optimized-level",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tripeaks_tuner.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
