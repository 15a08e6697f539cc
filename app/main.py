"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- Logging
- Admin analytics routes
- Middleware (request logging, CORS, rate limiting)
- The in-process daily rollup scheduler

Run with `uvicorn app.main:app` or `python -m app.main`.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import endpoints
from app.core.rate_limit import limiter
from app.core.setting import settings
from app.middleware.logging import add_logging_middleware
from app.services.scheduler import shutdown_scheduler, start_scheduler


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    """Apply the configured log level and a single line format to the root logger."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging()

app = FastAPI(
    title="Link Analytics Service",
    description="Daily visit rollups and dashboard statistics for a link redirection service",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint for health checks."""
    return {
        "message": "Link Analytics Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Analytics"])


@app.on_event("startup")
async def startup_event():
    """Start the daily rollup scheduler."""
    start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    shutdown_scheduler()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
