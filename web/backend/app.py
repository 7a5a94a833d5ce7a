#!/usr/bin/env python3
"""
SwipeMatch API - FastAPI Application

Usage:
    python -m web.backend.app

Then open:
    - http://localhost:8080/docs - API Documentation (Swagger UI)
    - http://localhost:8080/redoc - Alternative API Documentation
"""

import logging

from fastapi import FastAPI, HTTPException

from core.errors import SwipeMatchError
from .exceptions import (
    swipe_match_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from .routers import (
    swipes_router,
    candidates_router,
    credits_router,
    matches_router,
    notifications_router
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="SwipeMatch API",
    description="Swipe, match and credit endpoints",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Register exception handlers
app.add_exception_handler(SwipeMatchError, swipe_match_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Include routers
app.include_router(swipes_router)
app.include_router(candidates_router)
app.include_router(credits_router)
app.include_router(matches_router)
app.include_router(notifications_router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "swipematch-web"}


def main():
    """Run the web server."""
    import uvicorn
    from .config import get_config

    config = get_config()
    logger.info(f"Starting SwipeMatch Web Server on {config.web.host}:{config.web.port}")
    logger.info(f"API Docs: http://{config.web.host}:{config.web.port}/docs")

    uvicorn.run(
        "web.backend.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
