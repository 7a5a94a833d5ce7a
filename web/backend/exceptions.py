#!/usr/bin/env python3
"""
Error handlers for the web application.

Swipe-matching errors map to stable status codes so clients can tell
"come back tomorrow" (402) from "try again" (503).
"""

import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from core.errors import (
    SwipeMatchError,
    InsufficientCredit,
    DuplicateSwipe,
    InvalidTarget,
    NotFound,
    Unauthorized,
    TransientStoreError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    InsufficientCredit: 402,
    DuplicateSwipe: 409,
    InvalidTarget: 404,
    NotFound: 404,
    Unauthorized: 403,
    TransientStoreError: 503,
}


def status_code_for(exc: SwipeMatchError) -> int:
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def swipe_match_exception_handler(
    request: Request,
    exc: SwipeMatchError
) -> JSONResponse:
    """
    Handle swipe-matching errors.

    Args:
        request: The FastAPI request.
        exc: The domain exception.

    Returns:
        JSONResponse with error details.
    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}")
    else:
        logger.info(f"Rejected request to {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": str(exc),
            "type": exc.__class__.__name__,
            "retryable": exc.retryable
        }
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "type": "HTTPException"
        }
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error in {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "type": "InternalError"
        }
    )
