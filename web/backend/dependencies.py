#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException

from core.app_context import AppContext
from core.swipe.pipeline import SwipeService
from notification.service import NotificationDispatcher
from .config import get_config


@lru_cache()
def get_app_context() -> AppContext:
    """Wire services once per process."""
    return AppContext.build(get_config())


def get_swipe_service() -> SwipeService:
    """
    FastAPI dependency returning the shared SwipeService.

    Usage:
        @app.post("/endpoint")
        def my_endpoint(service: SwipeService = Depends(get_swipe_service)):
            ...
    """
    return get_app_context().swipe_service


def get_dispatcher() -> Optional[NotificationDispatcher]:
    return get_app_context().dispatcher


def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Identify the acting user.

    Authentication happens upstream; the gateway forwards the verified id
    in the X-User-Id header.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
