#!/usr/bin/env python3
"""
Swipe endpoints - like or skip candidates and applications.
"""

import logging
from fastapi import APIRouter, Depends

from core.swipe.pipeline import SwipeService
from ..dependencies import get_swipe_service, get_current_user
from ..models.requests import SwipeRequest
from ..models.responses import SwipeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["swipes"])


@router.post("/swipes", response_model=SwipeResponse)
def create_swipe(
    request: SwipeRequest,
    user_id: str = Depends(get_current_user),
    service: SwipeService = Depends(get_swipe_service)
):
    """
    Like or skip a candidate.

    A like consumes one free swipe (or a boost credit once free swipes run
    out). A mutual like returns status "matched" with the new match id.
    """
    result = service.swipe(user_id, request.target_id, request.direction)
    return SwipeResponse(**result.to_dict())


@router.post("/applications/{application_id}/skip", response_model=SwipeResponse)
def skip_application(
    application_id: str,
    user_id: str = Depends(get_current_user),
    service: SwipeService = Depends(get_swipe_service)
):
    """Skip an application made to one of your job posts. Never consumes credit."""
    result = service.skip_application(user_id, application_id)
    return SwipeResponse(**result.to_dict())
