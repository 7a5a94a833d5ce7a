#!/usr/bin/env python3
"""
Candidate endpoints - the swipe deck.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from core.swipe.pipeline import SwipeService
from ..dependencies import get_swipe_service, get_current_user
from ..models.responses import CandidatesResponse

router = APIRouter(prefix="/api/candidates", tags=["candidates"])


@router.get("", response_model=CandidatesResponse)
def get_candidates(
    limit: Optional[int] = Query(default=None, ge=1, le=500, description="Maximum results to return"),
    offset: int = Query(default=0, ge=0, description="Number of candidates to skip"),
    user_id: str = Depends(get_current_user),
    service: SwipeService = Depends(get_swipe_service)
):
    """Candidates not yet swiped by the user, in deck order."""
    candidates = service.get_matched_candidates(user_id, limit=limit, offset=offset)
    return CandidatesResponse(count=len(candidates), offset=offset, candidates=candidates)
