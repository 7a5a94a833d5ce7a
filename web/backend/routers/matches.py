#!/usr/bin/env python3
"""
Match endpoints - manage match lifecycle.
"""

import logging
from fastapi import APIRouter, Depends, Query

from core.swipe.pipeline import SwipeService
from ..dependencies import get_swipe_service, get_current_user
from ..models.responses import MatchResponse, MatchSummary, MatchListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.get("", response_model=MatchListResponse)
def list_matches(
    status: str = Query(default="active", pattern="^(active|ended)$", description="active or ended"),
    user_id: str = Depends(get_current_user),
    service: SwipeService = Depends(get_swipe_service)
):
    """The caller's matches, newest first."""
    matches = service.get_matches(user_id, status=status)
    return MatchListResponse(
        count=len(matches),
        matches=[
            MatchSummary(
                match_id=match.id,
                other_user_id=match.other(user_id),
                status=match.status,
                conversation_id=match.conversation_id,
                created_at=match.created_at
            )
            for match in matches
        ]
    )


@router.post("/{match_id}/end", response_model=MatchResponse)
def end_match(
    match_id: str,
    user_id: str = Depends(get_current_user),
    service: SwipeService = Depends(get_swipe_service)
):
    """
    End a match. Only a participant may end it; ending twice is harmless.
    """
    match = service.end_match(match_id, user_id)
    return MatchResponse(
        match_id=match.id,
        status=match.status,
        participants=list(match.participants()),
        conversation_id=match.conversation_id
    )
