#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class SwipeResponse(BaseModel):
    """Outcome of a recorded swipe."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "status": "matched",
                "direction": "like",
                "credit_type": "free",
                "match_id": "550e8400-e29b-41d4-a716-446655440000",
                "remaining_balance": 0
            }
        }
    )

    success: bool = True
    status: str
    direction: str
    credit_type: str
    match_id: Optional[str] = None
    remaining_balance: Optional[int] = None


class CandidatesResponse(BaseModel):
    success: bool = True
    count: int
    offset: int = 0
    candidates: List[str]


class CreditBalanceResponse(BaseModel):
    success: bool = True
    free: int = Field(ge=0)
    boost: int = Field(ge=0)
    unlimited: bool = False


class MatchResponse(BaseModel):
    success: bool = True
    match_id: str
    status: str
    participants: List[str]
    conversation_id: Optional[str] = None


class MatchSummary(BaseModel):
    match_id: str
    other_user_id: str
    status: str
    conversation_id: Optional[str] = None
    created_at: Optional[datetime] = None


class MatchListResponse(BaseModel):
    success: bool = True
    count: int
    matches: List[MatchSummary]


class NotificationResponse(BaseModel):
    success: bool = True
    delivered: int
