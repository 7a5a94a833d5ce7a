#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional

from core.swipe.dto import SwipeDirection


class SwipeRequest(BaseModel):
    """Request to swipe on a candidate."""
    target_id: str = Field(..., min_length=1, description="Entity being swiped on")
    direction: SwipeDirection = Field(..., description="like or skip")


class MessageEventRequest(BaseModel):
    """A chat message the recipient should be notified about."""
    conversation_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    recipient_id: str = Field(..., min_length=1)
    preview: Optional[str] = Field(None, description="Message text shown in the notification")

