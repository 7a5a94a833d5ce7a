#!/usr/bin/env python3
"""
Notification endpoints - called by the chat service when a message is sent.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends

from notification.service import NotificationDispatcher, MessageEvent
from ..dependencies import get_dispatcher
from ..models.requests import MessageEventRequest
from ..models.responses import NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post("/messages", response_model=NotificationResponse)
def notify_message(
    request: MessageEventRequest,
    dispatcher: Optional[NotificationDispatcher] = Depends(get_dispatcher)
):
    """Notify a message recipient. Delivery is best-effort; this never fails the caller."""
    if dispatcher is None:
        logger.info("Notifications disabled; ignoring message event")
        return NotificationResponse(delivered=0)

    delivered = dispatcher.notify_message(MessageEvent(
        conversation_id=request.conversation_id,
        sender_id=request.sender_id,
        recipient_id=request.recipient_id,
        preview=request.preview
    ))
    return NotificationResponse(delivered=delivered)
