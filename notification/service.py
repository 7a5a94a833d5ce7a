#!/usr/bin/env python3
"""
Notification Dispatcher

Best-effort delivery of match and chat-message notifications:
- Endpoints come from the push-subscription registry
- Each endpoint is served by a NotificationChannel implementation
- Redis Queue for async processing, synchronous sending otherwise

Nothing here raises to the caller. A lost notification is logged, never
surfaced to the swipe that triggered it.

Usage:
    from notification.service import NotificationDispatcher, MessageEvent

    dispatcher = NotificationDispatcher(registry, redis_url="redis://localhost:6379/0")
    dispatcher.notify_match(match)
    dispatcher.notify_message(MessageEvent("conv-1", "alice", "bob", "hi!"))
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Dict, Any

from redis import Redis
from rq import Queue, Retry

from core.interfaces import PushSubscriptionRegistry
from notification.channels import NotificationChannelFactory, RateLimitException
from notification.message_builder import NotificationMessageBuilder, NotificationMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageEvent:
    """A chat message that should alert its recipient."""
    conversation_id: str
    sender_id: str
    recipient_id: str
    preview: Optional[str] = None


class NotificationDispatcher:
    """
    Formats and sends notifications for new matches and new messages.

    One notification is produced per (recipient, registered endpoint).
    """

    def __init__(
        self,
        registry: Optional[PushSubscriptionRegistry] = None,
        redis_url: str = 'redis://localhost:6379/0',
        use_async_queue: bool = True,
        enabled: bool = True,
        queue_name: str = 'notifications',
        base_url: Optional[str] = None
    ):
        """
        Args:
            registry: Source of each user's delivery endpoints
            redis_url: Redis connection URL for the RQ queue
            use_async_queue: Enqueue on RQ instead of sending inline
            enabled: When False every notify_* call is a logged no-op
            queue_name: RQ queue the worker listens on
            base_url: Base URL for deep links in notification payloads
        """
        self.registry = registry
        self.redis_url = redis_url
        self.enabled = enabled
        self.queue_name = queue_name
        self.builder = NotificationMessageBuilder(base_url)
        self.redis_conn = None
        self.queue = None
        self.async_mode = False

        if not enabled:
            logger.info("Notifications disabled via config")
        elif not use_async_queue:
            logger.info("Async queue disabled via config. Using sync mode.")
        else:
            try:
                self.redis_conn = Redis.from_url(self.redis_url)
                self.redis_conn.ping()
                self.queue = Queue(queue_name, connection=self.redis_conn)
                self.async_mode = True
                logger.info("Notification dispatcher connected to Redis")
            except Exception as e:
                logger.error(f"Redis connection failed: {e}. Falling back to sync mode.")
                self.redis_conn = None
                self.queue = None
                self.async_mode = False

    def notify_match(self, match) -> int:
        """
        Notify both participants of a newly created match.

        Args:
            match: Object exposing id, user_low_id, user_high_id, conversation_id

        Returns:
            Number of notifications sent or queued
        """
        if not self.enabled:
            return 0

        delivered = 0
        try:
            for user_id, other_id in ((match.user_low_id, match.user_high_id),
                                      (match.user_high_id, match.user_low_id)):
                message = self.builder.build_match_message(
                    match_id=match.id,
                    recipient_id=user_id,
                    other_user_id=other_id,
                    conversation_id=match.conversation_id,
                )
                delivered += self._deliver(user_id, message, event_type='new_match')
        except Exception as e:
            logger.error(f"Failed to dispatch match notifications: {e}")
        return delivered

    def notify_message(self, event: MessageEvent) -> int:
        """Notify the recipient of a chat message. Returns notifications sent or queued."""
        if not self.enabled:
            return 0

        try:
            message = self.builder.build_message_notification(
                conversation_id=event.conversation_id,
                sender_id=event.sender_id,
                recipient_id=event.recipient_id,
                preview=event.preview,
            )
            return self._deliver(event.recipient_id, message, event_type='new_message')
        except Exception as e:
            logger.error(f"Failed to dispatch message notification for {event.conversation_id}: {e}")
            return 0

    def _deliver(self, user_id: str, message: NotificationMessage, event_type: str) -> int:
        if self.registry is None:
            logger.warning("No push subscription registry configured; dropping notification")
            return 0

        try:
            endpoints = self.registry.get_endpoints(user_id)
        except Exception as e:
            logger.error(f"Could not load push endpoints for {user_id}: {e}")
            return 0

        if not endpoints:
            logger.info(f"No push endpoints registered for {user_id}; skipping {event_type}")
            return 0

        delivered = 0
        for endpoint in endpoints:
            notification_data = {
                'channel_type': endpoint.channel_type,
                'recipient': endpoint.address,
                'subject': message.subject,
                'body': message.body,
                'metadata': message.data,
                'user_id': user_id,
                'event_type': event_type,
            }
            try:
                if self._dispatch(notification_data):
                    delivered += 1
            except Exception as e:
                logger.error(f"Failed to send {endpoint.channel_type} notification to {user_id}: {e}")
        return delivered

    def _dispatch(self, notification_data: Dict[str, Any]) -> bool:
        if self.async_mode:
            # Retry transient failures with increasing delays
            retry_policy = Retry(max=3, interval=[30, 60, 120])
            job = self.queue.enqueue(
                process_notification_task,
                notification_data,
                job_timeout='5m',
                result_ttl=86400,
                retry=retry_policy
            )
            logger.info(f"Queued notification as job {job.id}")
            return True
        return process_notification_task(notification_data)

    def get_queue_status(self) -> Dict[str, Any]:
        """Get queue status."""
        if not self.async_mode:
            return {'status': 'sync_mode', 'queue_length': 0}

        try:
            return {
                'status': 'active',
                'queue_length': len(self.queue),
                'redis_connected': self.redis_conn.ping()
            }
        except Exception as e:
            return {'status': 'error', 'error': str(e)}


# Worker task - must be at module level for RQ
def process_notification_task(notification_data: Dict[str, Any]) -> bool:
    """
    Send one notification (called by the RQ worker, or inline in sync mode).

    Rate limiting is re-raised so RQ's retry policy can back off; every other
    failure is logged and reported as False.
    """
    notification_id = str(uuid.uuid4())
    channel_type = notification_data['channel_type']

    logger.info(f"Processing notification {notification_id} ({notification_data.get('event_type')}) "
                f"via {channel_type}")

    try:
        channel = NotificationChannelFactory.get_channel(channel_type)
        success = channel.send(
            notification_data['recipient'],
            notification_data['subject'],
            notification_data['body'],
            notification_data.get('metadata', {})
        )
    except RateLimitException as e:
        logger.warning(f"Rate limited by {channel_type} (retry after {e.retry_after}s)")
        raise
    except Exception as e:
        logger.error(f"Failed to process notification {notification_id}: {e}", exc_info=True)
        return False

    if success:
        logger.info(f"Notification {notification_id} sent successfully")
    else:
        logger.error(f"Notification {notification_id} failed to send")
    return success
