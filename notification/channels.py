#!/usr/bin/env python3
"""
Notification Channels

Delivery implementations behind a common interface. The dispatcher picks one
per registered endpoint through NotificationChannelFactory.

Usage:
    from notification.channels import NotificationChannelFactory

    channel = NotificationChannelFactory.get_channel('push')
    channel.send(endpoint_url, subject, body, metadata)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import logging
import os
import urllib.parse

import requests

logger = logging.getLogger(__name__)

PUSH_TIMEOUT_SECONDS = 10


class RateLimitException(Exception):
    """Raised by a channel when the remote side answers 429."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


def _validate_endpoint_url(url: str) -> bool:
    """Only absolute http(s) URLs are deliverable."""
    try:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in ('http', 'https'):
            logger.error(f"Invalid push endpoint scheme: {parsed.scheme!r}")
            return False
        if not parsed.hostname:
            logger.error("Push endpoint missing hostname")
            return False
        return True
    except Exception as e:
        logger.error(f"Push endpoint validation error: {e}")
        return False


def _safe_url(url: str) -> str:
    parsed = urllib.parse.urlparse(url)
    return f"{parsed.scheme}://{parsed.hostname}{parsed.path}"


def _is_dry_run_mode() -> bool:
    """Check if notification channels should run in dry-run (log-only) mode."""
    return os.environ.get('NOTIFICATION_DRY_RUN', '').lower() in ('true', '1', 'yes')


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


class NotificationChannel(ABC):
    """
    Abstract base class for all notification channels.

    Any channel can be used interchangeably by the dispatcher.
    """

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return the channel type identifier."""
        pass

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        """
        Send a notification through this channel.

        Args:
            recipient: Target address (format depends on channel)
            subject: Notification title
            body: Notification body
            metadata: Structured payload (event type, match id, ...)

        Returns:
            True if sent successfully, False otherwise

        Raises:
            RateLimitException: the remote side asked us to back off
        """
        pass

    def validate_config(self) -> bool:
        return True


class PushChannel(NotificationChannel):
    """Web-push style delivery: POST a JSON payload to the subscriber's endpoint."""

    @property
    def channel_type(self) -> str:
        return 'push'

    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        if not _validate_endpoint_url(recipient):
            return False

        payload = {
            'title': subject,
            'body': body,
            'data': metadata,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }

        if _is_dry_run_mode():
            logger.info(f"[DRY RUN] Push to {_safe_url(recipient)}: {subject}")
            return True

        try:
            response = requests.post(
                recipient,
                json=payload,
                headers={
                    'Content-Type': 'application/json',
                    'User-Agent': 'SwipeMatch-Notification-Service/1.0'
                },
                timeout=PUSH_TIMEOUT_SECONDS
            )
        except requests.RequestException as e:
            logger.error(f"Failed to send push notification: {e}")
            return False

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get('Retry-After'))
            raise RateLimitException(f"Push endpoint rate limited: {_safe_url(recipient)}", retry_after)

        if response.status_code >= 400:
            logger.error(f"Push endpoint error: {response.status_code} from {_safe_url(recipient)}")
            return False

        logger.info(f"Push sent to {_safe_url(recipient)}")
        return True


class InAppChannel(NotificationChannel):
    """In-app notification channel. The client polls; we only log the event."""

    @property
    def channel_type(self) -> str:
        return 'in_app'

    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        logger.info(f"[IN_APP] User: {recipient}, Title: {subject}")
        return True


class NotificationChannelFactory:
    """
    Factory for notification channels.

    New channels are added with register_channel() without touching the
    dispatcher.
    """

    _channels: Dict[str, type] = {
        'push': PushChannel,
        'in_app': InAppChannel,
    }

    @classmethod
    def get_channel(cls, channel_type: str) -> NotificationChannel:
        """
        Get a notification channel instance by type.

        Raises:
            ValueError: If channel type is not registered
        """
        channel_class = cls._channels.get(channel_type.lower())
        if not channel_class:
            raise ValueError(f"Unknown channel type: {channel_type}. "
                             f"Available: {', '.join(cls._channels.keys())}")
        return channel_class()

    @classmethod
    def register_channel(cls, channel_type: str, channel_class: type):
        """Register a new notification channel."""
        if not issubclass(channel_class, NotificationChannel):
            raise ValueError("Channel class must extend NotificationChannel")

        cls._channels[channel_type.lower()] = channel_class
        logger.info(f"Registered new channel type: {channel_type}")

    @classmethod
    def list_channels(cls) -> list:
        """List all available channel types."""
        return list(cls._channels.keys())
