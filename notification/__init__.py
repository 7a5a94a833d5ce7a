"""
Notification Module

Best-effort match and message notifications over pluggable channels,
optionally processed asynchronously through RQ.

Usage:
    from notification import NotificationDispatcher, NotificationChannelFactory

    dispatcher = NotificationDispatcher(registry)
    dispatcher.notify_match(match)

    channel = NotificationChannelFactory.get_channel('push')
    channel.send('https://push.example.com/sub/123', 'Subject', 'Body', {})
"""

from notification.channels import (
    NotificationChannel,
    PushChannel,
    InAppChannel,
    NotificationChannelFactory,
    RateLimitException,
)

from notification.message_builder import (
    NotificationMessage,
    NotificationMessageBuilder,
)

from notification.service import (
    NotificationDispatcher,
    MessageEvent,
    process_notification_task,
)

__all__ = [
    # Channels
    'NotificationChannel',
    'PushChannel',
    'InAppChannel',
    'NotificationChannelFactory',
    'RateLimitException',
    # Messages
    'NotificationMessage',
    'NotificationMessageBuilder',
    # Dispatcher
    'NotificationDispatcher',
    'MessageEvent',
    'process_notification_task',
]
