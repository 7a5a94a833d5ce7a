#!/usr/bin/env python3
"""
RQ worker that delivers queued match and message notifications.

Jobs are enqueued by NotificationDispatcher and executed by
notification.service.process_notification_task. The queue name and Redis URL
come from the notifications section of config.yaml (REDIS_URL overrides).

Usage:
    python -m notification.worker
    python -m notification.worker --burst --config config.yaml
"""

import argparse
import logging
from typing import List, Optional, Tuple

from redis import Redis
from rq import Worker

from core.config_loader import load_config

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = 'redis://localhost:6379/0'


def resolve_worker_settings(config_path: str) -> Tuple[str, List[str]]:
    """Redis URL and queue names for the worker. A missing config falls back to defaults."""
    try:
        notifications = load_config(config_path).notifications
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load {config_path} ({e}); using default notification queue")
        return DEFAULT_REDIS_URL, ['notifications']
    return notifications.redis_url or DEFAULT_REDIS_URL, [notifications.queue_name]


def start_worker(redis_url: str, queues: List[str], burst: bool = False) -> int:
    """Run the worker until stopped (or until the queues drain in burst mode)."""
    logger.info(f"Starting notification worker on queues: {', '.join(queues)} (burst={burst})")

    try:
        redis_conn = Redis.from_url(redis_url)
        redis_conn.ping()
    except Exception as e:
        logger.error(f"Cannot reach Redis for notification worker: {e}")
        return 1

    worker = Worker(queues, connection=redis_conn)
    try:
        worker.work(burst=burst)
    except KeyboardInterrupt:
        logger.info("Notification worker stopped")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='SwipeMatch notification worker')
    parser.add_argument('--config', default='config.yaml', help='Path to config.yaml')
    parser.add_argument('--burst', action='store_true', help='Drain the queues and exit')
    parser.add_argument('--queues', nargs='+', help='Override the configured queue name')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    redis_url, queues = resolve_worker_settings(args.config)
    return start_worker(redis_url, args.queues or queues, burst=args.burst)


if __name__ == '__main__':
    raise SystemExit(main())
