"""
Typed failures surfaced by the credit ledger and the swipe pipeline.

Callers distinguish expected terminal states (InsufficientCredit,
DuplicateSwipe) from TransientStoreError, which is safe to retry because the
duplicate-swipe guard makes a repeated swipe idempotent.
"""

import contextlib
import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)


class SwipeMatchError(Exception):
    """Base class for all swipe-matching errors."""
    retryable = False


class InsufficientCredit(SwipeMatchError):
    """The account has no credit of the requested (or any) type."""

    def __init__(self, user_id: str, credit_type: Optional[str] = None):
        self.user_id = user_id
        self.credit_type = credit_type
        wanted = f"{credit_type} credit" if credit_type else "credit"
        super().__init__(f"User {user_id} has no {wanted} remaining")


class DuplicateSwipe(SwipeMatchError):
    """A swipe already exists for (actor, target)."""

    def __init__(self, actor_id: str, target_id: str):
        self.actor_id = actor_id
        self.target_id = target_id
        super().__init__(f"User {actor_id} already swiped {target_id}")


class InvalidTarget(SwipeMatchError):
    """The swipe target does not exist or cannot be swiped by the actor."""

    def __init__(self, target_id: str, reason: str = "unknown target"):
        self.target_id = target_id
        self.reason = reason
        super().__init__(f"Invalid swipe target {target_id!r}: {reason}")


class NotFound(SwipeMatchError):
    """A referenced record does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class Unauthorized(SwipeMatchError):
    """The actor does not own the record it tried to act on."""

    def __init__(self, actor_id: str, detail: str):
        self.actor_id = actor_id
        super().__init__(f"User {actor_id} is not allowed to {detail}")


class TransientStoreError(SwipeMatchError):
    """The durable store (or a collaborator) is unavailable. Nothing was written."""
    retryable = True


@contextlib.contextmanager
def translate_store_errors(operation: str):
    """Re-raise driver-level failures as TransientStoreError."""
    try:
        yield
    except (OperationalError, DBAPIError) as e:
        logger.error(f"Store failure during {operation}: {e}")
        raise TransientStoreError(f"Store unavailable during {operation}") from e
