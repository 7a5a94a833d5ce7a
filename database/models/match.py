import uuid
from datetime import datetime, timezone
from typing import Tuple

from sqlalchemy import Column, Text, TIMESTAMP, UniqueConstraint, CheckConstraint, Index

from .base import Base


def canonical_pair(user_a: str, user_b: str) -> Tuple[str, str]:
    """Order a user pair so (a, b) and (b, a) share one identity."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class MatchRecord(Base):
    """
    A mutual like between two users.

    Keyed by the canonical (low, high) pair so concurrent creations from
    both sides collapse into a single row. Only the lifecycle status may
    change after creation.
    """
    __tablename__ = 'match_record'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_low_id = Column(Text, nullable=False)
    user_high_id = Column(Text, nullable=False)

    status = Column(Text, nullable=False, default='active')  # active | ended
    conversation_id = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    ended_at = Column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('user_low_id', 'user_high_id', name='uq_match_pair'),
        CheckConstraint('user_low_id < user_high_id', name='ck_match_pair_ordered'),
        CheckConstraint("status IN ('active', 'ended')", name='ck_match_status'),
        Index('idx_match_high', 'user_high_id'),
        Index('idx_match_status', 'status'),
    )

    def participants(self) -> Tuple[str, str]:
        return (self.user_low_id, self.user_high_id)
