import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Text, TIMESTAMP, UniqueConstraint, CheckConstraint, Index

from .base import Base


class SwipeRecord(Base):
    """
    One user's swipe on one target. Append-only audit trail.

    The (actor_id, target_id) unique constraint is what linearizes
    concurrent swipes on the same pair: exactly one insert wins.
    """
    __tablename__ = 'swipe_record'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(Text, nullable=False)
    target_id = Column(Text, nullable=False)

    direction = Column(Text, nullable=False)  # like | skip
    credit_type = Column(Text, nullable=False)  # free | boost | none

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint('actor_id', 'target_id', name='uq_swipe_actor_target'),
        CheckConstraint('actor_id <> target_id', name='ck_swipe_not_self'),
        CheckConstraint("direction IN ('like', 'skip')", name='ck_swipe_direction'),
        CheckConstraint("credit_type IN ('free', 'boost', 'none')", name='ck_swipe_credit_type'),
        # Reciprocal lookups go target -> actor
        Index('idx_swipe_target_actor', 'target_id', 'actor_id'),
        Index('idx_swipe_created', 'created_at'),
    )
