from datetime import datetime, timezone

from sqlalchemy import Column, Text, Integer, Boolean, Date, TIMESTAMP, CheckConstraint, Index

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreditAccount(Base):
    """
    Per-user swipe credit balances.

    Two pools are tracked:
    - free_swipe_balance: replenished by the daily reset job
    - boost_balance: incremented by the monthly grant job

    The period stamps make both jobs idempotent: an account is only touched
    when its stamp precedes the period being applied.
    """
    __tablename__ = 'credit_account'

    user_id = Column(Text, primary_key=True)

    free_swipe_balance = Column(Integer, nullable=False, default=0)
    boost_balance = Column(Integer, nullable=False, default=0)

    # Subscribers swipe without consuming credits
    unlimited = Column(Boolean, nullable=False, default=False)

    last_daily_reset = Column(Date, nullable=True)
    last_monthly_grant = Column(Text, nullable=True)  # "YYYY-MM"

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint('free_swipe_balance >= 0', name='ck_credit_free_non_negative'),
        CheckConstraint('boost_balance >= 0', name='ck_credit_boost_non_negative'),
        Index('idx_credit_last_daily_reset', 'last_daily_reset'),
        Index('idx_credit_last_monthly_grant', 'last_monthly_grant'),
    )
