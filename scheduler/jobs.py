"""
Scheduled credit jobs.

Both jobs are idempotent per period, so a run that fires twice, or a missed
run that is triggered late, leaves balances correct.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from core.config_loader import load_config
from core.credits.ledger import CreditLedger, month_key
from database.database import create_db_engine, create_session_factory

logger = logging.getLogger(__name__)


def build_ledger(config_path: str = "config.yaml") -> CreditLedger:
    config = load_config(config_path)
    return CreditLedger(
        daily_free_swipes=config.credits.daily_free_swipes,
        monthly_boost_grant=config.credits.monthly_boost_grant,
        session_factory=create_session_factory(create_db_engine(config.database.url)),
    )


def run_daily_reset(ledger: Optional[CreditLedger] = None, now: Optional[datetime] = None) -> Optional[int]:
    """
    Restore every metered account's free swipes for now's UTC date.

    Returns:
        Number of accounts updated, or None if the run failed
    """
    now = now or datetime.now(timezone.utc)
    try:
        ledger = ledger or build_ledger()
        as_of = now.astimezone(timezone.utc).date() if now.tzinfo else now.date()
        logger.info(f"Running daily free swipe reset for {as_of.isoformat()}")
        return ledger.reset_daily_free_swipes(as_of)
    except Exception as e:
        logger.error(f"Daily free swipe reset failed: {e}", exc_info=True)
        return None


def run_monthly_grant(ledger: Optional[CreditLedger] = None, now: Optional[datetime] = None) -> Optional[int]:
    """
    Grant the monthly boost credit for now's UTC month.

    Returns:
        Number of accounts updated, or None if the run failed
    """
    now = now or datetime.now(timezone.utc)
    try:
        ledger = ledger or build_ledger()
        period = month_key(now.astimezone(timezone.utc) if now.tzinfo else now)
        logger.info(f"Running monthly boost grant for {period}")
        return ledger.grant_monthly_boost_credit(period)
    except Exception as e:
        logger.error(f"Monthly boost grant failed: {e}", exc_info=True)
        return None
