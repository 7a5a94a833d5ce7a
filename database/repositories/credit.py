import logging
from datetime import date, datetime, timezone
from typing import Optional, NamedTuple

from sqlalchemy import select, update, case, or_

from database.models import CreditAccount
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

BALANCE_COLUMNS = {
    'free': CreditAccount.free_swipe_balance,
    'boost': CreditAccount.boost_balance,
}


class BalanceRow(NamedTuple):
    free: int
    boost: int
    unlimited: bool


class CreditRepository(BaseRepository):
    """
    Persistence for CreditAccount rows.

    Every balance mutation is a single conditional UPDATE so the database,
    not the application, decides whether a concurrent debit wins.
    """

    def ensure_account(self, user_id: str, initial_free: int, today: date) -> bool:
        """Create the account if absent. Returns True if this call created it."""
        stmt = self._insert(CreditAccount).values(
            user_id=user_id,
            free_swipe_balance=initial_free,
            boost_balance=0,
            unlimited=False,
            last_daily_reset=today,
            last_monthly_grant=None,
            created_at=datetime.now(timezone.utc),
            updated_at=datetime.now(timezone.utc),
        ).on_conflict_do_nothing(index_elements=['user_id'])
        created = self.db.execute(stmt).rowcount == 1
        if created:
            logger.info(f"Created credit account for user {user_id}")
        return created

    def get_balance(self, user_id: str) -> Optional[BalanceRow]:
        # Column select so values are read fresh rather than from the identity map
        stmt = select(
            CreditAccount.free_swipe_balance,
            CreditAccount.boost_balance,
            CreditAccount.unlimited,
        ).where(CreditAccount.user_id == user_id)
        row = self.db.execute(stmt).first()
        if row is None:
            return None
        return BalanceRow(free=row[0], boost=row[1], unlimited=bool(row[2]))

    def try_decrement(self, user_id: str, credit_type: str) -> bool:
        """Decrement one unit if the balance is positive. Returns True on success."""
        column = BALANCE_COLUMNS[credit_type]
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id, column > 0)
            .values({column: column - 1, CreditAccount.updated_at: datetime.now(timezone.utc)})
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def increment(self, user_id: str, credit_type: str, amount: int = 1) -> bool:
        column = BALANCE_COLUMNS[credit_type]
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .values({column: column + amount, CreditAccount.updated_at: datetime.now(timezone.utc)})
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def set_unlimited(self, user_id: str, unlimited: bool) -> bool:
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.user_id == user_id)
            .values(unlimited=unlimited, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def reset_daily(self, as_of: date, allotment: int) -> int:
        """
        Refill free swipes for every metered account not yet reset for `as_of`.

        Balances above the allotment are left alone.
        """
        stmt = (
            update(CreditAccount)
            .where(
                CreditAccount.unlimited.is_(False),
                or_(
                    CreditAccount.last_daily_reset.is_(None),
                    CreditAccount.last_daily_reset < as_of,
                ),
            )
            .values(
                free_swipe_balance=case(
                    (CreditAccount.free_swipe_balance < allotment, allotment),
                    else_=CreditAccount.free_swipe_balance,
                ),
                last_daily_reset=as_of,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def grant_monthly(self, as_of_month: str, amount: int) -> int:
        """Add `amount` boost credits to every metered account not yet granted for the month."""
        stmt = (
            update(CreditAccount)
            .where(
                CreditAccount.unlimited.is_(False),
                or_(
                    CreditAccount.last_monthly_grant.is_(None),
                    CreditAccount.last_monthly_grant < as_of_month,
                ),
            )
            .values(
                boost_balance=CreditAccount.boost_balance + amount,
                last_monthly_grant=as_of_month,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount
