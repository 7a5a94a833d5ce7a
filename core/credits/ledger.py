"""
Credit Ledger - owns free-swipe and boost-credit balances.

All balance changes go through CreditRepository's conditional updates, so two
debits racing on a balance of 1 produce exactly one success.

Usage:
    ledger = CreditLedger(daily_free_swipes=10)
    result = ledger.debit("user-1")          # free first, then boost
    ledger.reset_daily_free_swipes(date(2026, 3, 1))
    ledger.grant_monthly_boost_credit("2026-03")
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from typing import Optional, Callable

from database.database import db_session_scope
from database.repositories.credit import CreditRepository
from core.errors import InsufficientCredit, translate_store_errors

logger = logging.getLogger(__name__)

CREDIT_TYPES = ('free', 'boost')


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def month_key(moment: datetime) -> str:
    """Period key used for monthly grants, e.g. '2026-03'."""
    return moment.strftime('%Y-%m')


@dataclass
class DebitResult:
    ok: bool
    credit_type: str
    remaining_balance: Optional[int]  # None for unlimited accounts


@dataclass
class CreditBalance:
    free: int
    boost: int
    unlimited: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class CreditLedger:
    """
    Public ledger operations.

    Each public method runs in its own transaction. The swipe pipeline uses
    debit_with() to debit inside its own unit of work instead, so the debit
    commits or rolls back together with the swipe record.
    """

    def __init__(
        self,
        daily_free_swipes: int,
        monthly_boost_grant: int = 1,
        session_factory: Optional[Callable] = None
    ):
        if daily_free_swipes < 0:
            raise ValueError("daily_free_swipes must be non-negative")
        if monthly_boost_grant < 1:
            raise ValueError("monthly_boost_grant must be at least 1")
        self.daily_free_swipes = daily_free_swipes
        self.monthly_boost_grant = monthly_boost_grant
        self.session_factory = session_factory

    # --- Transaction-scoped helpers (caller owns the session) ---

    def ensure_account(self, repo: CreditRepository, user_id: str, today: Optional[date] = None) -> None:
        repo.ensure_account(user_id, initial_free=self.daily_free_swipes, today=today or utc_today())

    def debit_with(
        self,
        repo: CreditRepository,
        user_id: str,
        credit_type: Optional[str] = None,
        today: Optional[date] = None
    ) -> DebitResult:
        """
        Consume one credit using the caller's repository/transaction.

        Without an explicit type, free swipes are consumed first and boost
        credits second.

        Raises:
            InsufficientCredit: no credit of an acceptable type remains
            ValueError: unknown credit type
        """
        if credit_type is not None and credit_type not in CREDIT_TYPES:
            raise ValueError(f"Unknown credit type: {credit_type}")

        self.ensure_account(repo, user_id, today)

        balance = repo.get_balance(user_id)
        if balance is not None and balance.unlimited:
            logger.debug(f"User {user_id} has unlimited swipes; no credit consumed")
            return DebitResult(ok=True, credit_type=credit_type or 'free', remaining_balance=None)

        order = (credit_type,) if credit_type else CREDIT_TYPES
        for candidate in order:
            if repo.try_decrement(user_id, candidate):
                after = repo.get_balance(user_id)
                remaining = after.free if candidate == 'free' else after.boost
                logger.debug(f"Debited one {candidate} credit from {user_id}; {remaining} left")
                return DebitResult(ok=True, credit_type=candidate, remaining_balance=remaining)

        logger.info(f"Debit refused for {user_id}: no {credit_type or 'free or boost'} credit")
        raise InsufficientCredit(user_id, credit_type)

    # --- Standalone operations ---

    def debit(self, user_id: str, credit_type: Optional[str] = None, today: Optional[date] = None) -> DebitResult:
        with translate_store_errors("credit debit"):
            with db_session_scope(self.session_factory) as session:
                return self.debit_with(CreditRepository(session), user_id, credit_type, today)

    def refund(self, user_id: str, credit_type: str) -> None:
        """Return one credit, compensating a debit whose follow-up write failed."""
        if credit_type not in CREDIT_TYPES:
            raise ValueError(f"Unknown credit type: {credit_type}")
        with translate_store_errors("credit refund"):
            with db_session_scope(self.session_factory) as session:
                CreditRepository(session).increment(user_id, credit_type, 1)
        logger.info(f"Refunded one {credit_type} credit to {user_id}")

    def get_balance(self, user_id: str, today: Optional[date] = None) -> CreditBalance:
        with translate_store_errors("balance read"):
            with db_session_scope(self.session_factory) as session:
                repo = CreditRepository(session)
                self.ensure_account(repo, user_id, today)
                row = repo.get_balance(user_id)
                return CreditBalance(free=row.free, boost=row.boost, unlimited=row.unlimited)

    def set_unlimited(self, user_id: str, unlimited: bool, today: Optional[date] = None) -> None:
        """Flag an account as unmetered (active subscription) or metered again."""
        with translate_store_errors("unlimited flag update"):
            with db_session_scope(self.session_factory) as session:
                repo = CreditRepository(session)
                self.ensure_account(repo, user_id, today)
                repo.set_unlimited(user_id, unlimited)
        logger.info(f"Set unlimited={unlimited} for {user_id}")

    def reset_daily_free_swipes(self, as_of_date: date) -> int:
        """Restore the daily free-swipe allotment. Re-running for the same date is a no-op."""
        with translate_store_errors("daily reset"):
            with db_session_scope(self.session_factory) as session:
                updated = CreditRepository(session).reset_daily(as_of_date, self.daily_free_swipes)
        logger.info(f"Daily free swipe reset for {as_of_date.isoformat()} updated {updated} accounts")
        return updated

    def grant_monthly_boost_credit(self, as_of_month: str) -> int:
        """Grant the monthly boost credit. Re-running for the same month is a no-op."""
        with translate_store_errors("monthly grant"):
            with db_session_scope(self.session_factory) as session:
                updated = CreditRepository(session).grant_monthly(as_of_month, self.monthly_boost_grant)
        logger.info(f"Monthly boost grant for {as_of_month} updated {updated} accounts")
        return updated
