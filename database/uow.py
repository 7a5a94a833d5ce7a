import contextlib
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from database.database import SessionLocal
from database.repositories import CreditRepository, SwipeRepository, MatchRepository

logger = logging.getLogger(__name__)


@dataclass
class SwipeUnitOfWork:
    """Repositories sharing one Session, and therefore one transaction."""
    session: Session
    credits: CreditRepository
    swipes: SwipeRepository
    matches: MatchRepository


@contextlib.contextmanager
def swipe_uow(session_factory=None):
    """Per-unit-of-work transaction scope.

    Yields a SwipeUnitOfWork bound to a fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with swipe_uow() as uow:
            uow.credits.try_decrement(user_id, 'free')
            uow.swipes.insert_swipe(user_id, target_id, 'like', 'free')
        # commit happens automatically on successful exit
    """
    session = (session_factory or SessionLocal)()
    try:
        yield SwipeUnitOfWork(
            session=session,
            credits=CreditRepository(session),
            swipes=SwipeRepository(session),
            matches=MatchRepository(session),
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
