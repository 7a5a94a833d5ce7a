import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, or_

from database.models import MatchRecord, canonical_pair
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class MatchRepository(BaseRepository):
    def get_by_id(self, match_id: str) -> Optional[MatchRecord]:
        stmt = select(MatchRecord).where(MatchRecord.id == match_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_pair(self, user_a: str, user_b: str) -> Optional[MatchRecord]:
        low, high = canonical_pair(user_a, user_b)
        stmt = select(MatchRecord).where(
            MatchRecord.user_low_id == low,
            MatchRecord.user_high_id == high
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def upsert_match(self, user_a: str, user_b: str) -> Tuple[MatchRecord, bool]:
        """
        Create the match for a pair if it does not exist yet.

        Returns (match, created). Concurrent callers for the same pair all get
        the same row back; exactly one of them sees created=True.
        """
        low, high = canonical_pair(user_a, user_b)
        stmt = self._insert(MatchRecord).values(
            user_low_id=low,
            user_high_id=high,
            status='active',
            created_at=datetime.now(timezone.utc),
        ).on_conflict_do_nothing(index_elements=['user_low_id', 'user_high_id'])
        created = self.db.execute(stmt).rowcount == 1

        match = self.get_for_pair(low, high)
        if created:
            logger.info(f"Created match {match.id} for users {low} and {high}")
        return match, created

    def get_matches_for_user(self, user_id: str, status: str = 'active') -> List[MatchRecord]:
        stmt = select(MatchRecord).where(
            or_(MatchRecord.user_low_id == user_id, MatchRecord.user_high_id == user_id),
            MatchRecord.status == status
        ).order_by(MatchRecord.created_at.desc())
        return self.db.execute(stmt).scalars().all()

    def set_conversation(self, match_id: str, conversation_id: str) -> None:
        match = self.get_by_id(match_id)
        if match is not None and match.conversation_id is None:
            match.conversation_id = conversation_id

    def end_match(self, match: MatchRecord) -> bool:
        """Move a match to 'ended'. Returns False if it already was."""
        if match.status == 'ended':
            return False
        match.status = 'ended'
        match.ended_at = datetime.now(timezone.utc)
        logger.info(f"Ended match {match.id}")
        return True
