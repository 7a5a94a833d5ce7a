import logging
from datetime import datetime, timezone
from typing import Optional, Set

from sqlalchemy import select

from database.models import SwipeRecord
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class SwipeRepository(BaseRepository):
    def get_swipe(self, actor_id: str, target_id: str) -> Optional[SwipeRecord]:
        stmt = select(SwipeRecord).where(
            SwipeRecord.actor_id == actor_id,
            SwipeRecord.target_id == target_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def insert_swipe(
        self,
        actor_id: str,
        target_id: str,
        direction: str,
        credit_type: str
    ) -> bool:
        """
        Insert a swipe unless one already exists for the pair.

        Returns False when another writer already owns (actor_id, target_id).
        """
        stmt = self._insert(SwipeRecord).values(
            actor_id=actor_id,
            target_id=target_id,
            direction=direction,
            credit_type=credit_type,
            created_at=datetime.now(timezone.utc),
        ).on_conflict_do_nothing(index_elements=['actor_id', 'target_id'])
        return self.db.execute(stmt).rowcount == 1

    def has_like(self, actor_id: str, target_id: str) -> bool:
        stmt = select(SwipeRecord.id).where(
            SwipeRecord.actor_id == actor_id,
            SwipeRecord.target_id == target_id,
            SwipeRecord.direction == 'like'
        )
        return self.db.execute(stmt).first() is not None

    def get_swiped_target_ids(self, actor_id: str) -> Set[str]:
        stmt = select(SwipeRecord.target_id).where(SwipeRecord.actor_id == actor_id)
        return set(self.db.execute(stmt).scalars().all())
