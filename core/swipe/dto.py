"""Value objects returned by the swipe pipeline."""
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Dict, Any


class SwipeDirection(str, Enum):
    LIKE = "like"
    SKIP = "skip"


class CreditType(str, Enum):
    FREE = "free"
    BOOST = "boost"
    NONE = "none"


class SwipeStatus(str, Enum):
    RECORDED = "recorded"
    MATCHED = "matched"


MATCH_STATUSES = ('active', 'ended')


@dataclass(frozen=True)
class MatchInfo:
    """Detached snapshot of a MatchRecord, safe to use after its session closes."""
    id: str
    user_low_id: str
    user_high_id: str
    status: str
    conversation_id: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_record(cls, record) -> "MatchInfo":
        return cls(
            id=record.id,
            user_low_id=record.user_low_id,
            user_high_id=record.user_high_id,
            status=record.status,
            conversation_id=record.conversation_id,
            created_at=record.created_at,
        )

    def participants(self) -> Tuple[str, str]:
        return self.user_low_id, self.user_high_id

    def other(self, user_id: str) -> str:
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id


@dataclass
class SwipeResult:
    status: SwipeStatus
    direction: SwipeDirection
    credit_type: CreditType
    match_id: Optional[str] = None
    remaining_balance: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        data['direction'] = self.direction.value
        data['credit_type'] = self.credit_type.value
        return data
