from .base import Base
from .credit import CreditAccount
from .swipe import SwipeRecord
from .match import MatchRecord, canonical_pair

__all__ = [
    'Base',
    'CreditAccount',
    'SwipeRecord',
    'MatchRecord',
    'canonical_pair',
]
