from database.repositories.base import BaseRepository
from database.repositories.credit import CreditRepository
from database.repositories.swipe import SwipeRepository
from database.repositories.match import MatchRepository

__all__ = [
    'BaseRepository',
    'CreditRepository',
    'SwipeRepository',
    'MatchRepository',
]
