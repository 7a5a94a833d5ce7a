"""Swipe Module - swipe consumption and match creation."""
from core.swipe.dto import (
    SwipeDirection,
    CreditType,
    SwipeStatus,
    SwipeResult,
    MatchInfo,
    MATCH_STATUSES,
)
from core.swipe.pipeline import SwipeService

__all__ = [
    'SwipeDirection',
    'CreditType',
    'SwipeStatus',
    'SwipeResult',
    'MatchInfo',
    'MATCH_STATUSES',
    'SwipeService',
]
