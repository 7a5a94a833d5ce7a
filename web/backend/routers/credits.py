#!/usr/bin/env python3
"""
Credit endpoints - remaining free swipes and boost credits.
"""

from fastapi import APIRouter, Depends

from core.swipe.pipeline import SwipeService
from ..dependencies import get_swipe_service, get_current_user
from ..models.responses import CreditBalanceResponse

router = APIRouter(prefix="/api/credits", tags=["credits"])


@router.get("", response_model=CreditBalanceResponse)
def get_credit_balance(
    user_id: str = Depends(get_current_user),
    service: SwipeService = Depends(get_swipe_service)
):
    balance = service.get_credit_balance(user_id)
    return CreditBalanceResponse(**balance)
