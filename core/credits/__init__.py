"""Credits Module - swipe credit accounting."""
from core.credits.ledger import (
    CreditLedger,
    CreditBalance,
    DebitResult,
    CREDIT_TYPES,
    month_key,
    utc_today,
)

__all__ = [
    'CreditLedger',
    'CreditBalance',
    'DebitResult',
    'CREDIT_TYPES',
    'month_key',
    'utc_today',
]
