"""Scheduler Module - periodic credit replenishment."""
from scheduler.jobs import run_daily_reset, run_monthly_grant
from scheduler.runner import CreditScheduler, next_daily_fire, next_monthly_fire

__all__ = [
    'run_daily_reset',
    'run_monthly_grant',
    'CreditScheduler',
    'next_daily_fire',
    'next_monthly_fire',
]
