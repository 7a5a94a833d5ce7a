"""
Credit Scheduler - fires the daily reset and the monthly grant on time.

The loop sleeps until the earliest fire time (bounded by the poll interval),
runs whatever is due and computes the next fire time. A failed run stays due
and is retried on the next tick.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from core.config_loader import ScheduleConfig
from core.credits.ledger import CreditLedger
from scheduler.jobs import run_daily_reset, run_monthly_grant

logger = logging.getLogger(__name__)

# Longest uninterrupted sleep, so shutdown signals are noticed quickly
SLEEP_CHUNK_SECONDS = 5


def _parse_hhmm(value: str):
    hours, minutes = value.split(':')
    return int(hours), int(minutes)


def next_daily_fire(after: datetime, at: str) -> datetime:
    """First instant strictly after `after` at HH:MM UTC."""
    hour, minute = _parse_hhmm(at)
    candidate = after.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= after:
        candidate += timedelta(days=1)
    return candidate


def next_monthly_fire(after: datetime, at: str) -> datetime:
    """First instant strictly after `after` on day 1 of a month at HH:MM UTC."""
    hour, minute = _parse_hhmm(at)
    candidate = after.replace(day=1, hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= after:
        if candidate.month == 12:
            candidate = candidate.replace(year=candidate.year + 1, month=1)
        else:
            candidate = candidate.replace(month=candidate.month + 1)
    return candidate


class CreditScheduler:
    """Runs the credit jobs in-process at their configured UTC times."""

    def __init__(
        self,
        ledger: CreditLedger,
        schedule: Optional[ScheduleConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.ledger = ledger
        self.schedule = schedule or ScheduleConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep

        now = self._clock()
        self._next_fire: Dict[str, datetime] = {
            'daily_reset': next_daily_fire(now, self.schedule.daily_reset_time),
            'monthly_grant': next_monthly_fire(now, self.schedule.monthly_grant_time),
        }
        logger.info(f"Credit scheduler initialized: daily reset at {self._next_fire['daily_reset'].isoformat()}, "
                    f"monthly grant at {self._next_fire['monthly_grant'].isoformat()}")

    @property
    def next_fire_times(self) -> Dict[str, datetime]:
        return dict(self._next_fire)

    def _run_job(self, name: str, now: datetime) -> Optional[int]:
        if name == 'daily_reset':
            return run_daily_reset(self.ledger, now=now)
        return run_monthly_grant(self.ledger, now=now)

    def _advance(self, name: str, now: datetime) -> None:
        if name == 'daily_reset':
            self._next_fire[name] = next_daily_fire(now, self.schedule.daily_reset_time)
        else:
            self._next_fire[name] = next_monthly_fire(now, self.schedule.monthly_grant_time)

    def run_pending(self, now: Optional[datetime] = None) -> List[str]:
        """Fire every job that is due. Returns the names of jobs that succeeded."""
        now = now or self._clock()
        completed = []
        for name, fire_at in sorted(self._next_fire.items(), key=lambda item: item[1]):
            if fire_at > now:
                continue
            # A late run applies the current period; missed periods do not accumulate
            result = self._run_job(name, now)
            if result is None:
                logger.warning(f"{name} failed; retrying on next tick")
                continue
            logger.info(f"{name} completed: {result} accounts updated")
            completed.append(name)
            self._advance(name, now)
        return completed

    def seconds_until_next(self, now: Optional[datetime] = None) -> float:
        now = now or self._clock()
        earliest = min(self._next_fire.values())
        wait = (earliest - now).total_seconds()
        return max(0.0, min(wait, float(self.schedule.poll_interval_seconds)))

    def run_forever(self, should_continue: Callable[[], bool]) -> None:
        """Loop until should_continue() turns False."""
        logger.info("Credit scheduler started")
        while should_continue():
            try:
                self.run_pending()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)

            wait = self.seconds_until_next()
            if wait == 0:
                # A failed job is still due; back off for one poll interval
                wait = float(self.schedule.poll_interval_seconds)
            while wait > 0 and should_continue():
                chunk = min(wait, SLEEP_CHUNK_SECONDS)
                self._sleep(chunk)
                wait -= chunk
        logger.info("Credit scheduler stopped")
