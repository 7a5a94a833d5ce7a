import logging
import signal
import argparse

from core.config_loader import load_config
from core.credits.ledger import CreditLedger
from database.database import create_db_engine, create_session_factory
from database.init_db import init_db
from scheduler.jobs import run_daily_reset, run_monthly_grant
from scheduler.runner import CreditScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global flag for graceful shutdown
running = True

def signal_handler(sig, frame):
    global running
    logger.info("Shutdown signal received")
    running = False


def main():
    parser = argparse.ArgumentParser(description="SwipeMatch credit scheduler")
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to config.yaml')
    parser.add_argument('--run-once', type=str, choices=['daily', 'monthly'],
                        help='Fire a single job now and exit (for external cron triggers)')
    args = parser.parse_args()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    config = load_config(args.config)

    engine = create_db_engine(config.database.url)

    # Initialize DB (with retry logic)
    init_db(bind=engine)

    ledger = CreditLedger(
        daily_free_swipes=config.credits.daily_free_swipes,
        monthly_boost_grant=config.credits.monthly_boost_grant,
        session_factory=create_session_factory(engine),
    )

    if args.run_once == 'daily':
        return 0 if run_daily_reset(ledger) is not None else 1
    if args.run_once == 'monthly':
        return 0 if run_monthly_grant(ledger) is not None else 1

    logger.info(f"Scheduler starting: daily reset at {config.schedule.daily_reset_time} UTC, "
                f"monthly grant on day 1 at {config.schedule.monthly_grant_time} UTC")
    scheduler = CreditScheduler(ledger, config.schedule)
    scheduler.run_forever(lambda: running)
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
