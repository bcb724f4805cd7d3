"""
Auto-Discount Worker - Daily Sweep Timer

This worker uses ONLY:
- basecore (DB, settings, logging, redis)
- autodiscount_core (engine, locks, scheduler)

Features:
- Cron-driven sweep (AUTODISCOUNT_CRON, default daily at midnight)
- Missed runs coalesced, runs never overlap
- Optional sweep on startup (AUTODISCOUNT_RUN_ON_START)
- Graceful shutdown: an in-flight sweep finishes before exit
"""

import logging
import os
import signal
import time

from basecore.logging import setup_logging
from basecore.settings import get_settings
from autodiscount_core.runtime import build_scheduler

setup_logging()
logger = logging.getLogger(__name__)

RUN_ON_START = os.getenv("AUTODISCOUNT_RUN_ON_START", "false").lower() in ("1", "true", "yes")

# Graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    global shutdown_requested
    logger.info(f"Received signal {signum}, requesting shutdown...")
    shutdown_requested = True


def main():
    """Start the timer and idle until a shutdown signal arrives."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    settings = get_settings()
    logger.info(
        f"Starting auto-discount worker (cron='{settings.AUTODISCOUNT_CRON}', "
        f"timezone={settings.AUTODISCOUNT_TIMEZONE}, locks={settings.AUTODISCOUNT_LOCK_BACKEND}, "
        f"catalog={settings.CATALOG_PROVIDER})"
    )

    scheduler = build_scheduler(settings=settings)

    if RUN_ON_START:
        logger.info("Running startup sweep...")
        result = scheduler.run_now()
        logger.info("Startup sweep finished", extra=result.summary())

    scheduler.start()

    try:
        while not shutdown_requested:
            time.sleep(1)
    finally:
        scheduler.stop(wait=True)

    logger.info("Auto-discount worker shutting down gracefully")


if __name__ == "__main__":
    main()
