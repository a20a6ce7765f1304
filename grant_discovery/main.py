"""Discovery pipeline entry point with APScheduler.

- Discovery runs every POLLING_INTERVAL_MINUTES
- Pending outcome events are folded into module weights every
  OUTCOME_INTERVAL_MINUTES
- ``--once`` runs a single discovery cycle and exits
"""

import argparse
import asyncio
import logging
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import Config, load_config
from .service import DiscoveryService, build_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


async def run_discovery_cycle(service: DiscoveryService) -> None:
    """One discovery run; failures are logged so the scheduler keeps going."""
    try:
        run = await service.run_discovery()
    except Exception as e:
        logger.error("Discovery cycle failed: %s", e, exc_info=True)
        return
    if run.status == "failed":
        logger.error("Discovery run %s failed: %s", run.run_id, run.error)
    else:
        logger.info(
            "Discovery run %s completed in %.2fs (%d created, %d updated, %d source failure(s))",
            run.run_id,
            run.duration_seconds,
            run.opportunities_created,
            run.opportunities_updated,
            len(run.sources_failed),
        )
    for result in run.source_results:
        logger.info(
            "  %s: %s (%d records)",
            result.source_id,
            "ok" if result.ok else result.reason,
            result.record_count,
        )


async def process_outcomes(service: DiscoveryService) -> None:
    """Apply pending outcome events to module weights."""
    try:
        applied = service.process_pending_outcomes()
    except Exception as e:
        logger.error("Outcome processing failed: %s", e, exc_info=True)
        return
    logger.info("Processed %d pending outcome event(s)", applied)


def build_scheduler(service: DiscoveryService, config: Config) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_discovery_cycle,
        trigger=IntervalTrigger(minutes=config.polling_interval_minutes),
        args=[service],
        id="discovery_run",
        name="Poll all opportunity sources",
        replace_existing=True,
        max_instances=1,  # Prevent overlapping runs
    )
    scheduler.add_job(
        process_outcomes,
        trigger=IntervalTrigger(minutes=config.outcome_interval_minutes),
        args=[service],
        id="process_outcomes",
        name="Apply outcome events to module weights",
        replace_existing=True,
        max_instances=1,
    )
    return scheduler


async def start_scheduler(config: Config) -> None:
    """Start both jobs, run a first discovery cycle immediately, then wait."""
    service = build_service(config)
    logger.info("Initializing Grant Discovery Pipeline")
    logger.info(
        "Polling interval: %d minutes, outcome interval: %d minutes",
        config.polling_interval_minutes,
        config.outcome_interval_minutes,
    )

    scheduler = build_scheduler(service, config)
    scheduler.start()
    logger.info("Scheduler started")

    try:
        await run_discovery_cycle(service)
        await asyncio.Event().wait()
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)


async def run_once(config: Config) -> None:
    """Run one discovery cycle (manual execution)."""
    await run_discovery_cycle(build_service(config))


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Grant discovery pipeline")
    parser.add_argument("--once", action="store_true", help="run a single discovery cycle and exit")
    args = parser.parse_args(argv)

    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    try:
        if args.once:
            asyncio.run(run_once(config))
        else:
            asyncio.run(start_scheduler(config))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopped")


if __name__ == "__main__":
    main()
