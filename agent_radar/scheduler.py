"""
Scheduler module for AgentRadar.

Uses APScheduler to run the estate sale cycle on a schedule:
- Every N hours (PIPELINE_INTERVAL_HOURS, default 4): run the pipeline for
  the configured regions, one region at a time

With SCHEDULER_JOBSTORE_URL set, the job is kept in a SQLAlchemy job store
so its next run time survives restarts.

Can also be run manually via command line.
"""

import logging
from typing import Optional
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.triggers.interval import IntervalTrigger

from .config import PipelineConfig, get_pipeline_config
from .pipeline import CycleResult, build_pipeline

logger = logging.getLogger(__name__)

CYCLE_JOB_ID = "estate_sale_cycle"


def run_estate_sale_cycle_job() -> Optional[CycleResult]:
    """
    Run one estate sale cycle.

    Module-level so a persistent job store can reference it by name; the
    pipeline is built fresh from environment configuration on each run.
    """
    logger.info("Starting scheduled estate sale cycle...")
    try:
        pipeline = build_pipeline()
        cycle = pipeline.run_cycle()
    except Exception as e:
        logger.error(f"Estate sale cycle failed: {e}")
        return None

    logger.info(
        f"Cycle finished: {cycle.total_stored} alerts stored, "
        f"{cycle.high_value_opportunities} high-value"
    )
    return cycle


def create_scheduler(config: Optional[PipelineConfig] = None) -> BlockingScheduler:
    """
    Create and configure the APScheduler.

    Jobs:
    1. estate_sale_cycle: every interval_hours - collect, score and alert

    Returns:
        Configured BlockingScheduler
    """
    config = config or get_pipeline_config()

    jobstores = {}
    if config.jobstore_url:
        jobstores["default"] = SQLAlchemyJobStore(url=config.jobstore_url)

    scheduler = BlockingScheduler(jobstores=jobstores, timezone=config.timezone)

    scheduler.add_job(
        run_estate_sale_cycle_job,
        trigger=IntervalTrigger(hours=config.interval_hours, timezone=config.timezone),
        id=CYCLE_JOB_ID,
        name="Collect estate records and send alerts",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info(
        f"Scheduler configured: cycle every {config.interval_hours}h "
        f"for {', '.join(config.cycle_regions)}"
    )
    return scheduler


def start_scheduler(config: Optional[PipelineConfig] = None) -> None:
    """Start the scheduler (blocking)."""
    scheduler = create_scheduler(config)

    logger.info("Starting AgentRadar scheduler...")
    logger.info("Press Ctrl+C to stop")

    # Run initial cycle immediately
    logger.info("Running initial cycle...")
    run_estate_sale_cycle_job()

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """CLI entry point for the scheduler."""
    import argparse

    parser = argparse.ArgumentParser(description="AgentRadar Scheduler")
    parser.add_argument(
        "--mode",
        choices=["schedule", "once"],
        default="schedule",
        help="Mode to run: schedule (continuous), once (single cycle)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level"
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if args.mode == "schedule":
        start_scheduler()
    elif args.mode == "once":
        logger.info("Running single estate sale cycle...")
        run_estate_sale_cycle_job()


if __name__ == "__main__":
    main()
