"""
Traffic Data Collector - Entry Point
====================================

Pulls hourly traffic counts from the Telraam API and stores them as JSON
under docs/data (served by GitHub Pages together with docs/index.html).

HOW TO RUN:
    # Install
    pip install -e .

    # Set your API key (or put it in a .env file)
    export TELRAAM_API_KEY=your-key

    # One collection run (what the scheduled CI job does)
    traffic-collector

    # Keep running and collect every TELRAAM_COLLECTION_INTERVAL_MINUTES
    traffic-collector --schedule

    # Recompute all daily files from the stored hourly files
    traffic-collector --rebuild-daily

EXIT CODES:
    0 = every device collected
    1 = at least one device failed (or the run itself failed)
    2 = configuration error
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from traffic_collector.config import AppConfig, load_config
from traffic_collector.errors import CollectionError, ConfigurationError
from traffic_collector.models import CollectionSummary
from traffic_collector.services import DataCollector, Storage, TelraamClient

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger (stderr, timestamped lines)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_collector(config: AppConfig, client: Optional[TelraamClient] = None) -> DataCollector:
    """Wire a collector from the configuration. Rebuilds need no client."""
    return DataCollector(
        client=client,
        storage=Storage(config.data_dir),
        devices=config.devices,
        days_to_fetch=config.days_to_fetch,
        initial_days_to_fetch=config.initial_days_to_fetch,
        request_delay=config.request_delay,
    )


async def run_collection(config: AppConfig) -> CollectionSummary:
    """
    One full collection run.

    Raises:
        CollectionError: If any device failed
    """
    client = TelraamClient(api_key=config.api_key, api_url=config.api_url)
    try:
        collector = build_collector(config, client)
        return await collector.collect_all_devices()
    finally:
        await client.close()


async def run_rebuild(config: AppConfig) -> int:
    """Rebuild daily files for all configured devices. Returns months rebuilt."""
    return await build_collector(config).rebuild_daily_data()


async def run_scheduled(config: AppConfig, stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Run a collection now and then every N minutes until stopped.

    Runs never overlap (max_instances=1); missed runs are coalesced.
    """
    stop_event = stop_event or asyncio.Event()

    async def scheduled_job():
        try:
            await run_collection(config)
        except CollectionError as e:
            logger.error(f"Scheduled run finished with errors: {e}")
        except Exception as e:
            logger.error(f"Scheduled run failed: {e}", exc_info=True)

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        scheduled_job,
        trigger=IntervalTrigger(minutes=config.collection_interval_minutes),
        id="collect_all_devices",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started: collecting every {config.collection_interval_minutes} minute(s)")

    try:
        await stop_event.wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="traffic-collector",
        description="Collect hourly Telraam traffic data into JSON files.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--schedule",
        action="store_true",
        help="Keep running and collect every TELRAAM_COLLECTION_INTERVAL_MINUTES",
    )
    mode.add_argument(
        "--rebuild-daily",
        action="store_true",
        help="Recompute daily aggregate files from stored hourly data and exit",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Command-line entry point. Returns the process exit code."""
    args = parse_args(argv)

    # Load environment variables from .env file
    load_dotenv()

    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logging()
        for error in e.errors:
            logger.error(f"Configuration error: {error}")
        return EXIT_CONFIG_ERROR

    setup_logging(config.log_level)
    start_time = datetime.now(timezone.utc)
    logger.info(
        f"Starting Telraam Data Collector (devices: {len(config.devices)}, "
        f"daysToFetch: {config.days_to_fetch}, dataDir: {config.data_dir})"
    )

    try:
        if args.schedule:
            asyncio.run(run_scheduled(config))
            return EXIT_SUCCESS

        if args.rebuild_daily:
            months = asyncio.run(run_rebuild(config))
            logger.info(f"Rebuilt {months} daily file(s)")
            return EXIT_SUCCESS

        summary = asyncio.run(run_collection(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS
    except CollectionError as e:
        logger.error(f"Collection failed: {e}")
        return EXIT_ERROR
    except Exception as e:
        logger.error(f"Collection failed: {e}", exc_info=True)
        return EXIT_ERROR

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        f"Collection completed successfully in {duration:.1f}s "
        f"({summary.total_data_points} data points)"
    )
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
