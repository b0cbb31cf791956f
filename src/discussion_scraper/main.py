from __future__ import annotations

import asyncio
import sys

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from discussion_scraper.config_models import ScraperConfig, config_to_settings, load_and_validate_config
from discussion_scraper.core.factory import ComponentFactory
from discussion_scraper.core.models import PipelineReport, PipelineSettings
from discussion_scraper.utils.logging import get_logger, setup_logging

log = get_logger("discussion_scraper.main")


async def run_pipeline(settings: PipelineSettings) -> PipelineReport:
    """Launch the browser, run both phases, and shut the browser down."""
    # Import locally to avoid starting playwright unless a run actually happens.
    from discussion_scraper.http.playwright_client import PlaywrightSessionFactory

    async with PlaywrightSessionFactory(settings.browser) as session_factory:
        built = ComponentFactory().build(settings, session_factory)
        return await built.orchestrator.run()


def run_one(settings: PipelineSettings) -> PipelineReport:
    """Run a single pipeline pass."""
    report = asyncio.run(run_pipeline(settings))
    print(
        "DONE:",
        f"search ok={report.search.succeeded} failed={report.search.failed}",
        f"urls={report.urls_collected}",
        f"answers ok={report.answers.succeeded} failed={report.answers.failed}",
        f"answer rows={report.answers.records_written}",
    )
    for failure in report.failures:
        print(f"  FAILED {failure.target}: {failure.reason}")
    return report


def run_schedule(settings: PipelineSettings, config: ScraperConfig) -> None:
    """Run the pipeline on a fixed interval."""
    scheduler = BlockingScheduler()

    interval_hours = config.schedule.interval_hours
    print(f"Scheduling pipeline every {interval_hours} hours")
    scheduler.add_job(
        run_one,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[settings],
        id=f"scrape_{settings.adapter}",
        name=f"Scheduled scrape: {settings.adapter}",
    )

    try:
        scheduler.start()
    except KeyboardInterrupt:
        print("Scheduler stopped by user")


def main() -> None:
    """Main entry point for the discussion scraper."""
    if len(sys.argv) < 2:
        print("Usage: discussion-scraper configs/jobs/<job>.yaml")
        raise SystemExit(2)

    job_path = sys.argv[1]
    print(f"Loading config from {job_path}")

    try:
        config = load_and_validate_config(job_path)
        settings = config_to_settings(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        raise SystemExit(1)

    setup_logging("configs/logging.yaml", log_file=config.log_file)
    log.info("Loaded config %s: keywords=%d", job_path, len(settings.keywords))

    if config.schedule.enabled:
        print("Running in scheduled mode")
        run_schedule(settings, config)
    else:
        print("Running in one-time mode")
        run_one(settings)


if __name__ == "__main__":
    main()
