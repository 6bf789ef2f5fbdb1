# main.py
import asyncio
import sys
from pathlib import Path

import rich_click as click

from tfpoll import __version__
from tfpoll.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from tfpoll.adapters.job_store_filesystem import FileSystemJobStore
from tfpoll.adapters.retry_tenacity import TenacityRetryAdapter
from tfpoll.core.config import PollerConfig
from tfpoll.core.exceptions import PollerError
from tfpoll.core.logging_config import configure_logging
from tfpoll.core.managers.poller import Poller
from tfpoll.core.models.job import PollReport
from tfpoll.core.settings import app_settings, logger


# main lives at the outermost layer (not in core)
# Instantiates all the concrete adapters
# Wires dependencies together
# Runs one pass or the polling loop

async def run_poller(config: PollerConfig, loop: bool = False, max_cycles: int | None = None) -> PollReport:
    job_store = FileSystemJobStore(config)
    retry_adapter = TenacityRetryAdapter.from_config(config)
    async with AioHttpClientAdapter(default_timeout=config.request_timeout) as http_client:
        poller = Poller(
            job_store=job_store,
            http_client=http_client,
            config=config,
            retry_port=retry_adapter,
        )
        if loop:
            return await poller.run_forever(max_cycles=max_cycles)
        return await poller.poll_once()


@click.command()
@click.version_option(version=__version__, prog_name="tfpoll")
@click.option("--root", type=click.Path(path_type=Path, file_okay=False), default=None, help="Job queue root directory.")
@click.option("--loop/--once", "loop", default=False, help="Keep polling every --interval seconds instead of a single pass.")
@click.option("--interval", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds between passes in loop mode.")
@click.option("--max-cycles", type=click.IntRange(min=1), default=None, help="Stop the loop after this many passes.")
@click.option("--keep-going", "isolate_job_failures", is_flag=True, default=False, help="Record a failing job and continue with the next one.")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ...).")
@click.option("--show-settings", is_flag=True, default=False, help="Print effective settings before polling.")
def cli(
    root: Path | None,
    loop: bool,
    interval: float | None,
    max_cycles: int | None,
    isolate_job_failures: bool,
    log_level: str | None,
    show_settings: bool,
) -> None:
    """Poll Testing Farm for every pending job, harvest results and move finished jobs."""

    level = log_level or app_settings.TFPOLL_LOG_LEVEL
    # Central logging configuration BEFORE anything logs
    configure_logging(level)
    logger.set_level(level)
    if show_settings:
        app_settings.print_settings(logger)

    config = PollerConfig.from_app_settings(
        app_settings,
        root=root,
        poll_interval=interval,
        isolate_job_failures=isolate_job_failures or None,
    )

    try:
        report = asyncio.run(run_poller(config, loop=loop, max_cycles=max_cycles))
    except PollerError as exc:
        logger.error("Polling aborted: %s", exc.message)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Polling interrupted")
        sys.exit(130)

    if report.failed:
        logger.error(
            "Polling finished with %s failed job(s): %s",
            len(report.failed),
            ", ".join(o.job_name for o in report.failed),
        )
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
