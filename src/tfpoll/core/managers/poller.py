"""Poller: drives pending jobs through status resolution and artifact harvesting.

Per job:
1. Read the dispatch descriptor and extract the Testing Farm request id.
2. Resolve the remote request onto pending / error / complete.
3. pending: leave the job alone until the next pass.
4. error: move the job to the error queue.
5. complete: fetch results.xml, parse plans, fetch each plan's discovered
   tests list when the plan has a workdir, then move to the complete queue.

Jobs are processed strictly one after another in listing order.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from tfpoll.core.config import PollerConfig
from tfpoll.core.exceptions import PollerError
from tfpoll.core.interfaces.http_client import HttpClientPort
from tfpoll.core.interfaces.job_store import JobStorePort
from tfpoll.core.interfaces.retry import RetryPort
from tfpoll.core.logging_config import job_context
from tfpoll.core.managers.documents import parse_dispatch, parse_results
from tfpoll.core.managers.status_client import RemoteStatusClient
from tfpoll.core.models.job import JobOutcome, PollReport
from tfpoll.core.models.request import QueueState
from tfpoll.core.models.results import TestPlanRecord
from tfpoll.core.settings import logger

REMOTE_RESULTS_NAME = "results.xml"
REMOTE_DISCOVERY_PATH = "discover/tests.yaml"


def results_url(artifacts_url: str) -> str:
    return f"{artifacts_url.rstrip('/')}/{REMOTE_RESULTS_NAME}"


def discovery_url(workdir: str, plan_name: str) -> str:
    return f"{workdir.rstrip('/')}/{plan_name.strip('/')}/{REMOTE_DISCOVERY_PATH}"


class Poller:
    """Orchestrates one or more poll passes over the pending queue.

    Attributes:
        config: Immutable configuration (paths, endpoint, timeouts, failure policy)
    """

    def __init__(
        self,
        job_store: JobStorePort,
        http_client: HttpClientPort,
        config: PollerConfig,
        retry_port: Optional[RetryPort] = None,
        status_client: Optional[RemoteStatusClient] = None,
    ) -> None:
        self._store = job_store
        self._http = http_client
        self.config = config
        self._retry = retry_port
        self._status = status_client or RemoteStatusClient(http_client, config, retry_port)
        self._stop = asyncio.Event()

    # ---------------- Passes -----------------
    async def poll_once(self) -> PollReport:
        """Poll every job currently in the pending queue once.

        Errors that are not tied to a job (unreadable pending queue) always
        propagate. Job errors propagate too unless `isolate_job_failures` is
        set, in which case they are recorded in the job's outcome.
        """
        logger.info("Polling started")
        jobs = await self._store.list_pending()
        report = PollReport()
        for job_name in jobs:
            with job_context(job_name):
                report.add(await self._poll_guarded(job_name))
        logger.info("Polling complete %s", report.summary())
        return report

    async def run_forever(
        self, interval: Optional[float] = None, max_cycles: Optional[int] = None
    ) -> PollReport:
        """Repeat `poll_once` every `interval` seconds until stopped.

        Returns the report of the last pass.
        """
        interval = self.config.poll_interval if interval is None else interval
        self._stop.clear()
        report = PollReport()
        cycles = 0
        while not self._stop.is_set():
            report = await self.poll_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            logger.debug("Next pass in %ss", interval)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Polling loop finished after %s pass(es)", cycles)
        return report

    def stop(self) -> None:
        """Ask `run_forever` to return after the current pass."""
        self._stop.set()

    async def _poll_guarded(self, job_name: str) -> JobOutcome:
        outcome = JobOutcome(job_name=job_name)
        try:
            return await self.poll_job(job_name, outcome)
        except PollerError as exc:
            exc.for_job(job_name)
            logger.error(
                "Polling job %s failed: %s%s",
                job_name,
                exc.message,
                f" ({exc.diagnostic})" if exc.diagnostic else "",
            )
            if not self.config.isolate_job_failures:
                raise
            # job stays in pending; partially fetched artifacts are left in place
            outcome.error = exc
            return outcome

    # ---------------- Single job -----------------
    async def poll_job(self, job_name: str, outcome: Optional[JobOutcome] = None) -> JobOutcome:
        outcome = outcome or JobOutcome(job_name=job_name)
        logger.info("Polling job %s", job_name)

        request_id = await self._read_request_id(job_name)
        outcome.request_id = request_id

        resolution = await self._status.resolve(request_id)
        outcome.status = resolution.status
        logger.info("TF status is %s", resolution.status)

        if resolution.status == QueueState.pending:
            return outcome

        if resolution.status == QueueState.complete:
            await self._harvest(job_name, resolution.artifacts_url or "", outcome)

        await self._store.move(job_name, resolution.status)
        outcome.moved_to = resolution.status
        return outcome

    async def _read_request_id(self, job_name: str) -> str:
        raw = await self._store.read_dispatch(job_name)
        request_id = parse_dispatch(raw, source=str(self._store.job_dir(job_name)))
        logger.info("TF request ID is %s", request_id)
        return request_id

    # ---------------- Artifacts -----------------
    async def _harvest(self, job_name: str, artifacts_url: str, outcome: JobOutcome) -> None:
        results_path = self._store.results_path(job_name)
        await self._fetch(results_url(artifacts_url), results_path)
        outcome.artifacts.append(results_path)

        raw = await self._store.read_file(results_path)
        plans = parse_results(raw, source=str(results_path))
        for plan in plans:
            logger.info("Found tmt plan %s", plan.name)
            outcome.plans.append(plan.name)
            fetched = await self._harvest_plan(job_name, plan)
            if fetched is not None:
                outcome.artifacts.append(fetched)

    async def _harvest_plan(self, job_name: str, plan: TestPlanRecord) -> Optional[Path]:
        workdir = plan.workdir
        if not workdir:
            logger.debug("Plan %s has no workdir log, skipping discovery fetch", plan.name)
            return None
        logger.info("Plan workdir: %s", workdir)
        destination = self._store.discovery_path(job_name, plan.name)
        await self._fetch(discovery_url(workdir, plan.name), destination)
        return destination

    async def _fetch(self, url: str, destination: Path) -> None:
        logger.info("Fetching TF artifact %s to %s", url, destination)
        timeout = self.config.request_timeout
        if self._retry:
            await self._retry.execute(self._http.download, url, destination, timeout=timeout)
        else:
            await self._http.download(url, destination, timeout=timeout)
