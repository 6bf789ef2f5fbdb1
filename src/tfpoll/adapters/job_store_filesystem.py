"""Filesystem implementation of JobStorePort.

Layout under the configured root::

    jobs/<job>/tf-dispatch.xml
    jobs/<job>/results.xml
    jobs/<job>/<plan>-tests.yaml
    queues/{pending,error,complete}/<job>

Queue membership is the marker entry under `queues/`; moving a job is a
single rename, so a job is never visible in two queues at once.
"""
from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import List

from tfpoll.core.config import PollerConfig
from tfpoll.core.exceptions import DispatchDescriptorError, DocumentDecodeError, JobStoreError
from tfpoll.core.interfaces.job_store import JobStorePort
from tfpoll.core.models.request import QueueState
from tfpoll.core.settings import logger

DISCOVERY_SUFFIX = "-tests.yaml"


class FileSystemJobStore(JobStorePort):
    def __init__(self, config: PollerConfig) -> None:
        self._config = config

    @property
    def pending_dir(self) -> Path:
        return self._config.queue_dir(QueueState.pending)

    async def list_pending(self) -> List[str]:
        try:
            with os.scandir(self.pending_dir) as entries:
                jobs = [entry.name for entry in entries]
        except OSError as exc:
            raise JobStoreError(
                f"Cannot list pending queue {self.pending_dir}",
                path=str(self.pending_dir),
                diagnostic=str(exc),
            ) from exc
        logger.debug("Found %s pending job(s) in %s", len(jobs), self.pending_dir)
        return jobs

    async def move(self, job_name: str, dest: QueueState) -> Path:
        if dest == QueueState.pending:
            raise JobStoreError(
                f"Job {job_name} cannot be moved back to the pending queue",
                job_name=job_name,
            )
        src_path = self.pending_dir / job_name
        dest_path = self._config.queue_dir(dest) / job_name
        logger.info("Marking job %s as %s", job_name, dest)

        if not os.path.lexists(src_path):
            raise JobStoreError(
                f"Job {job_name} is not in the pending queue",
                path=str(src_path),
                job_name=job_name,
            )
        if os.path.lexists(dest_path):
            raise JobStoreError(
                f"Job {job_name} already exists in the {dest} queue",
                path=str(dest_path),
                job_name=job_name,
            )
        try:
            os.rename(src_path, dest_path)
        except OSError as exc:
            raise JobStoreError(
                f"Cannot move job {job_name} to the {dest} queue",
                path=str(dest_path),
                diagnostic=str(exc),
                job_name=job_name,
            ) from exc
        return dest_path

    async def read_dispatch(self, job_name: str) -> bytes:
        path = self.job_dir(job_name) / self._config.dispatch_filename
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise DispatchDescriptorError(
                f"Dispatch descriptor missing for job {job_name}",
                source=str(path),
                job_name=job_name,
            ) from exc
        except OSError as exc:
            raise JobStoreError(
                f"Cannot read dispatch descriptor of job {job_name}",
                path=str(path),
                diagnostic=str(exc),
                job_name=job_name,
            ) from exc

    async def read_file(self, path: Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as exc:
            raise JobStoreError(f"Cannot read {path}", path=str(path), diagnostic=str(exc)) from exc

    def job_dir(self, job_name: str) -> Path:
        return self._config.jobs_dir / job_name

    def results_path(self, job_name: str) -> Path:
        return self.job_dir(job_name) / self._config.results_filename

    def discovery_path(self, job_name: str, plan_name: str) -> Path:
        # tmt plan names are absolute ("/plans/smoke"); they nest under the job dir
        relative = PurePosixPath(plan_name.lstrip("/"))
        if not relative.parts or ".." in relative.parts:
            raise DocumentDecodeError(
                f"Plan name {plan_name!r} cannot be mapped to a path inside the job directory",
                job_name=job_name,
            )
        target = self.job_dir(job_name).joinpath(*relative.parts)
        return target.with_name(target.name + DISCOVERY_SUFFIX)
