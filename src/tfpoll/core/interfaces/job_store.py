"""JobStorePort: port for the filesystem job queue.

A job is a directory under `jobs/` plus a marker entry in exactly one queue
directory. Methods are async for interface uniformity with the HTTP port even
though the filesystem adapter blocks.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from tfpoll.core.models.request import QueueState


class JobStorePort(ABC):
	"""Port abstraction for queued jobs and their working directories."""

	@abstractmethod
	async def list_pending(self) -> List[str]:
		"""Return names of jobs in the pending queue, in directory order."""
		raise NotImplementedError

	@abstractmethod
	async def move(self, job_name: str, dest: QueueState) -> Path:
		"""Atomically move a job's marker from pending to `dest`; return the new path."""
		raise NotImplementedError

	@abstractmethod
	async def read_dispatch(self, job_name: str) -> bytes:
		"""Return raw bytes of the job's dispatch descriptor."""
		raise NotImplementedError

	@abstractmethod
	async def read_file(self, path: Path) -> bytes:
		"""Return raw bytes of a file inside a job directory."""
		raise NotImplementedError

	@abstractmethod
	def job_dir(self, job_name: str) -> Path:
		"""Directory holding the job's descriptor and harvested artifacts."""
		raise NotImplementedError

	@abstractmethod
	def results_path(self, job_name: str) -> Path:
		"""Local destination of the job's results document."""
		raise NotImplementedError

	@abstractmethod
	def discovery_path(self, job_name: str, plan_name: str) -> Path:
		"""Local destination of a plan's discovered tests list."""
		raise NotImplementedError
