"""Shared fixtures: a queue root on tmp_path and an in-process HTTP port."""

from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

from tfpoll.core.config import PollerConfig
from tfpoll.core.exceptions import RemoteServiceError
from tfpoll.core.interfaces.http_client import HttpClientPort
from tfpoll.core.models.request import QueueState

DISPATCH_TEMPLATE = "<dispatch><tfId>{request_id}</tfId></dispatch>"


class FakeHttpClient(HttpClientPort):
    """Serves canned JSON bodies and artifact bytes keyed by URL.

    A URL registered with several JSON bodies returns them in order, then
    keeps returning the last one. Unregistered downloads fail with 404.
    """

    def __init__(self) -> None:
        self.json_bodies: Dict[str, List[Any]] = {}
        self.files: Dict[str, Any] = {}
        self.json_calls: List[str] = []
        self.downloads: List[Tuple[str, Path]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def close(self) -> None:
        pass

    def add_json(self, url: str, *bodies: Any) -> None:
        self.json_bodies[url] = list(bodies)

    def add_file(self, url: str, content: Any) -> None:
        self.files[url] = content

    async def get_json(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        self.json_calls.append(url)
        queue = self.json_bodies[url]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def download(self, url: str, destination: Path, timeout: float | None = None) -> int:
        self.downloads.append((url, Path(destination)))
        content = self.files.get(url)
        if content is None:
            raise RemoteServiceError("HTTP GET failed: 404 Not Found", url=url, upstream_status=404)
        if isinstance(content, Exception):
            raise content
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(content)
        return len(content)


@pytest.fixture
def queue_root(tmp_path):
    """Empty job queue: jobs/ plus the three queue directories."""
    (tmp_path / "jobs").mkdir()
    for state in QueueState:
        (tmp_path / "queues" / state.value).mkdir(parents=True)
    return tmp_path


@pytest.fixture
def config(queue_root):
    return PollerConfig(root=queue_root, retry_attempts=1, request_timeout=5.0, poll_interval=0.01)


@pytest.fixture
def make_job(queue_root):
    """Create a pending job whose dispatch descriptor points at `request_id`."""

    def _make(job_name: str, request_id: str | None = None, descriptor: str | None = None) -> Path:
        job_dir = queue_root / "jobs" / job_name
        job_dir.mkdir()
        if descriptor is None and request_id is not None:
            descriptor = DISPATCH_TEMPLATE.format(request_id=request_id)
        if descriptor is not None:
            (job_dir / "tf-dispatch.xml").write_text(descriptor, encoding="utf-8")
        (queue_root / "queues" / "pending" / job_name).touch()
        return job_dir

    return _make


@pytest.fixture
def http_client():
    return FakeHttpClient()


@pytest.fixture
def queue_members(queue_root):
    """Names currently present in a queue directory."""

    def _members(state: QueueState) -> set[str]:
        return {p.name for p in (queue_root / "queues" / state.value).iterdir()}

    return _members
