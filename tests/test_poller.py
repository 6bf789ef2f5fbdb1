"""Poller scenarios against a real filesystem queue and a fake HTTP port.

Covers the per-job state machine (pending / error / complete), artifact
harvesting, and the two failure policies (abort vs. isolate).
"""

import asyncio

import pytest

from tfpoll.adapters.job_store_filesystem import FileSystemJobStore
from tfpoll.adapters.retry_tenacity import TenacityRetryAdapter
from tfpoll.core.config import PollerConfig
from tfpoll.core.exceptions import (
    DispatchDescriptorError,
    JobStoreError,
    RemoteServiceError,
    TransientRemoteError,
)
from tfpoll.core.managers.poller import Poller, discovery_url, results_url
from tfpoll.core.models.request import QueueState

API = "https://api.testing-farm.io/v0.1/requests"

RESULTS_XML = b"""<testsuites>
  <testsuite name="/plans/smoke">
    <logs>
      <log name="log.txt" href="https://x/artifacts/work-smoke/log.txt"/>
      <log name="workdir" href="https://x/artifacts/work-smoke"/>
    </logs>
  </testsuite>
  <testsuite name="/plans/bare"/>
  <testsuite name="/plans/full">
    <logs>
      <log name="workdir" href="https://x/artifacts/work-full/"/>
    </logs>
  </testsuite>
</testsuites>
"""


def complete_body(overall="failed", artifacts="https://x/artifacts"):
    return {"state": "complete", "run": {"artifacts": artifacts}, "result": {"overall": overall}}


# --- Test Fixtures ---

@pytest.fixture
def store(config):
    return FileSystemJobStore(config)


@pytest.fixture
def poller(store, http_client, config):
    return Poller(job_store=store, http_client=http_client, config=config)


@pytest.fixture
def isolating_poller(store, http_client, config):
    return Poller(
        job_store=store,
        http_client=http_client,
        config=config.model_copy(update={"isolate_job_failures": True}),
    )


class TestUrls:

    def test_results_url(self):
        assert results_url("https://x/artifacts") == "https://x/artifacts/results.xml"
        assert results_url("https://x/artifacts/") == "https://x/artifacts/results.xml"

    def test_discovery_url(self):
        assert (
            discovery_url("https://x/artifacts/work-smoke", "/plans/smoke")
            == "https://x/artifacts/work-smoke/plans/smoke/discover/tests.yaml"
        )
        assert (
            discovery_url("https://x/artifacts/work-smoke/", "/plans/smoke")
            == "https://x/artifacts/work-smoke/plans/smoke/discover/tests.yaml"
        )


# --- Single job state machine ---

class TestPollJob:

    @pytest.mark.asyncio
    async def test_running_job_stays_pending(self, poller, make_job, http_client, queue_members):
        job_dir = make_job("job-42", "abc-123")
        http_client.add_json(f"{API}/abc-123", {"state": "running", "run": None, "result": None})

        report = await poller.poll_once()

        assert queue_members(QueueState.pending) == {"job-42"}
        assert queue_members(QueueState.error) == set()
        assert queue_members(QueueState.complete) == set()
        assert [p.name for p in job_dir.iterdir()] == ["tf-dispatch.xml"]
        assert http_client.downloads == []
        outcome = report.outcomes[0]
        assert outcome.status == QueueState.pending
        assert outcome.moved_to is None
        assert outcome.request_id == "abc-123"

    @pytest.mark.asyncio
    async def test_completed_job_harvested_and_moved(self, poller, make_job, http_client, queue_members, queue_root):
        job_dir = make_job("job-43", "abc-124")
        http_client.add_json(f"{API}/abc-124", complete_body(overall="failed"))
        http_client.add_file("https://x/artifacts/results.xml", b"<testsuites/>")

        report = await poller.poll_once()

        assert http_client.downloads == [("https://x/artifacts/results.xml", job_dir / "results.xml")]
        assert (job_dir / "results.xml").read_bytes() == b"<testsuites/>"
        assert queue_members(QueueState.complete) == {"job-43"}
        assert queue_members(QueueState.pending) == set()
        assert report.outcomes[0].moved_to == QueueState.complete

    @pytest.mark.asyncio
    async def test_canceled_job_moved_to_error_without_fetch(self, poller, make_job, http_client, queue_members):
        make_job("job-44", "abc-125")
        http_client.add_json(f"{API}/abc-125", {"state": "canceled"})

        report = await poller.poll_once()

        assert queue_members(QueueState.error) == {"job-44"}
        assert http_client.downloads == []
        assert report.outcomes[0].status == QueueState.error

    @pytest.mark.asyncio
    async def test_complete_without_verdict_moved_to_error(self, poller, make_job, http_client, queue_members):
        make_job("job-45", "abc-126")
        http_client.add_json(f"{API}/abc-126", complete_body(overall="error"))

        await poller.poll_once()

        assert queue_members(QueueState.error) == {"job-45"}
        assert http_client.downloads == []

    @pytest.mark.asyncio
    async def test_discovery_fetched_only_for_plans_with_workdir(self, poller, make_job, http_client):
        job_dir = make_job("job-46", "abc-127")
        http_client.add_json(f"{API}/abc-127", complete_body(overall="passed"))
        http_client.add_file("https://x/artifacts/results.xml", RESULTS_XML)
        http_client.add_file("https://x/artifacts/work-smoke/plans/smoke/discover/tests.yaml", b"- name: /t1\n")
        http_client.add_file("https://x/artifacts/work-full/plans/full/discover/tests.yaml", b"- name: /t2\n")

        report = await poller.poll_once()

        assert [url for url, _ in http_client.downloads] == [
            "https://x/artifacts/results.xml",
            "https://x/artifacts/work-smoke/plans/smoke/discover/tests.yaml",
            "https://x/artifacts/work-full/plans/full/discover/tests.yaml",
        ]
        assert (job_dir / "plans" / "smoke-tests.yaml").read_bytes() == b"- name: /t1\n"
        assert (job_dir / "plans" / "full-tests.yaml").read_bytes() == b"- name: /t2\n"
        assert not (job_dir / "plans" / "bare-tests.yaml").exists()
        outcome = report.outcomes[0]
        assert outcome.plans == ["/plans/smoke", "/plans/bare", "/plans/full"]
        assert len(outcome.artifacts) == 3

    @pytest.mark.asyncio
    async def test_failed_discovery_fetch_aborts_before_move(self, poller, make_job, http_client, queue_members):
        job_dir = make_job("job-47", "abc-128")
        http_client.add_json(f"{API}/abc-128", complete_body())
        http_client.add_file("https://x/artifacts/results.xml", RESULTS_XML)

        with pytest.raises(RemoteServiceError) as excinfo:
            await poller.poll_once()

        assert excinfo.value.job_name == "job-47"
        assert queue_members(QueueState.pending) == {"job-47"}
        assert (job_dir / "results.xml").exists()

    @pytest.mark.asyncio
    async def test_missing_descriptor_is_job_error(self, poller, make_job, http_client):
        make_job("job-48")

        with pytest.raises(DispatchDescriptorError) as excinfo:
            await poller.poll_once()

        assert excinfo.value.job_name == "job-48"
        assert http_client.json_calls == []


# --- Failure policies ---

class TestFailurePolicy:

    @pytest.mark.asyncio
    async def test_abort_on_first_error(self, poller, make_job, http_client, queue_members):
        make_job("bad", "abc-500")
        http_client.add_json(f"{API}/abc-500", RemoteServiceError("HTTP GET failed: 500", url=f"{API}/abc-500", upstream_status=500))

        with pytest.raises(RemoteServiceError) as excinfo:
            await poller.poll_once()

        assert excinfo.value.is_job_scoped
        assert excinfo.value.job_name == "bad"
        assert "bad" in queue_members(QueueState.pending)

    @pytest.mark.asyncio
    async def test_isolated_failure_does_not_stop_pass(self, isolating_poller, make_job, http_client, queue_members):
        make_job("bad", "abc-500")
        make_job("good", "abc-125")
        http_client.add_json(f"{API}/abc-500", RemoteServiceError("HTTP GET failed: 500", url=f"{API}/abc-500", upstream_status=500))
        http_client.add_json(f"{API}/abc-125", {"state": "canceled"})

        report = await isolating_poller.poll_once()

        assert queue_members(QueueState.pending) == {"bad"}
        assert queue_members(QueueState.error) == {"good"}
        assert [o.job_name for o in report.failed] == ["bad"]
        failed = report.failed[0]
        assert failed.request_id == "abc-500"
        assert isinstance(failed.error, RemoteServiceError)
        assert "failed=1" in report.summary()

    @pytest.mark.asyncio
    async def test_unreadable_queue_aborts_even_when_isolating(self, tmp_path, http_client):
        config = PollerConfig(root=tmp_path / "missing", isolate_job_failures=True)
        poller = Poller(job_store=FileSystemJobStore(config), http_client=http_client, config=config)

        with pytest.raises(JobStoreError) as excinfo:
            await poller.poll_once()
        assert not excinfo.value.is_job_scoped

    @pytest.mark.asyncio
    async def test_transient_status_failure_retried(self, store, config, make_job, http_client, queue_members):
        make_job("job-49", "abc-129")
        http_client.add_json(
            f"{API}/abc-129",
            TransientRemoteError("timed out", url=f"{API}/abc-129"),
            {"state": "error"},
        )
        poller = Poller(
            job_store=store,
            http_client=http_client,
            config=config,
            retry_port=TenacityRetryAdapter(attempts=2, wait_initial=0.001, wait_max=0.001),
        )

        await poller.poll_once()

        assert http_client.json_calls == [f"{API}/abc-129", f"{API}/abc-129"]
        assert queue_members(QueueState.error) == {"job-49"}


# --- Loop mode ---

class TestRunForever:

    @pytest.mark.asyncio
    async def test_job_polled_again_until_final(self, poller, make_job, http_client, queue_members):
        make_job("job-50", "abc-130")
        http_client.add_json(f"{API}/abc-130", {"state": "queued"}, {"state": "running"}, {"state": "canceled"})

        report = await poller.run_forever(interval=0.001, max_cycles=3)

        assert len(http_client.json_calls) == 3
        assert queue_members(QueueState.error) == {"job-50"}
        assert report.outcomes[0].moved_to == QueueState.error

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, poller):
        async def stop_soon():
            await asyncio.sleep(0.01)
            poller.stop()

        stopper = asyncio.create_task(stop_soon())
        report = await asyncio.wait_for(poller.run_forever(interval=0.005), timeout=2.0)
        await stopper

        assert report.outcomes == []
