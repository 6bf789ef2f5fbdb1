from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RequestState(StrEnum):
    """Testing Farm request states (api/src/tft/nucleus/api/core/schemes/test_request.py)."""
    new = "new"
    queued = "queued"
    running = "running"
    error = "error"
    complete = "complete"
    cancel_requested = "cancel-requested"
    canceled = "canceled"


FINAL_REQUEST_STATES = frozenset(
    state.value for state in (RequestState.error, RequestState.complete, RequestState.canceled)
)


class OverallResult(StrEnum):
    passed = "passed"
    failed = "failed"
    skipped = "skipped"
    unknown = "unknown"
    error = "error"


# A complete request only counts as complete when tests actually produced a verdict
CONCLUSIVE_RESULTS = frozenset(result.value for result in (OverallResult.passed, OverallResult.failed))


class QueueState(StrEnum):
    pending = "pending"
    error = "error"
    complete = "complete"


class RequestRun(BaseModel):
    model_config = ConfigDict(extra="ignore")

    artifacts: Optional[str] = None


class RequestResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    overall: Optional[str] = None


class RemoteRequest(BaseModel):
    """Subset of the Testing Farm request document the poller relies on.

    `state` and `overall` stay plain strings: the service may add values we
    do not know about, and unknown values must still map deterministically.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    state: str = ""
    # both are null until the request starts running
    run: Optional[RequestRun] = None
    result: Optional[RequestResult] = None

    @property
    def artifacts(self) -> Optional[str]:
        return self.run.artifacts if self.run else None

    @property
    def overall(self) -> Optional[str]:
        return self.result.overall if self.result else None


class StatusResolution(BaseModel):
    """Remote request state collapsed onto the local queue states."""
    model_config = ConfigDict(frozen=True)

    status: QueueState
    artifacts_url: Optional[str] = None
    remote_state: Optional[str] = None
