from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tfpoll.core.exceptions import PollerError
from tfpoll.core.models.request import QueueState


class JobOutcome(BaseModel):
    """What happened to one job during a poll pass.

    Notes:
    - `status` is None when the job failed before its remote status was known.
    - `moved_to` is set only once the job actually left the pending queue.
    - `error` is populated only when job failures are isolated; otherwise the
      error propagates and no outcome is recorded.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    job_name: str
    request_id: Optional[str] = None
    status: Optional[QueueState] = None
    moved_to: Optional[QueueState] = None
    plans: List[str] = Field(default_factory=list)
    artifacts: List[Path] = Field(default_factory=list)
    error: Optional[PollerError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class PollReport(BaseModel):
    outcomes: List[JobOutcome] = Field(default_factory=list)

    def add(self, outcome: JobOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def failed(self) -> List[JobOutcome]:
        return [o for o in self.outcomes if o.failed]

    def count(self, status: QueueState) -> int:
        return sum(1 for o in self.outcomes if o.status == status and not o.failed)

    def summary(self) -> str:
        return (
            f"jobs={len(self.outcomes)} pending={self.count(QueueState.pending)} "
            f"error={self.count(QueueState.error)} complete={self.count(QueueState.complete)} "
            f"failed={len(self.failed)}"
        )
