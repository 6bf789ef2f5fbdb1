"""Configuration models for the poller.

Consolidates the settings the poller, job store and remote clients need into
one immutable object passed at construction, so nothing reads module-level
paths and tests can build their own configuration.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tfpoll.core.models.request import QueueState


class PollerConfig(BaseModel):
    """Configuration for a poll pass.

    Attributes:
        root: Base directory holding `jobs/` and `queues/`
        queue_dirs: Directory name per queue state
        api_url: Testing Farm API base, without trailing slash
        request_timeout: Total seconds allowed per HTTP request
        retry_attempts: Attempts per HTTP request (1 disables retry)
        isolate_job_failures: Record job errors and continue instead of aborting
    """

    root: Path = Field(description="Base directory of the job queue")

    jobs_dir_name: str = "jobs"
    queues_dir_name: str = "queues"

    queue_dirs: dict[QueueState, str] = Field(
        default_factory=lambda: {state: str(state) for state in QueueState},
        description="Directory name under queues/ for every queue state",
    )

    dispatch_filename: str = "tf-dispatch.xml"
    results_filename: str = "results.xml"

    api_url: str = Field(
        default="https://api.testing-farm.io/v0.1",
        description="Base URL of the Testing Farm API",
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Total timeout in seconds for a single HTTP request",
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for transient HTTP failures",
    )

    retry_wait_initial: float = Field(
        default=0.5,
        gt=0,
        description="Base wait time in seconds for exponential backoff between retries",
    )

    retry_wait_max: float = Field(
        default=5.0,
        gt=0,
        description="Maximum wait time in seconds between retry attempts",
    )

    poll_interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between passes in loop mode",
    )

    isolate_job_failures: bool = Field(
        default=False,
        description="Keep polling remaining jobs when one job fails",
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("queue_dirs")
    @classmethod
    def all_queues_named(cls, value: dict[QueueState, str]) -> dict[QueueState, str]:
        missing = set(QueueState) - set(value)
        if missing:
            raise ValueError(f"queue directory missing for: {sorted(missing)}")
        if len(set(value.values())) != len(value):
            raise ValueError("queue directories must be distinct")
        return value

    @property
    def jobs_dir(self) -> Path:
        return self.root / self.jobs_dir_name

    @property
    def queues_dir(self) -> Path:
        return self.root / self.queues_dir_name

    def queue_dir(self, state: QueueState) -> Path:
        return self.queues_dir / self.queue_dirs[state]

    def request_url(self, request_id: str) -> str:
        return f"{self.api_url}/requests/{request_id}"

    @classmethod
    def from_app_settings(cls, settings, **overrides) -> "PollerConfig":
        """Factory method to construct config from a PollerSettings instance.

        Args:
            settings: PollerSettings instance from core.settings
            **overrides: Field values taking precedence (e.g. from CLI options)

        Returns:
            PollerConfig with values from app settings
        """
        values = dict(
            root=settings.TFPOLL_ROOT,
            jobs_dir_name=settings.TFPOLL_JOBS_DIR_NAME,
            queues_dir_name=settings.TFPOLL_QUEUES_DIR_NAME,
            queue_dirs={
                QueueState.pending: settings.TFPOLL_PENDING_QUEUE,
                QueueState.error: settings.TFPOLL_ERROR_QUEUE,
                QueueState.complete: settings.TFPOLL_COMPLETE_QUEUE,
            },
            dispatch_filename=settings.TFPOLL_DISPATCH_FILENAME,
            results_filename=settings.TFPOLL_RESULTS_FILENAME,
            api_url=str(settings.TFPOLL_API_URL),
            request_timeout=settings.TFPOLL_REQUEST_TIMEOUT,
            retry_attempts=settings.TFPOLL_RETRY_ATTEMPTS,
            retry_wait_initial=settings.TFPOLL_RETRY_WAIT_INITIAL,
            retry_wait_max=settings.TFPOLL_RETRY_WAIT_MAX,
            poll_interval=settings.TFPOLL_POLL_INTERVAL,
            isolate_job_failures=settings.TFPOLL_ISOLATE_JOB_FAILURES,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
