# Logging adapter for application-wide logging
from tfpoll.adapters.logging_adapter import LoggingAdapter

from pathlib import Path

from pydantic import HttpUrl, computed_field, field_validator
from pydantic_settings import BaseSettings
from rich import print

from tfpoll.core.interfaces.logging import LoggingPort

# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class PollerSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }
    TFPOLL_LOG_LEVEL: str = "INFO"
    TFPOLL_ROOT: Path = Path("/mnt/nfs/gacek")
    TFPOLL_JOBS_DIR_NAME: str = "jobs"
    TFPOLL_QUEUES_DIR_NAME: str = "queues"
    TFPOLL_PENDING_QUEUE: str = "pending"
    TFPOLL_ERROR_QUEUE: str = "error"
    TFPOLL_COMPLETE_QUEUE: str = "complete"
    TFPOLL_DISPATCH_FILENAME: str = "tf-dispatch.xml"
    TFPOLL_RESULTS_FILENAME: str = "results.xml"
    TFPOLL_API_URL: HttpUrl = HttpUrl("https://api.testing-farm.io/v0.1")
    TFPOLL_REQUEST_TIMEOUT: float = 30.0  # seconds, per HTTP request
    TFPOLL_RETRY_ATTEMPTS: int = 3
    TFPOLL_RETRY_WAIT_INITIAL: float = 0.5
    TFPOLL_RETRY_WAIT_MAX: float = 5.0
    # Seconds between passes when running with --loop
    TFPOLL_POLL_INTERVAL: float = 60.0
    # Keep polling other jobs when one job fails instead of aborting the pass
    TFPOLL_ISOLATE_JOB_FAILURES: bool = False

    @computed_field
    @property
    def TFPOLL_JOBS_DIR(self) -> Path:
        """Directory holding one subdirectory per job"""
        return self.TFPOLL_ROOT / self.TFPOLL_JOBS_DIR_NAME

    @computed_field
    @property
    def TFPOLL_QUEUES_DIR(self) -> Path:
        """Directory holding the pending/error/complete queue directories"""
        return self.TFPOLL_ROOT / self.TFPOLL_QUEUES_DIR_NAME

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("tfpoll settings:")
        print(self)

    @field_validator("TFPOLL_API_URL", mode="before")
    def strip_trailing_slash(cls, value):
        """Request URLs are built as f"{api_url}/requests/{id}"."""
        if isinstance(value, str):
            value = value.rstrip("/")
        return value


app_settings = PollerSettings()

logger = LoggingAdapter("tfpoll", app_settings.TFPOLL_LOG_LEVEL)
