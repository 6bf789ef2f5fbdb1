"""Central logging configuration utilities.

`configure_logging` is called once by the composition root. It wires
separate stdout/stderr sinks and injects the name of the job currently being
polled into every log record. Adapters and domain code never mutate global
logging; they only emit via `LoggingPort` or standard module loggers.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

# Job context variable (set by the poller while a job is processed)
job_name_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "job_name", default="-"
)

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s job=%(job_name)s: %(message)s"


def coerce_level(level: int | str | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    key = str(level).upper().strip()
    mapping = logging.getLevelNamesMapping()
    return mapping.get(key, logging.INFO)


@contextmanager
def job_context(job_name: str) -> Iterator[None]:
    """Tag all log records emitted inside the block with `job_name`."""
    token = job_name_var.set(job_name)
    try:
        yield
    finally:
        job_name_var.reset(token)


class _JobNameFilter(logging.Filter):
    """Inject job name from contextvar into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - simple
        record.job_name = job_name_var.get()
        return True


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return record.levelno <= self.max_level


class _MinLevelFilter(logging.Filter):
    def __init__(self, min_level: int):
        super().__init__()
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return record.levelno >= self.min_level


def configure_logging(
    level: int | str | None = None,
    fmt: Optional[str] = None,
    quiet_libraries: bool = True,
) -> None:
    """Configure root logger with separate stdout/stderr sinks & job name.

    Notes
    -----
    * DEBUG/INFO go to stdout, WARNING and above to stderr.
    * aiohttp and asyncio loggers are raised to WARNING when `quiet_libraries`.
    """
    numeric_level = coerce_level(level)
    fmt = fmt or DEFAULT_FORMAT

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Clear existing handlers to avoid duplication when called twice
    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = logging.Formatter(fmt)
    job_filter = _JobNameFilter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(_MaxLevelFilter(logging.INFO))
    stdout_handler.addFilter(job_filter)
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.addFilter(_MinLevelFilter(logging.WARNING))
    stderr_handler.addFilter(job_filter)
    stderr_handler.setFormatter(formatter)

    root.addHandler(stdout_handler)
    root.addHandler(stderr_handler)

    if quiet_libraries:
        for name in ("aiohttp", "asyncio"):
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("tfpoll").debug(
        "Logging configured level=%s quiet_libraries=%s", numeric_level, quiet_libraries
    )
