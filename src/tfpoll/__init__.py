"""Poll Testing Farm requests for queued jobs and harvest their artifacts."""

__version__ = "0.1.0"
