from typing import Optional


class PollerError(Exception):
    """Base exception for poll pass failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
        job_name: Job the error belongs to; None for errors that concern the
            whole pass (e.g. the pending queue cannot be read)
    """
    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        job_name: Optional[str] = None
    ):
        self.message = message
        self.diagnostic = diagnostic
        self.job_name = job_name
        super().__init__(message)

    @property
    def is_job_scoped(self) -> bool:
        return self.job_name is not None

    def for_job(self, job_name: str) -> "PollerError":
        """Attach the job name if the raiser did not know it."""
        if self.job_name is None:
            self.job_name = job_name
        return self


class JobStoreError(PollerError):
    """Raised on filesystem failures: unreadable queue, failed rename, write errors.

    Attributes:
        path: Filesystem path involved in the failing operation
    """
    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        diagnostic: Optional[str] = None,
        job_name: Optional[str] = None
    ):
        self.path = path
        super().__init__(message=message, diagnostic=diagnostic, job_name=job_name)


class RemoteServiceError(PollerError):
    """Raised when the remote service answers with an unexpected status or cannot be reached.

    Attributes:
        url: Requested URL
        upstream_status: HTTP status code (None for transport failures)
    """
    def __init__(
        self,
        message: str,
        url: str,
        upstream_status: Optional[int] = None,
        diagnostic: Optional[str] = None,
        job_name: Optional[str] = None
    ):
        self.url = url
        self.upstream_status = upstream_status
        super().__init__(message=message, diagnostic=diagnostic, job_name=job_name)


class TransientRemoteError(RemoteServiceError):
    """Remote failure worth retrying: timeouts, connection errors, 502/503/504."""

    pass


class DocumentDecodeError(PollerError):
    """Raised when a JSON or XML document cannot be decoded into the expected shape.

    Attributes:
        source: URL or path the document came from
    """
    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        diagnostic: Optional[str] = None,
        job_name: Optional[str] = None
    ):
        self.source = source
        super().__init__(message=message, diagnostic=diagnostic, job_name=job_name)


class DispatchDescriptorError(DocumentDecodeError):
    """Raised when a job's dispatch descriptor is missing, malformed or lacks a request id."""

    pass
