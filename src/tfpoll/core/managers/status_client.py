"""Remote status client: Testing Farm request state -> local queue state.

`resolve_status` is the pure mapping; `RemoteStatusClient` adds the HTTP
query, retry and decoding around it.
"""

from typing import Optional

from pydantic import ValidationError

from tfpoll.core.config import PollerConfig
from tfpoll.core.exceptions import DocumentDecodeError
from tfpoll.core.interfaces.http_client import HttpClientPort
from tfpoll.core.interfaces.retry import RetryPort
from tfpoll.core.models.request import (
    CONCLUSIVE_RESULTS,
    FINAL_REQUEST_STATES,
    QueueState,
    RemoteRequest,
    RequestState,
    StatusResolution,
)
from tfpoll.core.settings import logger


def resolve_status(request: RemoteRequest) -> StatusResolution:
    """Collapse a remote request onto pending / error / complete.

    1. Non-final states (including unknown ones) stay pending.
    2. error and canceled go to error.
    3. complete without a passed/failed verdict goes to error.
    4. Otherwise complete, carrying the artifacts URL verbatim.
    """
    state = request.state
    if state not in FINAL_REQUEST_STATES:
        return StatusResolution(status=QueueState.pending, remote_state=state)
    if state != RequestState.complete:
        return StatusResolution(status=QueueState.error, remote_state=state)
    if request.overall not in CONCLUSIVE_RESULTS:
        return StatusResolution(status=QueueState.error, remote_state=state)
    return StatusResolution(
        status=QueueState.complete,
        artifacts_url=request.artifacts,
        remote_state=state,
    )


class RemoteStatusClient:
    def __init__(
        self,
        http_client: HttpClientPort,
        config: PollerConfig,
        retry_port: Optional[RetryPort] = None,
    ) -> None:
        self._http = http_client
        self._config = config
        self._retry = retry_port

    async def fetch(self, request_id: str) -> RemoteRequest:
        if not request_id:
            raise DocumentDecodeError("Empty Testing Farm request id")
        url = self._config.request_url(request_id)
        logger.info("Fetching status of TF request ID %s", request_id)

        if self._retry:
            body = await self._retry.execute(self._http.get_json, url, timeout=self._config.request_timeout)
        else:
            body = await self._http.get_json(url, timeout=self._config.request_timeout)

        try:
            return RemoteRequest.model_validate(body)
        except ValidationError as exc:
            raise DocumentDecodeError(
                "Unexpected Testing Farm request document",
                source=url,
                diagnostic=str(exc),
            ) from exc

    async def resolve(self, request_id: str) -> StatusResolution:
        request = await self.fetch(request_id)
        logger.info("TF state is %s", request.state)
        logger.debug("TF artifacts URL: %s overall=%s", request.artifacts, request.overall)

        resolution = resolve_status(request)
        if resolution.status == QueueState.complete and not resolution.artifacts_url:
            raise DocumentDecodeError(
                f"TF request {request_id} is complete but has no artifacts URL",
                source=self._config.request_url(request_id),
            )
        return resolution
