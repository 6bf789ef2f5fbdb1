from typing import Any, Awaitable, Callable, Sequence, Type
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from tfpoll.core.exceptions import TransientRemoteError
from tfpoll.core.settings import logger

class TenacityRetryAdapter:
    """Tenacity-based retry adapter implementing RetryPort.

    Provides exponential backoff and supports async callables. Call-time kwargs can
    override default policy parameters (attempts, wait_initial, wait_max, exception_types).
    Only TransientRemoteError is retried unless told otherwise.
    """

    def __init__(
        self,
        attempts: int = 3,
        wait_initial: float = 0.5,
        wait_max: float = 5.0,
        exception_types: Sequence[Type[Exception]] = (TransientRemoteError,),
    ) -> None:
        self.attempts = attempts
        self.wait_initial = wait_initial
        self.wait_max = wait_max
        self.exception_types = tuple(exception_types)

    @classmethod
    def from_config(cls, config) -> "TenacityRetryAdapter":
        return cls(
            attempts=config.retry_attempts,
            wait_initial=config.retry_wait_initial,
            wait_max=config.retry_wait_max,
        )

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        attempts = kwargs.pop("attempts", self.attempts)
        wait_initial = kwargs.pop("wait_initial", self.wait_initial)
        wait_max = kwargs.pop("wait_max", self.wait_max)
        exception_types = tuple(kwargs.pop("exception_types", self.exception_types))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=wait_initial, max=wait_max),
            retry=retry_if_exception_type(exception_types),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:  # pragma: no cover - control flow instrumentation
            with attempt:
                return await func(*args, **kwargs)

    @staticmethod
    def _log_retry(retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "[retry] attempt %s failed, retrying: %s",
            retry_state.attempt_number,
            exc,
        )
