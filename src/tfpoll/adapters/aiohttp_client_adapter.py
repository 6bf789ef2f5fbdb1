# tfpoll/adapters/aiohttp_client_adapter.py
import asyncio
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import aiohttp

from tfpoll.core.exceptions import (
    DocumentDecodeError,
    JobStoreError,
    RemoteServiceError,
    TransientRemoteError,
)
from tfpoll.core.interfaces.http_client import HttpClientPort
from tfpoll.core.settings import logger

TRANSIENT_STATUSES = {502, 503, 504}


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self, default_timeout: float = 30.0, chunk_size: int = 64 * 1024):
        self._session: Optional[aiohttp.ClientSession] = None
        self._chunk_size = chunk_size
        # Per-field timeouts are fixed at init time; callers only pick the total.
        self._default_total: float = default_timeout
        self._default_sock_connect: float = min(10.0, default_timeout)
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=self._default_total,
            sock_connect=self._default_sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        self._session = aiohttp.ClientSession(raise_for_status=False)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self._session

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        if timeout is None:
            return self._default_client_timeout
        return aiohttp.ClientTimeout(
            total=timeout,
            sock_connect=min(self._default_sock_connect, timeout),
        )

    async def get_json(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        session = self._require_session()
        with self._translate_errors(url):
            async with session.get(url, timeout=self._client_timeout(timeout)) as response:
                await self._check_status(url, response)
                try:
                    body = await response.json()
                except (aiohttp.ContentTypeError, ValueError) as decode_error:
                    response_text = await response.text(errors="replace")
                    logger.error(
                        "Invalid JSON response from remote service. URL: %s, Content: %s",
                        url,
                        response_text[:500],
                    )
                    raise DocumentDecodeError(
                        "The response from the remote service was not valid JSON",
                        source=url,
                        diagnostic=f"{decode_error}: '{response_text[:100]}'",
                    ) from decode_error

        if not isinstance(body, dict):
            raise DocumentDecodeError(
                "Expected a JSON object from the remote service",
                source=url,
                diagnostic=f"got {type(body).__name__}",
            )
        return body

    async def download(self, url: str, destination: Path, timeout: float | None = None) -> int:
        session = self._require_session()
        destination = Path(destination)
        partial = destination.with_name(destination.name + ".part")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise JobStoreError(
                f"Cannot create directory for artifact {destination}",
                path=str(destination.parent),
                diagnostic=str(exc),
            ) from exc

        written = 0
        completed = False
        try:
            with self._translate_errors(url):
                async with session.get(url, timeout=self._client_timeout(timeout)) as response:
                    await self._check_status(url, response)
                    try:
                        with open(partial, "wb") as out:
                            async for chunk in response.content.iter_chunked(self._chunk_size):
                                out.write(chunk)
                                written += len(chunk)
                        os.replace(partial, destination)
                    except (aiohttp.ClientError, asyncio.TimeoutError):
                        # ClientOSError and TimeoutError are OSErrors too; leave them to _translate_errors
                        raise
                    except OSError as exc:
                        raise JobStoreError(
                            f"Cannot write artifact {destination}",
                            path=str(destination),
                            diagnostic=str(exc),
                        ) from exc
            completed = True
        finally:
            if not completed:
                partial.unlink(missing_ok=True)

        logger.debug("Downloaded %s bytes from %s to %s", written, url, destination)
        return written

    async def _check_status(self, url: str, response: aiohttp.ClientResponse) -> None:
        if response.status == 200:
            return
        try:
            snippet = (await response.text())[:200]
        except (aiohttp.ClientError, UnicodeDecodeError):
            snippet = ""
        logger.error(
            "HTTP error when requesting remote service. URL: %s, Status: %s",
            url,
            response.status,
        )
        error_type = TransientRemoteError if response.status in TRANSIENT_STATUSES else RemoteServiceError
        raise error_type(
            f"HTTP GET failed: {response.status} {response.reason or ''}".rstrip(),
            url=url,
            upstream_status=response.status,
            diagnostic=snippet or None,
        )

    @contextmanager
    def _translate_errors(self, url: str) -> Iterator[None]:
        """Translate aiohttp/asyncio failures into the poller's error taxonomy."""
        try:
            yield
        except asyncio.TimeoutError as timeout_error:
            logger.error("Timeout when requesting remote service. URL: %s", url)
            raise TransientRemoteError(
                "The request to the remote service timed out",
                url=url,
            ) from timeout_error
        except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError) as connection_error:
            logger.error(
                "Connection error when requesting remote service. URL: %s, Error: %s",
                url,
                str(connection_error),
            )
            raise TransientRemoteError(
                "There was a connection error with the remote service",
                url=url,
                diagnostic=str(connection_error),
            ) from connection_error
        except aiohttp.ClientError as client_error:
            logger.error(
                "Client error when requesting remote service. URL: %s, Error: %s",
                url,
                str(client_error),
            )
            raise RemoteServiceError(
                "The request to the remote service failed",
                url=url,
                diagnostic=str(client_error),
            ) from client_error

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
