# tfpoll/core/interfaces/http_client.py
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict

class HttpClientPort(ABC):
    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        """Async context manager entry method"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit method"""
        pass

    @abstractmethod
    async def get_json(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        """Make a GET request and return the decoded JSON object.

        Raises RemoteServiceError (TransientRemoteError for retryable
        failures) or DocumentDecodeError when the body is not a JSON object.
        """
        pass

    @abstractmethod
    async def download(self, url: str, destination: Path, timeout: float | None = None) -> int:
        """GET `url` and write the body verbatim to `destination`.

        The destination is created or overwritten only once the whole body
        has been received. Returns the number of bytes written.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the HTTP client session"""
        pass
