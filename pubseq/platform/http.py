"""HTTP client abstraction for registry lookups.

Publishing goes through the registries' own CLIs; reading back whether a
version is visible goes through their public HTTP APIs. This module provides:
- HttpClient: Protocol for read-only HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol, cast, runtime_checkable

from pubseq import __version__
from pubseq.core.result import Err, Ok, Result
from pubseq.core.structured import as_str_dict

__all__ = [
    "HttpClient",
    "RealHttpClient",
    "MockHttpClient",
    "HttpError",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    @property
    def not_found(self) -> bool:
        return self.status == 404

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP reads.

    Registry clients receive one of these so unit tests never touch the
    network.
    """

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        """Fetch URL and parse the body as a JSON object."""
        ...

    def get_text(self, url: str) -> Result[str, HttpError]:
        """Fetch URL and return the body as text."""
        ...


class RealHttpClient:
    """HTTP client using urllib with system certificates.

    crates.io rejects requests without a descriptive User-Agent, so one is
    always sent.
    """

    def __init__(self, timeout: float = 30.0, user_agent: str | None = None) -> None:
        self.timeout = timeout
        self.user_agent = user_agent or f"pubseq/{__version__}"
        self._ssl_context = ssl.create_default_context()

    def _request(self, url: str) -> Result[bytes, HttpError]:
        try:
            req = urllib.request.Request(
                url,
                headers={"User-Agent": self.user_agent, "Cache-Control": "no-cache"},
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(response.read())
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        result = self._request(url)
        if isinstance(result, Err):
            return result

        try:
            data_obj: object = json.loads(result.value.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))

        data = as_str_dict(data_obj)
        if data is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        return Ok(cast(dict[str, Any], data))

    def get_text(self, url: str) -> Result[str, HttpError]:
        result = self._request(url)
        if isinstance(result, Err):
            return result

        try:
            return Ok(result.value.decode("utf-8"))
        except UnicodeDecodeError as e:
            return Err(HttpError(url=url, status=0, message=f"Decode error: {e}"))


class MockHttpClient:
    """Mock HTTP client for testing.

    Unknown URLs answer 404, which is exactly what a registry returns for a
    version that has not propagated yet.

    Usage:
        client = MockHttpClient()
        client.set_json("https://registry.npmjs.org/ywasm/0.17.0", {"version": "0.17.0"})
    """

    def __init__(self) -> None:
        self._json_responses: dict[str, dict[str, Any] | HttpError] = {}
        self._text_responses: dict[str, str | HttpError] = {}
        self.calls: list[tuple[str, str]] = []

    def set_json(self, url: str, response: dict[str, Any] | HttpError) -> None:
        self._json_responses[url] = response

    def set_text(self, url: str, response: str | HttpError) -> None:
        self._text_responses[url] = response

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        self.calls.append(("get_json", url))

        if url not in self._json_responses:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = self._json_responses[url]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def get_text(self, url: str) -> Result[str, HttpError]:
        self.calls.append(("get_text", url))

        if url not in self._text_responses:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = self._text_responses[url]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
