"""Platform adapters: subprocesses, files, HTTP."""

from .files import atomic_write_text
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .process import ProcessError, run

__all__ = [
    "atomic_write_text",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "ProcessError",
    "run",
]
