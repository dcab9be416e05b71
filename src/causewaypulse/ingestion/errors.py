"""Failure taxonomy and tagged fetch results for the DataMall pipeline.

Three kinds of failure matter to the refresh loop:
- `NetworkError`: the request could not complete (DNS, connect, timeout, unreadable body).
- `HttpStatusError`: the remote answered, but not with a 2xx status.
- `InvalidShape`: the payload parsed, but it is not `{"value": [...]}`.

Fetching never raises these to the scheduler; it returns a `FetchOutcome` instead, so the
fallback between transports is a plain branch on the result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx


class FetchError(RuntimeError):
    """Base class for anything that stops a refresh cycle from producing layers."""

    kind = "unknown"


class NetworkError(FetchError):
    kind = "network"


class HttpStatusError(FetchError):
    kind = "http"

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = int(status_code)
        super().__init__(message or f"HTTP error! status: {self.status_code}")


class InvalidShape(FetchError):
    kind = "shape"


@dataclass(frozen=True)
class FetchSuccess:
    dataset: Any
    # Name of the transport that produced the payload ("direct" or "relay").
    transport: str

    ok = True


@dataclass(frozen=True)
class FetchFailure:
    reason: FetchError
    message: str
    both_failed: bool = False

    ok = False


FetchOutcome = Union[FetchSuccess, FetchFailure]


def classify_fetch_error(exc: Exception) -> FetchError:
    """Map an httpx/json exception onto the pipeline taxonomy."""

    if isinstance(exc, FetchError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = int(exc.response.status_code)
        return HttpStatusError(status, f"HTTP error! status: {status}")

    if isinstance(exc, (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.WriteTimeout, httpx.PoolTimeout)):
        return NetworkError(f"timeout: {exc}")

    if isinstance(exc, httpx.TransportError):
        lower = str(exc).lower()
        if "name or service not known" in lower or "temporary failure in name resolution" in lower:
            return NetworkError(f"dns: {exc}")
        return NetworkError(f"connect_error: {exc}")

    if isinstance(exc, (json.JSONDecodeError, UnicodeDecodeError)):
        return NetworkError(f"malformed response: {exc}")

    return NetworkError(str(exc) or type(exc).__name__)
