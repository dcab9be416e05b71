"""LTA DataMall client for the `TrafficSpeedBands` dataset.

The map refreshes from one JSON document: `{"value": [segment, ...]}`. Getting that document
is the only part of the pipeline that talks to the network, so it is also the only part with
a recovery path:

- Transport 1 ("direct"): GET the dataset URL with the `AccountKey` header.
- Transport 2 ("relay"): GET a relay endpoint that forwards the same URL and headers. Browsers
  and some networks block the direct call, while the relay usually gets through.

Each call of `fetch()` tries the transports in order and stops at the first success. There is
no backoff and no second round here: the refresh scheduler re-runs the whole cycle on its own
timer, so retrying inside the client would only stack requests on a slow upstream.
"""

from __future__ import annotations

# logging records which transport served the data and why the other one failed.
import logging
# dataclass keeps the transport descriptors tiny and immutable.
from dataclasses import dataclass
# Any/Optional make type intent explicit for JSON payloads and injected collaborators.
from typing import Any, Optional, Sequence
# quote reproduces browser-style percent-encoding of the target URL for the relay query string.
from urllib.parse import quote

# httpx gives us an async client with the same API as the sync one (and MockTransport for tests).
import httpx

from causewaypulse.ingestion.errors import (
    FetchError,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    classify_fetch_error,
)
from causewaypulse.settings import AppConfig, get_config, resolve_account_key


logger = logging.getLogger(__name__)

BOTH_FAILED_MESSAGE = (
    "Unable to load traffic data: both the direct request and the relay request failed."
)


@dataclass(frozen=True)
class DirectTransport:
    """Call the dataset URL as-is."""

    name: str = "direct"

    def request_url(self, target_url: str) -> str:
        return target_url


@dataclass(frozen=True)
class RelayTransport:
    """Route the call through a relay that takes the target URL as a `url` query parameter."""

    relay_url: str
    name: str = "relay"

    def request_url(self, target_url: str) -> str:
        # Same character set as JavaScript's encodeURIComponent, which relays expect.
        encoded = quote(target_url, safe="!~*'()")
        separator = "&" if "?" in self.relay_url else "?"
        return f"{self.relay_url}{separator}url={encoded}"


class DataMallFetcher:
    """Fetch the raw speed-band dataset, falling back through the configured transports.

    Resource lifetime:
    - When no `http_client` is injected, the fetcher owns one and `aclose()` must be awaited.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        account_key: Optional[str] = None,
        transports: Optional[Sequence[Any]] = None,
    ) -> None:
        self.config = config or get_config()
        self.target_url = self.config.datamall.target_url()

        # Both transports send the same headers; the relay forwards them upstream.
        key = account_key if account_key is not None else resolve_account_key(self.config)
        if not key:
            logger.warning("No DataMall account key configured; requests will likely be rejected.")
        self.headers = {"AccountKey": key, "accept": "application/json"}

        # Order matters: the first transport is the primary, the rest are fallbacks.
        self.transports: tuple[Any, ...] = tuple(
            transports
            or (DirectTransport(), RelayTransport(relay_url=self.config.datamall.relay_url))
        )

        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self.config.datamall.request_timeout_seconds
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""

        if self._owns_client:
            await self._http.aclose()

    async def _attempt(self, transport: Any) -> Any:
        """Run one GET through `transport` and return the decoded JSON body."""

        url = transport.request_url(self.target_url)
        response = await self._http.get(url, headers=self.headers)
        # Non-2xx becomes httpx.HTTPStatusError, which classifies as HttpStatusError(code).
        response.raise_for_status()
        # A body that is not JSON raises here and classifies as a NetworkError.
        return response.json()

    async def fetch(self) -> FetchOutcome:
        """Try each transport once, in order; return the first success or a combined failure."""

        last_error: Optional[FetchError] = None
        for index, transport in enumerate(self.transports):
            try:
                dataset = await self._attempt(transport)
            except Exception as exc:  # noqa: BLE001 - every failure moves on to the next transport
                last_error = classify_fetch_error(exc)
                is_last = index == len(self.transports) - 1
                logger.warning(
                    "%s fetch failed (%s)%s",
                    transport.name.capitalize(),
                    last_error,
                    "" if is_last else ", trying next transport",
                )
                continue

            logger.info("%s fetch successful.", transport.name.capitalize())
            return FetchSuccess(dataset=dataset, transport=transport.name)

        if last_error is None:
            last_error = FetchError("no transports configured")
        both_failed = len(self.transports) > 1
        message = BOTH_FAILED_MESSAGE if both_failed else f"Unable to load traffic data: {last_error}"
        logger.error("All transports failed: %s", last_error)
        return FetchFailure(reason=last_error, message=message, both_failed=both_failed)
