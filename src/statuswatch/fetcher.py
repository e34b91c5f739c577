"""Failover fetching of the status document across routes.

Routes are tried in registry order starting at the route that answered last
time. The first route that returns a document the normalizer accepts wins
and becomes the starting point of the next fetch. A previously good route
that degrades is still tried on later fetches, just last.
"""

from __future__ import annotations

import asyncio
import types
from dataclasses import dataclass
from typing import Any, Self

import httpx

from statuswatch.endpoints import EndpointDescriptor, EndpointRegistry
from statuswatch.errors import ParseError, TotalFailure, TransportError
from statuswatch.logging import get_logger
from statuswatch.normalizer import StatusSnapshot, normalize
from statuswatch.state import PollState

logger = get_logger(__name__)

# Upper bound for a single route attempt, in seconds
DEFAULT_ATTEMPT_TIMEOUT = 10.0

REQUEST_HEADERS = {"Accept": "application/json"}


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful fetch.

    Attributes:
        payload: Decoded JSON body as returned by the winning route.
        route_id: Id of the winning route.
        snapshot: The payload normalized for the route's response shape.
    """

    payload: Any
    route_id: int
    snapshot: StatusSnapshot


class FailoverFetcher:
    """Fetches the status document, failing over between routes.

    The HTTP client can be injected (tests, shared pools). Otherwise one is
    created lazily and closed by :meth:`aclose` or on context-manager exit.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        state: PollState,
        client: httpx.AsyncClient | None = None,
        attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT,
    ) -> None:
        """Initialize the fetcher.

        Args:
            registry: Routes to try, in priority order.
            state: Poll state; the fetcher writes ``last_good_index`` to it.
            client: Optional pre-configured async HTTP client.
            attempt_timeout: Seconds allowed for each route attempt.
        """
        self.registry = registry
        self.state = state
        self.attempt_timeout = attempt_timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the reusable HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.attempt_timeout),
                headers=REQUEST_HEADERS,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    async def fetch_status(self, start_index: int | None = None) -> FetchResult:
        """Fetch and normalize the status document.

        Args:
            start_index: Registry position to try first. Defaults to the route
                that answered last. Values outside the registry wrap around.

        Returns:
            The winning route's payload and normalized snapshot.

        Raises:
            TotalFailure: If every route failed; carries each route's error.
        """
        endpoints = self.registry.list_endpoints()
        count = len(endpoints)
        start = self.state.last_good_index if start_index is None else start_index

        attempts: dict[int, Exception] = {}
        for offset in range(count):
            index = (start + offset) % count
            endpoint = endpoints[index]
            route_logger = logger.with_context(route_id=endpoint.route_id, attempt=offset + 1)
            try:
                payload = await self._request(endpoint)
                snapshot = normalize(payload, endpoint.response_shape, endpoint.wrapper_field)
            except (TransportError, ParseError) as e:
                route_logger.warning("Route %s failed: %s", endpoint.route_id, e)
                attempts[endpoint.route_id] = e
                continue

            if index != self.state.last_good_index:
                route_logger.info("Switching to route %s", endpoint.route_id)
            self.state.last_good_index = index
            return FetchResult(payload=payload, route_id=endpoint.route_id, snapshot=snapshot)

        raise TotalFailure(attempts)

    async def _request(self, endpoint: EndpointDescriptor) -> Any:
        """Perform one route attempt and decode its JSON body.

        Raises:
            TransportError: On timeout, connection failure or non-2xx status.
            ParseError: If the body is not JSON.
        """
        url = self.registry.url_for(endpoint)
        client = self._get_client()
        logger.debug("Requesting route %s: %s", endpoint.route_id, url)

        try:
            async with asyncio.timeout(self.attempt_timeout):
                response = await client.get(url, headers=REQUEST_HEADERS)
            response.raise_for_status()
        except TimeoutError as e:
            raise TransportError(
                endpoint.route_id, f"timed out after {self.attempt_timeout:.1f}s"
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(endpoint.route_id, f"timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(endpoint.route_id, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportError(endpoint.route_id, f"request error: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Route {endpoint.route_id} returned a non-JSON body: {e}") from e
        except RecursionError as e:
            raise ParseError(
                f"Route {endpoint.route_id} returned a body nested too deeply to decode"
            ) from e


__all__ = [
    "DEFAULT_ATTEMPT_TIMEOUT",
    "FailoverFetcher",
    "FetchResult",
]
