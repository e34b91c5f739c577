"""Registry of access routes to the upstream status API.

Every route wraps the same mcsrvstat.us lookup. Browsers need a CORS proxy to
reach it, and each proxy returns the document differently: most pass it
through unchanged, allorigins wraps it as a JSON string in ``contents``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

# Upstream status lookup, proxied by every route
STATUS_API_TEMPLATE = "https://api.mcsrvstat.us/2/{address}:{port}"

DEFAULT_WRAPPER_FIELD = "contents"


class ResponseShape(Enum):
    """How a route delivers the status document."""

    DIRECT = "direct"  # Body is the status document
    WRAPPED = "wrapped"  # Body holds the document as a JSON string in a field


@dataclass(frozen=True)
class EndpointDescriptor:
    """One access route to the upstream status API.

    Attributes:
        route_id: Position in the registry, also the priority order.
        url_template: Outbound URL with a ``{target}`` placeholder.
        response_shape: How the route returns the status document.
        encode_target: Whether the upstream URL is percent-encoded before
            substitution (query-string proxies need it, path proxies do not).
        wrapper_field: Field holding the serialized document for WRAPPED routes.
    """

    route_id: int
    url_template: str
    response_shape: ResponseShape
    encode_target: bool = True
    wrapper_field: str = DEFAULT_WRAPPER_FIELD

    def url_for(self, target: str) -> str:
        """Render the outbound URL for the given upstream URL."""
        value = quote(target, safe="") if self.encode_target else target
        return self.url_template.format(target=value)


class EndpointRegistry:
    """Static, ordered list of routes to one upstream status URL."""

    def __init__(self, target_url: str, endpoints: tuple[EndpointDescriptor, ...]) -> None:
        if not endpoints:
            raise ValueError("EndpointRegistry requires at least one endpoint")
        self._target_url = target_url
        self._endpoints = endpoints

    @property
    def target_url(self) -> str:
        """The upstream URL every route proxies."""
        return self._target_url

    def list_endpoints(self) -> tuple[EndpointDescriptor, ...]:
        """Return the routes in priority order."""
        return self._endpoints

    def url_for(self, endpoint: EndpointDescriptor) -> str:
        return endpoint.url_for(self._target_url)

    def __len__(self) -> int:
        return len(self._endpoints)


def build_target_url(address: str, port: int) -> str:
    """Build the upstream status lookup URL for a server."""
    return STATUS_API_TEMPLATE.format(address=address, port=port)


def build_registry(address: str, port: int) -> EndpointRegistry:
    """Build the default registry: corsproxy.io, allorigins, cors-anywhere."""
    endpoints = (
        EndpointDescriptor(
            route_id=0,
            url_template="https://corsproxy.io/?{target}",
            response_shape=ResponseShape.DIRECT,
        ),
        EndpointDescriptor(
            route_id=1,
            url_template="https://api.allorigins.win/get?url={target}",
            response_shape=ResponseShape.WRAPPED,
        ),
        EndpointDescriptor(
            route_id=2,
            url_template="https://cors-anywhere.herokuapp.com/{target}",
            response_shape=ResponseShape.DIRECT,
            encode_target=False,
        ),
    )
    return EndpointRegistry(build_target_url(address, port), endpoints)


__all__ = [
    "DEFAULT_WRAPPER_FIELD",
    "EndpointDescriptor",
    "EndpointRegistry",
    "ResponseShape",
    "build_registry",
    "build_target_url",
]
