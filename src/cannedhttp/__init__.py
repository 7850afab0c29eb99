"""Scriptable HTTP test double: canned response sequences per request path."""

from .config import ServerConfig
from .errors import BadRequest, CannedHTTPError, ConfigurationError
from .http.handler import URI_PLACEHOLDER, RequestHandler, route_key
from .routes.sequencer import Matched, ResponseSequencer, Unmatched
from .routes.table import Response, RouteState, RouteTable
from .server import BlockingServer, CannedServer

__all__ = [
    # Servers
    "CannedServer",
    "BlockingServer",
    "ServerConfig",
    # Routes
    "Response",
    "RouteState",
    "RouteTable",
    "ResponseSequencer",
    "Matched",
    "Unmatched",
    # Requests
    "RequestHandler",
    "route_key",
    "URI_PLACEHOLDER",
    # Errors
    "CannedHTTPError",
    "ConfigurationError",
    "BadRequest",
]
