"""HTTP plumbing for cannedhttp.

A small HTTP/1.1 server on AnyIO sockets: `wire` frames requests and replies,
`handler` turns each request into its scripted reply.
"""

from .handler import URI_PLACEHOLDER, RequestHandler, route_key
from .wire import HttpReply, HttpRequest, RequestReader, write_head, write_reply

__all__ = [
    "HttpReply",
    "HttpRequest",
    "RequestHandler",
    "RequestReader",
    "URI_PLACEHOLDER",
    "route_key",
    "write_head",
    "write_reply",
]
