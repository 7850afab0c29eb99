"""Per-request logic: route key, sequencing and reply rendering."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from ..routes.sequencer import Matched, ResponseSequencer, Unmatched
from .wire import HttpReply, HttpRequest

logger = logging.getLogger("cannedhttp.server")

URI_PLACEHOLDER = "$$URI$$"


def route_key(target: str) -> str:
    """
    Identity of a request target: the path, plus `?` and the raw query when
    the query is non-empty. Nothing is decoded or reordered.
    """
    if not target.startswith("/"):
        # absolute-form ("http://host/p?q"), as sent to proxies
        parts = urlsplit(target)
        path, query = parts.path or "/", parts.query
    else:
        path, _, query = target.partition("?")
    if query:
        return f"{path}?{query}"
    return path


class RequestHandler:
    """
    Maps requests to scripted replies.

    Unknown keys and exhausted sequences both get an empty 501.
    """

    def __init__(self, sequencer: ResponseSequencer, base_url: str):
        self._sequencer = sequencer
        self._base_url = base_url

    @property
    def base_url(self) -> str:
        return self._base_url

    def render_body(self, body: str) -> str:
        return body.replace(URI_PLACEHOLDER, self._base_url)

    def handle(self, request: HttpRequest) -> HttpReply:
        key = route_key(request.target)
        result = self._sequencer.next(key)

        match result:
            case Unmatched(reason=reason):
                logger.debug("%s %s -> 501 (%s)", request.method, key, reason)
                return HttpReply(status=501)
            case Matched(response=response, call=call) if response.drop_connection:
                logger.debug("%s %s -> %d, dropping connection (call %d)", request.method, key, response.status, call)
                return HttpReply.dropped(response.status)
            case Matched(response=response, call=call):
                logger.debug("%s %s -> %d (call %d)", request.method, key, response.status, call)
                return HttpReply.text(self.render_body(response.body), status=response.status)
            case _:  # pragma: no cover
                raise TypeError(f"unexpected sequence result {result!r}")
