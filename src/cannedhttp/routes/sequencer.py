"""
Response sequencer.

Picks the next scripted response for a route key and advances that route's
cursor. Lookup, compare, read and increment happen under one lock shared by
every key, so concurrent requests never skip or repeat a response.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Union

from .table import Response, RouteTable

logger = logging.getLogger("cannedhttp.routes")


@dataclass(frozen=True, slots=True)
class Matched:
    """The request consumed `response`, which was call number `call` (1-indexed) for its key."""
    response: Response
    call: int


@dataclass(frozen=True, slots=True)
class Unmatched:
    """
    No response is available.

    `reason` is NOT_FOUND or EXHAUSTED. It is for logs only: both reasons
    produce the same reply on the wire.
    """
    reason: str


NOT_FOUND = "not_found"
EXHAUSTED = "exhausted"

SequenceResult = Union[Matched, Unmatched]


class ResponseSequencer:
    """Thread-safe cursor advancement over a RouteTable."""

    def __init__(self, table: RouteTable):
        self._table = table
        self._lock = threading.Lock()

    @property
    def table(self) -> RouteTable:
        return self._table

    def next(self, key: str) -> SequenceResult:
        """
        Consume the next response for `key`.

        Returns Matched with the response, or Unmatched when the key is unknown
        or its sequence has run out.
        """
        with self._lock:
            state = self._table.get(key)
            if state is None:
                result: SequenceResult = Unmatched(NOT_FOUND)
            elif state.exhausted:
                result = Unmatched(EXHAUSTED)
            else:
                result = Matched(state.advance(), state.cursor)
        logger.debug("route %r -> %r", key, result)
        return result
