"""Route table: request key -> scripted response sequence."""

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional

from ..errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class Response:
    """
    One canned reply.

    Attributes:
        status: HTTP status code to send (200-999).
        body: Body text. Every `$$URI$$` is replaced with the server's base URL.
        drop_connection: Send the status line and headers, then close the
            connection before any body byte. The caller sees a truncated body,
            except where HTTP defines no body at all (HEAD requests, 204 and
            304): there the reply reads as complete and empty.
    """
    status: int
    body: str = ""
    drop_connection: bool = False

    def __post_init__(self):
        """Validate the response."""
        if isinstance(self.status, bool) or not isinstance(self.status, int):
            raise ConfigurationError(f"status must be an int, got {self.status!r}")
        # 1xx codes are interim responses and cannot end an exchange.
        if not 200 <= self.status <= 999:
            raise ConfigurationError(f"status out of range: {self.status}")
        if not isinstance(self.body, str):
            raise ConfigurationError(f"body must be a str, got {type(self.body).__name__}")


@dataclass(slots=True)
class RouteState:
    """
    Configured responses for one key plus the number of calls already served.

    The cursor is only moved by `advance()`, which the sequencer calls while
    holding its lock.
    """
    responses: tuple[Response, ...]
    cursor: int = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.responses)

    @property
    def remaining(self) -> int:
        return len(self.responses) - self.cursor

    def advance(self) -> Response:
        """Return the response at the cursor and move past it."""
        if self.exhausted:
            raise IndexError("route sequence exhausted")
        response = self.responses[self.cursor]
        self.cursor += 1
        return response


class RouteTable:
    """
    Fixed mapping of route keys to their response sequences.

    Routes are supplied once, at construction. Only cursors change afterwards.
    """

    def __init__(self, routes: Optional[Mapping[str, Iterable[Response]]] = None):
        self._states: dict[str, RouteState] = {}
        for key, responses in (routes or {}).items():
            if not isinstance(key, str) or not key.startswith("/"):
                raise ConfigurationError(f"route key must be a path starting with '/', got {key!r}")
            sequence = tuple(responses)
            for response in sequence:
                if not isinstance(response, Response):
                    raise ConfigurationError(
                        f"route {key!r}: expected Response, got {type(response).__name__}"
                    )
            self._states[key] = RouteState(responses=sequence)

    def get(self, key: str) -> Optional[RouteState]:
        return self._states.get(key)

    def call_count(self, key: str) -> int:
        """Number of requests served from the sequence of `key`."""
        return self._states[key].cursor

    def remaining(self, key: str) -> int:
        """Number of responses left for `key` before it answers 501."""
        return self._states[key].remaining

    def keys(self) -> list[str]:
        return list(self._states.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)
