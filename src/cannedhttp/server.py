"""
Server lifecycle.

`CannedServer` binds an AnyIO TCP listener and serves every connection in a
task of its own task group. `BlockingServer` runs one on a background event
loop thread for synchronous tests.
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from typing import Any, Iterable, Mapping, Optional

import anyio
from anyio.abc import SocketAttribute, SocketStream, TaskGroup, TaskStatus
from anyio.from_thread import start_blocking_portal

from .config import ServerConfig
from .errors import BadRequest
from .http.handler import RequestHandler
from .http.wire import HttpReply, RequestReader, write_head, write_reply
from .routes.sequencer import ResponseSequencer
from .routes.table import Response, RouteTable

logger = logging.getLogger("cannedhttp.server")

Routes = Mapping[str, Iterable[Response]]

_DISCONNECTS = (anyio.BrokenResourceError, anyio.ClosedResourceError, anyio.EndOfStream)


def _build_config(config: Optional[ServerConfig], overrides: dict[str, Any]) -> ServerConfig:
    config = config or ServerConfig()
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config


def _url_host(host: str) -> str:
    # wildcard binds are reached through loopback
    if host in ("", "0.0.0.0"):
        return "127.0.0.1"
    if host == "::":
        return "[::1]"
    if ":" in host:
        return f"[{host}]"
    return host


async def _send_final(stream: SocketStream, reply: HttpReply) -> None:
    """Best-effort reply on a connection that is about to close."""
    with contextlib.suppress(*_DISCONNECTS):
        await write_reply(stream, reply, keep_alive=False)


class CannedServer:
    """
    Scriptable HTTP server.

    Each route key maps to an ordered list of responses; the Nth request for a
    key gets the Nth response. Unknown keys and exhausted sequences get an
    empty 501.

    Usage:
        async with CannedServer({"/ping": [Response(200, "pong")]}) as server:
            ... # talk to server.url

    Leaving the block stops accepting connections and closes open ones.
    """

    def __init__(
        self,
        routes: Optional[Routes] = None,
        *,
        config: Optional[ServerConfig] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        self._config = _build_config(config, {"host": host, "port": port})
        self._table = RouteTable(routes)
        self._sequencer = ResponseSequencer(self._table)
        self._handler: Optional[RequestHandler] = None
        self._url: Optional[str] = None
        # anyio.create_tcp_listener() may return a MultiListener; keep it loosely typed.
        self._listener: Any = None
        self._task_group: Optional[TaskGroup] = None
        self._closed = False

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def routes(self) -> RouteTable:
        return self._table

    @property
    def url(self) -> str:
        if self._url is None:
            raise RuntimeError("CannedServer is not started")
        return self._url

    def base_url(self) -> str:
        return self.url

    @property
    def running(self) -> bool:
        return self._task_group is not None

    async def __aenter__(self) -> "CannedServer":
        if self._closed or self._task_group is not None:
            raise RuntimeError("CannedServer can only be started once")

        host = self._config.host or None
        self._listener = await anyio.create_tcp_listener(local_host=host, local_port=self._config.port)
        port = self._listener.extra(SocketAttribute.local_port)
        self._url = f"http://{_url_host(self._config.host)}:{port}"
        self._handler = RequestHandler(self._sequencer, self._url)

        self._task_group = anyio.create_task_group()
        await self._task_group.__aenter__()
        await self._task_group.start(self._serve_loop, self._listener, self._task_group)

        logger.info("serving %d route(s) on %s", len(self._table), self._url)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        task_group, self._task_group = self._task_group, None
        if task_group is None:
            return
        self._closed = True
        task_group.cancel_scope.cancel()
        try:
            await task_group.__aexit__(None, None, None)
        finally:
            await self._listener.aclose()
        logger.info("stopped %s", self._url)

    async def _serve_loop(
        self,
        listener: Any,
        task_group: TaskGroup,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        """
        Accept connections until cancelled.

        listener.serve() is the portable API for both Listener and MultiListener.
        """
        async with listener:
            task_status.started()
            await listener.serve(self._handle_client, task_group=task_group)

    async def _handle_client(self, stream: SocketStream) -> None:
        assert self._handler is not None
        reader = RequestReader(
            stream,
            max_header_bytes=self._config.max_header_bytes,
            max_body_bytes=self._config.max_body_bytes,
        )
        async with stream:
            try:
                while True:
                    request = await reader.next_request()
                    if request is None:
                        return

                    reply = self._handler.handle(request)
                    if reply.drop_connection:
                        # Headers only; leaving the block closes the socket mid-response.
                        await write_head(stream, reply)
                        return

                    keep_alive = request.keep_alive
                    await write_reply(
                        stream,
                        reply,
                        keep_alive=keep_alive,
                        include_body=request.method.upper() != "HEAD",
                    )
                    if not keep_alive:
                        return
            except BadRequest as e:
                logger.warning("rejecting request with %d: %s", e.status, e)
                await _send_final(stream, HttpReply.text(f"bad request: {e}", status=e.status))
            except _DISCONNECTS:
                logger.debug("client went away")
            except Exception:
                logger.exception("error while serving connection")
                await _send_final(stream, HttpReply.text("internal server error", status=500))


class BlockingServer:
    """
    A CannedServer driven from synchronous code.

    The server runs on an AnyIO blocking portal (an event loop in a worker
    thread). It is listening as soon as the constructor returns.

        with BlockingServer({"/ping": [Response(200, "pong")]}) as server:
            requests_to(server.url)
    """

    def __init__(
        self,
        routes: Optional[Routes] = None,
        *,
        config: Optional[ServerConfig] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        backend: str = "asyncio",
    ):
        self._exit_stack = contextlib.ExitStack()
        try:
            portal = self._exit_stack.enter_context(start_blocking_portal(backend))
            server = CannedServer(routes, config=config, host=host, port=port)
            self._server = self._exit_stack.enter_context(portal.wrap_async_context_manager(server))
        except BaseException:
            self._exit_stack.close()
            raise

    @property
    def url(self) -> str:
        return self._server.url

    def base_url(self) -> str:
        return self._server.url

    @property
    def routes(self) -> RouteTable:
        return self._server.routes

    def close(self) -> None:
        """Stop the server and its event loop thread. Safe to call twice."""
        self._exit_stack.close()

    def __enter__(self) -> "BlockingServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
