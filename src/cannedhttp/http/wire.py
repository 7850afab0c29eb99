"""HTTP/1.1 framing on AnyIO byte streams.

Deliberately small:
- request line + headers parsing
- Content-Length and chunked request bodies (read and kept, never interpreted)
- persistent connections with HTTP/1.1 defaults
- replies always carry Content-Length, except the "drop" head which announces
  a chunked body that never arrives
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Mapping

import anyio
from anyio.abc import AnyByteReceiveStream, ByteSendStream
from anyio.streams.buffered import BufferedByteReceiveStream

from ..errors import BadRequest


HeaderMap = dict[str, str]

_MAX_CHUNK_LINE = 1024
_NO_BODY_STATUSES = frozenset({204, 304})


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    target: str
    version: str
    headers: HeaderMap
    body: bytes = b""

    @property
    def keep_alive(self) -> bool:
        """Whether the connection may serve another request after this one."""
        if self.version != "HTTP/1.1":
            return False
        tokens = {t.strip().lower() for t in self.headers.get("connection", "").split(",")}
        return "close" not in tokens


@dataclass(frozen=True, slots=True)
class HttpReply:
    status: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    drop_connection: bool = False

    @staticmethod
    def text(
        text: str,
        *,
        status: int = 200,
        encoding: str = "utf-8",
    ) -> "HttpReply":
        return HttpReply(
            status=status,
            headers={"content-type": f"text/plain; charset={encoding}"},
            body=text.encode(encoding),
        )

    @staticmethod
    def dropped(status: int) -> "HttpReply":
        # A chunked head with no chunks: the peer can only see a truncated body.
        return HttpReply(
            status=status,
            headers={"transfer-encoding": "chunked"},
            drop_connection=True,
        )


def _status_line(status: int) -> bytes:
    try:
        text = HTTPStatus(status).phrase
    except ValueError:
        text = ""
    return f"HTTP/1.1 {status} {text}\r\n".encode("ascii")


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {k.lower(): v for k, v in headers.items()}


def _encode_head(status: int, headers: Mapping[str, str]) -> bytes:
    head = b"".join(f"{k}: {v}\r\n".encode("latin-1") for k, v in headers.items())
    return _status_line(status) + head + b"\r\n"


def parse_head(block: bytes) -> tuple[str, str, str, HeaderMap]:
    """Split a header block (without the trailing blank line) into its parts."""
    try:
        head = block.decode("iso-8859-1")
    except UnicodeDecodeError as e:  # pragma: no cover
        raise BadRequest(f"invalid header encoding: {e!r}") from e

    # Stray CRLFs between pipelined requests are allowed before the request line.
    lines = head.lstrip("\r\n").split("\r\n")
    if not lines or not lines[0]:
        raise BadRequest("missing request line")

    parts = lines[0].split(" ")
    if len(parts) != 3:
        raise BadRequest("invalid request line")
    method, target, version = parts
    if not version.startswith("HTTP/1."):
        raise BadRequest(f"unsupported protocol version {version!r}", status=505)
    if not target:
        raise BadRequest("empty request target")

    headers: HeaderMap = {}
    for line in lines[1:]:
        if line == "":
            break
        if ":" not in line:
            continue
        k, v = line.split(":", 1)
        name = k.strip().lower()
        value = v.strip()
        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value
    return method, target, version, headers


class RequestReader:
    """
    Reads successive requests off one connection.

    Bytes past the end of a request stay buffered for the next one, so
    pipelined requests work.
    """

    def __init__(
        self,
        stream: AnyByteReceiveStream,
        *,
        max_header_bytes: int = 64 * 1024,
        max_body_bytes: int = 1 * 1024 * 1024,
    ):
        self._buffered = BufferedByteReceiveStream(stream)
        self._max_header_bytes = max_header_bytes
        self._max_body_bytes = max_body_bytes

    async def next_request(self) -> HttpRequest | None:
        """Return the next request, or None once the peer stops sending."""
        try:
            block = await self._buffered.receive_until(b"\r\n\r\n", self._max_header_bytes)
        except anyio.IncompleteRead:
            return None
        except anyio.DelimiterNotFound as e:
            raise BadRequest("request header block too large", status=431) from e

        method, target, version, headers = parse_head(block)
        try:
            body = await self._read_body(headers)
        except anyio.IncompleteRead:
            return None
        return HttpRequest(method=method, target=target, version=version, headers=headers, body=body)

    async def _read_body(self, headers: HeaderMap) -> bytes:
        transfer_encoding = headers.get("transfer-encoding", "").lower()
        if transfer_encoding:
            if transfer_encoding.split(",")[-1].strip() != "chunked":
                raise BadRequest(f"unsupported transfer-encoding {transfer_encoding!r}", status=501)
            return await self._read_chunked()

        raw_length = headers.get("content-length", "0") or "0"
        try:
            content_length = int(raw_length)
        except ValueError as e:
            raise BadRequest(f"invalid content-length {raw_length!r}") from e
        if content_length < 0:
            raise BadRequest(f"invalid content-length {raw_length!r}")
        if content_length > self._max_body_bytes:
            raise BadRequest("payload too large", status=413)
        if content_length == 0:
            return b""
        return await self._buffered.receive_exactly(content_length)

    async def _read_chunked(self) -> bytes:
        body = bytearray()
        while True:
            try:
                line = await self._buffered.receive_until(b"\r\n", _MAX_CHUNK_LINE)
            except anyio.DelimiterNotFound as e:
                raise BadRequest("chunk size line too long") from e
            size_text = line.split(b";", 1)[0].strip()
            try:
                size = int(size_text, 16)
            except ValueError as e:
                raise BadRequest(f"invalid chunk size {size_text!r}") from e
            if size < 0:
                raise BadRequest(f"invalid chunk size {size_text!r}")
            if size == 0:
                break
            if len(body) + size > self._max_body_bytes:
                raise BadRequest("payload too large", status=413)
            body.extend(await self._buffered.receive_exactly(size))
            if await self._buffered.receive_exactly(2) != b"\r\n":
                raise BadRequest("missing CRLF after chunk data")

        # Trailers are read and ignored, up to the blank line.
        while True:
            try:
                trailer = await self._buffered.receive_until(b"\r\n", self._max_header_bytes)
            except anyio.DelimiterNotFound as e:
                raise BadRequest("trailer line too long", status=431) from e
            if trailer == b"":
                return bytes(body)


async def write_reply(
    stream: ByteSendStream,
    reply: HttpReply,
    *,
    keep_alive: bool = False,
    include_body: bool = True,
) -> None:
    """Send a complete reply. `include_body=False` is used for HEAD requests."""
    headers = _normalize_headers(reply.headers)
    body = reply.body or b""

    if reply.status in _NO_BODY_STATUSES:
        body = b""
        headers.pop("content-length", None)
    else:
        headers.setdefault("content-length", str(len(body)))
    headers.setdefault("connection", "keep-alive" if keep_alive else "close")

    if not include_body:
        body = b""
    await stream.send(_encode_head(reply.status, headers) + body)


async def write_head(stream: ByteSendStream, reply: HttpReply) -> None:
    """Send only the status line and headers of `reply`."""
    headers = _normalize_headers(reply.headers)
    headers.setdefault("connection", "close")
    await stream.send(_encode_head(reply.status, headers))
