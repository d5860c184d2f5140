"""
Stdio JSON-RPC Protocol — Content-Length framed JSON-RPC 2.0 messages.

Frames may arrive split or coalesced across chunks; bytes are buffered until
a full `header\\r\\n\\r\\nbody` frame is available. Frames whose body is not
JSON, or is not a JSON-RPC 2.0 request, go to the protocol-error callback
and never reach the request handler.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, BinaryIO, Callable, Optional, Union

JsonRpcId = Union[str, int, None]
RequestHandler = Callable[[dict[str, Any]], Union[Awaitable[None], None]]
ProtocolErrorHandler = Callable[[Exception], None]

HEADER_SEPARATOR = b"\r\n\r\n"
READ_CHUNK_SIZE = 65536


class JsonRpcProtocolError(ValueError):
    pass


def parse_content_length(header_text: str) -> int:
    for line in header_text.split("\r\n"):
        name, _, value = line.partition(":")
        if name.strip().lower() == "content-length":
            try:
                parsed = int(value.strip())
            except ValueError:
                break
            if parsed < 0:
                break
            return parsed
    raise JsonRpcProtocolError("Missing or invalid Content-Length header")


class StdioJsonRpcProtocol:
    def __init__(
        self,
        on_request: RequestHandler,
        on_protocol_error: Optional[ProtocolErrorHandler] = None,
        output: Optional[BinaryIO] = None,
    ) -> None:
        self.on_request = on_request
        self.on_protocol_error = on_protocol_error
        self.output = output
        self._buffer = b""

    async def ingest_chunk(self, chunk: Union[bytes, str]) -> None:
        """Buffer `chunk` and dispatch every complete frame, in order."""
        self._buffer += chunk.encode("utf-8") if isinstance(chunk, str) else chunk

        while True:
            header_end = self._buffer.find(HEADER_SEPARATOR)
            if header_end == -1:
                return

            try:
                header_text = self._buffer[:header_end].decode("utf-8")
                content_length = parse_content_length(header_text)
            except UnicodeDecodeError as e:
                self._buffer = self._buffer[header_end + len(HEADER_SEPARATOR):]
                self._report(JsonRpcProtocolError(f"Invalid header encoding: {e}"))
                continue
            except JsonRpcProtocolError as e:
                # Drop the bad header so the stream can resynchronise on the next frame.
                self._buffer = self._buffer[header_end + len(HEADER_SEPARATOR):]
                self._report(e)
                continue

            message_start = header_end + len(HEADER_SEPARATOR)
            message_end = message_start + content_length
            if len(self._buffer) < message_end:
                return

            raw_body = self._buffer[message_start:message_end]
            self._buffer = self._buffer[message_end:]

            try:
                parsed = json.loads(raw_body.decode("utf-8"))
            except UnicodeDecodeError as e:
                self._report(JsonRpcProtocolError(f"Invalid body encoding: {e}"))
                continue
            except json.JSONDecodeError as e:
                self._report(JsonRpcProtocolError(f"Invalid JSON body: {e}"))
                continue

            try:
                await self.dispatch_message(parsed)
            except Exception as e:
                self._report(e)

    async def dispatch_message(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            raise JsonRpcProtocolError("Invalid JSON-RPC payload: expected object")
        if raw.get("jsonrpc") != "2.0":
            raise JsonRpcProtocolError("Invalid JSON-RPC payload: jsonrpc must be 2.0")
        method = raw.get("method")
        if not isinstance(method, str) or not method.strip():
            raise JsonRpcProtocolError("Invalid JSON-RPC payload: method is required")

        result = self.on_request(raw)
        if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
            await result

    def write_result(self, id: JsonRpcId, result: Any) -> None:
        self.write_message({"jsonrpc": "2.0", "id": id, "result": result})

    def write_error(self, id: JsonRpcId, code: int, message: str, data: Any = None) -> None:
        error: dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        self.write_message({"jsonrpc": "2.0", "id": id, "error": error})

    def write_message(self, payload: dict[str, Any]) -> None:
        body = json.dumps(payload).encode("utf-8")
        header = f"Content-Length: {len(body)}\r\n\r\n".encode("utf-8")
        output = self.output or sys.stdout.buffer
        output.write(header + body)
        output.flush()

    async def serve_stdin(self) -> None:
        """Read stdin until EOF, feeding every chunk through `ingest_chunk`."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                return
            await self.ingest_chunk(chunk)

    def _report(self, error: Exception) -> None:
        if self.on_protocol_error is not None:
            self.on_protocol_error(error)
