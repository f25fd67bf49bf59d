"""Newline-delimited framing over standard input and output."""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
import sys
from typing import Any, AsyncIterator, Awaitable, BinaryIO, Callable

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536


class LineBuffer:
    """Accumulates raw chunks and yields complete lines in arrival order.

    A trailing partial line is kept until its terminator arrives. Blank
    lines are dropped.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[str]:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return [line.strip() for line in lines if line.strip()]

    @property
    def pending(self) -> str:
        return self._buffer


class StdioTransport:
    """Reads JSON-RPC lines from stdin and writes responses to stdout."""

    def __init__(
        self,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        self._stdin = stdin or sys.stdin.buffer
        self._stdout = stdout or sys.stdout.buffer
        self._lines = LineBuffer()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    async def lines(self) -> AsyncIterator[str]:
        """Yield complete lines until stdin reaches end of file."""
        read = await self._open_reader()

        while True:
            chunk = await read()
            if not chunk:
                break
            for line in self._lines.feed(self._decoder.decode(chunk)):
                yield line

        if self._lines.pending.strip():
            logger.debug("Discarding unterminated input at end of stream")

    async def _open_reader(self) -> Callable[[], Awaitable[bytes]]:
        """Return a coroutine function reading the next chunk of stdin.

        Pipes and sockets are read on the event loop. Regular files (stdin
        redirected from disk) cannot be, so they are read in a worker thread.
        """
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        try:
            await loop.connect_read_pipe(lambda: protocol, self._stdin)
        except ValueError:
            logger.debug("stdin is not a pipe, reading it in a worker thread")
            return lambda: asyncio.to_thread(self._stdin.read1, READ_CHUNK_SIZE)
        return lambda: reader.read(READ_CHUNK_SIZE)

    def write(self, payload: dict[str, Any]) -> None:
        """Write one JSON-RPC message as a single line."""
        line = json.dumps(payload, ensure_ascii=False) + "\n"
        self._stdout.write(line.encode())
        self._stdout.flush()
