"""Byte streams used for stdin/stdout/stderr.

Every stream exposes the same small async surface:

    await stream.read(n=-1) -> bytes
    await stream.readline() -> bytes
    await stream.write(data)          # str is UTF-8 encoded
    stream.close()

Streams are shared by reference between a statement and the forks it
spawns; redirections swap the reference, never the stream's contents.
"""

from __future__ import annotations

import asyncio
import io
from typing import IO, Union

PIPE_BUFFER_SIZE = 64 * 1024


def to_bytes(data: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class BufferStream:
    """In-memory stream. Writes append; reads consume from the front."""

    def __init__(self, data: Union[str, bytes] = b""):
        self._buf = bytearray(to_bytes(data))
        self._pos = 0
        self.closed = False

    async def read(self, n: int = -1) -> bytes:
        end = len(self._buf) if n < 0 else min(len(self._buf), self._pos + n)
        chunk = bytes(self._buf[self._pos:end])
        self._pos = end
        return chunk

    async def readline(self) -> bytes:
        nl = self._buf.find(b"\n", self._pos)
        end = len(self._buf) if nl == -1 else nl + 1
        chunk = bytes(self._buf[self._pos:end])
        self._pos = end
        return chunk

    async def write(self, data: Union[str, bytes]) -> None:
        self._buf.extend(to_bytes(data))

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def text(self) -> str:
        return self._buf.decode("utf-8", errors="replace")

    def close(self) -> None:
        self.closed = True


class Pipe:
    """In-process pipe between two concurrently running units.

    The writer blocks once ``limit`` bytes are buffered and unread. Writing
    after the reader closed raises ``BrokenPipeError``; reading after the
    writer closed drains the buffer and then returns ``b""``.
    """

    def __init__(self, limit: int = PIPE_BUFFER_SIZE):
        self._data = bytearray()
        self._limit = limit
        self._writer_closed = False
        self._reader_closed = False
        self._readable = asyncio.Event()
        self._writable = asyncio.Event()
        self._writable.set()
        self.reader = PipeReader(self)
        self.writer = PipeWriter(self)


class PipeReader:
    def __init__(self, pipe: Pipe):
        self._pipe = pipe

    @property
    def closed(self) -> bool:
        return self._pipe._reader_closed

    async def _fill(self, want_line: bool) -> None:
        pipe = self._pipe
        while not pipe._writer_closed:
            if pipe._data and (
                not want_line or b"\n" in pipe._data or len(pipe._data) >= pipe._limit
            ):
                return
            pipe._readable.clear()
            await pipe._readable.wait()

    def _take(self, end: int) -> bytes:
        pipe = self._pipe
        chunk = bytes(pipe._data[:end])
        del pipe._data[:end]
        if len(pipe._data) < pipe._limit:
            pipe._writable.set()
        return chunk

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            # read to EOF, draining so the writer never stays blocked
            pipe = self._pipe
            buf = bytearray()
            while not pipe._writer_closed:
                buf += self._take(len(pipe._data))
                pipe._readable.clear()
                await pipe._readable.wait()
            buf += self._take(len(pipe._data))
            return bytes(buf)
        await self._fill(want_line=False)
        return self._take(min(n, len(self._pipe._data)))

    async def readline(self) -> bytes:
        await self._fill(want_line=True)
        nl = self._pipe._data.find(b"\n")
        end = len(self._pipe._data) if nl == -1 else nl + 1
        return self._take(end)

    async def write(self, data: Union[str, bytes]) -> None:
        raise io.UnsupportedOperation("write to the read end of a pipe")

    def close(self) -> None:
        pipe = self._pipe
        pipe._reader_closed = True
        pipe._data.clear()
        pipe._writable.set()


class PipeWriter:
    def __init__(self, pipe: Pipe):
        self._pipe = pipe

    @property
    def closed(self) -> bool:
        return self._pipe._writer_closed

    async def read(self, n: int = -1) -> bytes:
        raise io.UnsupportedOperation("read from the write end of a pipe")

    async def readline(self) -> bytes:
        raise io.UnsupportedOperation("read from the write end of a pipe")

    async def write(self, data: Union[str, bytes]) -> None:
        pipe = self._pipe
        if pipe._reader_closed:
            raise BrokenPipeError("write to a pipe with no reader")
        if pipe._writer_closed:
            raise ValueError("write to a closed pipe")
        pipe._data.extend(to_bytes(data))
        pipe._readable.set()
        while len(pipe._data) >= pipe._limit and not pipe._reader_closed:
            pipe._writable.clear()
            await pipe._writable.wait()
        if pipe._reader_closed:
            raise BrokenPipeError("write to a pipe with no reader")

    def close(self) -> None:
        self._pipe._writer_closed = True
        self._pipe._readable.set()


class FileStream:
    """Wraps a file object (binary or text).

    With ``owned=False`` (the process's own stdio), ``close()`` only flushes.
    """

    def __init__(self, file: IO, owned: bool = True, name: str = ""):
        self._file = file
        self._owned = owned
        self._text = isinstance(file, io.TextIOBase)
        self.name = name or getattr(file, "name", "")

    @property
    def closed(self) -> bool:
        return self._file.closed

    def fileno(self) -> int:
        return self._file.fileno()

    async def read(self, n: int = -1) -> bytes:
        data = self._file.read(n)
        return to_bytes(data)

    async def readline(self) -> bytes:
        return to_bytes(self._file.readline())

    async def write(self, data: Union[str, bytes]) -> None:
        if self._text:
            if isinstance(data, (bytes, bytearray)):
                data = bytes(data).decode("utf-8", errors="replace")
            self._file.write(data)
        else:
            self._file.write(to_bytes(data))
        self._file.flush()

    def close(self) -> None:
        if self._file.closed:
            return
        if self._owned:
            self._file.close()
        else:
            self._file.flush()
