"""Tests for in-memory streams and pipes."""

import asyncio
import io

import pytest

from just_sh.interpreter.streams import PIPE_BUFFER_SIZE, BufferStream, FileStream, Pipe


class TestBufferStream:
    """Test BufferStream."""

    @pytest.mark.asyncio
    async def test_reads_consume_from_front(self):
        stream = BufferStream("one\ntwo\nthree")
        assert await stream.readline() == b"one\n"
        assert await stream.read(3) == b"two"
        assert await stream.read() == b"\nthree"
        assert await stream.read() == b""

    @pytest.mark.asyncio
    async def test_writes_append(self):
        stream = BufferStream()
        await stream.write("héllo ")
        await stream.write(b"world")
        assert stream.text() == "héllo world"
        assert stream.getvalue() == "héllo world".encode()


class TestPipe:
    """Test Pipe."""

    @pytest.mark.asyncio
    async def test_reader_sees_eof_after_writer_closes(self):
        pipe = Pipe()
        await pipe.writer.write("a\nb")
        pipe.writer.close()
        assert await pipe.reader.readline() == b"a\n"
        assert await pipe.reader.readline() == b"b"
        assert await pipe.reader.readline() == b""

    @pytest.mark.asyncio
    async def test_read_all_waits_for_writer(self):
        pipe = Pipe()

        async def produce():
            for chunk in ("x", "y", "z"):
                await pipe.writer.write(chunk)
                await asyncio.sleep(0)
            pipe.writer.close()

        task = asyncio.create_task(produce())
        assert await pipe.reader.read() == b"xyz"
        await task

    @pytest.mark.asyncio
    async def test_read_all_drains_more_than_the_buffer(self):
        pipe = Pipe()
        payload = b"x" * (PIPE_BUFFER_SIZE * 2 + 100)

        async def produce():
            for start in range(0, len(payload), 4096):
                await pipe.writer.write(payload[start:start + 4096])
            pipe.writer.close()

        task = asyncio.create_task(produce())
        assert await asyncio.wait_for(pipe.reader.read(), timeout=5) == payload
        await task

    @pytest.mark.asyncio
    async def test_read_all_accepts_one_large_write(self):
        pipe = Pipe(limit=8)

        async def produce():
            await pipe.writer.write("a" * 100)
            pipe.writer.close()

        task = asyncio.create_task(produce())
        assert await asyncio.wait_for(pipe.reader.read(), timeout=5) == b"a" * 100
        await task

    @pytest.mark.asyncio
    async def test_write_after_reader_closes_is_broken_pipe(self):
        pipe = Pipe()
        pipe.reader.close()
        with pytest.raises(BrokenPipeError):
            await pipe.writer.write("data")

    @pytest.mark.asyncio
    async def test_writer_blocks_when_buffer_is_full(self):
        pipe = Pipe(limit=4)
        task = asyncio.create_task(pipe.writer.write("abcdef"))
        await asyncio.sleep(0)
        assert not task.done()
        assert await pipe.reader.read(3) == b"abc"
        await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_blocked_writer_fails_when_reader_closes(self):
        pipe = Pipe(limit=2)
        task = asyncio.create_task(pipe.writer.write("abcd"))
        await asyncio.sleep(0)
        pipe.reader.close()
        with pytest.raises(BrokenPipeError):
            await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_ends_reject_the_wrong_direction(self):
        pipe = Pipe()
        with pytest.raises(io.UnsupportedOperation):
            await pipe.reader.write("x")
        with pytest.raises(io.UnsupportedOperation):
            await pipe.writer.read()


class TestFileStream:
    """Test FileStream."""

    @pytest.mark.asyncio
    async def test_text_file_accepts_bytes(self):
        buf = io.StringIO()
        stream = FileStream(buf, owned=False)
        await stream.write(b"bytes ")
        await stream.write("text")
        assert buf.getvalue() == "bytes text"

    @pytest.mark.asyncio
    async def test_unowned_close_leaves_file_open(self):
        buf = io.BytesIO()
        stream = FileStream(buf, owned=False)
        stream.close()
        assert not buf.closed
        FileStream(buf).close()
        assert buf.closed
