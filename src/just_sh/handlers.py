"""Default exec and open hooks backed by the host operating system.

``default_exec`` runs programs with ``asyncio.create_subprocess_exec`` and
pumps the interpreter's streams to and from the child. ``default_open``
opens files with ``os.open`` and wraps them in a ``FileStream``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from typing import Optional

from .interpreter.streams import FileStream
from .types import HandlerContext, Stream

logger = logging.getLogger(__name__)

PUMP_CHUNK_SIZE = 64 * 1024


def look_path(hctx: HandlerContext, name: str) -> Optional[str]:
    """Find the program for name: a path when it has a slash, else a PATH search."""
    if "/" in name:
        path = os.path.join(hctx.dir, name)
        return path if os.path.exists(path) else None
    search = hctx.env.get("PATH", os.defpath)
    found = shutil.which(name, path=search)
    if found and not os.path.isabs(found):
        found = os.path.join(hctx.dir, found)
    return found


async def _pump_in(source: Stream, proc: asyncio.subprocess.Process) -> None:
    sink = proc.stdin
    try:
        while True:
            data = await source.read(PUMP_CHUNK_SIZE)
            if not data:
                break
            sink.write(data)
            await sink.drain()
    except (BrokenPipeError, ConnectionResetError):
        # the child stopped reading
        pass
    finally:
        sink.close()


async def _pump_out(reader: asyncio.StreamReader, sink: Stream, proc: asyncio.subprocess.Process) -> bool:
    """Copy child output to sink. Returns False if the sink's reader went away."""
    while True:
        data = await reader.read(PUMP_CHUNK_SIZE)
        if not data:
            return True
        try:
            await sink.write(data)
        except BrokenPipeError:
            logger.debug("downstream pipe closed; killing pid %d", proc.pid)
            if proc.returncode is None:
                proc.kill()
            return False


async def _watch_cancel(cancel: asyncio.Event, proc: asyncio.subprocess.Process) -> None:
    await cancel.wait()
    if proc.returncode is None:
        logger.debug("cancelled; killing pid %d", proc.pid)
        proc.kill()


async def default_exec(hctx: HandlerContext, name: str, args: list[str]) -> int:
    """Run an external program and return its exit status.

    Not found gives 127, not executable 126, death by signal N gives
    128+N, and a write to a closed downstream pipe gives 141.
    """
    path = look_path(hctx, name)
    if path is None:
        await hctx.stderr.write(f"{name}: command not found\n")
        return 127
    if os.path.isdir(path) or not os.access(path, os.X_OK):
        await hctx.stderr.write(f"{name}: permission denied\n")
        return 126

    logger.debug("spawning %s %r in %s", path, args, hctx.dir)
    try:
        proc = await asyncio.create_subprocess_exec(
            path,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=hctx.dir,
            env=hctx.env,
        )
    except PermissionError:
        await hctx.stderr.write(f"{name}: permission denied\n")
        return 126
    except FileNotFoundError:
        await hctx.stderr.write(f"{name}: command not found\n")
        return 127

    stdin_task = asyncio.create_task(_pump_in(hctx.stdin, proc))
    stdout_task = asyncio.create_task(_pump_out(proc.stdout, hctx.stdout, proc))
    stderr_task = asyncio.create_task(_pump_out(proc.stderr, hctx.stderr, proc))
    watcher = None
    if hctx.cancel is not None:
        watcher = asyncio.create_task(_watch_cancel(hctx.cancel, proc))

    try:
        out_ok, err_ok = await asyncio.gather(stdout_task, stderr_task)
        code = await proc.wait()
    finally:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        for task in (stdin_task, watcher):
            if task is not None and not task.done():
                task.cancel()
        await asyncio.gather(
            *(t for t in (stdin_task, watcher) if t is not None),
            return_exceptions=True,
        )

    if not (out_ok and err_ok):
        return 141
    if code < 0:
        return 128 - code
    return code


async def default_open(hctx: HandlerContext, path: str, flags: int, mode: int) -> Stream:
    """Open path with os.open; OSError propagates for path errors."""
    fd = os.open(path, flags, mode)
    if flags & os.O_APPEND:
        file_mode = "ab"
    elif flags & (os.O_WRONLY | os.O_RDWR):
        file_mode = "wb"
    else:
        file_mode = "rb"
    return FileStream(os.fdopen(fd, file_mode), name=path)
