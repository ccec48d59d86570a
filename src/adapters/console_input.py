"""Line source backed by the process' standard input.

Pipes and terminals are read through an asyncio `StreamReader` attached with
`connect_read_pipe`, and only between `__aenter__` and `__aexit__`, so nothing
keeps reading once a device has been chosen. Regular files (`< answers.txt`)
and loops without pipe support (Windows consoles) read each line in a worker
thread instead.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import sys
from typing import TextIO

from core.interfaces.input import LineSource

log = logging.getLogger(__name__)


class StdinLineSource(LineSource):
    def __init__(self, stream: TextIO | None = None, *, encoding: str = "utf-8") -> None:
        self._stream = stream or sys.stdin
        self._encoding = encoding
        self._reader: asyncio.StreamReader | None = None
        self._transport: asyncio.ReadTransport | None = None
        self._fd: int | None = None
        self._was_blocking = True
        self._entered = False
        self._eof = False

    async def __aenter__(self) -> "StdinLineSource":
        self._entered = True
        self._eof = False
        self._reader = None
        self._transport = None
        try:
            self._fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            self._fd = None

        if self._fd is not None and self._is_pipe_like(self._fd):
            await self._attach_reader(self._fd)
        if self._reader is None:
            log.debug("Reading stdin lines in a worker thread")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._entered = False
        await self._detach_reader()

    @staticmethod
    def _is_pipe_like(fd: int) -> bool:
        try:
            mode = os.fstat(fd).st_mode
        except OSError:
            return False
        return not stat.S_ISREG(mode)

    async def _attach_reader(self, fd: int) -> None:
        loop = asyncio.get_running_loop()
        # The transport closes the object it is given; hand it a duplicate so stdin survives.
        pipe = os.fdopen(os.dup(fd), "rb", buffering=0)
        self._was_blocking = os.get_blocking(fd)
        reader = asyncio.StreamReader()
        try:
            transport, _ = await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), pipe)
        except (NotImplementedError, OSError, ValueError) as exc:
            log.debug("Event loop cannot watch stdin (%s)", exc)
            pipe.close()
            os.set_blocking(fd, self._was_blocking)
            return
        self._reader = reader
        self._transport = transport

    async def _detach_reader(self) -> None:
        transport, self._transport = self._transport, None
        self._reader = None
        if transport is None:
            return
        transport.close()
        # Let the transport release its duplicate descriptor.
        await asyncio.sleep(0)
        if self._fd is not None:
            try:
                os.set_blocking(self._fd, self._was_blocking)
            except OSError:
                log.debug("Could not restore stdin blocking mode", exc_info=True)

    async def readline(self) -> str | None:
        if not self._entered:
            raise RuntimeError("StdinLineSource must be used as an async context manager")
        if self._eof:
            return None
        if self._reader is not None:
            raw = await self._reader.readline()
            line = raw.decode(self._encoding, errors="replace")
        else:
            line = await asyncio.to_thread(self._stream.readline)
        if not line:
            self._eof = True
            return None
        return line.rstrip("\r\n")
