"""Engine API log stream framing.

Containers without a TTY have their stdout and stderr multiplexed into one
HTTP body. Each frame is an 8-byte header followed by the payload::

    [stream_type, 0, 0, 0, size (uint32, big endian)] payload...

stream_type is 0 (stdin), 1 (stdout) or 2 (stderr). With a TTY the body is
the raw terminal output and carries no header at all.
"""

from __future__ import annotations

import asyncio
import struct
from collections.abc import AsyncIterator

import aiohttp

STDOUT = 1
STDERR = 2

_HEADER = struct.Struct(">BxxxL")


async def demux_stream(content: aiohttp.StreamReader) -> AsyncIterator[tuple[int, bytes]]:
    """Yield ``(stream_type, payload)`` frames until the body ends.

    A body cut off mid-frame ends the stream; whatever part of the last
    payload did arrive is still yielded.
    """
    while True:
        try:
            header = await content.readexactly(_HEADER.size)
        except asyncio.IncompleteReadError:
            return
        stream_type, size = _HEADER.unpack(header)
        if size == 0:
            continue
        try:
            payload = await content.readexactly(size)
        except asyncio.IncompleteReadError as exc:
            if exc.partial:
                yield stream_type, exc.partial
            return
        yield stream_type, payload


async def raw_stream(content: aiohttp.StreamReader) -> AsyncIterator[tuple[int, bytes]]:
    """TTY containers: everything is stdout."""
    async for chunk in content.iter_any():
        yield STDOUT, chunk
