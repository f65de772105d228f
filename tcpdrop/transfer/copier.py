"""
Stream Copier

Moves bytes from a readable source to a writable sink until the source
reports end-of-stream. Shared by the receiver (socket -> file) and the
sender (file -> socket).

Sources only need ``async read(n) -> bytes`` (asyncio.StreamReader and
aiofiles file objects both qualify). Sinks only need ``async write(data)``;
aiofiles files qualify directly, a StreamWriter is wrapped in StreamSink
so that every write waits for the transport buffer to drain.
"""

import asyncio
import logging
from typing import Callable, Optional

from ..errors import CopyError

logger = logging.getLogger(__name__)

# Read size per chunk: 64KB
DEFAULT_CHUNK_SIZE = 64 * 1024

# Called with the running byte count after every chunk
ChunkCallback = Callable[[int], None]


class StreamSink:
    """Adapts an asyncio.StreamWriter to the ``async write(data)`` shape."""

    def __init__(self, writer: asyncio.StreamWriter):
        self.writer = writer

    async def write(self, data: bytes):
        self.writer.write(data)
        await self.writer.drain()


async def copy_stream(source, sink, chunk_size: int = DEFAULT_CHUNK_SIZE,
                      on_chunk: Optional[ChunkCallback] = None) -> int:
    """
    Copy everything from source to sink.

    Suspends while the source has no data or the sink is applying
    back-pressure. There is no timeout.

    Returns:
        Number of bytes copied

    Raises:
        CopyError: if reading or writing fails; the bytes already written
            stay written
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    copied = 0
    while True:
        try:
            data = await source.read(chunk_size)
        except OSError as e:
            raise CopyError(f"Error reading stream: {e}") from e

        if not data:
            break

        try:
            await sink.write(data)
        except OSError as e:
            raise CopyError(f"Error writing stream: {e}") from e

        copied += len(data)
        logger.debug(f"Copied {len(data)} bytes ({copied:,} total)")
        if on_chunk:
            on_chunk(copied)

    return copied
