"""Shared helpers for the transfer tests."""

import asyncio
import socket
from typing import List, Optional


async def send_raw(port: int, data: bytes, host: str = '127.0.0.1'):
    """Open one connection, write data, half-close and close it."""
    reader, writer = await asyncio.open_connection(host, port)
    writer.write(data)
    await writer.drain()
    writer.write_eof()
    writer.close()
    try:
        await writer.wait_closed()
    except ConnectionError:
        # The receiver may reset a connection it refuses to read
        pass


def unused_port() -> int:
    """Return a port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class Collector:
    """
    Minimal listener that records each connection's payload.

    Payloads are stored in accept order.
    """

    def __init__(self, expected: int):
        self.expected = expected
        self.payloads: List[Optional[bytes]] = []
        self.done = asyncio.Event()
        self.server: Optional[asyncio.AbstractServer] = None

    @property
    def port(self) -> int:
        return self.server.sockets[0].getsockname()[1]

    async def start(self):
        self.server = await asyncio.start_server(self._handle, '127.0.0.1', 0)

    async def stop(self):
        self.server.close()
        await self.server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader,
                      writer: asyncio.StreamWriter):
        index = len(self.payloads)
        self.payloads.append(None)
        self.payloads[index] = await reader.read()
        writer.close()
        if all(p is not None for p in self.payloads) and \
                len(self.payloads) >= self.expected:
            self.done.set()
