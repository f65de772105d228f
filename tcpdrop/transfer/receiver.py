"""
File Receiver

Listens on a TCP port and writes each incoming connection's byte stream,
verbatim, to the next file of an ordered target list.

Receive Flow:
1. Bind the listening socket (port 0 lets the OS pick one, see `address`)
2. Accept exactly one connection
3. Refuse to continue if the target exists and overwriting is disabled
4. Create missing parent directories, create/truncate the target
5. Copy the connection into the file until the peer half-closes
6. Advance to the next target, or stop once every target is written

Connections are handled strictly one after another. Any later client
waits in the listen backlog until the current file is complete. The
first error ends the whole run; a partially written file is left as is.
"""

import asyncio
import logging
import socket
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import aiofiles
import aiofiles.os

from .copier import DEFAULT_CHUNK_SIZE, copy_stream
from .progress import ProgressCallback, TransferProgress, TransferResult
from ..errors import (
    AcceptError, AddressResolutionError, BindError, ConflictError,
    CopyError, DirectoryCreationError, FileCreateError, TransferError,
    UsageError,
)

logger = logging.getLogger(__name__)


class Receiver:
    """
    Sequential file receiver.

    Usage:
        receiver = Receiver(['a.bin', 'b.bin'], port=0)
        await receiver.start()
        print(receiver.address)
        results = await receiver.serve()
        await receiver.stop()

    or simply ``await receiver.run()``.
    """

    def __init__(self, targets: Iterable[Union[str, Path]],
                 host: str = '0.0.0.0', port: int = 1337,
                 overwrite: bool = False,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 on_progress: Optional[ProgressCallback] = None):
        """
        Initialize a receiver.

        Args:
            targets: Destination paths, in the order connections arrive
            host: Interface to bind to
            port: Port to listen on (0 = OS-assigned)
            overwrite: Replace destinations that already exist
            chunk_size: Read size used when copying
            on_progress: Called after every chunk and after every file

        Raises:
            UsageError: if targets is empty or port is outside 0..65535
        """
        self.targets: List[Path] = [Path(t) for t in targets]
        if not self.targets:
            raise UsageError("Please specify the files you want me to write to")
        if not isinstance(port, int) or not 0 <= port <= 65535:
            raise UsageError(f"Port must be between 0 and 65535, got {port!r}")

        self.host = host
        self.port = port
        self.overwrite = overwrite
        self.chunk_size = chunk_size
        self.on_progress = on_progress

        self._sock: Optional[socket.socket] = None
        self._cursor = 0

    @property
    def address(self) -> Tuple[str, int]:
        """Effective (host, port) of the listening socket."""
        if self._sock is None:
            raise RuntimeError("Receiver is not listening")
        return self._sock.getsockname()[:2]

    @property
    def remaining(self) -> int:
        """Number of targets not yet written."""
        return len(self.targets) - self._cursor

    async def start(self):
        """
        Bind the listening socket.

        Raises:
            AddressResolutionError: if the bind address cannot be resolved
            BindError: if the address/port is unavailable
        """
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                self.host, self.port,
                type=socket.SOCK_STREAM,
                flags=socket.AI_PASSIVE,
            )
        except socket.gaierror as e:
            raise AddressResolutionError(
                f"Error resolving bind address {self.host}: {e}"
            ) from e

        family, _, _, _, sockaddr = infos[0]
        try:
            sock = socket.create_server(sockaddr, family=family)
        except OSError as e:
            raise BindError(f"Error binding to {self.host}:{self.port}: {e}") from e

        sock.setblocking(False)
        self._sock = sock

        host, port = self.address
        logger.debug(f"Listening on {host}:{port}")

    async def stop(self):
        """Close the listening socket."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.debug("Listening socket closed")

    async def serve(self) -> List[TransferResult]:
        """
        Accept connections until every target has been written.

        Returns:
            One TransferResult per target, in target order
        """
        if self._sock is None:
            raise RuntimeError("Receiver is not listening, call start() first")

        loop = asyncio.get_running_loop()
        results: List[TransferResult] = []

        while self._cursor < len(self.targets):
            try:
                conn, peer = await loop.sock_accept(self._sock)
            except OSError as e:
                raise AcceptError(
                    f"Error accepting connection: {e}", index=self._cursor
                ) from e

            results.append(await self._receive_one(conn, peer[:2]))
            self._cursor += 1

        logger.info("Done writing all the files")
        return results

    async def run(self) -> List[TransferResult]:
        """Bind, receive every target, then close the listener."""
        await self.start()
        try:
            return await self.serve()
        finally:
            await self.stop()

    async def __aenter__(self) -> 'Receiver':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _receive_one(self, conn: socket.socket,
                           peer: Tuple[str, int]) -> TransferResult:
        """Write one accepted connection into the current target."""
        index = self._cursor
        path = self.targets[index]
        logger.info(f"Connection from {peer[0]}:{peer[1]} -> {path} "
                    f"[{index + 1}/{len(self.targets)}]")

        # The raw socket is not read from until the target is ready; a
        # refused connection is closed with the sender's bytes still unread
        try:
            f = await self._open_target(path)
        except TransferError as e:
            conn.close()
            e.path, e.index = path, index
            raise

        progress = TransferProgress(
            index=index,
            total_files=len(self.targets),
            path=path,
            peer=peer,
        )

        try:
            copied = await self._copy_connection(conn, f, progress)
        except TransferError as e:
            if e.path is None:
                e.path, e.index = path, index
            raise
        finally:
            try:
                await f.close()
            except OSError as e:
                raise CopyError(f"Error writing stream to file: {e}", path, index) from e

        progress.done = True
        if self.on_progress:
            self.on_progress(progress)

        logger.info(f"Received {path} ({copied:,} bytes)")
        return TransferResult(
            path=path,
            bytes_transferred=copied,
            peer=peer,
            elapsed_seconds=progress.elapsed_seconds,
        )

    async def _open_target(self, path: Path):
        """Check the overwrite policy, create parent directories, open for writing."""
        if not self.overwrite and await aiofiles.os.path.exists(path):
            raise ConflictError(
                f"{path} already exists, use '--force' if you want to overwrite"
            )

        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(f"Error creating directories: {e}") from e

        try:
            return await aiofiles.open(path, 'wb')
        except OSError as e:
            raise FileCreateError(f"Error creating file: {e}") from e

    async def _copy_connection(self, conn: socket.socket, f,
                               progress: TransferProgress) -> int:
        try:
            reader, writer = await asyncio.open_connection(sock=conn)
        except OSError as e:
            conn.close()
            raise AcceptError(f"Error reading stream: {e}") from e

        def on_chunk(copied: int):
            progress.bytes_transferred = copied
            if self.on_progress:
                self.on_progress(progress)

        try:
            return await copy_stream(reader, f, self.chunk_size, on_chunk)
        finally:
            # The write half of the connection is never used
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error closing connection from {progress.peer}: {e}")


async def receive_files(targets: Iterable[Union[str, Path]],
                        host: str = '0.0.0.0', port: int = 1337,
                        overwrite: bool = False,
                        **kwargs) -> List[TransferResult]:
    """Receive one file per incoming connection into targets, in order."""
    receiver = Receiver(targets, host=host, port=port,
                        overwrite=overwrite, **kwargs)
    return await receiver.run()
