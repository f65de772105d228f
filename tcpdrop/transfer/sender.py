"""
File Sender

Streams local files to a remote receiver, one fresh TCP connection per
file. The payload of each connection is the raw file content; closing the
write direction (half-close) tells the receiver the file is complete.
Nothing is read back from the receiver.
"""

import asyncio
import logging
import socket
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import aiofiles
import aiofiles.os

from .copier import DEFAULT_CHUNK_SIZE, StreamSink, copy_stream
from .progress import ProgressCallback, TransferProgress, TransferResult
from ..errors import (
    AddressResolutionError, ConnectError, FileOpenError, ShutdownError,
    TransferError, UsageError,
)

logger = logging.getLogger(__name__)


class Sender:
    """
    Sequential file sender.

    Files are sent in list order; the Nth connection carries the Nth file.
    The first failure aborts the run, files after it are not sent.
    """

    def __init__(self, files: Iterable[Union[str, Path]],
                 host: str = '127.0.0.1', port: int = 1337,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 on_progress: Optional[ProgressCallback] = None):
        self.files: List[Path] = [Path(f) for f in files]
        if not self.files:
            raise UsageError("Please specify the files you want me to send")
        if not isinstance(port, int) or not 1 <= port <= 65535:
            raise UsageError(f"Port must be between 1 and 65535, got {port!r}")

        self.host = host
        self.port = port
        self.chunk_size = chunk_size
        self.on_progress = on_progress

    async def run(self) -> List[TransferResult]:
        """
        Send every file.

        Returns:
            One TransferResult per file, in order
        """
        results: List[TransferResult] = []
        for index, path in enumerate(self.files):
            try:
                results.append(await self._send_one(index, path))
            except TransferError as e:
                if e.path is None:
                    e.path, e.index = path, index
                raise

        logger.info("Done sending all the files")
        return results

    async def _connect(self) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            return await asyncio.open_connection(self.host, self.port)
        except socket.gaierror as e:
            raise AddressResolutionError(
                f"Error resolving {self.host}: {e}"
            ) from e
        except OSError as e:
            raise ConnectError(
                f"Error connecting to {self.host}:{self.port}: {e}"
            ) from e

    async def _send_one(self, index: int, path: Path) -> TransferResult:
        try:
            f = await aiofiles.open(path, 'rb')
        except OSError as e:
            raise FileOpenError(f"Error opening {path}: {e}") from e

        try:
            try:
                size = (await aiofiles.os.stat(path)).st_size
            except OSError as e:
                raise FileOpenError(f"Error reading {path}: {e}") from e

            _, writer = await self._connect()
            peer = writer.get_extra_info('peername')[:2]
            logger.info(f"Sending {path} ({size:,} bytes) to {peer[0]}:{peer[1]} "
                        f"[{index + 1}/{len(self.files)}]")

            progress = TransferProgress(
                index=index,
                total_files=len(self.files),
                path=path,
                peer=peer,
                total_bytes=size,
            )

            def on_chunk(copied: int):
                progress.bytes_transferred = copied
                if self.on_progress:
                    self.on_progress(progress)

            try:
                copied = await copy_stream(f, StreamSink(writer),
                                           self.chunk_size, on_chunk)
                try:
                    writer.write_eof()
                    await writer.drain()
                except OSError as e:
                    raise ShutdownError(f"Error closing write side: {e}") from e
            finally:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError as e:
                    logger.debug(f"Error closing connection to {peer}: {e}")
        finally:
            await f.close()

        progress.done = True
        if self.on_progress:
            self.on_progress(progress)

        logger.info(f"Sent {path} ({copied:,} bytes)")
        return TransferResult(
            path=path,
            bytes_transferred=copied,
            peer=peer,
            elapsed_seconds=progress.elapsed_seconds,
        )


async def send_files(files: Iterable[Union[str, Path]],
                     host: str = '127.0.0.1', port: int = 1337,
                     **kwargs) -> List[TransferResult]:
    """Send each file over its own connection to host:port, in order."""
    sender = Sender(files, host=host, port=port, **kwargs)
    return await sender.run()
