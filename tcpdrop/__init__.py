"""
tcpdrop - sequential point-to-point file transfer over raw TCP.

One side listens and writes each incoming connection to the next file of
an ordered list; the other side sends local files, one connection each.
"""

from .errors import (
    TransferError, UsageError, AddressResolutionError, BindError,
    AcceptError, ConflictError, DirectoryCreationError, FileOpenError,
    FileCreateError, ConnectError, CopyError, ShutdownError,
)
from .transfer import (
    Receiver, Sender, receive_files, send_files, copy_stream,
    TransferProgress, TransferResult,
)

__version__ = '0.1.0'

__all__ = [
    'Receiver',
    'Sender',
    'receive_files',
    'send_files',
    'copy_stream',
    'TransferProgress',
    'TransferResult',
    'TransferError',
    'UsageError',
    'AddressResolutionError',
    'BindError',
    'AcceptError',
    'ConflictError',
    'DirectoryCreationError',
    'FileOpenError',
    'FileCreateError',
    'ConnectError',
    'CopyError',
    'ShutdownError',
]
