"""
Transfer Errors

Every failure in a receive or send run is fatal to the whole run.
Low-level OSErrors are classified into one of these where they happen
and propagate unchanged to the caller.
"""

from pathlib import Path
from typing import Optional, Union


class TransferError(Exception):
    """Base class for all fatal transfer errors."""

    def __init__(self, message: str,
                 path: Optional[Union[str, Path]] = None,
                 index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.index = index


class UsageError(TransferError):
    """Raised when no files were given to transfer."""


class AddressResolutionError(TransferError):
    """Raised when a host name cannot be resolved."""


class BindError(TransferError):
    """Raised when the listening socket cannot be bound."""


class AcceptError(TransferError):
    """Raised when accepting an incoming connection fails."""


class ConflictError(TransferError):
    """Raised when a destination exists and overwriting is disabled."""


class DirectoryCreationError(TransferError):
    """Raised when the parent directories of a destination cannot be created."""


class FileOpenError(TransferError):
    """Raised when a source file cannot be opened for reading."""


class FileCreateError(TransferError):
    """Raised when a destination file cannot be created."""


class ConnectError(TransferError):
    """Raised when dialing the remote receiver fails."""


class CopyError(TransferError):
    """Raised on an I/O failure while moving bytes between the endpoints."""


class ShutdownError(TransferError):
    """Raised when half-closing the sending side of a connection fails."""
