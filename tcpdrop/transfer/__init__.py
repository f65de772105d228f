"""
Transfer Module - Sequential File Receive/Send

Moves raw file bytes over TCP, one connection per file.
"""

from .copier import copy_stream, StreamSink, DEFAULT_CHUNK_SIZE
from .progress import TransferProgress, TransferResult, ProgressCallback
from .receiver import Receiver, receive_files
from .sender import Sender, send_files

__all__ = [
    'copy_stream',
    'StreamSink',
    'DEFAULT_CHUNK_SIZE',
    'TransferProgress',
    'TransferResult',
    'ProgressCallback',
    'Receiver',
    'receive_files',
    'Sender',
    'send_files',
]
