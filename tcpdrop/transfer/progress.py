"""
Transfer Progress

Per-file progress snapshots handed to progress callbacks, and the
per-file results returned once a run has finished.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Tuple


@dataclass
class TransferProgress:
    """Progress of the file currently being transferred."""
    index: int                      # 0-based position in the file list
    total_files: int
    path: Path
    peer: Optional[Tuple[str, int]] = None
    bytes_transferred: int = 0
    total_bytes: Optional[int] = None   # only known when sending
    done: bool = False
    started_at: float = field(default_factory=time.time)

    @property
    def progress_percent(self) -> Optional[float]:
        """Progress as percentage, None when the size is unknown."""
        if self.total_bytes is None:
            return None
        if self.total_bytes == 0:
            return 100.0
        return self.bytes_transferred / self.total_bytes * 100

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.started_at

    @property
    def speed_bytes_per_sec(self) -> float:
        elapsed = self.elapsed_seconds
        if elapsed == 0:
            return 0
        return self.bytes_transferred / elapsed

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'index': self.index,
            'total_files': self.total_files,
            'path': str(self.path),
            'peer': f"{self.peer[0]}:{self.peer[1]}" if self.peer else None,
            'bytes_transferred': self.bytes_transferred,
            'total_bytes': self.total_bytes,
            'progress_percent': self.progress_percent,
            'speed_bytes_per_sec': self.speed_bytes_per_sec,
            'elapsed_seconds': self.elapsed_seconds,
            'done': self.done,
        }


@dataclass
class TransferResult:
    """Outcome of one completed file transfer."""
    path: Path
    bytes_transferred: int
    peer: Optional[Tuple[str, int]] = None
    elapsed_seconds: float = 0.0


# Progress callback type
ProgressCallback = Callable[[TransferProgress], None]
