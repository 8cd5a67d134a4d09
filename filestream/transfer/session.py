"""
Transfer Session

Per-transfer state owned by the caller: the benchmark, the direction and
the cancel signal. Nothing here is global; every send gets its own
session.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .benchmark import TransferBenchmark

SEND = 'SENT'
RECEIVE = 'RECEIVED'


@dataclass
class TransferProgress:
    """Progress snapshot handed to progress callbacks."""
    name: str
    total_chunks: int
    total_bytes: int
    chunks_done: int = 0
    bytes_done: int = 0
    start_time: float = field(default_factory=time.perf_counter)

    @property
    def progress(self) -> float:
        """Progress as 0.0 to 1.0."""
        if self.total_chunks == 0:
            return 1.0
        return self.chunks_done / self.total_chunks

    @property
    def progress_percent(self) -> float:
        """Progress as percentage."""
        return self.progress * 100

    @property
    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self.start_time

    @property
    def speed_bytes_per_sec(self) -> float:
        elapsed = self.elapsed_seconds
        if elapsed == 0:
            return 0
        return self.bytes_done / elapsed


# Progress callback type
ProgressCallback = Callable[[TransferProgress], None]


@dataclass
class TransferSession:
    """
    One outbound transfer.

    ``cancel()`` is checked by the sender between chunks.
    """
    name: str = ''
    direction: str = SEND
    benchmark: TransferBenchmark = field(default_factory=TransferBenchmark)
    progress: Optional[TransferProgress] = None
    cancelled: bool = False
    completed: bool = False

    def cancel(self):
        self.cancelled = True
