"""
Transfer Benchmark

Timing and byte-count bookkeeping for one transfer direction. Times are
``time.perf_counter()`` seconds.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


def format_size(bytes_count: float) -> str:
    """Format bytes as human-readable size."""
    if bytes_count < 1024:
        return f"{int(bytes_count)} B"
    for unit in ['KB', 'MB', 'GB', 'TB']:
        bytes_count /= 1024
        if bytes_count < 1024:
            return f"{bytes_count:.2f} {unit}"
    return f"{bytes_count:.2f} PB"


@dataclass
class TransferBenchmark:
    """Counters for one send or receive."""
    start_time: float = field(default_factory=time.perf_counter)
    end_time: Optional[float] = None
    compression_time: float = 0.0
    decompression_time: float = 0.0
    original_size: int = 0
    wire_size: int = 0
    chunks_sent: int = 0
    chunks_received: int = 0

    def reset(self, original_size: int = 0):
        """Start over for a new transfer."""
        self.start_time = time.perf_counter()
        self.end_time = None
        self.compression_time = 0.0
        self.decompression_time = 0.0
        self.original_size = original_size
        self.wire_size = 0
        self.chunks_sent = 0
        self.chunks_received = 0

    def finish(self):
        self.end_time = time.perf_counter()

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    @property
    def total_time(self) -> float:
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return max(0.0, end - self.start_time)

    @property
    def network_time(self) -> float:
        """Time not spent in the codec."""
        return max(0.0, self.total_time - self.compression_time - self.decompression_time)

    @property
    def compression_ratio(self) -> float:
        if self.wire_size == 0:
            return 1.0
        return self.original_size / self.wire_size

    @property
    def throughput(self) -> float:
        """Original bytes per second."""
        elapsed = self.total_time
        if elapsed == 0:
            return 0.0
        return self.original_size / elapsed

    def summary_lines(self, direction: str) -> List[str]:
        lines = [
            f"Transfer complete! ({direction})",
            f"Total time: {self.total_time * 1000:.0f}ms",
        ]
        if self.compression_time > 0:
            lines.append(f"Compression time: {self.compression_time * 1000:.0f}ms")
        if self.decompression_time > 0:
            lines.append(f"Decompression time: {self.decompression_time * 1000:.0f}ms")
        lines.extend([
            f"Network time: {self.network_time * 1000:.0f}ms",
            f"Original: {format_size(self.original_size)}",
            f"Transferred: {format_size(self.wire_size)}",
            f"Ratio: {self.compression_ratio:.2f}x",
            f"Throughput: {format_size(self.throughput)}/s",
        ])
        return lines

    def log_summary(self, direction: str):
        for line in self.summary_lines(direction):
            logger.info(line)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total_time': self.total_time,
            'compression_time': self.compression_time,
            'decompression_time': self.decompression_time,
            'network_time': self.network_time,
            'original_size': self.original_size,
            'wire_size': self.wire_size,
            'compression_ratio': self.compression_ratio,
            'throughput': self.throughput,
            'chunks_sent': self.chunks_sent,
            'chunks_received': self.chunks_received,
        }
