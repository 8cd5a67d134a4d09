"""
Compression Adapter

Wraps an injected codec with readiness gating, timing and size
bookkeeping. The adapter keeps no state between calls.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .codecs import Codec
from ..errors import CodecError, CodecUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CompressionResult:
    """Output of one compress/decompress call."""
    data: bytes
    elapsed: float  # seconds
    input_size: int
    output_size: int

    @property
    def size_delta(self) -> int:
        """Bytes saved (negative when the output grew)."""
        return self.input_size - self.output_size

    @property
    def ratio(self) -> float:
        if self.output_size == 0:
            return 1.0
        return self.input_size / self.output_size


class CompressionAdapter:
    """
    Timed, readiness-checked access to a codec.

    Raises:
        CodecUnavailable: the codec has not finished initializing
        CodecError: the codec rejected its input
    """

    def __init__(self, codec: Codec):
        self.codec = codec

    @property
    def ready(self) -> bool:
        return self.codec.ready()

    @property
    def name(self) -> str:
        return self.codec.name

    def _check_ready(self):
        if not self.codec.ready():
            raise CodecUnavailable(f"Codec '{self.codec.name}' is not initialized")

    def compress(self, data: bytes, level: int) -> CompressionResult:
        self._check_ready()
        start = time.perf_counter()
        try:
            output = self.codec.compress(data, level)
        except Exception as e:
            raise CodecError(f"{self.codec.name} compress failed: {e}") from e
        elapsed = time.perf_counter() - start
        return CompressionResult(
            data=output, elapsed=elapsed,
            input_size=len(data), output_size=len(output),
        )

    def decompress(self, data: bytes, max_size: Optional[int] = None) -> CompressionResult:
        """
        Decode one frame.

        Args:
            max_size: reject frames that decode to more than this many bytes
        """
        self._check_ready()
        start = time.perf_counter()
        try:
            output = self.codec.decompress(data, max_size)
        except Exception as e:
            raise CodecError(f"{self.codec.name} decompress failed: {e}") from e
        elapsed = time.perf_counter() - start
        return CompressionResult(
            data=output, elapsed=elapsed,
            input_size=len(data), output_size=len(output),
        )


async def create_adapter(codec: Codec) -> CompressionAdapter:
    """Initialize a codec and wrap it once it reports ready."""
    await codec.initialize()
    logger.debug(f"Codec {codec.name} initialized")
    return CompressionAdapter(codec)
