"""
File Module - Chunking and Delivery

Splits outbound payloads into chunks and hands finished inbound payloads
to a delivery sink.
"""

from .chunker import Chunker, ChunkSequence, CHUNK_SIZE
from .sink import DeliveredFile, FileSink, MemorySink, safe_filename

__all__ = [
    'Chunker',
    'ChunkSequence',
    'CHUNK_SIZE',
    'DeliveredFile',
    'FileSink',
    'MemorySink',
    'safe_filename',
]
