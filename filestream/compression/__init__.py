"""
Compression Module - Per-chunk codecs

Each chunk is compressed on its own; the core only talks to codecs
through CompressionAdapter.
"""

from .adapter import CompressionAdapter, CompressionResult, create_adapter
from .codecs import Codec, ZstdCodec, ZlibCodec, CODECS, get_codec

__all__ = [
    'CompressionAdapter',
    'CompressionResult',
    'create_adapter',
    'Codec',
    'ZstdCodec',
    'ZlibCodec',
    'CODECS',
    'get_codec',
]
