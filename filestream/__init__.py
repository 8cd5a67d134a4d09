"""
File Stream - Chunked, compressed peer-to-peer file transfer

Streams a payload over any ordered message channel:
- fixed-size chunks, each compressed on its own
- JSON control frames + binary payload frames
- sender paced by the channel's buffered amount
"""

__version__ = '1.0.0'
