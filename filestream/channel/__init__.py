"""
Channel Module - Ordered message transports

The transfer core only depends on the Channel interface; MemoryChannel
links two peers in-process and StreamChannel carries frames over TCP.
"""

from .base import Channel, Frame, frame_size
from .memory import MemoryChannel
from .stream import StreamChannel, ChannelServer, connect_channel

__all__ = [
    'Channel',
    'Frame',
    'frame_size',
    'MemoryChannel',
    'StreamChannel',
    'ChannelServer',
    'connect_channel',
]
