"""
Transfer Errors

Sender-side errors are raised to the caller. Receiver-side errors are
reported (logged, collected, handed to an ``on_error`` callback) and the
state machine keeps going.
"""


class TransferError(Exception):
    """Base class for all transfer errors."""
    pass


class ConfigError(TransferError):
    """Invalid configuration value."""
    pass


class ChannelNotReady(TransferError):
    """Send attempted while the channel is not open."""
    pass


class ChannelClosed(TransferError):
    """The channel closed while a transfer was in flight."""
    pass


class DrainTimeout(TransferError):
    """The outbound buffer did not drain in time."""
    pass


class CodecUnavailable(TransferError):
    """Compression requested before the codec reported ready."""
    pass


class CodecError(TransferError):
    """The codec failed on its input (corrupt or truncated data)."""
    pass


class ProtocolViolation(TransferError):
    """A frame arrived that the receiver cannot accept in its current state."""
    pass


class FrameDecodeError(ProtocolViolation):
    """A control frame could not be parsed."""
    pass


class SequenceAnomaly(TransferError):
    """A chunk header carried an unexpected index."""
    pass


class SizeMismatch(TransferError):
    """Assembled payload length differs from the declared size."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Assembled {actual} bytes, expected {expected}")
        self.expected = expected
        self.actual = actual


class TransferCancelled(TransferError):
    """The transfer was cancelled between chunks."""
    pass
