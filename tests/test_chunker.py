"""Tests for payload chunking"""

import pytest

from filestream.file import Chunker, CHUNK_SIZE


class TestChunker:
    """Test fixed-size chunking"""

    @pytest.mark.parametrize("length,chunk_size,expected", [
        (0, 65536, 0),
        (1, 65536, 1),
        (65535, 65536, 1),
        (65536, 65536, 1),
        (65537, 65536, 2),
        (200000, 65536, 4),
        (10, 3, 4),
    ])
    def test_chunk_count(self, length, chunk_size, expected):
        """chunk_count is ceil(length / chunk_size)"""
        assert Chunker(chunk_size).chunk_count(length) == expected

    @pytest.mark.parametrize("length,chunk_size", [
        (1, 4), (4, 4), (5, 4), (17, 4), (200000, 65536), (131072, 65536),
    ])
    def test_last_chunk_length(self, length, chunk_size):
        """Last chunk holds the remainder, or a full chunk on exact multiples"""
        chunks = list(Chunker(chunk_size).split(b"x" * length))
        expected_last = length % chunk_size or chunk_size
        assert len(chunks[-1][1]) == expected_last
        assert all(len(data) == chunk_size for _, data in chunks[:-1])

    def test_default_chunk_size(self):
        """Default chunk size is 64KB"""
        assert CHUNK_SIZE == 65536
        assert Chunker().chunk_size == 65536

    def test_scenario_200000_bytes(self):
        """200000 bytes split into 65536 x3 + 3392"""
        chunks = list(Chunker(65536).split(bytes(200000)))
        assert [len(data) for _, data in chunks] == [65536, 65536, 65536, 3392]
        assert [index for index, _ in chunks] == [0, 1, 2, 3]

    def test_empty_payload_yields_nothing(self):
        """Zero-length payload has zero chunks"""
        sequence = Chunker().split(b"")
        assert len(sequence) == 0
        assert list(sequence) == []

    def test_split_reassembles(self):
        """Joining the chunks gives back the payload"""
        payload = bytes(range(256)) * 100
        chunks = Chunker(1000).split(payload)
        assert b"".join(data for _, data in chunks) == payload

    def test_sequence_is_restartable(self):
        """Iterating twice yields the same chunks"""
        sequence = Chunker(3).split(b"abcdefgh")
        assert list(sequence) == list(sequence)
        assert list(sequence) == [(0, b"abc"), (1, b"def"), (2, b"gh")]

    def test_chunk_bounds(self):
        """Bounds of the last chunk are truncated"""
        chunker = Chunker(65536)
        assert chunker.chunk_bounds(0, 200000) == (0, 65536)
        assert chunker.chunk_bounds(3, 200000) == (196608, 3392)
        with pytest.raises(IndexError):
            chunker.chunk_bounds(4, 200000)

    def test_invalid_chunk_size(self):
        """Chunk size must be positive"""
        with pytest.raises(ValueError):
            Chunker(0)


class TestChunkFile:
    """Test chunking files from disk"""

    @pytest.mark.asyncio
    async def test_chunk_file_matches_split(self, temp_dir):
        """File chunks match in-memory chunks"""
        payload = bytes(range(256)) * 1000
        path = temp_dir / "data.bin"
        path.write_bytes(payload)

        chunker = Chunker(10000)
        from_file = [item async for item in chunker.chunk_file(path)]
        assert from_file == list(chunker.split(payload))

    @pytest.mark.asyncio
    async def test_chunk_empty_file(self, temp_dir):
        """Empty file yields no chunks"""
        path = temp_dir / "empty.bin"
        path.write_bytes(b"")
        assert [item async for item in Chunker().chunk_file(path)] == []
