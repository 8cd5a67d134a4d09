"""Tests for codecs and the compression adapter"""

import os

import pytest
import zstandard

from filestream.compression import (
    CompressionAdapter, ZlibCodec, ZstdCodec, create_adapter, get_codec,
)
from filestream.errors import CodecError, CodecUnavailable, ConfigError


class TestCompressionAdapter:
    """Test timed, readiness-gated compression"""

    @pytest.mark.parametrize("level", [1, 3, 9, 19])
    def test_zstd_roundtrip(self, zstd_adapter, level):
        """decompress(compress(x, level)) == x"""
        data = b"hello world " * 1000
        compressed = zstd_adapter.compress(data, level)
        assert zstd_adapter.decompress(compressed.data).data == data

    @pytest.mark.parametrize("level", [0, 1, 6, 9])
    def test_zlib_roundtrip(self, zlib_adapter, level):
        data = os.urandom(5000) + bytes(5000)
        compressed = zlib_adapter.compress(data, level)
        assert zlib_adapter.decompress(compressed.data).data == data

    def test_sizes_and_delta(self, zstd_adapter):
        """Result reports sizes and the saved bytes"""
        data = bytes(65536)
        result = zstd_adapter.compress(data, 3)
        assert result.input_size == 65536
        assert result.output_size == len(result.data)
        assert result.size_delta == 65536 - len(result.data)
        assert result.ratio > 10
        assert result.elapsed >= 0

    def test_incompressible_data_grows(self, zstd_adapter):
        """Random data can come out larger; delta goes negative"""
        result = zstd_adapter.compress(os.urandom(1024), 3)
        assert result.size_delta <= 0

    def test_chunks_are_independent(self, zstd_adapter):
        """Each compressed chunk decompresses on its own, in any order"""
        first = zstd_adapter.compress(b"a" * 4096, 3).data
        second = zstd_adapter.compress(b"b" * 4096, 3).data
        assert zstd_adapter.decompress(second).data == b"b" * 4096
        assert zstd_adapter.decompress(first).data == b"a" * 4096

    def test_not_ready(self):
        """Codec must be initialized before use"""
        adapter = CompressionAdapter(ZstdCodec())
        assert not adapter.ready
        with pytest.raises(CodecUnavailable):
            adapter.compress(b"data", 3)
        with pytest.raises(CodecUnavailable):
            adapter.decompress(b"data")

    @pytest.mark.parametrize("fixture", ["zstd_adapter", "zlib_adapter"])
    def test_corrupt_input(self, request, fixture):
        """Malformed input raises CodecError"""
        adapter = request.getfixturevalue(fixture)
        with pytest.raises(CodecError):
            adapter.decompress(b"definitely not a compressed frame")

    def test_truncated_input(self, zstd_adapter):
        compressed = zstd_adapter.compress(os.urandom(4096), 3).data
        with pytest.raises(CodecError):
            zstd_adapter.decompress(compressed[: len(compressed) // 2])

    def test_zstd_frame_without_content_size(self, zstd_adapter):
        """Streaming frames leave the size out of the header and still decode"""
        data = b"streamed by a browser peer " * 500
        compressor = zstandard.ZstdCompressor().compressobj()
        frame = compressor.compress(data) + compressor.flush()
        assert zstandard.frame_content_size(frame) == -1

        assert zstd_adapter.decompress(frame).data == data
        assert zstd_adapter.decompress(frame, max_size=len(data)).data == data

    def test_zstd_bounded_decompress(self, zstd_adapter):
        """Frames decoding past max_size are rejected, with or without a content size"""
        data = bytes(1024 * 1024)
        sized = zstd_adapter.compress(data, 3).data
        compressor = zstandard.ZstdCompressor().compressobj()
        streamed = compressor.compress(data) + compressor.flush()

        for frame in (sized, streamed):
            with pytest.raises(CodecError):
                zstd_adapter.decompress(frame, max_size=65536)

    def test_zlib_bounded_decompress(self, zlib_adapter):
        compressed = zlib_adapter.compress(bytes(1024 * 1024), 6).data
        with pytest.raises(CodecError):
            zlib_adapter.decompress(compressed, max_size=65536)
        assert zlib_adapter.decompress(compressed, max_size=1024 * 1024).data == bytes(1024 * 1024)

    def test_zlib_bounded_truncated(self, zlib_adapter):
        compressed = zlib_adapter.compress(os.urandom(4096), 6).data
        with pytest.raises(CodecError):
            zlib_adapter.decompress(compressed[:100], max_size=4096)

    @pytest.mark.asyncio
    async def test_create_adapter(self):
        adapter = await create_adapter(ZlibCodec())
        assert adapter.ready
        assert adapter.name == "zlib"


class TestGetCodec:
    """Test codec lookup"""

    def test_known(self):
        assert isinstance(get_codec("zstd"), ZstdCodec)
        assert isinstance(get_codec("ZLIB"), ZlibCodec)

    def test_unknown(self):
        with pytest.raises(ConfigError):
            get_codec("brotli")
