"""Pytest configuration and fixtures"""

import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest

from filestream.compression import CompressionAdapter, ZlibCodec, ZstdCodec


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def zstd_adapter():
    """Initialized zstd adapter"""
    codec = ZstdCodec()
    asyncio.run(codec.initialize())
    return CompressionAdapter(codec)


@pytest.fixture
def zlib_adapter():
    """Initialized zlib adapter"""
    codec = ZlibCodec()
    asyncio.run(codec.initialize())
    return CompressionAdapter(codec)


@pytest.fixture
def text_payload():
    """Highly compressible payload spanning several chunks"""
    line = b"The quick brown fox jumps over the lazy dog. 0123456789\n"
    return (line * 4000)[:200000]
