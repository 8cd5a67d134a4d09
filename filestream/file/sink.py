"""
Delivery Sinks

Where a finished inbound payload ends up. The receiver hands every
completed transfer to a sink's ``deliver(name, mime_type, data)``.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


@dataclass
class DeliveredFile:
    """A payload handed to a sink."""
    name: str
    mime_type: str
    data: bytes
    path: Optional[Path] = None


class MemorySink:
    """Keeps delivered payloads in memory."""

    def __init__(self):
        self.delivered: List[DeliveredFile] = []

    async def deliver(self, name: str, mime_type: str, data: bytes) -> DeliveredFile:
        item = DeliveredFile(name=name, mime_type=mime_type, data=data)
        self.delivered.append(item)
        return item


def safe_filename(name: str) -> str:
    """Strip directory parts and characters that are unsafe in a file name."""
    name = name.replace('\\', '/').split('/')[-1]
    name = re.sub(r'[^\w.\- ]', '_', name).strip(' .')
    return name or 'received.bin'


class FileSink:
    """
    Writes delivered payloads into a directory.

    Files are written to a temp name first and renamed into place, so a
    partially written file never appears under its final name. Existing
    files are not overwritten: "a.txt" becomes "a (1).txt".
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.files_written = 0
        self.bytes_written = 0

    def _target_path(self, name: str) -> Path:
        path = self.output_dir / safe_filename(name)
        counter = 1
        while path.exists():
            path = path.with_name(f"{Path(safe_filename(name)).stem} ({counter}){path.suffix}")
            counter += 1
        return path

    async def deliver(self, name: str, mime_type: str, data: bytes) -> DeliveredFile:
        path = self._target_path(name)
        temp_path = self.output_dir / f".{uuid.uuid4().hex}.part"

        async with aiofiles.open(temp_path, 'wb') as f:
            await f.write(data)
        await aiofiles.os.rename(temp_path, path)

        self.files_written += 1
        self.bytes_written += len(data)
        logger.info(f"Saved {name} to {path} ({len(data):,} bytes)")
        return DeliveredFile(name=name, mime_type=mime_type, data=data, path=path)
