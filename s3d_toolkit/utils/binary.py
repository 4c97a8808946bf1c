"""Binary reading utilities for little-endian PFS data."""

import os
import struct
import threading
from io import BytesIO
from typing import BinaryIO, Optional, Union


class BinaryReader:
    """Helper for reading little-endian binary data (PC format)."""

    def __init__(self, data: Union[bytes, BinaryIO]):
        if isinstance(data, (bytes, bytearray)):
            self._stream = BytesIO(data)
        else:
            self._stream = data

    def read_bytes(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) < size:
            raise EOFError(f"Expected {size} bytes, got {len(data)}")
        return data

    def read_u32(self) -> int:
        return struct.unpack("<I", self.read_bytes(4))[0]

    def remaining(self) -> int:
        """Return number of bytes remaining in stream."""
        current = self._stream.tell()
        end = self._stream.seek(0, 2)  # Seek to end
        self._stream.seek(current)
        return end - current


class PositionalReader:
    """Absolute-offset reads over a read-only binary file.

    Uses ``os.pread`` when the stream has a real file descriptor, so no
    shared seek position is touched. Streams without one (``BytesIO``,
    platforms lacking ``pread``) fall back to seek+read under a lock.

    The file size is taken once at construction; reads never ask for more
    than the bytes left before it.
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._lock = threading.Lock()
        self._fd: Optional[int] = None
        if hasattr(os, "pread"):
            try:
                self._fd = stream.fileno()
            except (AttributeError, OSError):
                self._fd = None

        if self._fd is not None:
            self._size = os.fstat(self._fd).st_size
        else:
            current = stream.tell()
            self._size = stream.seek(0, 2)
            stream.seek(current)

    def read_at(self, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes at ``offset``. Short at end of file."""
        size = min(size, max(0, self._size - offset))
        if size <= 0:
            return b""
        if self._fd is not None:
            chunks = []
            remaining = size
            while remaining > 0:
                chunk = os.pread(self._fd, remaining, offset)
                if not chunk:
                    break
                chunks.append(chunk)
                offset += len(chunk)
                remaining -= len(chunk)
            return b"".join(chunks)

        with self._lock:
            self._stream.seek(offset)
            return self._stream.read(size)
