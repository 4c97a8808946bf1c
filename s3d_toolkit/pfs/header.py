"""PFS header and directory structures."""

from dataclasses import dataclass
from typing import Tuple

# PFS magic bytes
PFS_MAGIC = b"PFS "

# Only known format constant
PFS_VERSION = 0x20000  # 131072

# Checksum reserved for the filename table entry
FILENAME_TABLE_CRC = 0x61580AC9

HEADER_SIZE = 12
DIRECTORY_ENTRY_SIZE = 12
DATA_BLOCK_HEADER_SIZE = 8


@dataclass(frozen=True)
class PFSHeader:
    """PFS archive header (12 bytes)."""

    directory_offset: int  # 4 bytes: Absolute offset of the directory
    magic: bytes  # 4 bytes: "PFS "
    format_version: int  # 4 bytes: 0x20000

    @property
    def is_valid(self) -> bool:
        return self.magic == PFS_MAGIC and self.format_version == PFS_VERSION


@dataclass(frozen=True)
class PFSDirectoryEntry:
    """PFS directory entry (12 bytes)."""

    checksum: int  # 4 bytes: Hash of the logical filename
    payload_offset: int  # 4 bytes: Absolute offset of the payload
    payload_size: int  # 4 bytes: Payload length in bytes

    @property
    def end_offset(self) -> int:
        return self.payload_offset + self.payload_size

    @property
    def is_filename_table(self) -> bool:
        return self.checksum == FILENAME_TABLE_CRC


@dataclass(frozen=True)
class PFSDirectory:
    """All directory entries in file order, plus the filename table entry."""

    entries: Tuple[PFSDirectoryEntry, ...]
    filename_entry: PFSDirectoryEntry

    @property
    def file_entries(self) -> Tuple[PFSDirectoryEntry, ...]:
        """Entries other than the filename table, order preserved."""
        return tuple(e for e in self.entries if not e.is_filename_table)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class PFSDataBlock:
    """Header preceding each compressed block (8 bytes)."""

    compressed_length: int
    inflated_length: int
