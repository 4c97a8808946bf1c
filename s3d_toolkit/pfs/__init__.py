"""PFS (.s3d) archive support."""

from .header import (
    FILENAME_TABLE_CRC,
    PFS_MAGIC,
    PFS_VERSION,
    PFSDataBlock,
    PFSDirectory,
    PFSDirectoryEntry,
    PFSHeader,
)
from .reader import (
    PFSArchive,
    assemble,
    decode_filenames,
    inflate_blocks,
    open_archive,
    read_directory,
    read_header,
)

__all__ = [
    "FILENAME_TABLE_CRC",
    "PFS_MAGIC",
    "PFS_VERSION",
    "PFSArchive",
    "PFSDataBlock",
    "PFSDirectory",
    "PFSDirectoryEntry",
    "PFSHeader",
    "assemble",
    "decode_filenames",
    "inflate_blocks",
    "open_archive",
    "read_directory",
    "read_header",
]
