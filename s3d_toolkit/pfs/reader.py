"""PFS (.s3d) archive reader and extractor.

Opening an archive runs four stages in order:

1. read_header      - 12-byte preamble, magic and format constant
2. read_directory   - entry count and (checksum, offset, size) records
3. decode_filenames - zlib-compressed name table behind the reserved checksum
4. assemble         - binds the i-th name to the i-th non-reserved entry

Every read is made at an absolute offset, so a finished ``PFSArchive`` can
serve ``read_entry`` calls from several threads at once.
"""

import zlib
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from ..exceptions import (
    AmbiguousFilenameTableError,
    ArchiveIOError,
    BadMagicError,
    DecompressionFailedError,
    EntryNotFoundError,
    FilenameTableNotFoundError,
    MalformedHeaderError,
    NameCountMismatchError,
    TruncatedDirectoryError,
    TruncatedFilenameTableError,
    TruncatedPayloadError,
    UnsupportedVersionError,
)
from ..logging_utils import get_logger
from ..utils.binary import BinaryReader, PositionalReader
from .header import (
    DATA_BLOCK_HEADER_SIZE,
    DIRECTORY_ENTRY_SIZE,
    FILENAME_TABLE_CRC,
    HEADER_SIZE,
    PFS_MAGIC,
    PFS_VERSION,
    PFSDataBlock,
    PFSDirectory,
    PFSDirectoryEntry,
    PFSHeader,
)

log = get_logger(__name__)

# Names are opaque bytes; latin-1 maps each byte to exactly one character.
NAME_ENCODING = "latin-1"

# Inflated blocks may exceed their declared length by this much before failing
INFLATE_LIMIT_FACTOR = 4
INFLATE_LIMIT_MIN = 1 << 20


def read_header(source: PositionalReader) -> PFSHeader:
    """Read and validate the 12-byte PFS header at offset 0."""
    data = source.read_at(0, HEADER_SIZE)
    if len(data) < HEADER_SIZE:
        raise MalformedHeaderError(f"PFS header too small: {len(data)} bytes, expected {HEADER_SIZE}")

    reader = BinaryReader(data)
    directory_offset = reader.read_u32()
    magic = reader.read_bytes(4)
    format_version = reader.read_u32()

    if magic != PFS_MAGIC:
        raise BadMagicError(magic, PFS_MAGIC)
    if format_version != PFS_VERSION:
        raise UnsupportedVersionError(format_version, PFS_VERSION)

    return PFSHeader(
        directory_offset=directory_offset,
        magic=magic,
        format_version=format_version,
    )


def read_directory(source: PositionalReader, header: PFSHeader) -> PFSDirectory:
    """Read the directory at ``header.directory_offset``.

    Payload ranges are not checked against the file size here; an entry
    pointing past the end of the file only fails when it is read.
    """
    offset = header.directory_offset
    count_data = source.read_at(offset, 4)
    if len(count_data) < 4:
        raise TruncatedDirectoryError(f"Directory count at {offset:#x} runs past end of file")
    count = BinaryReader(count_data).read_u32()

    table_size = count * DIRECTORY_ENTRY_SIZE
    table = source.read_at(offset + 4, table_size)
    if len(table) < table_size:
        raise TruncatedDirectoryError(
            f"Directory declares {count} entries but only "
            f"{len(table) // DIRECTORY_ENTRY_SIZE} fit before end of file"
        )

    reader = BinaryReader(table)
    entries = []
    for _ in range(count):
        entries.append(
            PFSDirectoryEntry(
                checksum=reader.read_u32(),
                payload_offset=reader.read_u32(),
                payload_size=reader.read_u32(),
            )
        )

    filename_entries = [e for e in entries if e.checksum == FILENAME_TABLE_CRC]
    if not filename_entries:
        raise FilenameTableNotFoundError(
            f"No directory entry carries the filename table checksum {FILENAME_TABLE_CRC:#010x}"
        )
    if len(filename_entries) > 1:
        raise AmbiguousFilenameTableError(len(filename_entries))

    log.debug("Directory at %#x: %d entries", offset, count)
    return PFSDirectory(entries=tuple(entries), filename_entry=filename_entries[0])


def read_data_block_header(data: bytes) -> PFSDataBlock:
    reader = BinaryReader(data)
    return PFSDataBlock(compressed_length=reader.read_u32(), inflated_length=reader.read_u32())


def inflate(compressed: bytes, inflated_length: int) -> bytes:
    """Decompress one zlib block.

    The decompressor only ever sees the ``compressed`` buffer, so a stream
    that never signals its end fails instead of reading on. Output is capped
    at a multiple of ``inflated_length``; a length under the cap that still
    differs from ``inflated_length`` is only logged.
    """
    limit = max(inflated_length * INFLATE_LIMIT_FACTOR, INFLATE_LIMIT_MIN)
    decompressor = zlib.decompressobj()
    try:
        data = decompressor.decompress(compressed, limit)
        if decompressor.unconsumed_tail:
            raise DecompressionFailedError(
                f"Block inflates past {limit} bytes, header declares {inflated_length}"
            )
        data += decompressor.flush()
    except zlib.error as e:
        raise DecompressionFailedError(f"Invalid compressed data: {e}") from e
    if not decompressor.eof:
        raise DecompressionFailedError("Compressed data ends before the end of the zlib stream")
    if len(data) > limit:
        raise DecompressionFailedError(
            f"Block inflates past {limit} bytes, header declares {inflated_length}"
        )

    if len(data) != inflated_length:
        log.warning(
            "Inflated %d bytes, block header declares %d", len(data), inflated_length
        )
    return data


def inflate_blocks(data: bytes) -> bytes:
    """Decompress a payload made of consecutive compressed blocks."""
    reader = BinaryReader(data)
    result = bytearray()

    while reader.remaining() > 0:
        try:
            block = read_data_block_header(reader.read_bytes(DATA_BLOCK_HEADER_SIZE))
            compressed = reader.read_bytes(block.compressed_length)
        except EOFError as e:
            raise TruncatedPayloadError(f"Compressed block runs past end of payload: {e}") from e
        result.extend(inflate(compressed, block.inflated_length))

    return bytes(result)


def decode_filenames(source: PositionalReader, filename_entry: PFSDirectoryEntry) -> List[str]:
    """Read, inflate and parse the filename table.

    Each name is returned length-for-length, embedded NULs included.
    """
    offset = filename_entry.payload_offset
    block_data = source.read_at(offset, DATA_BLOCK_HEADER_SIZE)
    if len(block_data) < DATA_BLOCK_HEADER_SIZE:
        raise TruncatedFilenameTableError(f"Filename table block header at {offset:#x} runs past end of file")
    block = read_data_block_header(block_data)

    compressed = source.read_at(offset + DATA_BLOCK_HEADER_SIZE, block.compressed_length)
    if len(compressed) < block.compressed_length:
        raise TruncatedFilenameTableError(
            f"Filename table declares {block.compressed_length} compressed bytes, "
            f"only {len(compressed)} available"
        )

    reader = BinaryReader(inflate(compressed, block.inflated_length))
    filenames = []
    try:
        count = reader.read_u32()
        for _ in range(count):
            length = reader.read_u32()
            filenames.append(reader.read_bytes(length).decode(NAME_ENCODING))
    except EOFError as e:
        raise TruncatedFilenameTableError(
            f"Filename table ended after {len(filenames)} names: {e}"
        ) from e

    trailing = reader.remaining()
    if trailing:
        log.debug("Ignoring %d trailing bytes after filename table", trailing)

    return filenames


def assemble(directory: PFSDirectory, filenames: List[str]) -> Dict[str, PFSDirectoryEntry]:
    """Bind names to entries by position, skipping the filename table entry."""
    file_entries = directory.file_entries
    if len(filenames) != len(file_entries):
        raise NameCountMismatchError(len(filenames), len(file_entries))

    entries: Dict[str, PFSDirectoryEntry] = {}
    for filename, entry in zip(filenames, file_entries):
        if filename in entries:
            log.debug("Duplicate entry name %r, keeping the later one", filename)
        entries[filename] = entry
    return entries


class PFSArchive:
    """Reader for PFS (.s3d) archive files."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._file: Optional[BinaryIO] = None
        self._source: Optional[PositionalReader] = None
        self._header: Optional[PFSHeader] = None
        self._directory: Optional[PFSDirectory] = None
        self._entries: Mapping[str, PFSDirectoryEntry] = MappingProxyType({})

    def __enter__(self) -> "PFSArchive":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = f"{len(self._entries)} entries" if self._file else "closed"
        return f"PFSArchive({str(self.path)!r}, {state})"

    def open(self) -> "PFSArchive":
        """Open the archive and parse header, directory and filename table.

        Either everything parses or the file is closed again and the error
        propagates; a half-read archive is never left behind.
        """
        if self._file:
            return self

        try:
            self._file = open(self.path, "rb")
        except OSError as e:
            raise ArchiveIOError(self.path, e.strerror or str(e)) from e

        try:
            source = PositionalReader(self._file)
            header = read_header(source)
            directory = read_directory(source, header)
            filenames = decode_filenames(source, directory.filename_entry)
            entries = assemble(directory, filenames)
        except OSError as e:
            self.close()
            raise ArchiveIOError(self.path, e.strerror or str(e)) from e
        except Exception:
            self.close()
            raise

        self._source = source
        self._header = header
        self._directory = directory
        self._entries = MappingProxyType(entries)
        log.info("Opened %s: %d entries", self.path.name, len(entries))
        return self

    def close(self) -> None:
        """Close the archive file."""
        if self._file:
            self._file.close()
            self._file = None
            self._source = None

    @property
    def closed(self) -> bool:
        return self._file is None

    @property
    def header(self) -> PFSHeader:
        if not self._header:
            raise RuntimeError("Archive not opened")
        return self._header

    @property
    def directory(self) -> PFSDirectory:
        if not self._directory:
            raise RuntimeError("Archive not opened")
        return self._directory

    @property
    def entries(self) -> Mapping[str, PFSDirectoryEntry]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def list_names(self) -> List[str]:
        """List all filenames in the archive, in directory order."""
        return list(self._entries)

    def get_entry(self, name: str) -> Optional[PFSDirectoryEntry]:
        """Find an entry by filename."""
        return self._entries.get(name)

    def read_entry(self, name: str) -> bytes:
        """Read the raw payload bytes of a single entry."""
        entry = self._entries.get(name)
        if entry is None:
            raise EntryNotFoundError(name)
        if self._source is None:
            raise RuntimeError("Archive not opened")

        try:
            data = self._source.read_at(entry.payload_offset, entry.payload_size)
        except OSError as e:
            raise ArchiveIOError(self.path, e.strerror or str(e)) from e

        if len(data) < entry.payload_size:
            raise TruncatedPayloadError(
                f"Entry {name!r} declares {entry.payload_size} bytes at "
                f"{entry.payload_offset:#x}, only {len(data)} available"
            )
        return data

    def extract_entry(self, name: str) -> bytes:
        """Read an entry and decompress its blocks."""
        return inflate_blocks(self.read_entry(name))

    def extract_all(
        self,
        output_dir: Union[str, Path],
        inflate: bool = True,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ) -> Iterator[Tuple[str, Path]]:
        """Extract all files to the output directory.

        Yields (filename, output_path) for each extracted file.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        root = output_dir.resolve()

        names = self.list_names()
        for i, name in enumerate(names):
            # Names usually end in a NUL; anything after the first one is dropped
            filename = name.split("\x00", 1)[0].lstrip("/\\")
            if not filename:
                filename = f"unknown_{i}"

            output_path = output_dir / filename
            if root not in output_path.resolve().parents:
                log.warning("Skipping %r: path escapes %s", name, output_dir)
                continue

            data = self.extract_entry(name) if inflate else self.read_entry(name)
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_bytes(data)
            except (OSError, ValueError) as e:
                log.warning("Skipping %r: cannot write %s: %s", name, output_path, e)
                continue

            if progress_callback:
                progress_callback(i, len(names), name)

            yield name, output_path

    def verify_checksums(self, hash_func: Callable[[bytes], int]) -> List[Tuple[str, int, int]]:
        """Compare each entry's stored checksum with ``hash_func(name)``.

        Mismatches are logged and returned as (name, stored, computed); they
        never invalidate the archive.
        """
        mismatches = []
        for name, entry in self._entries.items():
            computed = hash_func(name.encode(NAME_ENCODING)) & 0xFFFFFFFF
            if computed != entry.checksum:
                log.warning(
                    "Checksum mismatch for %r: stored %#010x, computed %#010x",
                    name,
                    entry.checksum,
                    computed,
                )
                mismatches.append((name, entry.checksum, computed))
        return mismatches


def open_archive(path: Union[str, Path]) -> PFSArchive:
    """Open and parse an archive. Close it with ``close()`` or a ``with`` block."""
    return PFSArchive(path).open()
