"""Helpers for building synthetic PFS archives in tests."""

import struct
import zlib
from typing import Dict, List, Optional, Sequence, Tuple

FILENAME_TABLE_CRC = 0x61580AC9


def compress_block(data: bytes, inflated_length: Optional[int] = None) -> bytes:
    """Create one compressed block: (compressed_length, inflated_length) + zlib data."""
    compressed = zlib.compress(data)
    if inflated_length is None:
        inflated_length = len(data)
    return struct.pack("<II", len(compressed), inflated_length) + compressed


def build_filename_table(names: Sequence[bytes]) -> bytes:
    """Create the uncompressed filename table body."""
    table = struct.pack("<I", len(names))
    for name in names:
        table += struct.pack("<I", len(name)) + name
    return table


def build_pfs(
    files: Sequence[Tuple[bytes, bytes]],
    names: Optional[Sequence[bytes]] = None,
    table_body: Optional[bytes] = None,
    table_block: Optional[bytes] = None,
    table_index: Optional[int] = None,
    magic: bytes = b"PFS ",
    version: int = 0x20000,
    size_overrides: Optional[Dict[int, int]] = None,
    extra_entries: Sequence[Tuple[int, int, int]] = (),
) -> bytes:
    """Create a PFS archive.

    Layout: header, payloads, filename table block, directory. The filename
    table entry goes last in the directory unless ``table_index`` says
    otherwise. ``names`` / ``table_body`` / ``table_block`` override the
    table contents at increasing levels of rawness.
    """
    size_overrides = size_overrides or {}
    body = bytearray()
    offset = 12
    records: List[Tuple[int, int, int]] = []

    for i, (name, payload) in enumerate(files):
        size = size_overrides.get(i, len(payload))
        records.append((i + 1, offset + len(body), size))
        body += payload

    if table_block is None:
        if table_body is None:
            table_body = build_filename_table(names if names is not None else [n for n, _ in files])
        table_block = compress_block(table_body)
    table_record = (FILENAME_TABLE_CRC, offset + len(body), len(table_block))
    body += table_block

    if table_index is None:
        records.append(table_record)
    else:
        records.insert(table_index, table_record)
    records.extend(extra_entries)

    directory_offset = offset + len(body)
    directory = struct.pack("<I", len(records))
    for record in records:
        directory += struct.pack("<III", *record)

    header = struct.pack("<I4sI", directory_offset, magic, version)
    return header + bytes(body) + directory


def directory_offset_of(data: bytes) -> int:
    return struct.unpack_from("<I", data, 0)[0]


SAMPLE_FILES = [
    (b"a.txt", b"hello"),
    (b"b.dat", b"\x00\x01\x02\x03"),
    (b"c.bmp", b"BM" + b"\xAB" * 30),
]

