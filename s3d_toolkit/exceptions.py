"""Exceptions raised while reading PFS archives.

Everything derives from ``S3DError`` so callers can catch the whole family.
Structural problems with the file are also ``ValueError`` and lookups of
unknown entries are also ``LookupError``.
"""


class S3DError(Exception):
    """Base class for all archive errors."""


class ArchiveIOError(S3DError):
    """The archive file is missing or unreadable."""

    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Cannot read archive {str(path)!r}: {reason}")


class PFSFormatError(S3DError, ValueError):
    """The archive is structurally malformed."""


class MalformedHeaderError(PFSFormatError):
    pass


class BadMagicError(PFSFormatError):
    def __init__(self, magic: bytes, expected: bytes):
        self.magic = magic
        super().__init__(f"Invalid PFS magic: {magic!r}, expected {expected!r}")


class UnsupportedVersionError(PFSFormatError):
    def __init__(self, version: int, expected: int):
        self.version = version
        super().__init__(f"Unsupported PFS version: {version:#x}, expected {expected:#x}")


class TruncatedDirectoryError(PFSFormatError):
    pass


class FilenameTableNotFoundError(PFSFormatError):
    pass


class AmbiguousFilenameTableError(PFSFormatError):
    def __init__(self, count: int):
        self.count = count
        super().__init__(f"Found {count} filename table entries, expected exactly one")


class DecompressionFailedError(PFSFormatError):
    pass


class TruncatedFilenameTableError(PFSFormatError):
    pass


class NameCountMismatchError(PFSFormatError):
    def __init__(self, name_count: int, entry_count: int):
        self.name_count = name_count
        self.entry_count = entry_count
        super().__init__(
            f"Filename table lists {name_count} names but the directory has "
            f"{entry_count} entries"
        )


class TruncatedPayloadError(PFSFormatError):
    pass


class EntryNotFoundError(S3DError, LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No entry named {name!r} in archive")
