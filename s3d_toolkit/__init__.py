"""S3D Toolkit - read PFS (.s3d) game archives."""

__version__ = "0.1.0"

from .exceptions import S3DError
from .pfs import PFSArchive, open_archive

__all__ = ["PFSArchive", "S3DError", "open_archive", "__version__"]
