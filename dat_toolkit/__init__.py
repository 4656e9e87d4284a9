"""DAT Toolkit - Read and extract chunks from .dat archives."""

__version__ = "0.1.0"

from .dat import (
    ArchiveId,
    DatArchive,
    DatReader,
    LoadOptions,
    LookupPolicy,
    extract,
    load,
    resolve,
)
from .errors import DatError, ExtractionError, FormatError

__all__ = [
    "__version__",
    "ArchiveId",
    "DatArchive",
    "DatError",
    "DatReader",
    "ExtractionError",
    "FormatError",
    "LoadOptions",
    "LookupPolicy",
    "extract",
    "load",
    "resolve",
]
