"""DAT archive parsing, lookup and extraction."""

from .extract import decode_chunk, extract, read_chunk
from .header import DAT_MAGIC, MFT_MAGIC, DatHeader, MFTEntry, MFTHeader, MFTIndexEntry
from .lookup import DEFAULT_LOOKUP_POLICY, ArchiveId, LookupPolicy, resolve, resolve_index
from .reader import DEFAULT_INDEX_SLOT, DatArchive, DatReader, LoadOptions, load

__all__ = [
    "ArchiveId",
    "DAT_MAGIC",
    "DEFAULT_INDEX_SLOT",
    "DEFAULT_LOOKUP_POLICY",
    "DatArchive",
    "DatHeader",
    "DatReader",
    "LoadOptions",
    "LookupPolicy",
    "MFTEntry",
    "MFTHeader",
    "MFTIndexEntry",
    "MFT_MAGIC",
    "decode_chunk",
    "extract",
    "load",
    "read_chunk",
    "resolve",
    "resolve_index",
]
