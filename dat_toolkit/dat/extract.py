"""Chunk extraction: read a manifest entry's bytes and decompress them."""

import logging
from typing import BinaryIO, Optional

from ..compression import DecompressedData, Decompressor, HuffmanDecompressor
from ..errors import ArchiveIOError, ChunkTruncatedError, CorruptStreamError
from ..utils.hexdump import format_preview
from .header import MFTEntry
from .lookup import ArchiveId, LookupPolicy, resolve
from .reader import DatArchive, open_archive_file

logger = logging.getLogger(__name__)


def read_chunk_from(stream: BinaryIO, entry: MFTEntry) -> bytes:
    """Read exactly ``entry.size`` bytes at ``entry.offset``."""
    try:
        stream.seek(entry.offset)
        data = stream.read(entry.size)
    except OSError as e:
        raise ArchiveIOError(f"Cannot read chunk at {entry.offset}: {e}") from e
    if len(data) < entry.size:
        raise ChunkTruncatedError(
            f"Chunk at {entry.offset} truncated: expected {entry.size} bytes, got {len(data)}"
        )
    return data


def read_chunk(path, entry: MFTEntry) -> bytes:
    """Open ``path`` and read the stored bytes of ``entry``."""
    with open_archive_file(path) as f:
        return read_chunk_from(f, entry)


def decode_chunk(
    entry: MFTEntry, raw: bytes, decompressor: Optional[Decompressor] = None
) -> bytes:
    """Return ``raw`` as is, or decompressed if the entry is compressed."""
    if not entry.is_compressed:
        logger.debug("Stored chunk: %s", format_preview(raw))
        return raw

    decompressor = decompressor or HuffmanDecompressor()
    result = decompressor.decompress(raw, size_hint=entry.size)
    if not isinstance(result, DecompressedData):
        raise CorruptStreamError(
            f"Decompressor {decompressor.name!r} returned {type(result).__name__}"
        )
    data = result.payload()
    logger.debug(
        "Compressed chunk (%s): %d -> %d bytes: %s",
        decompressor.name,
        len(raw),
        len(data),
        format_preview(data),
    )
    return data


def extract(
    archive: DatArchive,
    kind: ArchiveId,
    number: int,
    decompressor: Optional[Decompressor] = None,
    policy: Optional[LookupPolicy] = None,
) -> bytes:
    """Extract the chunk identified by ``number``.

    Args:
        archive: A loaded archive.
        kind: Whether ``number`` is a file id or a base id.
        number: The identifier to look up.
        decompressor: Used for compressed chunks; HuffmanDecompressor by default.
        policy: Duplicate-match policy; the archive's load option by default.

    Returns:
        The chunk bytes, decompressed when the manifest marks them compressed.
    """
    entry = resolve(archive, kind, number, policy)
    raw = read_chunk(archive.path, entry)
    return decode_chunk(entry, raw, decompressor)
