"""DAT header, manifest (MFT) and index table structures."""

import logging
from dataclasses import dataclass
from typing import List

from ..errors import InvalidMagicError, InvalidManifestMagicError, TruncatedError
from ..utils.binary import BinaryReader

logger = logging.getLogger(__name__)

# Container magic following the version byte
DAT_MAGIC = b"AN\x1a"
# Manifest magic: "Mft\x1a"
MFT_MAGIC = b"Mft\x1a"

DAT_HEADER_SIZE = 40
MFT_HEADER_SIZE = 24
MFT_ENTRY_SIZE = 24
MFT_INDEX_ENTRY_SIZE = 8


@dataclass(frozen=True)
class DatHeader:
    """Top-level container header (40 bytes)."""

    version: int  # 1 byte
    identifier: bytes  # 3 bytes: "AN\x1a"
    header_size: int  # 4 bytes
    unknown1: int  # 4 bytes
    chunk_size: int  # 4 bytes
    crc: int  # 4 bytes
    unknown2: int  # 4 bytes
    mft_offset: int  # 8 bytes: absolute offset of the manifest
    mft_size: int  # 4 bytes
    flags: int  # 4 bytes

    @property
    def is_valid(self) -> bool:
        return self.identifier == DAT_MAGIC

    @classmethod
    def from_reader(cls, reader: BinaryReader, strict_magic: bool = True) -> "DatHeader":
        """Read the header from the reader's current position."""
        try:
            header = cls(
                version=reader.read_u8(),
                identifier=reader.read_bytes(3),
                header_size=reader.read_u32(),
                unknown1=reader.read_u32(),
                chunk_size=reader.read_u32(),
                crc=reader.read_u32(),
                unknown2=reader.read_u32(),
                mft_offset=reader.read_u64(),
                mft_size=reader.read_u32(),
                flags=reader.read_u32(),
            )
        except EOFError as e:
            raise TruncatedError(f"DAT header truncated: {e}") from e

        if not header.is_valid:
            if strict_magic:
                raise InvalidMagicError(
                    f"Invalid DAT magic: {header.identifier!r}, expected {DAT_MAGIC!r}"
                )
            logger.warning("Ignoring unexpected DAT magic %r", header.identifier)

        logger.debug("%s", header)
        return header


@dataclass(frozen=True)
class MFTHeader:
    """Manifest header (24 bytes) found at DatHeader.mft_offset."""

    identifier: bytes  # 4 bytes: "Mft\x1a"
    unknown: int  # 8 bytes
    entry_count: int  # 4 bytes
    unknown2: int  # 4 bytes
    unknown3: int  # 4 bytes

    @property
    def is_valid(self) -> bool:
        return self.identifier == MFT_MAGIC

    @classmethod
    def from_reader(cls, reader: BinaryReader) -> "MFTHeader":
        try:
            header = cls(
                identifier=reader.read_bytes(4),
                unknown=reader.read_u64(),
                entry_count=reader.read_u32(),
                unknown2=reader.read_u32(),
                unknown3=reader.read_u32(),
            )
        except EOFError as e:
            raise TruncatedError(f"MFT header truncated: {e}") from e

        if not header.is_valid:
            raise InvalidManifestMagicError(
                f"Invalid MFT magic: {header.identifier!r}, expected {MFT_MAGIC!r}"
            )

        logger.debug("%s", header)
        return header


@dataclass(frozen=True)
class MFTEntry:
    """One manifest record describing a stored chunk (24 bytes)."""

    offset: int  # 8 bytes: absolute offset of the chunk data
    size: int  # 4 bytes: stored size (compressed size if compressed)
    compression_flag: int  # 2 bytes: 0 = stored raw
    entry_flag: int  # 2 bytes: format-specific attribute bits
    counter: int  # 4 bytes
    crc: int  # 4 bytes

    @property
    def is_compressed(self) -> bool:
        return self.compression_flag != 0

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(frozen=True)
class MFTIndexEntry:
    """A (file_id, base_id) pair from the index table (8 bytes)."""

    file_id: int
    base_id: int


def read_mft_entries(reader: BinaryReader, count: int) -> List[MFTEntry]:
    """Read ``count`` consecutive manifest records."""
    entries = []
    try:
        for _ in range(count):
            entries.append(
                MFTEntry(
                    offset=reader.read_u64(),
                    size=reader.read_u32(),
                    compression_flag=reader.read_u16(),
                    entry_flag=reader.read_u16(),
                    counter=reader.read_u32(),
                    crc=reader.read_u32(),
                )
            )
    except EOFError as e:
        raise TruncatedError(
            f"MFT truncated after {len(entries)} of {count} entries: {e}"
        ) from e
    return entries


def read_index_entries(reader: BinaryReader, count: int) -> List[MFTIndexEntry]:
    """Read ``count`` (file_id, base_id) pairs."""
    index = []
    try:
        for _ in range(count):
            file_id = reader.read_u32()
            base_id = reader.read_u32()
            index.append(MFTIndexEntry(file_id=file_id, base_id=base_id))
    except EOFError as e:
        raise TruncatedError(
            f"Index table truncated after {len(index)} of {count} entries: {e}"
        ) from e
    return index
