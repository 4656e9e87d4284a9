"""DAT archive loader."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from ..compression import Decompressor
from ..errors import (
    ArchiveIOError,
    ArchiveNotFoundError,
    ArchivePermissionError,
    IndexTableError,
    InvalidExtensionError,
    TruncatedError,
)
from ..utils.binary import BinaryReader
from .header import (
    MFT_ENTRY_SIZE,
    MFT_HEADER_SIZE,
    MFT_INDEX_ENTRY_SIZE,
    DatHeader,
    MFTEntry,
    MFTHeader,
    MFTIndexEntry,
    read_index_entries,
    read_mft_entries,
)
from .lookup import DEFAULT_LOOKUP_POLICY, ArchiveId, LookupPolicy, resolve

logger = logging.getLogger(__name__)

DAT_EXTENSION = ".dat"
# Manifest position of the file id / base id table in known archives
DEFAULT_INDEX_SLOT = 1


@dataclass(frozen=True)
class LoadOptions:
    """Settings that control how an archive is loaded and queried."""

    extension: str = DAT_EXTENSION
    strict_magic: bool = True
    index_slot: int = DEFAULT_INDEX_SLOT
    lookup_policy: LookupPolicy = DEFAULT_LOOKUP_POLICY


@dataclass(frozen=True)
class DatArchive:
    """A loaded archive: header, manifest and index table.

    Only refers to the backing file by path; every extraction opens its own
    handle.
    """

    path: Path
    header: DatHeader
    mft_header: MFTHeader
    entries: Tuple[MFTEntry, ...]
    index: Tuple[MFTIndexEntry, ...]
    options: LoadOptions = field(default_factory=LoadOptions)

    @property
    def index_entry(self) -> MFTEntry:
        """The manifest entry holding the index table."""
        return self.entries[self.options.index_slot]

    def extract(
        self,
        kind: ArchiveId,
        number: int,
        decompressor: Optional[Decompressor] = None,
        policy: Optional[LookupPolicy] = None,
    ) -> bytes:
        from .extract import extract

        return extract(self, kind, number, decompressor=decompressor, policy=policy)


def check_extension(path: Path, extension: str = DAT_EXTENSION) -> None:
    if not str(path).lower().endswith(extension.lower()):
        raise InvalidExtensionError(
            f"Invalid file extension for {path}. Expected '{extension}'."
        )


def open_archive_file(path: Path) -> BinaryIO:
    """Open ``path`` read-only, mapping OS errors onto archive errors."""
    try:
        return open(path, "rb")
    except FileNotFoundError as e:
        raise ArchiveNotFoundError(f"Archive not found: {path}") from e
    except PermissionError as e:
        raise ArchivePermissionError(f"Cannot read archive: {path}") from e
    except OSError as e:
        raise ArchiveIOError(f"Cannot open archive {path}: {e}") from e


def read_index_table(
    reader: BinaryReader, entries: Tuple[MFTEntry, ...], slot: int, file_size: int
) -> Tuple[MFTIndexEntry, ...]:
    """Read the index table stored in manifest entry ``slot``."""
    if not 0 <= slot < len(entries):
        raise IndexTableError(
            f"Index slot {slot} outside manifest of {len(entries)} entries"
        )

    table = entries[slot]
    if table.size % MFT_INDEX_ENTRY_SIZE:
        raise IndexTableError(
            f"Index table size {table.size} is not a multiple of {MFT_INDEX_ENTRY_SIZE}"
        )
    if table.end > file_size:
        raise IndexTableError(
            f"Index table [{table.offset}, {table.end}) runs past end of file ({file_size})"
        )

    count = table.size // MFT_INDEX_ENTRY_SIZE
    logger.debug("Index table: %d entries at offset %d", count, table.offset)

    reader.seek(table.offset)
    return tuple(read_index_entries(reader, count))


def load_from_reader(
    reader: BinaryReader, path: Path, options: Optional[LoadOptions] = None
) -> DatArchive:
    """Parse header, manifest and index table from an open stream."""
    options = options or LoadOptions()
    file_size = reader.size()

    reader.seek(0)
    header = DatHeader.from_reader(reader, strict_magic=options.strict_magic)

    if header.mft_offset + MFT_HEADER_SIZE > file_size:
        raise TruncatedError(
            f"MFT header at {header.mft_offset} runs past end of file ({file_size})"
        )
    reader.seek(header.mft_offset)
    mft_header = MFTHeader.from_reader(reader)

    available = reader.remaining()
    if mft_header.entry_count * MFT_ENTRY_SIZE > available:
        raise TruncatedError(
            f"MFT declares {mft_header.entry_count} entries but only "
            f"{available // MFT_ENTRY_SIZE} fit in the file"
        )
    entries = tuple(read_mft_entries(reader, mft_header.entry_count))
    logger.debug("MFT entries: %d", len(entries))

    index = read_index_table(reader, entries, options.index_slot, file_size)
    logger.debug("Index entries: %d", len(index))

    for i, entry in enumerate(entries):
        if entry.end > file_size:
            raise TruncatedError(
                f"MFT entry {i} [{entry.offset}, {entry.end}) runs past end of file ({file_size})"
            )

    return DatArchive(
        path=path,
        header=header,
        mft_header=mft_header,
        entries=entries,
        index=index,
        options=options,
    )


def load(path: Union[str, Path], options: Optional[LoadOptions] = None) -> DatArchive:
    """Load the archive at ``path``.

    The extension is checked before the file is opened. The returned archive
    is complete or not returned at all.
    """
    path = Path(path)
    options = options or LoadOptions()
    check_extension(path, options.extension)

    with open_archive_file(path) as f:
        return load_from_reader(BinaryReader(f), path, options)


class DatReader:
    """Archive reader that keeps one read-only handle open.

    Use as a context manager to load once and extract many chunks through
    the same handle.
    """

    def __init__(
        self,
        path: Union[str, Path],
        options: Optional[LoadOptions] = None,
        decompressor: Optional[Decompressor] = None,
    ):
        self.path = Path(path)
        self.options = options or LoadOptions()
        self.decompressor = decompressor
        self._file: Optional[BinaryIO] = None
        self._archive: Optional[DatArchive] = None

    def __enter__(self) -> "DatReader":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """Open the archive and parse its tables."""
        check_extension(self.path, self.options.extension)
        self._file = open_archive_file(self.path)
        try:
            self._archive = load_from_reader(BinaryReader(self._file), self.path, self.options)
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        """Close the archive file."""
        if self._file:
            self._file.close()
            self._file = None

    @property
    def archive(self) -> DatArchive:
        if not self._archive:
            raise RuntimeError("Archive not opened")
        return self._archive

    def extract(
        self, kind: ArchiveId, number: int, policy: Optional[LookupPolicy] = None
    ) -> bytes:
        """Extract a chunk using the held handle."""
        from .extract import decode_chunk, read_chunk_from

        if not self._file:
            raise RuntimeError("Archive not opened")
        entry = resolve(self.archive, kind, number, policy)
        raw = read_chunk_from(self._file, entry)
        return decode_chunk(entry, raw, self.decompressor)
