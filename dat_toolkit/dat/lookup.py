"""Resolve file ids and base ids to manifest entries."""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..errors import EntryNotFoundError, ManifestIndexError
from .header import MFTEntry, MFTIndexEntry

if TYPE_CHECKING:
    from .reader import DatArchive

logger = logging.getLogger(__name__)


class ArchiveId(Enum):
    """Which identifier space a lookup key belongs to."""

    FILE_ID = "file_id"
    BASE_ID = "base_id"


class LookupPolicy(Enum):
    """How duplicate index matches are resolved."""

    LAST_MATCH_WINS = "last"
    FIRST_MATCH_WINS = "first"


# Archives seen so far are read with the later index entry taking precedence.
DEFAULT_LOOKUP_POLICY = LookupPolicy.LAST_MATCH_WINS


def find_index_entry(
    archive: "DatArchive",
    kind: ArchiveId,
    number: int,
    policy: Optional[LookupPolicy] = None,
) -> MFTIndexEntry:
    """Scan the index table for ``number`` in the ``kind`` id space."""
    if policy is None:
        policy = archive.options.lookup_policy

    field = kind.value
    found: Optional[MFTIndexEntry] = None
    for entry in archive.index:
        if getattr(entry, field) == number:
            found = entry
            if policy is LookupPolicy.FIRST_MATCH_WINS:
                break

    if found is None:
        raise EntryNotFoundError(f"No index entry with {field} {number}")

    logger.debug("Found %s", found)
    return found


def resolve_index(
    archive: "DatArchive",
    kind: ArchiveId,
    number: int,
    policy: Optional[LookupPolicy] = None,
) -> int:
    """Return the zero-based manifest slot for ``number``.

    Base ids are 1-based manifest positions, so slot = base_id - 1.
    """
    match = find_index_entry(archive, kind, number, policy)

    if match.base_id == 0:
        raise ManifestIndexError(f"Index entry {match} has base_id 0")
    slot = match.base_id - 1
    if slot >= len(archive.entries):
        raise ManifestIndexError(
            f"Base id {match.base_id} outside manifest of {len(archive.entries)} entries"
        )
    return slot


def resolve(
    archive: "DatArchive",
    kind: ArchiveId,
    number: int,
    policy: Optional[LookupPolicy] = None,
) -> MFTEntry:
    """Resolve ``number`` to its manifest entry."""
    slot = resolve_index(archive, kind, number, policy)
    entry = archive.entries[slot]
    logger.debug("Resolved %s %d to slot %d: %s", kind.value, number, slot, entry)
    return entry
