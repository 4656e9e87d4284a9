"""Exceptions raised by dat-toolkit.

Everything derives from DatError. FormatError subclasses abort load();
ExtractionError subclasses are local to a single extract() call and leave
the loaded archive usable.
"""


class DatError(Exception):
    """Base class for dat-toolkit errors."""


# Structural problems found while loading
class FormatError(DatError):
    pass


class InvalidExtensionError(FormatError):
    pass


class TruncatedError(FormatError):
    pass


class InvalidMagicError(FormatError):
    pass


class InvalidManifestMagicError(FormatError):
    pass


class IndexTableError(FormatError):
    """The designated index table entry is out of range or malformed."""


# Per-call failures
class ExtractionError(DatError):
    pass


class EntryLookupError(ExtractionError):
    pass


class EntryNotFoundError(EntryLookupError):
    pass


class ManifestIndexError(EntryLookupError):
    """A matched base id does not map onto a manifest slot."""


class ArchiveIOError(ExtractionError):
    pass


class ChunkTruncatedError(ArchiveIOError):
    pass


class ArchiveNotFoundError(ArchiveIOError):
    pass


class ArchivePermissionError(ArchiveIOError):
    pass


class DecompressionError(ExtractionError):
    pass


class CorruptStreamError(DecompressionError):
    pass


class UnsupportedStreamError(DecompressionError):
    pass
