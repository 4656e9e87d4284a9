"""Short hex/ASCII previews of chunk data."""

from typing import Tuple


def hex_preview(data: bytes, length: int = 16) -> Tuple[str, str]:
    """Return (hex, ascii) renderings of the first ``length`` bytes.

    Non-printable bytes show as ``.`` in the ASCII column.
    """
    head = data[:length]
    hex_part = " ".join(f"{b:02X}" for b in head)
    ascii_part = "".join(chr(b) if 31 < b < 127 else "." for b in head)
    return hex_part, ascii_part


def format_preview(data: bytes, length: int = 16) -> str:
    """Single-line preview, e.g. ``41 42 00  |AB.|``."""
    hex_part, ascii_part = hex_preview(data, length)
    return f"{hex_part}  |{ascii_part}|"
