"""Shared helpers."""

from .binary import BinaryReader
from .hexdump import format_preview, hex_preview

__all__ = ["BinaryReader", "format_preview", "hex_preview"]
