"""Chunk decompressors."""

from .base import DecompressedData, Decompressor
from .huffman import HuffmanDecompressor

__all__ = ["DecompressedData", "Decompressor", "HuffmanDecompressor"]
