"""Huffman/LZ decompressor for DAT chunks.

Compressed chunks are a sequence of little-endian 32-bit words read as an
MSB-first bitstream:

- Word 0 is skipped, word 1 holds the decompressed size.
- Every 0x4000th word (position 0x3FFF, 0x7FFF, ...) is a block checksum and
  is skipped by the bit reader.
- The payload is split into blocks. Each block carries two Huffman trees
  (literals/copy lengths and copy offsets), themselves encoded with a fixed
  dictionary tree, followed by up to ``(n + 1) << 12`` codes.
"""

import logging
import struct
from typing import Iterable, List, Sequence, Tuple

from ..errors import CorruptStreamError, UnsupportedStreamError
from .base import DecompressedData, Decompressor

logger = logging.getLogger(__name__)

MASK32 = 0xFFFFFFFF
MAX_SYMBOL_VALUE = 285
MAX_CODE_BITS_LENGTH = 32
# Words per block; the last word of each block is a checksum
BLOCK_SIZE = 0x4000

# Fixed tree used to decode the per-block trees: (code length, symbol count)
DICTIONARY_LENGTHS = [
    (3, 3), (4, 4), (5, 4), (6, 8), (7, 7), (8, 6), (9, 10),
    (10, 16), (11, 13), (12, 7), (13, 6), (14, 4), (15, 8), (16, 160),
]

DICTIONARY_SYMBOLS = [
    0x0A, 0x09, 0x08, 0x0C, 0x0B, 0x07, 0x00, 0xE0, 0x2A, 0x29, 0x06, 0x4A, 0x40, 0x2C, 0x2B, 0x28,
    0x20, 0x05, 0x04, 0x49, 0x48, 0x27, 0x26, 0x25, 0x0D, 0x03, 0x6A, 0x69, 0x4C, 0x4B, 0x47, 0x24,
    0xE8, 0xA0, 0x89, 0x88, 0x68, 0x67, 0x63, 0x60, 0x46, 0x23, 0xE9, 0xC9, 0xC0, 0xA9, 0xA8, 0x8A,
    0x87, 0x80, 0x66, 0x65, 0x45, 0x44, 0x43, 0x2D, 0x02, 0x01, 0xE5, 0xC8, 0xAA, 0xA5, 0xA4, 0x8B,
    0x85, 0x84, 0x6C, 0x6B, 0x64, 0x4D, 0x0E, 0xE7, 0xCA, 0xC7, 0xA7, 0xA6, 0x86, 0x83, 0xE6, 0xE4,
    0xC4, 0x8C, 0x2E, 0x22, 0xEC, 0xC6, 0x6D, 0x4E, 0xEA, 0xCC, 0xAC, 0xAB, 0x8D, 0x11, 0x10, 0x0F,
    0xFF, 0xFE, 0xFD, 0xFC, 0xFB, 0xFA, 0xF9, 0xF8, 0xF7, 0xF6, 0xF5, 0xF4, 0xF3, 0xF2, 0xF1, 0xF0,
    0xEF, 0xEE, 0xED, 0xEB, 0xE3, 0xE2, 0xE1, 0xDF, 0xDE, 0xDD, 0xDC, 0xDB, 0xDA, 0xD9, 0xD8, 0xD7,
    0xD6, 0xD5, 0xD4, 0xD3, 0xD2, 0xD1, 0xD0, 0xCF, 0xCE, 0xCD, 0xCB, 0xC5, 0xC3, 0xC2, 0xC1, 0xBF,
    0xBE, 0xBD, 0xBC, 0xBB, 0xBA, 0xB9, 0xB8, 0xB7, 0xB6, 0xB5, 0xB4, 0xB3, 0xB2, 0xB1, 0xB0, 0xAF,
    0xAE, 0xAD, 0xA3, 0xA2, 0xA1, 0x9F, 0x9E, 0x9D, 0x9C, 0x9B, 0x9A, 0x99, 0x98, 0x97, 0x96, 0x95,
    0x94, 0x93, 0x92, 0x91, 0x90, 0x8F, 0x8E, 0x82, 0x81, 0x7F, 0x7E, 0x7D, 0x7C, 0x7B, 0x7A, 0x79,
    0x78, 0x77, 0x76, 0x75, 0x74, 0x73, 0x72, 0x71, 0x70, 0x6F, 0x6E, 0x62, 0x61, 0x5F, 0x5E, 0x5D,
    0x5C, 0x5B, 0x5A, 0x59, 0x58, 0x57, 0x56, 0x55, 0x54, 0x53, 0x52, 0x51, 0x50, 0x4F, 0x42, 0x41,
    0x3F, 0x3E, 0x3D, 0x3C, 0x3B, 0x3A, 0x39, 0x38, 0x37, 0x36, 0x35, 0x34, 0x33, 0x32, 0x31, 0x30,
    0x2F, 0x21, 0x1F, 0x1E, 0x1D, 0x1C, 0x1B, 0x1A, 0x19, 0x18, 0x17, 0x16, 0x15, 0x14, 0x13, 0x12,
]


class BitState:
    """MSB-first bit reader over a sequence of 32-bit words.

    ``head`` always holds the next 32 bits, ``buffer`` the bits after them,
    ``bits`` how many of those are valid.
    """

    def __init__(self, words: Sequence[int]):
        self.words = words
        self.position = 0
        self.head = 0
        self.buffer = 0
        self.bits = 0

    def _pull(self) -> None:
        if self.bits >= 32:
            return

        if (self.position + 1) % BLOCK_SIZE == 0:
            self.position += 1

        # Out of input: leave it to drop() to report a real shortage
        if self.position >= len(self.words):
            return

        value = self.words[self.position]
        if self.bits == 0:
            self.head = value
            self.buffer = 0
        else:
            self.head |= value >> self.bits
            self.buffer = (value << (32 - self.bits)) & MASK32

        self.bits += 32
        self.position += 1

    def need(self, count: int) -> None:
        """Make sure ``count`` bits are loaded, if the input has them."""
        if count > 32:
            raise CorruptStreamError(f"Cannot request {count} bits at once")
        if self.bits < count:
            self._pull()

    def drop(self, count: int) -> None:
        if count > 32:
            raise CorruptStreamError(f"Cannot drop {count} bits at once")
        if count > self.bits:
            raise CorruptStreamError(
                f"Ran out of input: needed {count} bits, {self.bits} left"
            )

        if count == 32:
            self.head = self.buffer
            self.buffer = 0
        else:
            self.head = ((self.head << count) | (self.buffer >> (32 - count))) & MASK32
            self.buffer = (self.buffer << count) & MASK32
        self.bits -= count

    def peek(self, count: int) -> int:
        return self.head >> (32 - count)

    def read(self, count: int) -> int:
        self.need(count)
        value = self.peek(count)
        self.drop(count)
        return value


def _insert(working_bits: List[int], working_code: List[int], bits: int, symbol: int) -> None:
    # Chains symbols of the same length; the latest inserted comes first
    if bits >= MAX_CODE_BITS_LENGTH:
        raise CorruptStreamError(f"Code length {bits} too long")
    if symbol >= MAX_SYMBOL_VALUE:
        raise CorruptStreamError(f"Symbol {symbol} out of range")

    if working_bits[bits] != -1:
        working_code[symbol] = working_bits[bits]
    working_bits[bits] = symbol


class HuffmanTree:
    """Canonical Huffman decoding table.

    One group per code length: the smallest left-aligned code of that length
    (``codes``), the length itself, and the position of the group's last
    symbol in ``symbols``. Groups are ordered by increasing length, i.e.
    decreasing code value.
    """

    __slots__ = ("codes", "lengths", "offsets", "symbols")

    def __init__(self) -> None:
        self.codes: List[int] = []
        self.lengths: List[int] = []
        self.offsets: List[int] = []
        self.symbols: List[int] = []

    @classmethod
    def from_working_tables(cls, working_bits: List[int], working_code: List[int]) -> "HuffmanTree":
        tree = cls()
        code = 0
        for bits in range(MAX_CODE_BITS_LENGTH):
            symbol = working_bits[bits]
            if symbol != -1:
                while symbol != -1:
                    tree.symbols.append(symbol)
                    symbol = working_code[symbol]
                    code = (code - 1) & MASK32

                tree.codes.append(((code + 1) << (32 - bits)) & MASK32)
                tree.lengths.append(bits)
                tree.offsets.append(len(tree.symbols) - 1)
            code = ((code << 1) + 1) & MASK32
        return tree

    @classmethod
    def from_lengths(cls, pairs: Iterable[Tuple[int, int]]) -> "HuffmanTree":
        """Build a tree from (code length, symbol) pairs."""
        working_bits = [-1] * MAX_CODE_BITS_LENGTH
        working_code = [-1] * MAX_SYMBOL_VALUE
        for bits, symbol in pairs:
            _insert(working_bits, working_code, bits, symbol)
        return cls.from_working_tables(working_bits, working_code)

    @property
    def is_empty(self) -> bool:
        return not self.codes or self.codes[0] == 0

    def decode(self, state: BitState) -> int:
        """Read one symbol from ``state``."""
        if self.is_empty:
            raise CorruptStreamError("Tried to read a code from an empty Huffman tree")

        state.need(32)
        value = state.peek(32)

        for group, code in enumerate(self.codes):
            if value >= code:
                break
        else:
            raise CorruptStreamError(f"No code matches bits {value:#010x}")

        bits = self.lengths[group]
        position = self.offsets[group] - ((value - code) >> (32 - bits))
        if position < 0:
            raise CorruptStreamError(f"No code matches bits {value:#010x}")

        state.drop(bits)
        return self.symbols[position]


def _dictionary_pairs() -> Iterable[Tuple[int, int]]:
    symbols = iter(DICTIONARY_SYMBOLS)
    for bits, count in DICTIONARY_LENGTHS:
        for _ in range(count):
            yield bits, next(symbols)


DICTIONARY_TREE = HuffmanTree.from_lengths(_dictionary_pairs())


def read_tree(state: BitState) -> HuffmanTree:
    """Read a per-block Huffman tree.

    The tree is sent as run-length encoded code lengths, from the highest
    symbol down: each dictionary code carries a length (low 5 bits, 0 meaning
    "unused") and a repeat count (high bits + 1).
    """
    symbol_count = state.read(16)
    if symbol_count > MAX_SYMBOL_VALUE:
        raise CorruptStreamError(f"Too many symbols in tree: {symbol_count}")

    working_bits = [-1] * MAX_CODE_BITS_LENGTH
    working_code = [-1] * MAX_SYMBOL_VALUE

    remaining = symbol_count - 1
    while remaining >= 0:
        code = DICTIONARY_TREE.decode(state)
        bits = code & 0x1F
        repeat = (code >> 5) + 1

        if bits == 0:
            remaining -= repeat
            continue

        for _ in range(repeat):
            if remaining < 0:
                raise CorruptStreamError("Code length run overflows the tree")
            _insert(working_bits, working_code, bits, remaining)
            remaining -= 1

    return HuffmanTree.from_working_tables(working_bits, working_code)


def _copy_length(state: BitState, code: int) -> int:
    quot, rem = divmod(code, 4)
    if quot == 0:
        length = code
    elif quot < 7:
        length = (1 << (quot - 1)) * (4 + rem)
    elif code == 28:
        return 0xFF
    else:
        raise CorruptStreamError(f"Invalid copy length code {code}")

    if quot > 1:
        length |= state.read(quot - 1)
    return length


def _copy_offset(state: BitState, code: int) -> int:
    quot, rem = divmod(code, 2)
    if quot == 0:
        offset = code
    elif quot < 17:
        offset = (1 << (quot - 1)) * (2 + rem)
    else:
        raise CorruptStreamError(f"Invalid copy offset code {code}")

    if quot > 1:
        offset |= state.read(quot - 1)
    return offset + 1


def inflate(state: BitState, output_size: int) -> bytes:
    """Decode ``output_size`` bytes from ``state``."""
    output = bytearray()

    state.need(8)
    state.drop(4)
    length_addend = state.peek(4) + 1
    state.drop(4)

    while len(output) < output_size:
        symbol_tree = read_tree(state)
        copy_tree = read_tree(state)
        max_count = (state.read(4) + 1) << 12

        count = 0
        while count < max_count and len(output) < output_size:
            count += 1

            code = symbol_tree.decode(state)
            if code < 0x100:
                output.append(code)
                continue

            length = _copy_length(state, code - 0x100) + length_addend
            offset = _copy_offset(state, copy_tree.decode(state))
            if offset > len(output):
                raise CorruptStreamError(
                    f"Back-reference {offset} before start of output ({len(output)} bytes)"
                )

            for _ in range(min(length, output_size - len(output))):
                output.append(output[-offset])

    return bytes(output)


class HuffmanDecompressor(Decompressor):
    """Default decompressor for compressed DAT chunks.

    The output size comes from the stream itself; ``size_hint`` is only
    used for logging.
    """

    name = "huffman"

    def decompress(self, data: bytes, size_hint: int) -> DecompressedData:
        if len(data) % 4:
            raise UnsupportedStreamError(
                f"Compressed chunk length {len(data)} is not a multiple of 4"
            )

        words = struct.unpack(f"<{len(data) // 4}I", data)
        state = BitState(words)

        # Word 0: unused header
        state.need(32)
        state.drop(32)
        output_size = state.read(32)
        logger.debug(
            "Inflating %d bytes into %d (hint %d)", len(data), output_size, size_hint
        )

        output = inflate(state, output_size)
        return DecompressedData(data=output, size=len(output))
