"""Shared fixtures: small DAT archives built in memory."""

import struct
from typing import Iterable, List, Optional, Tuple

import pytest

from dat_toolkit.dat.header import DAT_MAGIC, MFT_MAGIC

HEADER_CHUNK = b"HEADERCHUNK\x00"
FIRST_CHUNK = b"first chunk"
SECOND_CHUNK = b"second chunk data"
PACKED_CHUNK = b"PACKED!!"

# (file_id, base_id); base ids are 1-based manifest slots
SAMPLE_INDEX = [
    (100, 3),
    (101, 4),
    (102, 5),
    (200, 3),
    (200, 4),  # duplicate file id, later entry
    (300, 0),  # base id 0 has no slot
    (400, 99),  # past the end of the manifest
]


def pack_index(pairs: Iterable[Tuple[int, int]]) -> bytes:
    return b"".join(struct.pack("<II", file_id, base_id) for file_id, base_id in pairs)


def pack_header(
    mft_offset: int,
    mft_size: int,
    magic: bytes = DAT_MAGIC,
    version: int = 151,
    flags: int = 0,
) -> bytes:
    return struct.pack(
        "<B3sIIIIIQII",
        version,
        magic,
        40,  # header_size
        0x5F3D,  # unknown1
        0x20000,  # chunk_size
        0xDEADBEEF,  # crc
        0,  # unknown2
        mft_offset,
        mft_size,
        flags,
    )


def build_dat(
    payloads: List[bytes],
    flags: Optional[List[int]] = None,
    magic: bytes = DAT_MAGIC,
    mft_magic: bytes = MFT_MAGIC,
    entry_count: Optional[int] = None,
) -> bytes:
    """Build an archive with one manifest entry per payload.

    Payloads follow the 40-byte header back to back; the MFT goes last.
    """
    flags = flags or [0] * len(payloads)
    data = bytearray(40)
    records = []
    for payload, flag in zip(payloads, flags):
        records.append(struct.pack("<QIHHII", len(data), len(payload), flag, 0, 1, 0))
        data += payload

    mft_offset = len(data)
    count = len(records) if entry_count is None else entry_count
    data += struct.pack("<4sQIII", mft_magic, 0, count, 0, 0)
    data += b"".join(records)

    data[:40] = pack_header(mft_offset, len(data) - mft_offset, magic=magic)
    return bytes(data)


def sample_payloads() -> List[bytes]:
    return [HEADER_CHUNK, pack_index(SAMPLE_INDEX), FIRST_CHUNK, SECOND_CHUNK, PACKED_CHUNK]


@pytest.fixture
def make_dat(tmp_path):
    """Factory writing build_dat() output to ``name`` under tmp_path."""

    def _make(payloads=None, name="Local.dat", **kwargs):
        path = tmp_path / name
        path.write_bytes(build_dat(payloads if payloads is not None else sample_payloads(), **kwargs))
        return path

    return _make


@pytest.fixture
def sample_dat(make_dat):
    """Five-entry archive; slot 4 is flagged compressed."""
    return make_dat(flags=[0, 0, 0, 0, 8])
