"""Tests for loading DAT archives."""

import struct

import pytest

from dat_toolkit.dat import DatReader, LoadOptions, load
from dat_toolkit.dat.header import MFT_MAGIC
from dat_toolkit.dat.lookup import ArchiveId, LookupPolicy
from dat_toolkit.errors import (
    ArchiveIOError,
    ArchiveNotFoundError,
    DatError,
    IndexTableError,
    InvalidExtensionError,
    InvalidMagicError,
    InvalidManifestMagicError,
    TruncatedError,
)

from conftest import FIRST_CHUNK, HEADER_CHUNK, SAMPLE_INDEX, SECOND_CHUNK, build_dat, pack_index


class TestLoad:
    """Tests for load() on well-formed archives."""

    def test_loads_sample(self, sample_dat):
        archive = load(sample_dat)

        assert archive.path == sample_dat
        assert archive.mft_header.identifier == MFT_MAGIC
        assert archive.mft_header.entry_count == 5
        assert len(archive.entries) == archive.mft_header.entry_count

    def test_entries_point_at_payloads(self, sample_dat):
        archive = load(sample_dat)
        data = sample_dat.read_bytes()

        first = archive.entries[0]
        assert data[first.offset:first.end] == HEADER_CHUNK
        assert archive.entries[4].compression_flag == 8

    def test_index_table(self, sample_dat):
        archive = load(sample_dat)

        assert archive.index_entry is archive.entries[1]
        assert len(archive.index) == archive.entries[1].size // 8
        assert [(e.file_id, e.base_id) for e in archive.index] == SAMPLE_INDEX

    def test_accepts_str_path_and_uppercase_extension(self, make_dat):
        path = make_dat(name="LOCAL.DAT")
        archive = load(str(path))
        assert len(archive.entries) == 5

    def test_default_options(self, sample_dat):
        options = load(sample_dat).options
        assert options.index_slot == 1
        assert options.strict_magic
        assert options.lookup_policy is LookupPolicy.LAST_MATCH_WINS

    def test_archive_is_immutable(self, sample_dat):
        archive = load(sample_dat)
        with pytest.raises(AttributeError):
            archive.entries = ()
        assert isinstance(archive.entries, tuple)
        assert isinstance(archive.index, tuple)


class TestLoadErrors:
    """Tests for load() failures."""

    def test_wrong_extension_checked_before_reading(self, tmp_path):
        # The file does not exist; the extension check must fire first
        with pytest.raises(InvalidExtensionError):
            load(tmp_path / "Local.bin")

    def test_custom_extension(self, make_dat):
        path = make_dat(name="Local.archive")
        with pytest.raises(InvalidExtensionError):
            load(path)
        assert len(load(path, LoadOptions(extension=".archive")).entries) == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ArchiveNotFoundError):
            load(tmp_path / "missing.dat")

    def test_directory_named_like_archive(self, tmp_path):
        path = tmp_path / "Local.dat"
        path.mkdir()

        with pytest.raises(ArchiveIOError):
            load(path)
        with pytest.raises(DatError):
            load(path)

    def test_truncated_header(self, tmp_path):
        path = tmp_path / "short.dat"
        path.write_bytes(b"\x97AN\x1a" + b"\x00" * 10)
        with pytest.raises(TruncatedError):
            load(path)

    def test_invalid_header_magic(self, make_dat):
        with pytest.raises(InvalidMagicError):
            load(make_dat(magic=b"ZIP"))

    def test_relaxed_header_magic(self, make_dat):
        archive = load(make_dat(magic=b"ZIP"), LoadOptions(strict_magic=False))
        assert archive.header.identifier == b"ZIP"

    def test_invalid_manifest_magic(self, make_dat):
        with pytest.raises(InvalidManifestMagicError):
            load(make_dat(mft_magic=b"Mft\x00"))

    def test_mft_offset_past_end(self, tmp_path):
        data = bytearray(build_dat([HEADER_CHUNK, pack_index([])]))
        struct.pack_into("<Q", data, 24, len(data) + 100)
        path = tmp_path / "bad.dat"
        path.write_bytes(bytes(data))

        with pytest.raises(TruncatedError):
            load(path)

    def test_entry_count_exceeds_file(self, make_dat):
        with pytest.raises(TruncatedError):
            load(make_dat(entry_count=50))

    def test_entry_past_end_of_file(self, tmp_path):
        data = bytearray(build_dat([HEADER_CHUNK, pack_index([]), FIRST_CHUNK]))
        mft_offset = struct.unpack_from("<Q", data, 24)[0]
        # Third record's size field
        struct.pack_into("<I", data, mft_offset + 24 + 2 * 24 + 8, 10_000)
        path = tmp_path / "bad.dat"
        path.write_bytes(bytes(data))

        with pytest.raises(TruncatedError):
            load(path)

    def test_index_size_not_multiple_of_8(self, make_dat):
        path = make_dat([HEADER_CHUNK, pack_index([(1, 1)]) + b"\x00\x00"])
        with pytest.raises(IndexTableError):
            load(path)

    def test_index_table_past_end_of_file(self, tmp_path):
        data = bytearray(build_dat([HEADER_CHUNK, pack_index([(1, 1)])]))
        mft_offset = struct.unpack_from("<Q", data, 24)[0]
        # Second record (the index table) size field
        struct.pack_into("<I", data, mft_offset + 24 + 24 + 8, 8_000)
        path = tmp_path / "bad.dat"
        path.write_bytes(bytes(data))

        with pytest.raises(IndexTableError):
            load(path)

    def test_index_slot_outside_manifest(self, sample_dat):
        with pytest.raises(IndexTableError):
            load(sample_dat, LoadOptions(index_slot=5))


class TestIndexSlot:
    """Tests for the configurable index table slot."""

    def test_index_table_in_other_slot(self, make_dat):
        path = make_dat([pack_index([(7, 2)]), FIRST_CHUNK, SECOND_CHUNK])
        archive = load(path, LoadOptions(index_slot=0))

        assert [(e.file_id, e.base_id) for e in archive.index] == [(7, 2)]
        assert archive.index_entry is archive.entries[0]

    def test_empty_index_table(self, make_dat):
        archive = load(make_dat([HEADER_CHUNK, b""]))
        assert archive.index == ()


class TestDatReader:
    """Tests for DatReader class."""

    def test_context_manager(self, sample_dat):
        with DatReader(sample_dat) as reader:
            assert len(reader.archive.entries) == 5
            assert reader.extract(ArchiveId.FILE_ID, 100) == FIRST_CHUNK
        assert reader._file is None

    def test_not_opened(self, sample_dat):
        reader = DatReader(sample_dat)
        with pytest.raises(RuntimeError):
            reader.archive

    def test_handle_closed_when_load_fails(self, make_dat):
        reader = DatReader(make_dat(mft_magic=b"XXXX"))
        with pytest.raises(InvalidManifestMagicError):
            reader.open()
        assert reader._file is None

    def test_open_directory(self, tmp_path):
        path = tmp_path / "Local.dat"
        path.mkdir()

        with pytest.raises(ArchiveIOError):
            DatReader(path).open()
