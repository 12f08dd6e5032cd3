import io
import struct
import zipfile
import zlib

import numpy as np
import pytest

from npyfile.npz import (
    ZipFooter,
    load_npz_array,
    npz_load,
    npz_save,
    parse_zip_footer,
)


def _npy_bytes(array):
    buf = io.BytesIO()
    np.save(buf, array)
    return buf.getvalue()


def test_save_and_load_single_array(tmp_path):
    path = tmp_path / "out.npz"
    data = np.arange(6, dtype=np.float64)
    npz_save(path, "x", data, (2, 3))
    loaded = npz_load(path)
    assert list(loaded) == ["x"]
    assert loaded["x"].shape == (2, 3)
    assert loaded["x"].word_size == 8
    np.testing.assert_array_equal(loaded["x"].as_array(), data.reshape(2, 3))


def test_scalar_is_stored_as_one_element(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "myVar1", 1.2)
    arr = npz_load(path, "myVar1")
    assert arr.shape == (1,)
    assert arr.as_vec() == [1.2]


def test_local_header_and_footer_bytes(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "myVar1", np.array([1.2]), (1,))
    raw = path.read_bytes()
    assert raw[:4] == b"PK\x03\x04"
    assert raw[4:6] == struct.pack("<H", 20)
    name_len = struct.unpack_from("<H", raw, 26)[0]
    assert raw[30 : 30 + name_len] == b"myVar1.npy"
    assert raw[-22:-18] == b"PK\x05\x06"


def test_append_produces_valid_zip(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "a", np.arange(3, dtype=np.int32), mode="w")
    npz_save(path, "b", np.ones((2, 2)), mode="a")
    npz_save(path, "c", np.array([1 + 2j, 3 - 4j]), mode="a")
    with zipfile.ZipFile(path) as zf:
        assert zf.namelist() == ["a.npy", "b.npy", "c.npy"]
        assert zf.testzip() is None
    with path.open("rb") as fp:
        footer = parse_zip_footer(fp)
    assert footer.nrecs == 3
    assert footer.global_header_offset + footer.global_header_size == path.stat().st_size - 22


def test_numpy_reads_saved_archive(tmp_path):
    path = tmp_path / "out.npz"
    first = np.arange(12, dtype=np.int64).reshape(3, 4)
    second = np.linspace(0.0, 1.0, 5)
    npz_save(path, "first", first)
    npz_save(path, "second", second, mode="a")
    with np.load(path) as archive:
        np.testing.assert_array_equal(archive["first"], first)
        np.testing.assert_array_equal(archive["second"], second)


def test_load_single_variable(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "a", np.arange(4, dtype=np.float32))
    npz_save(path, "b", np.arange(10, dtype=np.int16), mode="a")
    arr = npz_load(path, "b")
    assert arr.shape == (10,)
    assert arr.as_vec() == list(range(10))


def test_missing_variable_raises_key_error(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "a", np.arange(4))
    with pytest.raises(KeyError):
        npz_load(path, "missing")


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        npz_load(tmp_path / "nope.npz")


def test_append_to_missing_file_creates_it(tmp_path):
    path = tmp_path / "new.npz"
    npz_save(path, "v", np.arange(3, dtype=np.uint8), mode="a")
    assert npz_load(path)["v"].as_vec() == [0, 1, 2]


def test_write_mode_overwrites(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "a", np.arange(3))
    npz_save(path, "b", np.arange(2), mode="w")
    assert list(npz_load(path)) == ["b"]


def test_loads_deflated_and_stored_entries(tmp_path):
    path = tmp_path / "mixed.npz"
    packed = np.arange(100, dtype=np.int64)
    plain = np.eye(3)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("packed.npy", _npy_bytes(packed), compress_type=zipfile.ZIP_DEFLATED)
        zf.writestr("plain.npy", _npy_bytes(plain), compress_type=zipfile.ZIP_STORED)
    loaded = npz_load(path)
    assert sorted(loaded) == ["packed", "plain"]
    np.testing.assert_array_equal(loaded["packed"].as_array(), packed)
    np.testing.assert_array_equal(loaded["plain"].as_array(), plain)
    np.testing.assert_array_equal(npz_load(path, "plain").as_array(), plain)


def test_load_npz_array_inflates_raw_deflate():
    array = np.arange(20, dtype=np.float64).reshape(4, 5)
    raw = _npy_bytes(array)
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    compressed = compressor.compress(raw) + compressor.flush()
    loaded = load_npz_array(io.BytesIO(compressed), len(compressed), len(raw))
    assert loaded.shape == (4, 5)
    np.testing.assert_array_equal(loaded.as_array(), array)


def test_load_npz_array_truncated_input():
    with pytest.raises(EOFError):
        load_npz_array(io.BytesIO(b"abc"), 10, 100)


def test_parse_zip_footer_rejects_garbage():
    with pytest.raises(ValueError):
        parse_zip_footer(io.BytesIO(bytes(22)))


def test_parse_zip_footer_rejects_short_stream():
    with pytest.raises(ValueError):
        parse_zip_footer(io.BytesIO(b"PK"))


def test_parse_zip_footer_of_saved_archive(tmp_path):
    path = tmp_path / "out.npz"
    npz_save(path, "a", np.arange(5))
    with path.open("rb") as fp:
        footer = parse_zip_footer(fp)
    assert footer == ZipFooter(1, footer.global_header_size, footer.global_header_offset)
    assert footer.global_header_offset + footer.global_header_size + 22 == path.stat().st_size


def test_bad_mode_rejected(tmp_path):
    with pytest.raises(ValueError):
        npz_save(tmp_path / "out.npz", "a", np.arange(3), mode="x")


def test_shape_mismatch_rejected(tmp_path):
    with pytest.raises(ValueError):
        npz_save(tmp_path / "out.npz", "a", np.arange(5), (2, 3))