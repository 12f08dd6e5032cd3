"""Loading and saving ``.npz`` archives: zip files of ``.npy`` arrays."""

from __future__ import annotations

import math
import os
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

import numpy as np

from .header import create_npy_header, parse_npy_header
from .npy import NpyArray, load_npy_stream

_LOCAL_SIG = b"PK\x03\x04"
_CENTRAL_SIG = b"PK\x01\x02"
_END_SIG = b"PK\x05\x06"
_FOOTER_SIZE = 22
_LOCAL_HEADER_SIZE = 30
_ZIP_VERSION = 20
_STORED = 0
_DEFLATED = 8
_LOCAL_FORMAT = "<4sHHHHHIIIHH"
_FOOTER_FORMAT = "<4sHHHHIIH"


@dataclass(frozen=True)
class ZipFooter:
    """The end-of-central-directory record of a zip archive."""

    nrecs: int
    global_header_size: int
    global_header_offset: int


def parse_zip_footer(stream: BinaryIO) -> ZipFooter:
    """Read the footer at the end of ``stream``."""
    size = stream.seek(0, os.SEEK_END)
    if size < _FOOTER_SIZE:
        raise ValueError("parse_zip_footer: file too short for a zip footer")
    stream.seek(size - _FOOTER_SIZE)
    raw = stream.read(_FOOTER_SIZE)
    if len(raw) != _FOOTER_SIZE:
        raise EOFError("parse_zip_footer: failed read")
    (
        signature,
        disk_no,
        disk_start,
        nrecs_on_disk,
        nrecs,
        global_header_size,
        global_header_offset,
        comment_len,
    ) = struct.unpack(_FOOTER_FORMAT, raw)
    if signature != _END_SIG:
        raise ValueError("parse_zip_footer: missing end of central directory record")
    if disk_no != 0 or disk_start != 0 or nrecs_on_disk != nrecs:
        raise ValueError("parse_zip_footer: multi-disk archives are not supported")
    if comment_len != 0:
        raise ValueError("parse_zip_footer: archives with a comment are not supported")
    return ZipFooter(nrecs, global_header_size, global_header_offset)


def load_npz_array(stream: BinaryIO, compressed_size: int, uncompressed_size: int) -> NpyArray:
    """Inflate one deflated ``.npy`` entry read from ``stream``."""
    compressed = stream.read(compressed_size)
    if len(compressed) != compressed_size:
        raise EOFError("load_npz_array: failed read")
    try:
        raw = zlib.decompressobj(-zlib.MAX_WBITS).decompress(compressed)
    except zlib.error as exc:
        raise ValueError(f"load_npz_array: corrupt deflate data: {exc}") from exc
    if len(raw) < uncompressed_size:
        raise ValueError("load_npz_array: inflated data shorter than recorded")
    header = parse_npy_header(raw)
    offset = uncompressed_size - header.num_bytes
    if offset < header.header_size:
        raise ValueError("load_npz_array: array data overlaps its header")
    data = raw[offset : offset + header.num_bytes]
    return NpyArray(header.shape, header.word_size, header.fortran_order, header.type_char, data)


def _entries(stream: BinaryIO) -> Iterator[tuple[str, int, int, int]]:
    """Yield (name, method, compressed size, uncompressed size) per local entry.

    After each yield the stream is positioned at the entry's data.
    """
    while True:
        local = stream.read(_LOCAL_HEADER_SIZE)
        if len(local) != _LOCAL_HEADER_SIZE:
            raise EOFError("npz_load: failed read")
        if local[2:4] != _LOCAL_SIG[2:4]:
            return
        fields = struct.unpack(_LOCAL_FORMAT, local)
        method, compressed_size, uncompressed_size = fields[3], fields[7], fields[8]
        name_len, extra_len = fields[9], fields[10]
        raw_name = stream.read(name_len)
        if len(raw_name) != name_len:
            raise EOFError("npz_load: failed read")
        if len(stream.read(extra_len)) != extra_len:
            raise EOFError("npz_load: failed read")
        name = raw_name.decode("utf-8")
        if name.endswith(".npy"):
            name = name[:-4]
        yield name, method, compressed_size, uncompressed_size


def _read_entry(stream: BinaryIO, method: int, compressed_size: int, uncompressed_size: int) -> NpyArray:
    start = stream.tell()
    if method == _STORED:
        array = load_npy_stream(stream)
    elif method == _DEFLATED:
        array = load_npz_array(stream, compressed_size, uncompressed_size)
    else:
        raise ValueError(f"npz_load: unsupported compression method {method}")
    stream.seek(start + compressed_size)
    return array


def npz_load(fname, varname: str | None = None):
    """Load every array of ``fname`` by name, or only the array ``varname``."""
    with open(fname, "rb") as fp:
        if varname is None:
            arrays = {name: _read_entry(fp, *sizes) for name, *sizes in _entries(fp)}
            return dict(sorted(arrays.items()))
        for name, method, compressed_size, uncompressed_size in _entries(fp):
            if name == varname:
                return _read_entry(fp, method, compressed_size, uncompressed_size)
            fp.seek(compressed_size, os.SEEK_CUR)
    raise KeyError(f"npz_load: variable name {varname} not found in {fname}")


def _payload(data, shape) -> tuple[np.ndarray, tuple[int, ...]]:
    arr = np.asarray(data)
    if arr.dtype.hasobject:
        raise ValueError("npz_save: object arrays cannot be stored")
    if shape is None:
        shape = arr.shape if arr.ndim else (1,)
    shape = tuple(int(n) for n in shape)
    if arr.size != math.prod(shape):
        raise ValueError(
            f"npz_save: data has {arr.size} elements but shape {shape} needs {math.prod(shape)}"
        )
    return arr.astype(arr.dtype.newbyteorder("="), copy=False), shape


def npz_save(zipname, fname: str, data, shape=None, mode: str = "w") -> None:
    """Store ``data`` as ``fname.npy`` in ``zipname``; mode ``"a"`` adds to an archive."""
    if mode not in ("w", "a"):
        raise ValueError(f"npz_save: unknown mode {mode!r}")
    arr, shape = _payload(data, shape)
    name = (fname + ".npy").encode("utf-8")
    npy_header = create_npy_header(shape, arr.dtype)
    payload = arr.tobytes(order="C")
    nbytes = len(npy_header) + len(payload)
    crc = zlib.crc32(payload, zlib.crc32(npy_header))

    path = Path(zipname)
    appending = mode == "a" and path.exists()
    with path.open("r+b" if appending else "wb") as fp:
        nrecs = 0
        offset = 0
        global_header = b""
        if appending:
            footer = parse_zip_footer(fp)
            nrecs, offset = footer.nrecs, footer.global_header_offset
            fp.seek(offset)
            global_header = fp.read(footer.global_header_size)
            if len(global_header) != footer.global_header_size:
                raise EOFError("npz_save: header read error while adding to existing zip")
            fp.seek(offset)

        local_header = (
            struct.pack(
                _LOCAL_FORMAT,
                _LOCAL_SIG,
                _ZIP_VERSION,
                0,
                _STORED,
                0,
                0,
                crc,
                nbytes,
                nbytes,
                len(name),
                0,
            )
            + name
        )
        global_header += (
            _CENTRAL_SIG
            + struct.pack("<H", _ZIP_VERSION)
            + local_header[4:_LOCAL_HEADER_SIZE]
            + struct.pack("<HHHII", 0, 0, 0, 0, offset)
            + name
        )
        footer_bytes = struct.pack(
            _FOOTER_FORMAT,
            _END_SIG,
            0,
            0,
            nrecs + 1,
            nrecs + 1,
            len(global_header),
            offset + nbytes + len(local_header),
            0,
        )

        fp.write(local_header)
        fp.write(npy_header)
        fp.write(payload)
        fp.write(global_header)
        fp.write(footer_bytes)
        fp.truncate()