"""Loading and saving single arrays in ``.npy`` files."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import numpy as np

from .header import NpyHeader, create_npy_header, read_npy_header


@dataclass
class NpyArray:
    """Raw bytes of an array together with its shape and element size."""

    shape: tuple[int, ...]
    word_size: int
    fortran_order: bool = False
    type_char: str | None = None
    data: bytearray | None = None

    def __post_init__(self) -> None:
        self.shape = tuple(int(n) for n in self.shape)
        expected = self.num_vals * self.word_size
        if self.data is None:
            self.data = bytearray(expected)
        else:
            self.data = bytearray(self.data)
            if len(self.data) != expected:
                raise ValueError(
                    f"NpyArray: expected {expected} bytes of data, got {len(self.data)}"
                )

    @property
    def num_vals(self) -> int:
        return math.prod(self.shape)

    @property
    def num_bytes(self) -> int:
        return len(self.data)

    def _dtype(self, dtype) -> np.dtype:
        if dtype is not None:
            return np.dtype(dtype)
        if self.type_char is None or self.type_char == "?":
            raise ValueError("NpyArray: element type unknown, pass a dtype")
        return np.dtype(f"<{self.type_char}{self.word_size}")

    def _flat(self, dtype) -> np.ndarray:
        resolved = self._dtype(dtype)
        if self.num_vals == 0:
            return np.empty(0, dtype=resolved)
        return np.frombuffer(self.data, dtype=resolved, count=self.num_vals)

    def as_vec(self, dtype=None) -> list:
        """Return the elements as a flat list in storage order."""
        return self._flat(dtype).tolist()

    def as_array(self, dtype=None) -> np.ndarray:
        """Return a numpy view of the data with the recorded shape."""
        order = "F" if self.fortran_order else "C"
        return self._flat(dtype).reshape(self.shape, order=order)


def _from_header(header: NpyHeader, data: bytes) -> NpyArray:
    return NpyArray(header.shape, header.word_size, header.fortran_order, header.type_char, data)


def load_npy_stream(stream: BinaryIO) -> NpyArray:
    """Read a header and its array data from ``stream``."""
    header = read_npy_header(stream)
    data = stream.read(header.num_bytes)
    if len(data) != header.num_bytes:
        raise EOFError("load_npy_stream: failed read")
    return _from_header(header, data)


def npy_load(fname) -> NpyArray:
    """Load the array stored in the ``.npy`` file ``fname``."""
    with open(fname, "rb") as fp:
        return load_npy_stream(fp)


def _native_payload(data, shape) -> tuple[np.ndarray, tuple[int, ...]]:
    arr = np.asarray(data)
    if arr.dtype.hasobject:
        raise ValueError("npy_save: object arrays cannot be stored")
    if shape is None:
        shape = arr.shape if arr.ndim else (1,)
    shape = tuple(int(n) for n in shape)
    if arr.size != math.prod(shape):
        raise ValueError(
            f"npy_save: data has {arr.size} elements but shape {shape} needs {math.prod(shape)}"
        )
    arr = arr.astype(arr.dtype.newbyteorder("="), copy=False)
    return arr, shape


def npy_save(fname, data, shape=None, mode: str = "w", type_char: str | None = None) -> None:
    """Write ``data`` to ``fname``; with mode ``"a"`` append along the first axis."""
    if mode not in ("w", "a"):
        raise ValueError(f"npy_save: unknown mode {mode!r}")
    arr, shape = _native_payload(data, shape)
    payload = arr.tobytes(order="C")
    path = Path(fname)

    if mode == "a" and path.exists():
        with path.open("r+b") as fp:
            existing = read_npy_header(fp)
            if existing.fortran_order:
                raise ValueError(f"npy_save: cannot append to Fortran-ordered {fname}")
            if existing.word_size != arr.dtype.itemsize:
                raise ValueError(
                    f"npy_save: {fname} has word size {existing.word_size} "
                    f"but appended data has word size {arr.dtype.itemsize}"
                )
            if len(existing.shape) != len(shape):
                raise ValueError(f"npy_save: appending misdimensioned data to {fname}")
            if existing.shape[1:] != shape[1:]:
                raise ValueError(f"npy_save: appending misshaped data to {fname}")
            total = (existing.shape[0] + shape[0],) + shape[1:]
            header = create_npy_header(total, arr.dtype, type_char)
            if len(header) == existing.header_size:
                fp.seek(0)
                fp.write(header)
                fp.seek(0, os.SEEK_END)
                fp.write(payload)
            else:
                fp.seek(existing.header_size)
                body = fp.read(existing.num_bytes)
                fp.seek(0)
                fp.write(header)
                fp.write(body)
                fp.write(payload)
                fp.truncate()
        return

    header = create_npy_header(shape, arr.dtype, type_char)
    with path.open("wb") as fp:
        fp.write(header)
        fp.write(payload)


def npy_save_matrix(fname, matrix, type_char: str | None = None) -> None:
    """Save a two-dimensional matrix in row-major order; vectors become columns."""
    arr = np.asarray(matrix)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError(f"npy_save_matrix: expected a matrix, got {arr.ndim} dimensions")
    npy_save(fname, np.ascontiguousarray(arr), arr.shape, "w", type_char)


def npy_load_matrix(fname, dtype=np.float32) -> np.ndarray:
    """Load an ``.npy`` file as a row-major matrix of ``dtype``."""
    dtype = np.dtype(dtype)
    loaded = npy_load(fname)
    if dtype.itemsize * loaded.num_vals != loaded.num_bytes:
        raise ValueError(
            f"npy_load_matrix: {fname} does not hold elements of size {dtype.itemsize}"
        )
    dims = loaded.shape + (1,) * max(0, 2 - len(loaded.shape))
    rows, cols = max(dims[0], 1), max(dims[1], 1)
    if loaded.num_vals > rows * cols:
        raise ValueError(f"npy_load_matrix: {fname} holds more than a matrix")
    result = np.zeros((rows, cols), dtype=dtype)
    result.reshape(-1)[: loaded.num_vals] = loaded.as_vec(dtype)
    return result